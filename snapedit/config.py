"""Manages application configuration via an INI file."""

import configparser
import logging

from snapedit.logging_setup import get_app_data_dir

log = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "core": {
        # Used by Convert when no quality is given for JPEG/WEBP/AVIF
        "default_quality": "90",
        "worker_threads": "2",
        "raster_cache_mb": "256",
        # Wrap every transform in the snapshot-and-compare guard
        "verify_immutability": "True",
    },
    "placement": {
        "min_size": "20",
        # New stickers/texts start at this fraction of the image size from the top-left
        "initial_offset": "0.1",
        # New stickers are capped at this fraction of the image size
        "max_fraction": "0.3",
    },
    "text": {
        "font_family": "DejaVuSans",
        "font_size": "32",
        "color": "#000000",
    },
    "background": {
        "color": "#FFFFFF",
    },
    "viewer": {
        "min_zoom": "0.1",
        "max_zoom": "10",
        "zoom_step": "0.1",
    },
}


class AppConfig:
    def __init__(self, config_path=None):
        self.config_path = config_path or (get_app_data_dir() / "snapedit.ini")
        self.config = configparser.ConfigParser()
        self.load()

    def load(self):
        """Loads the config, creating it with defaults if it doesn't exist."""
        if not self.config_path.exists():
            log.info(f"Creating default config at {self.config_path}")
            self.config.read_dict(DEFAULT_CONFIG)
            self.save()
        else:
            log.info(f"Loading config from {self.config_path}")
            try:
                self.config.read(self.config_path)
            except configparser.Error as e:
                log.error(f"Failed to parse {self.config_path}, using defaults: {e}")
                self.config = configparser.ConfigParser()
            # Ensure all sections and keys exist
            missing = False
            for section, keys in DEFAULT_CONFIG.items():
                if not self.config.has_section(section):
                    self.config.add_section(section)
                for key, value in keys.items():
                    if not self.config.has_option(section, key):
                        self.config.set(section, key, value)
                        missing = True
            if missing:
                self.save()  # Save to add any missing keys

    def save(self):
        """Saves the current configuration to the INI file."""
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with self.config_path.open("w") as f:
                self.config.write(f)
            log.info(f"Saved config to {self.config_path}")
        except OSError as e:
            log.error(f"Failed to save config to {self.config_path}: {e}")

    def get(self, section, key, fallback=None):
        return self.config.get(section, key, fallback=fallback)

    def getint(self, section, key, fallback=None):
        return self.config.getint(section, key, fallback=fallback)

    def getfloat(self, section, key, fallback=None):
        return self.config.getfloat(section, key, fallback=fallback)

    def getboolean(self, section, key, fallback=None):
        return self.config.getboolean(section, key, fallback=fallback)

    def set(self, section, key, value):
        if not self.config.has_section(section):
            self.config.add_section(section)
        self.config.set(section, key, str(value))

# Global config instance
config = AppConfig()
