"""Process-lifetime application context.

Owns the objects that must exist exactly once per process: the transform engine
and the drag-and-drop registration. UI code asks the context for them instead of
registering its own listeners on every mount.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from snapedit.config import AppConfig, config as default_config
from snapedit.engine import TransformEngine
from snapedit.io.imagefile import is_supported_image

log = logging.getLogger(__name__)

DropCallback = Callable[[List[Path]], None]


class DropRegistration:
    """The single drag-and-drop listener handle."""

    def __init__(self, callback: DropCallback):
        self.callback: Optional[DropCallback] = callback
        self.active = True

    def replace(self, callback: DropCallback):
        self.callback = callback

    def close(self):
        self.active = False
        self.callback = None


class AppContext:
    _current: Optional["AppContext"] = None
    _guard = threading.Lock()

    def __init__(self, app_config: AppConfig, engine: TransformEngine):
        self.config = app_config
        self.engine = engine
        self.drop_registration: Optional[DropRegistration] = None

    @classmethod
    def start(cls, app_config: Optional[AppConfig] = None, engine: Optional[TransformEngine] = None) -> "AppContext":
        """Creates the context once; later calls return the running one."""
        with cls._guard:
            if cls._current is None:
                cls._current = cls(app_config or default_config, engine or TransformEngine())
                log.info("Application context started")
            return cls._current

    @classmethod
    def current(cls) -> "AppContext":
        if cls._current is None:
            raise RuntimeError("AppContext.start() has not been called")
        return cls._current

    @classmethod
    def shutdown(cls):
        with cls._guard:
            context, cls._current = cls._current, None
        if context is None:
            return
        if context.drop_registration is not None:
            context.drop_registration.close()
            context.drop_registration = None
        context.engine.shutdown()
        log.info("Application context shut down")

    def register_drop_handler(self, callback: DropCallback) -> DropRegistration:
        if self.drop_registration is None:
            self.drop_registration = DropRegistration(callback)
        else:
            log.debug("Drop handler already registered; replacing its callback")
            self.drop_registration.replace(callback)
        return self.drop_registration

    def dispatch_drop(self, paths: Iterable) -> List[Path]:
        """Forwards the supported image paths of a drop event to the registered callback."""
        images = [Path(p) for p in paths if is_supported_image(p)]
        registration = self.drop_registration
        if not images or registration is None or registration.callback is None:
            return images
        registration.callback(images)
        return images
