# snapedit/ui/keystrokes.py
import logging
from PySide6.QtCore import Qt

log = logging.getLogger(__name__)

class Keybinder:
    def __init__(self, controller):
        """
        controller is usually an EditSession; any object with
        undo/redo/rotate_clockwise/rotate_counterclockwise works.
        """
        self.controller = controller

        # map keys → method names (not callables)
        self.key_map = {
            Qt.Key_BracketRight: "rotate_clockwise",
            Qt.Key_BracketLeft: "rotate_counterclockwise",
        }

        # checked in order; Ctrl+Shift+Z must win over Ctrl+Z
        self.modifier_key_map = [
            ((Qt.Key_Z, Qt.ControlModifier | Qt.ShiftModifier), "redo"),
            ((Qt.Key_Z, Qt.ControlModifier), "undo"),
            ((Qt.Key_Y, Qt.ControlModifier), "redo"),
        ]

    def _call(self, method_name: str):
        if hasattr(self.controller, method_name):
            getattr(self.controller, method_name)()
            return

        log.warning(f"Keybinder: controller has no '{method_name}'")

    def handle_key_press(self, event):
        key = event.key()
        text = event.text()
        modifiers = event.modifiers()
        log.debug(f"Key pressed: {key} ({text!r}) with modifiers {modifiers}")

        for (mapped_key, mapped_modifier), method_name in self.modifier_key_map:
            if key == mapped_key and (modifiers & mapped_modifier) == mapped_modifier:
                self._call(method_name)
                return True

        if modifiers & Qt.ControlModifier:
            return False

        method_name = self.key_map.get(key)
        if method_name:
            self._call(method_name)
            return True

        # extra safety for layouts where bracket keycodes are odd
        if text == "]":
            self._call("rotate_clockwise")
            return True
        if text == "[":
            self._call("rotate_counterclockwise")
            return True

        return False
