"""
Modifier key state (ctrl/shift/alt/meta).

The input layer reports modifier states whenever it sees a key or mouse
event; listeners are only called when a key actually changes.
"""
from typing import Callable, Dict, List

MODIFIERS = ("ctrl", "shift", "alt", "meta")


class KeyboardState:
    """Latest known state of the modifier keys."""

    def __init__(self):
        self._down: Dict[str, bool] = {key: False for key in MODIFIERS}
        self._listeners: List[Callable[[str, bool], None]] = []

    @property
    def ctrl(self) -> bool:
        return self._down["ctrl"]

    @property
    def shift(self) -> bool:
        return self._down["shift"]

    @property
    def alt(self) -> bool:
        return self._down["alt"]

    @property
    def meta(self) -> bool:
        return self._down["meta"]

    def is_down(self, key: str) -> bool:
        if key not in self._down:
            raise ValueError(f"Unknown modifier: {key}")
        return self._down[key]

    def update(self, **states: bool):
        """
        Report modifier states, e.g. update(ctrl=True, shift=False).

        Keys not mentioned keep their state.
        """
        for key, down in states.items():
            if key not in self._down:
                raise ValueError(f"Unknown modifier: {key}")
            down = bool(down)
            if self._down[key] != down:
                self._down[key] = down
                for callback in list(self._listeners):
                    callback(key, down)

    def subscribe(self, callback: Callable[[str, bool], None]) -> Callable[[], None]:
        """Call callback(key, down) whenever a modifier changes."""
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback)
