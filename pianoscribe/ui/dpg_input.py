"""
Dear PyGui input for the piano roll canvas.

Mouse handlers report positions in window coordinates; they are converted to
canvas-local pixels before being passed to the GestureEngine. Modifier keys
are polled on every mouse event and pushed into the engine's KeyboardState.
The wheel scrolls or zooms the RenderWindow the bridge owns.
"""
import logging
from dataclasses import replace
from typing import Optional, Tuple

import dearpygui.dearpygui as dpg

from pianoscribe.core.settings import Settings
from pianoscribe.ui.gestures import GestureEngine
from pianoscribe.ui.viewport import RenderWindow, scroll_zoom_pitch, scroll_zoom_time

logger = logging.getLogger(__name__)

# Wheel delta per notch, in the units scroll_zoom expects
WHEEL_STEP = 100


class DpgInputBridge:
    """Feeds Dear PyGui mouse/key input of one canvas into a GestureEngine."""

    def __init__(self, engine: GestureEngine, canvas_id, duration: float,
                 settings: Optional[Settings] = None, window: Optional[RenderWindow] = None):
        """
        Args:
            engine: Gesture engine receiving pointer events
            canvas_id: Dear PyGui drawlist (or child window) holding the piano roll
            duration: Audio length in seconds (limit of the time axis)
            settings: Zoom modifier setting
            window: Initial visible range (whole audio by default)
        """
        settings = settings if settings is not None else Settings.defaults()
        self.engine = engine
        self.canvas_id = canvas_id
        self.duration = duration
        self.zoom_modifier = settings.zoom_modifier
        self.window = window if window is not None else RenderWindow(time_min=0.0, time_max=duration)
        self.width = 0.0
        self.height = 0.0

    def register(self):
        """Create the Dear PyGui handlers. Call inside a running context."""
        with dpg.item_handler_registry() as handler:
            dpg.add_item_clicked_handler(button=dpg.mvMouseButton_Left, callback=self._handle_canvas_click)
        dpg.bind_item_handler_registry(self.canvas_id, handler)

        with dpg.handler_registry():
            dpg.add_mouse_wheel_handler(callback=self._handle_mouse_wheel)
            dpg.add_mouse_move_handler(callback=self._handle_mouse_move)
            dpg.add_mouse_release_handler(button=dpg.mvMouseButton_Left, callback=self._handle_mouse_release)
            dpg.add_key_press_handler(callback=self._handle_key)
            dpg.add_key_release_handler(callback=self._handle_key)

    def resize(self, width: float, height: float):
        """Canvas size changed (e.g. from an item resize handler)."""
        self.width = width
        self.height = height
        self._push_viewport()

    def set_window(self, window: RenderWindow):
        self.window = window
        self._push_viewport()

    def _push_viewport(self):
        self.engine.set_viewport(self.window, self.width, self.height)

    def _local_mouse(self) -> Tuple[float, float]:
        mouse_pos = dpg.get_mouse_pos(local=False)
        canvas_rect_min = dpg.get_item_rect_min(self.canvas_id)
        return mouse_pos[0] - canvas_rect_min[0], mouse_pos[1] - canvas_rect_min[1]

    def _sync_modifiers(self):
        self.engine.keyboard.update(
            ctrl=any(dpg.is_key_down(k) for k in (dpg.mvKey_Control, dpg.mvKey_LControl, dpg.mvKey_RControl)),
            shift=any(dpg.is_key_down(k) for k in (dpg.mvKey_Shift, dpg.mvKey_LShift, dpg.mvKey_RShift)),
            alt=any(dpg.is_key_down(k) for k in (dpg.mvKey_Alt, dpg.mvKey_LMenu, dpg.mvKey_RMenu)),
        )

    def _handle_key(self, sender, app_data):
        self._sync_modifiers()

    def _handle_canvas_click(self, sender, app_data):
        """Left button pressed on the canvas."""
        self._sync_modifiers()
        mouse_x, mouse_y = self._local_mouse()
        self.engine.pointer_down(mouse_x, mouse_y)

    def _handle_mouse_move(self, sender, app_data):
        """Mouse moved anywhere; gestures keep tracking outside the canvas."""
        self._sync_modifiers()
        mouse_x, mouse_y = self._local_mouse()
        if self.engine.is_busy or dpg.is_item_hovered(self.canvas_id):
            self.engine.pointer_move(mouse_x, mouse_y)
        elif self.engine.mouse is not None:
            self.engine.pointer_leave()

    def _handle_mouse_release(self, sender, app_data):
        """Left button released anywhere."""
        self._sync_modifiers()
        mouse_x, mouse_y = self._local_mouse()
        self.engine.pointer_up(mouse_x, mouse_y)

    def _handle_mouse_wheel(self, sender, app_data):
        """Scroll (or zoom with the zoom modifier) pitch, or time with shift held."""
        if not dpg.is_item_hovered(self.canvas_id):
            return
        if self.width <= 0 or self.height <= 0:
            return
        self._sync_modifiers()
        keyboard = self.engine.keyboard
        mouse_x, mouse_y = self._local_mouse()

        # Positive app_data = scroll up; scroll_zoom expects positive = down
        wheel_delta = -app_data * WHEEL_STEP
        zoom = keyboard.is_down(self.zoom_modifier)
        window = self.window
        if keyboard.shift:
            time_min, time_max = scroll_zoom_time(
                window.time_min, window.time_max, self.duration,
                wheel_delta, zoom, mouse_x / self.width,
            )
            window = replace(window, time_min=time_min, time_max=time_max)
        else:
            pitch_min, pitch_max = scroll_zoom_pitch(
                window.pitch_min, window.pitch_max, self.width / self.height,
                wheel_delta, zoom, 1 - mouse_y / self.height,
            )
            window = replace(window, pitch_min=pitch_min, pitch_max=pitch_max)
        logger.debug("Wheel %s -> %r", app_data, window)
        self.set_window(window)
