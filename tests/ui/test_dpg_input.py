import pytest

pytest.importorskip("dearpygui")

from pianoscribe.core.selection import PairsSet  # noqa: E402
from pianoscribe.ui import dpg_input  # noqa: E402
from pianoscribe.ui.dpg_input import DpgInputBridge  # noqa: E402
from pianoscribe.ui.gestures import GestureEngine  # noqa: E402
from pianoscribe.ui.viewport import RenderWindow  # noqa: E402

dpg = dpg_input.dpg


class FakeDpg:
    """Stands in for the Dear PyGui query functions (no context is created)."""

    def __init__(self, monkeypatch):
        self.mouse = (0.0, 0.0)
        self.canvas_min = (10.0, 20.0)
        self.keys = set()
        self.hovered = True
        monkeypatch.setattr(dpg, "get_mouse_pos", lambda local=False: list(self.mouse))
        monkeypatch.setattr(dpg, "get_item_rect_min", lambda item: list(self.canvas_min))
        monkeypatch.setattr(dpg, "is_key_down", lambda key: key in self.keys)
        monkeypatch.setattr(dpg, "is_item_hovered", lambda item: self.hovered)

    def at(self, x, y):
        """Put the mouse at canvas-local (x, y)."""
        self.mouse = (x + self.canvas_min[0], y + self.canvas_min[1])


@pytest.fixture
def fake_dpg(monkeypatch):
    return FakeDpg(monkeypatch)


@pytest.fixture
def bridge(history, settings, fake_dpg):
    engine = GestureEngine(history, settings=settings)
    b = DpgInputBridge(engine, "canvas", duration=10.0, settings=settings,
                       window=RenderWindow(0, 10, 50, 70))
    b.resize(960, 200)
    return b


def test_resize_sets_engine_viewport(bridge):
    assert bridge.engine.mapper.width == 960
    assert bridge.engine.mapper.window == RenderWindow(0, 10, 50, 70)


def test_click_uses_canvas_local_position(bridge, fake_dpg):
    fake_dpg.at(50, 100)
    bridge._handle_canvas_click(None, [0, "canvas"])
    bridge._handle_mouse_release(None, 0)
    assert bridge.engine.selection.as_singleton == (0, 0)


def test_modifiers_are_polled(bridge, fake_dpg):
    fake_dpg.keys = {dpg.mvKey_LShift}
    fake_dpg.at(50, 100)
    bridge._handle_canvas_click(None, None)
    bridge._handle_mouse_release(None, 0)
    assert bridge.engine.keyboard.shift
    fake_dpg.keys = set()
    bridge._handle_key(None, None)
    assert not bridge.engine.keyboard.shift


def test_drag_outside_canvas_still_tracked(bridge, fake_dpg, history):
    bridge.engine.set_selection(PairsSet.singleton((0, 0)))
    fake_dpg.at(96, 100)
    bridge._handle_canvas_click(None, None)
    fake_dpg.hovered = False
    fake_dpg.at(130, 300)
    bridge._handle_mouse_move(None, None)
    bridge._handle_mouse_release(None, 0)
    assert history.project.parts[0].notes[0].length == 120


def test_leaving_canvas_clears_hover(bridge, fake_dpg):
    fake_dpg.at(130, 80)
    bridge._handle_mouse_move(None, None)
    assert bridge.engine.hovered_note is not None
    fake_dpg.hovered = False
    bridge._handle_mouse_move(None, None)
    assert bridge.engine.mouse is None


def test_wheel_scrolls_pitch(bridge, fake_dpg):
    fake_dpg.at(480, 100)
    bridge._handle_mouse_wheel(None, -1)
    window = bridge.window
    assert window.time_min == 0 and window.time_max == 10
    assert window.pitch_max - window.pitch_min == pytest.approx(20)
    assert window.pitch_min < 50
    assert bridge.engine.mapper.window is window


def test_wheel_with_zoom_modifier_zooms_time(bridge, fake_dpg):
    fake_dpg.keys = {dpg.mvKey_Shift, dpg.mvKey_Control}
    fake_dpg.at(480, 100)
    bridge._handle_mouse_wheel(None, 1)
    window = bridge.window
    assert window.time_max - window.time_min < 10
    # the time under the pointer stays put
    assert (window.time_min + window.time_max) / 2 == pytest.approx(5)
    assert (window.pitch_min, window.pitch_max) == (50, 70)


def test_wheel_outside_canvas_ignored(bridge, fake_dpg):
    fake_dpg.hovered = False
    bridge._handle_mouse_wheel(None, 1)
    assert bridge.window == RenderWindow(0, 10, 50, 70)
