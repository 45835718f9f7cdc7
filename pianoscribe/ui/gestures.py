"""
Pointer gestures of the piano roll editor.

A gesture starts on a left-button press and ends on the next release:
- Box select (press on empty canvas)
- Note add (press while a part is armed for drawing)
- Note resize (press on a resize handle of the single selected note)
- Note move (press on a selected note; a release without moving is a click)

Each gesture is a generator. It yields a Wait telling the engine which
pointer event should resume it, and receives that PointerEvent back from
yield. Transient preview state is reset in try/finally blocks, so it is
cleared however the gesture ends (release, early return, or close() when a
new press interrupts it).
"""
import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Generator, List, Optional, Tuple

from pianoscribe.core.history import ProjectHistory
from pianoscribe.core.models import (
    Meter, Note, Project, append_note, map_notes, replace_note, time2beat, time2pulse,
)
from pianoscribe.core.selection import Pair, PairsSet
from pianoscribe.core.settings import Settings
from pianoscribe.ui.keyboard import KeyboardState
from pianoscribe.ui.viewport import (
    END_HANDLE, START_HANDLE, Rect, RenderWindow, ViewportMapper, note_rect, resize_handle_rect,
)

logger = logging.getLogger(__name__)


class Wait(Enum):
    """What a suspended gesture is waiting for."""
    UP = "up"                  # the release only
    SAMPLE = "sample"          # the next move or the release
    UP_OR_DRAG = "up_or_drag"  # the release, or a move to another pixel than the press


class PointerKind(Enum):
    MOVE = "move"
    UP = "up"


class HitKind(Enum):
    EMPTY = "empty"
    NOTE = "note"
    HANDLE = "handle"  # resize handle of the single selected note


@dataclass(frozen=True)
class PointerEvent:
    kind: PointerKind
    x: float
    y: float


@dataclass(frozen=True)
class Hit:
    """What lies under a viewport position."""
    kind: HitKind
    part_index: Optional[int] = None
    note_index: Optional[int] = None
    which: Optional[int] = None


Gesture = Generator[Wait, PointerEvent, None]


def _round(v: float) -> int:
    """Round to nearest, halves up."""
    return int(math.floor(v + 0.5))


def _pixel(x: float, y: float) -> Tuple[int, int]:
    return int(math.floor(x)), int(math.floor(y))


def click_drag_note(start: Note, end: Note) -> Optional[Note]:
    """Note spanning from start's start to end's end, at end's pitch; None if empty."""
    length = end.start + end.length - start.start
    return replace(start, length=length, pitch=end.pitch) if length > 0 else None


def resize_note(meter: Meter, note: Note, which: int, time: float) -> Note:
    """
    Note with one end dragged to the grid line nearest to time.

    The other end (the anchor) stays put. Landing on the anchor pushes the
    dragged end one grid step further in the direction of the pointer, so the
    note never collapses.
    """
    step = meter.pulses_per_subdivision
    raw_pulse = time2pulse(meter, time)
    pulse = _round(raw_pulse / step) * step
    anchor = note.start + (1 - which) * note.length
    if pulse == anchor:
        pulse += step if raw_pulse >= anchor else -step
    if pulse >= anchor:
        return replace(note, start=anchor, length=pulse - anchor)
    return replace(note, start=pulse, length=anchor - pulse)


def notes_in_box(project: Project, time_a: float, pitch_a: float,
                 time_b: float, pitch_b: float) -> PairsSet:
    """All notes touched by the time/pitch rectangle between two corners."""
    meter = project.meter
    pulse_lo, pulse_hi = sorted((time2pulse(meter, time_a), time2pulse(meter, time_b)))
    pitch_lo, pitch_hi = sorted((pitch_a, pitch_b))
    pitch_lo -= 0.5
    pitch_hi += 0.5
    return PairsSet.from_iterable(
        (part_index, [
            note_index for note_index, note in enumerate(part.notes)
            if pitch_lo <= note.pitch <= pitch_hi
            and note.start <= pulse_hi and note.start + note.length >= pulse_lo
        ])
        for part_index, part in enumerate(project.parts)
    )


def _note_at(project: Optional[Project], pair: Pair) -> Optional[Note]:
    if project is None:
        return None
    part_index, note_index = pair
    if not 0 <= part_index < len(project.parts):
        return None
    notes = project.parts[part_index].notes
    return notes[note_index] if 0 <= note_index < len(notes) else None


class GestureEngine:
    """Turns pointer input into selection changes and history edits."""

    def __init__(self, history: ProjectHistory, keyboard: Optional[KeyboardState] = None,
                 settings: Optional[Settings] = None):
        """
        Args:
            history: Project history edits are committed to
            keyboard: Modifier key source (a fresh one if omitted)
            settings: Handle width and axis-lock modifier
        """
        settings = settings if settings is not None else Settings.defaults()
        self.history = history
        self.keyboard = keyboard if keyboard is not None else KeyboardState()
        self.handle_width = settings.resize_handle_width
        self.axis_lock_modifier = settings.axis_lock_modifier

        # Part that new notes are drawn into (None = not drawing)
        self.active_part_index: Optional[int] = None
        self.mapper: Optional[ViewportMapper] = None
        self.mouse: Optional[Tuple[float, float]] = None

        self._selection = PairsSet.empty()
        self._selection_listeners: List[Callable[[PairsSet], None]] = []

        self._gesture: Optional[Gesture] = None
        self._wait: Optional[Wait] = None
        self._press_pixel: Optional[Tuple[int, int]] = None

        # Previews of the gesture in progress
        self.pending_selection: Optional[PairsSet] = None
        self.box_corners: Optional[Tuple[Tuple[float, float], Tuple[float, float]]] = None
        self.click_start_note: Optional[Note] = None
        self.resize_target: Optional[Tuple[int, int, int]] = None
        self.resize_preview: Optional[Note] = None
        self.move_delta: Optional[Tuple[int, int]] = None

        history.subscribe_selection_reset(self._on_selection_reset)

    # Viewport / selection

    def set_viewport(self, window: RenderWindow, width: float, height: float):
        self.mapper = ViewportMapper(window, width, height)

    @property
    def selection(self) -> PairsSet:
        """Committed selection (replaced, never mutated, by the engine)."""
        return self._selection

    @property
    def displayed_selection(self) -> PairsSet:
        """Selection to draw: the box-select preview while one is running."""
        return self.pending_selection if self.pending_selection is not None else self._selection

    def set_selection(self, selection: PairsSet):
        self._selection = selection
        for callback in list(self._selection_listeners):
            callback(selection)

    def subscribe_selection(self, callback: Callable[[PairsSet], None]) -> Callable[[], None]:
        self._selection_listeners.append(callback)
        return lambda: self._selection_listeners.remove(callback)

    def _on_selection_reset(self):
        if not self._selection.is_empty:
            self.set_selection(PairsSet.empty())

    @property
    def is_busy(self) -> bool:
        """Whether a gesture is in progress."""
        return self._gesture is not None

    # Pointer input

    def pointer_down(self, x: float, y: float, button: int = 0):
        self.mouse = (x, y)
        if button != 0:
            return
        self.cancel()
        gesture = self._start_gesture(x, y)
        if gesture is None:
            return
        self._press_pixel = _pixel(x, y)
        self._gesture = gesture
        self._resume(None)

    def pointer_move(self, x: float, y: float):
        self.mouse = (x, y)
        if self._wait is Wait.SAMPLE:
            self._resume(PointerEvent(PointerKind.MOVE, x, y))
        elif self._wait is Wait.UP_OR_DRAG and _pixel(x, y) != self._press_pixel:
            self._resume(PointerEvent(PointerKind.MOVE, x, y))

    def pointer_up(self, x: float, y: float, button: int = 0):
        self.mouse = (x, y)
        if button != 0 or self._gesture is None:
            return
        self._resume(PointerEvent(PointerKind.UP, x, y))
        # a gesture must not outlive the release
        self.cancel()

    def pointer_leave(self):
        """The pointer left the viewport; gestures keep waiting for the release."""
        self.mouse = None

    def cancel(self):
        """Abandon the gesture in progress without committing anything."""
        gesture = self._gesture
        self._gesture = None
        self._wait = None
        if gesture is not None:
            gesture.close()

    def _resume(self, event: Optional[PointerEvent]):
        gesture = self._gesture
        finished = True
        try:
            self._wait = gesture.send(event)
            finished = False
        except StopIteration:
            pass
        finally:
            if finished:
                self._gesture = None
                self._wait = None

    # Hit testing and quantization

    def _editable(self) -> Optional[Tuple[Project, ViewportMapper]]:
        """Project and mapper if notes can currently be placed on screen."""
        project = self.history.project
        mapper = self.mapper
        if project is None or mapper is None or not mapper.usable or not project.meter.is_set:
            return None
        return project, mapper

    def hit_test(self, x: float, y: float) -> Hit:
        """
        Find what is under a viewport position.

        Resize handles of the single selected note win over notes; later
        notes (drawn on top) win over earlier ones.
        """
        editable = self._editable()
        if editable is None:
            return Hit(HitKind.EMPTY)
        project, mapper = editable
        meter = project.meter

        single = self._selection.as_singleton
        note = _note_at(project, single) if single is not None else None
        if note is not None:
            rect = note_rect(meter, mapper, note)
            for which in (END_HANDLE, START_HANDLE):
                if resize_handle_rect(rect, which, self.handle_width).contains(x, y):
                    return Hit(HitKind.HANDLE, single[0], single[1], which)

        for part_index in reversed(range(len(project.parts))):
            notes = project.parts[part_index].notes
            for note_index in reversed(range(len(notes))):
                if note_rect(meter, mapper, notes[note_index]).contains(x, y):
                    return Hit(HitKind.NOTE, part_index, note_index)
        return Hit(HitKind.EMPTY)

    def quantized_note_at(self, x: float, y: float) -> Optional[Note]:
        """One-grid-step note under a position (start floored to the grid)."""
        editable = self._editable()
        if editable is None:
            return None
        project, mapper = editable
        meter = project.meter
        subdiv = math.floor(meter.subdivision * time2beat(meter, mapper.x2time(x)))
        if subdiv < 0:
            return None
        step = meter.pulses_per_subdivision
        return Note(start=subdiv * step, length=step, pitch=_round(mapper.y2pitch(y)))

    @property
    def hovered_note(self) -> Optional[Note]:
        if self.mouse is None:
            return None
        return self.quantized_note_at(*self.mouse)

    @property
    def active_note(self) -> Optional[Note]:
        """Note that releasing the button now would add."""
        if self.click_start_note is None:
            return None
        hovered = self.hovered_note
        return click_drag_note(self.click_start_note, hovered) if hovered is not None else None

    def moved_note(self, part_index: int, note_index: int, note: Note) -> Note:
        """Where a note is drawn while a move is being dragged."""
        if self.move_delta is None or not self._selection.has((part_index, note_index)):
            return note
        d_pulse, d_pitch = self.move_delta
        return replace(note, start=note.start + d_pulse, pitch=note.pitch + d_pitch)

    # Gestures

    def _start_gesture(self, x: float, y: float) -> Optional[Gesture]:
        if self.active_part_index is not None:
            return self._note_add(self.active_part_index, x, y)
        hit = self.hit_test(x, y)
        if hit.kind is HitKind.HANDLE:
            return self._note_resize(hit.part_index, hit.note_index, hit.which)
        if hit.kind is HitKind.NOTE:
            pair = (hit.part_index, hit.note_index)
            if self._selection.has(pair):
                return self._note_move(pair, x, y)
            self._click_select(pair)
            return None
        return self._box_select(x, y)

    def _click_select(self, pair: Pair):
        if self.keyboard.ctrl:
            selection = self._selection.copy()
            selection.toggle(pair)
        elif self.keyboard.shift:
            selection = self._selection.copy()
            selection.add(pair)
        else:
            selection = PairsSet.singleton(pair)
        self.set_selection(selection)

    def _box_select(self, x: float, y: float) -> Gesture:
        editable = self._editable()
        if editable is None:
            return
        _, mapper = editable
        if self.keyboard.ctrl:
            mode = "xor"
        elif self.keyboard.shift:
            mode = "or"
        else:
            mode = "new"
        before = self._selection
        start_time = mapper.x2time(x)
        start_pitch = mapper.y2pitch(y)

        self.pending_selection = PairsSet.empty() if mode == "new" else before.copy()
        self.box_corners = ((x, y), (x, y))
        try:
            while True:
                event = yield Wait.SAMPLE
                if event.kind is PointerKind.UP:
                    break
                editable = self._editable()
                if editable is None:
                    logger.debug("Box select aborted: project no longer editable")
                    return
                project, mapper = editable
                self.box_corners = ((x, y), (event.x, event.y))
                live = notes_in_box(project, start_time, start_pitch,
                                    mapper.x2time(event.x), mapper.y2pitch(event.y))
                if live.is_empty:
                    display = PairsSet.empty() if mode == "new" else before.copy()
                elif mode == "new":
                    display = live
                else:
                    display = before.copy()
                    if mode == "xor":
                        display.xor_with(live)
                    else:
                        display.union_with(live)
                self.pending_selection = display
            self.set_selection(self.pending_selection)
        finally:
            self.pending_selection = None
            self.box_corners = None

    def _note_add(self, part_index: int, x: float, y: float) -> Gesture:
        anchor = self.quantized_note_at(x, y)
        if anchor is None:
            return
        self.click_start_note = anchor
        try:
            event = yield Wait.UP
            end = self.quantized_note_at(event.x, event.y)
            if end is None:
                return
            note = click_drag_note(anchor, end)
            if note is None:
                logger.debug("Note add discarded: non-positive length")
                return
            project = self.history.project
            if project is None or not 0 <= part_index < len(project.parts):
                logger.debug("Note add aborted: part %s no longer exists", part_index)
                return
            self.history.modify_with_meter(lambda p: append_note(p, part_index, note))
        finally:
            self.click_start_note = None

    def _note_resize(self, part_index: int, note_index: int, which: int) -> Gesture:
        pair = (part_index, note_index)
        original = _note_at(self.history.project, pair)
        if original is None:
            return
        self.resize_target = (part_index, note_index, which)
        self.resize_preview = original
        try:
            while True:
                event = yield Wait.SAMPLE
                editable = self._editable()
                if editable is None:
                    logger.debug("Resize aborted: project no longer editable")
                    return
                project, mapper = editable
                self.resize_preview = resize_note(project.meter, original, which,
                                                  mapper.x2time(event.x))
                if event.kind is PointerKind.UP:
                    break
            resized = self.resize_preview
            if resized == original:
                logger.debug("Resize discarded: note unchanged")
                return
            if self._selection.as_singleton != pair or _note_at(self.history.project, pair) != original:
                logger.debug("Resize aborted: note or selection changed")
                return
            self.history.modify_with_meter(
                lambda p: replace_note(p, part_index, note_index, resized),
                preserve_selection=True,
            )
        finally:
            self.resize_target = None
            self.resize_preview = None

    def _note_move(self, pair: Pair, x: float, y: float) -> Gesture:
        editable = self._editable()
        if editable is None:
            return
        project, mapper = editable
        start_pulse = time2pulse(project.meter, mapper.x2time(x))
        start_pitch = mapper.y2pitch(y)

        event = yield Wait.UP_OR_DRAG
        if event.kind is PointerKind.UP:
            self._click_select(pair)
            return

        selection = self._selection
        selected = [_note_at(project, p) for p in selection]
        if not selected or any(n is None for n in selected):
            logger.debug("Move aborted: selection does not match the project")
            return
        earliest = min(n.start for n in selected)

        self.move_delta = (0, 0)
        try:
            while True:
                editable = self._editable()
                if editable is None or editable[0] is not project:
                    logger.debug("Move aborted: project changed during drag")
                    return
                _, mapper = editable
                meter = project.meter
                step = meter.pulses_per_subdivision
                d_pulse = _round((time2pulse(meter, mapper.x2time(event.x)) - start_pulse) / step) * step
                # no note is dragged (further) before beat 0; the limit stays on the grid
                d_pulse = max(d_pulse, -(max(earliest, 0) // step) * step)
                d_pitch = _round(mapper.y2pitch(event.y) - start_pitch)
                if self.keyboard.is_down(self.axis_lock_modifier):
                    if abs(event.x - x) >= abs(event.y - y):
                        d_pitch = 0
                    else:
                        d_pulse = 0
                self.move_delta = (d_pulse, d_pitch)
                if event.kind is PointerKind.UP:
                    break
                event = yield Wait.SAMPLE

            d_pulse, d_pitch = self.move_delta
            if d_pulse == 0 and d_pitch == 0:
                logger.debug("Move discarded: no net movement")
                return

            def shift(part_index: int, note_index: int, note: Note) -> Note:
                if not selection.has((part_index, note_index)):
                    return note
                return replace(note, start=note.start + d_pulse, pitch=note.pitch + d_pitch)

            self.history.modify_with_meter(lambda p: map_notes(p, shift), preserve_selection=True)
        finally:
            self.move_delta = None

    @property
    def box_rect(self) -> Optional[Rect]:
        """Pixel rectangle of the box selection in progress."""
        if self.box_corners is None:
            return None
        (x0, y0), (x1, y1) = self.box_corners
        return Rect(min(x0, x1), min(y0, y1), abs(x1 - x0), abs(y1 - y0))
