"""
Mapping between the time/pitch plane and viewport pixels.

The visible part of the piano roll is described by a RenderWindow (time and
pitch ranges) and the pixel size of the viewport. Time grows to the right;
pitch grows upwards, so the pitch axis is inverted relative to pixel y.

Divisions follow IEEE float semantics: a zero-sized viewport or an empty
range gives inf/nan instead of raising, and ViewportMapper.usable tells
callers whether the mapping can be used yet (e.g. before the first layout).
"""
import logging
import math
from dataclasses import dataclass, field

import numpy as np

from pianoscribe.core.constants import PITCH_MAX
from pianoscribe.core.models import Meter, Note, beat2time, pulse2time, time2beat

logger = logging.getLogger(__name__)

# Resize handle index: which end of a note is dragged
START_HANDLE = 0
END_HANDLE = 1

# Beat grids denser than this are not drawn
MAX_GRID_LINES = 2000


@dataclass(frozen=True)
class RenderWindow:
    """Visible time range (seconds) and pitch range (MIDI pitch)."""
    time_min: float = 0.0
    time_max: float = 30.0
    pitch_min: float = 12.0
    pitch_max: float = 108.0


@dataclass(frozen=True)
class Rect:
    """Axis-aligned pixel rectangle."""
    x: float
    y: float
    width: float
    height: float

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px < self.x + self.width and self.y <= py < self.y + self.height


def _round_px(v: float) -> int:
    """Round half up, like screen coordinates are usually snapped."""
    return int(math.floor(v + 0.5))


class ViewportMapper:
    """Bidirectional time <-> x and pitch <-> y transforms."""

    def __init__(self, window: RenderWindow, width: float, height: float):
        self.window = window
        self.width = float(width)
        self.height = float(height)

    @property
    def time_range(self) -> float:
        return self.window.time_max - self.window.time_min

    @property
    def pitch_range(self) -> float:
        return self.window.pitch_max - self.window.pitch_min

    def x2time(self, x):
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.divide(x, self.width) * self.time_range + self.window.time_min

    def time2x(self, t):
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.divide(np.subtract(t, self.window.time_min), self.time_range) * self.width

    def y2pitch(self, y):
        with np.errstate(divide="ignore", invalid="ignore"):
            return self.window.pitch_max - np.divide(y, self.height) * self.pitch_range

    def pitch2y(self, p):
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.divide(np.subtract(self.window.pitch_max, p), self.pitch_range) * self.height

    @property
    def pixels_per_time(self) -> float:
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.divide(self.width, self.time_range)

    @property
    def pixels_per_pitch(self) -> float:
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.divide(self.height, self.pitch_range)

    @property
    def usable(self) -> bool:
        """Whether every transform gives finite values."""
        return bool(
            self.width > 0 and self.height > 0
            and np.isfinite(self.time_range) and self.time_range != 0
            and np.isfinite(self.pitch_range) and self.pitch_range != 0
        )

    def __repr__(self) -> str:
        return f"ViewportMapper({self.window!r}, {self.width:g}x{self.height:g})"


def _clamp(value: float, lower: float, upper: float) -> float:
    # lower wins when the bounds cross
    return max(lower, min(value, upper))


def scroll_zoom(lo: float, hi: float, clamp_min: float, clamp_max: float, range_min: float,
                zoom_rate: float, scroll_rate: float,
                wheel_delta: float, zoom: bool, center_frac: float):
    """
    Apply one mouse-wheel step to a [lo, hi] axis range.

    Zooming scales the range exponentially and keeps the value under the
    pointer (at center_frac of the viewport) fixed. Scrolling shifts the
    range proportionally to its size. The result stays inside
    [clamp_min, clamp_max].

    Returns:
        (new_lo, new_hi)
    """
    range_max = clamp_max - clamp_min
    val_range = hi - lo
    val_min = lo
    if zoom:
        new_range = _clamp(val_range * 2 ** (wheel_delta * zoom_rate), range_min, range_max)
        val_min -= center_frac * (new_range - val_range)
        val_range = new_range
    else:
        val_min += val_range * (wheel_delta * scroll_rate)

    val_min = _clamp(val_min, clamp_min, clamp_max - val_range)
    return val_min, val_min + val_range


def scroll_zoom_time(lo: float, hi: float, clamp_max: float,
                     wheel_delta: float, zoom: bool, center_frac: float):
    """Wheel step on the time axis; clamp_max is the audio duration."""
    return scroll_zoom(lo, hi, 0, clamp_max, 1 / 1000, 1 / 400, 1 / 1600,
                       wheel_delta, zoom, center_frac)


def scroll_zoom_pitch(lo: float, hi: float, aspect_ratio: float,
                      wheel_delta: float, zoom: bool, center_frac: float):
    """
    Wheel step on the pitch axis.

    Scrolling is inverted: a positive wheel delta moves the view to lower
    pitches. center_frac is measured from the bottom of the viewport.
    """
    return scroll_zoom(lo, hi, 0, PITCH_MAX, 6, 1 / 400, -1 / 1600 * aspect_ratio,
                       wheel_delta, zoom, center_frac)


@dataclass(frozen=True)
class BeatGrid:
    """Pixel x positions of the vertical grid lines."""
    measure_xs: np.ndarray = field(default_factory=lambda: np.zeros(0))
    beat_xs: np.ndarray = field(default_factory=lambda: np.zeros(0))
    subdivision_xs: np.ndarray = field(default_factory=lambda: np.zeros(0))


def beat_grid(meter: Meter, mapper: ViewportMapper) -> BeatGrid:
    """
    Compute measure, beat and subdivision lines visible in the viewport.

    Beat lines appear above 10 px per beat, subdivision lines above 100 px
    per beat. Lines of a coarser kind are not repeated in a finer kind.
    """
    if not meter.is_set or not mapper.usable:
        return BeatGrid()

    time_per_px = 1 / mapper.pixels_per_time
    left_beat = time2beat(meter, mapper.window.time_min - time_per_px)
    right_beat = time2beat(meter, mapper.window.time_max + time_per_px)

    def lines(scale: float, skip=None) -> np.ndarray:
        first = max(math.ceil(left_beat / scale), 0)
        last = math.floor(right_beat / scale)
        if last - first > MAX_GRID_LINES:
            logger.warning("Beat grid too dense (%d lines), skipping: %r %r",
                           last - first, mapper, meter)
            return np.zeros(0)
        idx = np.arange(first, last + 1)
        if skip is not None:
            idx = idx[idx % skip != 0]
        return np.floor(mapper.time2x(beat2time(meter, idx * scale)) + 0.5)

    measure_xs = lines(meter.measure_length)
    beat_xs = np.zeros(0)
    subdivision_xs = np.zeros(0)
    pixels_per_beat = mapper.pixels_per_time * 60 / meter.bpm
    if pixels_per_beat > 10:
        beat_xs = lines(1, meter.measure_length)
        if pixels_per_beat > 100:
            subdivision_xs = lines(1 / meter.subdivision, meter.subdivision)
    return BeatGrid(measure_xs, beat_xs, subdivision_xs)


def note_rect(meter: Meter, mapper: ViewportMapper, note: Note) -> Rect:
    """Pixel rectangle covering a note (its pitch row is pitch +- 0.5)."""
    x = _round_px(mapper.time2x(pulse2time(meter, note.start)))
    y = _round_px(mapper.pitch2y(note.pitch + 0.5))
    return Rect(
        x=x,
        y=y,
        width=_round_px(mapper.time2x(pulse2time(meter, note.start + note.length))) - x,
        height=_round_px(mapper.pitch2y(note.pitch - 0.5)) - y,
    )


def resize_handle_rect(rect: Rect, which: int, handle_width: float) -> Rect:
    """Grab area centred on the start (which=0) or end (which=1) edge of a note."""
    return Rect(
        x=rect.x - handle_width / 2 + which * rect.width,
        y=rect.y,
        width=handle_width,
        height=rect.height,
    )
