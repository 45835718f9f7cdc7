"""
Immutable data models for pianoscribe.

All models are immutable dataclasses to support:
- Cheap undo/redo (history entries share untouched parts and notes)
- Safe sharing between the history, gestures and renderers
- Lossless round-trip through to_dict/from_dict
"""
import math
from dataclasses import dataclass, field, replace
from typing import Tuple, Optional, Dict, Any, Callable

from pianoscribe.core.constants import (
    PULSES_PER_BEAT,
    DEFAULT_MEASURE_LENGTH,
    DEFAULT_SUBDIVISION,
    BPM_DEFAULT,
)

METER_STATES = ("unset", "active", "locked")


class ProjectDecodeError(ValueError):
    """
    Raised when serialized project data is malformed.

    Attributes:
        path: Location of the offending field (e.g. "parts[0].notes[2].length")
    """

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path or '<root>'}: {message}")


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _require(data: Any, key: str, kinds, path: str) -> Any:
    """Fetch data[key] and check its type, reporting the full field path."""
    where = _join(path, key)
    if not isinstance(data, dict):
        raise ProjectDecodeError(path, f"expected a map, got {type(data).__name__}")
    if key not in data:
        raise ProjectDecodeError(where, "missing field")
    value = data[key]
    # bool is an int subclass but never a valid number here
    if isinstance(value, bool) or not isinstance(value, kinds):
        raise ProjectDecodeError(where, f"unexpected value {value!r}")
    return value


@dataclass(frozen=True)
class Meter:
    """
    Tempo grid of the transcription.

    Attributes:
        state: "unset" (no tempo picked yet), "active" or "locked"
        bpm: Tempo in beats per minute
        start_offset: Time of beat 0 in the audio, in seconds
        measure_length: Beats per measure
        subdivision: Grid divisions per beat (must divide PULSES_PER_BEAT)
    """
    state: str = "unset"
    bpm: float = float(BPM_DEFAULT)
    start_offset: float = 0.0
    measure_length: int = DEFAULT_MEASURE_LENGTH
    subdivision: int = DEFAULT_SUBDIVISION

    def __post_init__(self):
        """Validate meter values."""
        if self.state not in METER_STATES:
            raise ValueError(f"Invalid meter state: {self.state}")
        if self.bpm <= 0:
            raise ValueError(f"BPM must be positive, got {self.bpm}")
        if self.measure_length <= 0:
            raise ValueError(f"Measure length must be positive, got {self.measure_length}")
        if self.subdivision <= 0 or PULSES_PER_BEAT % self.subdivision != 0:
            raise ValueError(
                f"Subdivision must divide {PULSES_PER_BEAT}, got {self.subdivision}"
            )

    @property
    def is_set(self) -> bool:
        """Whether a tempo has been picked (notes can be edited)."""
        return self.state != "unset"

    @property
    def pulses_per_subdivision(self) -> int:
        """Grid step in pulses."""
        return PULSES_PER_BEAT // self.subdivision

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "state": self.state,
            "bpm": self.bpm,
            "start_offset": self.start_offset,
            "measure_length": self.measure_length,
            "subdivision": self.subdivision,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], path: str = "meter") -> "Meter":
        """Create Meter from dictionary."""
        state = _require(data, "state", str, path)
        if state not in METER_STATES:
            raise ProjectDecodeError(_join(path, "state"), f"unknown meter state {state!r}")
        bpm = _require(data, "bpm", (int, float), path)
        if not math.isfinite(bpm) or bpm <= 0:
            raise ProjectDecodeError(_join(path, "bpm"), f"must be a positive number, got {bpm}")
        start_offset = _require(data, "start_offset", (int, float), path)
        if not math.isfinite(start_offset):
            raise ProjectDecodeError(_join(path, "start_offset"), f"must be finite, got {start_offset}")
        measure_length = _require(data, "measure_length", int, path)
        if measure_length <= 0:
            raise ProjectDecodeError(
                _join(path, "measure_length"), f"must be positive, got {measure_length}"
            )
        subdivision = _require(data, "subdivision", int, path)
        if subdivision <= 0 or PULSES_PER_BEAT % subdivision != 0:
            raise ProjectDecodeError(
                _join(path, "subdivision"), f"must divide {PULSES_PER_BEAT}, got {subdivision}"
            )
        return cls(
            state=state,
            bpm=float(bpm),
            start_offset=float(start_offset),
            measure_length=measure_length,
            subdivision=subdivision,
        )


@dataclass(frozen=True)
class Note:
    """
    Transcribed note.

    Attributes:
        start: Start position in pulses (PULSES_PER_BEAT per beat)
        length: Duration in pulses (> 0)
        pitch: MIDI pitch
        notation: Opaque notation hints (unused by the editor)
    """
    start: int
    length: int
    pitch: int
    notation: Optional[Any] = None

    def __post_init__(self):
        """Validate note values."""
        if self.length <= 0:
            raise ValueError(f"Length must be positive, got {self.length}")

    @property
    def end(self) -> int:
        """End position in pulses (exclusive)."""
        return self.start + self.length

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "start": self.start,
            "length": self.length,
            "pitch": self.pitch,
            "notation": self.notation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], path: str = "note") -> "Note":
        """Create Note from dictionary."""
        length = _require(data, "length", int, path)
        if length <= 0:
            raise ProjectDecodeError(_join(path, "length"), f"must be positive, got {length}")
        return cls(
            start=_require(data, "start", int, path),
            length=length,
            pitch=_require(data, "pitch", int, path),
            notation=data.get("notation"),
        )


@dataclass(frozen=True)
class Part:
    """
    One instrument/voice of the transcription.

    Attributes:
        notes: Tuple of Note objects (order is the note index)
    """
    notes: Tuple[Note, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"notes": [n.to_dict() for n in self.notes]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], path: str = "part") -> "Part":
        """Create Part from dictionary."""
        notes_path = _join(path, "notes")
        raw_notes = _require(data, "notes", (list, tuple), path)
        return cls(notes=tuple(
            Note.from_dict(n, f"{notes_path}[{i}]") for i, n in enumerate(raw_notes)
        ))


@dataclass(frozen=True)
class Project:
    """
    Complete transcription document.

    Attributes:
        audio_file: Encoded audio being transcribed (opaque bytes)
        meter: Tempo grid
        parts: Tuple of Part objects
    """
    audio_file: bytes = b""
    meter: Meter = field(default_factory=Meter)
    parts: Tuple[Part, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "audio_file": self.audio_file,
            "meter": self.meter.to_dict(),
            "parts": [p.to_dict() for p in self.parts],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        """Create Project from dictionary."""
        audio_file = _require(data, "audio_file", (bytes, bytearray), "")
        raw_parts = _require(data, "parts", (list, tuple), "")
        return cls(
            audio_file=bytes(audio_file),
            meter=Meter.from_dict(_require(data, "meter", dict, ""), "meter"),
            parts=tuple(Part.from_dict(p, f"parts[{i}]") for i, p in enumerate(raw_parts)),
        )


# Pure update helpers. Each returns a new Project and shares everything it
# does not touch with the input.

def with_meter(project: Project, meter: Meter) -> Project:
    """Replace the project's meter."""
    return replace(project, meter=meter)


def update_meter(project: Project, **changes) -> Project:
    """Replace individual meter fields."""
    return replace(project, meter=replace(project.meter, **changes))


def with_part(project: Project, part_index: int, part: Part) -> Project:
    """Replace the part at part_index."""
    if project.parts[part_index] is part:
        return project
    new_parts = list(project.parts)
    new_parts[part_index] = part
    return replace(project, parts=tuple(new_parts))


def with_notes(project: Project, part_index: int, notes: Tuple[Note, ...]) -> Project:
    """Replace all notes of one part."""
    return with_part(project, part_index, replace(project.parts[part_index], notes=tuple(notes)))


def append_note(project: Project, part_index: int, note: Note) -> Project:
    """Add a note at the end of a part."""
    return with_notes(project, part_index, project.parts[part_index].notes + (note,))


def replace_note(project: Project, part_index: int, note_index: int, note: Note) -> Project:
    """Replace a single note."""
    notes = list(project.parts[part_index].notes)
    notes[note_index] = note
    return with_notes(project, part_index, tuple(notes))


def map_notes(project: Project, fn: Callable[[int, int, Note], Note]) -> Project:
    """
    Apply fn(part_index, note_index, note) to every note.

    Parts whose notes all come back unchanged (by identity) are reused.
    """
    new_parts = []
    for part_index, part in enumerate(project.parts):
        notes = tuple(fn(part_index, i, n) for i, n in enumerate(part.notes))
        if all(a is b for a, b in zip(notes, part.notes)):
            new_parts.append(part)
        else:
            new_parts.append(replace(part, notes=notes))
    return replace(project, parts=tuple(new_parts))


def add_part(project: Project, part: Optional[Part] = None) -> Project:
    """Append a new (empty by default) part."""
    return replace(project, parts=project.parts + (part if part is not None else Part(),))


def remove_part(project: Project, part_index: int) -> Project:
    """Remove the part at part_index; later parts shift down by one."""
    parts = list(project.parts)
    parts.pop(part_index)
    return replace(project, parts=tuple(parts))


# Time conversions between audio seconds, beats and pulses.

def time2beat(meter: Meter, t: float) -> float:
    """Audio time (seconds) to beats since the meter's start offset."""
    return (t - meter.start_offset) * meter.bpm / 60


def beat2time(meter: Meter, b: float) -> float:
    """Beats to audio time (seconds)."""
    return b * 60 / meter.bpm + meter.start_offset


def time2pulse(meter: Meter, t: float) -> float:
    """Audio time (seconds) to (fractional) pulses."""
    return time2beat(meter, t) * PULSES_PER_BEAT


def pulse2time(meter: Meter, p: float) -> float:
    """Pulses to audio time (seconds)."""
    return beat2time(meter, p / PULSES_PER_BEAT)
