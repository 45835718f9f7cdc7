"""
Musical constants and utilities.

Pulse resolution, pitch range, MIDI note names, etc.
"""

# Timing resolution of note positions (MIDI-style PPQ)
PULSES_PER_BEAT = 96

# Pitch axis ceiling of the piano roll (a little above MIDI 127 so the
# top rows can be scrolled into the middle of the view)
PITCH_MAX = 136

# MIDI note number to name mapping
MIDI_NOTE_NAMES = [
    "C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"
]
MIDI_NOTE_NAMES_FLAT = [
    "C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"
]

# Pitch label styles shown on the pitch axis
PITCH_LABEL_TYPES = ("none", "midi", "sharp", "flat")

# Meter defaults used when a tempo is first picked
DEFAULT_MEASURE_LENGTH = 4
DEFAULT_SUBDIVISION = 2

# Tempo offered when a meter is first set up
BPM_DEFAULT = 120


def midi_note_to_name(note_number: int, sharps: bool = True) -> str:
    """
    Convert MIDI note number to name with octave.

    Args:
        note_number: MIDI note (>= 0, may exceed 127 on the pitch axis)
        sharps: Spell accidentals as sharps (True) or flats (False)

    Returns:
        Note name (e.g., "C4", "A#3", "Bb3")

    Example:
        >>> midi_note_to_name(60)
        'C4'
        >>> midi_note_to_name(70, sharps=False)
        'Bb4'
    """
    if note_number < 0:
        raise ValueError(f"MIDI note must be non-negative, got {note_number}")
    octave = (note_number // 12) - 1
    names = MIDI_NOTE_NAMES if sharps else MIDI_NOTE_NAMES_FLAT
    return f"{names[note_number % 12]}{octave}"


def pitch_label(label_type: str, pitch: int) -> str:
    """
    Text drawn next to a pitch row.

    Example:
        >>> pitch_label("sharp", 61)
        'C♯4'
        >>> pitch_label("midi", 61)
        '61'
    """
    if label_type not in PITCH_LABEL_TYPES:
        raise ValueError(f"Invalid pitch label type: {label_type}")
    if label_type == "none":
        return ""
    if label_type == "midi":
        return f"{pitch}"
    if pitch < 0:
        return ""
    name = midi_note_to_name(pitch, sharps=label_type == "sharp")
    return name.replace("#", "♯").replace("b", "♭")
