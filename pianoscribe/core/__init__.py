"""
Core data structures and state management for pianoscribe.

Modules:
- models: Immutable data structures (Meter, Note, Part, Project)
- selection: Sparse (part, note) selection set
- history: Undo/redo history with edit fusion
- meter_edits: Tempo/offset edits issued through the history
- persistence: Project file I/O (.pscribe format)
- settings: User settings file
- constants: Musical constants (pulses per beat, MIDI note names, etc.)
"""
