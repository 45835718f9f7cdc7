"""
pianoscribe - editing core of a music-transcription piano roll.

Packages:
- core: Immutable project model, undo history, selection set, persistence
- ui: Pixel/time coordinate mapping, modifier keys and pointer gestures
"""
__version__ = "0.3.0"
