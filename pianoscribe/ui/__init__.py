"""
Interaction layer for pianoscribe.

Modules:
- viewport: Render window <-> pixel mapping, scroll/zoom, beat grid
- keyboard: Modifier key state
- gestures: Pointer gestures (box select, note add/resize/move)
- dpg_input: Dear PyGui handler bridge feeding the gesture engine
"""
