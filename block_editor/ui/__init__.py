"""UI-facing layer of the block editor.

Holds toolkit-independent controllers that mediate between a presentation
layer and the core services.
"""
