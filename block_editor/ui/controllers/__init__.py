"""UI controllers package.

Controllers mediate between the presentation layer and the application
services and models.
"""

from .editor_controller import EditorController, EditorStatus  # noqa: F401

__all__: list[str] = [
    "EditorController",
    "EditorStatus",
]
