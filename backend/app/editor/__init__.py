from app.editor.session import EditorSession
from app.editor.state import ConnectingFrom, EditorState, Editing, Idle, Selected

__all__ = [
    "EditorSession",
    "EditorState",
    "Idle",
    "Selected",
    "Editing",
    "ConnectingFrom",
]
