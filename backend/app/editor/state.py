"""Interaction states of the tree editor."""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Selected:
    node_id: str


@dataclass(frozen=True)
class Editing:
    node_id: str


@dataclass(frozen=True)
class ConnectingFrom:
    node_id: str
    answer_index: int


EditorState = Union[Idle, Selected, Editing, ConnectingFrom]


def focused_node(state: EditorState) -> Optional[str]:
    """Node the state is about, if any."""
    if isinstance(state, Idle):
        return None
    return state.node_id
