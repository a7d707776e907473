"""Shared pytest fixtures for the estimator tests."""

import itertools

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.repository.template_store import TemplateStore
from app.tree.model import DecisionTree
from app.tree.types import Answer, NodeKind, Position, TreeNode


def make_tree() -> DecisionTree:
    """Empty tree with predictable ids: decision-1, leaf-2, decision-3, ..."""
    counter = itertools.count(1)
    return DecisionTree(id_factory=lambda kind: f"{kind.value}-{next(counter)}")


def make_node(
    id: str,
    content: str = "",
    answers=None,
    kind: NodeKind = NodeKind.DECISION,
    x: float = 0,
    y: float = 0,
) -> TreeNode:
    """Decision node whose answers are given as (text, target_id, work_unit_id) tuples."""
    if answers is None:
        answers = [] if kind == NodeKind.LEAF else [("Yes", None, None), ("No", None, None)]
    return TreeNode(
        id=id,
        kind=kind,
        content=content,
        position=Position(x, y),
        answers=[Answer(text=t, target_id=target, work_unit_id=wu) for t, target, wu in answers],
    )


@pytest.fixture
def store():
    store = TemplateStore.from_url("sqlite://")
    store.init(retries=1, delay=0)
    yield store
    store.close()


@pytest.fixture
def catalog(store):
    """Two catalog work units owned by different teams."""
    backend = store.create_work_unit("Rating engine changes", "backend", 8)
    qa = store.create_work_unit("Regression pack", "qa", 5)
    return {"backend": backend, "qa": qa}


@pytest.fixture
def api(store):
    with TestClient(create_app(store)) as client:
        yield client
