# Decision tree model
# Node/answer arena, cycle checks and on-demand layout

from app.tree.types import (
    Answer,
    CompletedIntake,
    Complexity,
    NodeKind,
    Position,
    Template,
    TemplateDetails,
    TreeNode,
    WorkUnit,
)
from app.tree.model import DecisionTree
from app.tree.layout import apply_layout, find_free_slot

__all__ = [
    "Answer",
    "CompletedIntake",
    "Complexity",
    "NodeKind",
    "Position",
    "Template",
    "TemplateDetails",
    "TreeNode",
    "WorkUnit",
    "DecisionTree",
    "apply_layout",
    "find_free_slot",
]
