"""
Canvas geometry for the decision tree editor.

Each answer with a target is drawn as a cubic curve from the answer's row on
the source node to a fixed anchor on the target node, so several branches
leaving one node fan out instead of overlapping.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from app.tree.layout import ANSWER_ROW_HEIGHT, ANSWER_ROW_OFFSET
from app.tree.model import DecisionTree
from app.tree.types import TreeNode, WorkUnit

NODE_WIDTH = 75
NODE_MIN_HEIGHT = 40
TARGET_ANCHOR_Y = 20
MAX_CONTROL_DISTANCE = 80
LABEL_WIDTH = 50
LABEL_HEIGHT = 20
CANVAS_PADDING = 40


@dataclass
class ConnectionPath:
    source_id: str
    target_id: str
    answer_index: int
    label: str
    start: Tuple[float, float]
    end: Tuple[float, float]
    control_1: Tuple[float, float]
    control_2: Tuple[float, float]

    @property
    def midpoint(self) -> Tuple[float, float]:
        return ((self.start[0] + self.end[0]) / 2, (self.start[1] + self.end[1]) / 2)

    def to_svg_path(self) -> str:
        sx, sy = self.start
        c1x, c1y = self.control_1
        c2x, c2y = self.control_2
        ex, ey = self.end
        return f"M {sx:g} {sy:g} C {c1x:g} {c1y:g}, {c2x:g} {c2y:g}, {ex:g} {ey:g}"


@dataclass
class NodeBadge:
    """Work units hanging off a node's answers, as shown on the compact node card."""
    answer_text: str
    work_unit: WorkUnit


@dataclass
class NodeBox:
    node: TreeNode
    x: float
    y: float
    width: float
    height: float
    badges: List[NodeBadge] = field(default_factory=list)

    @property
    def total_hours(self) -> int:
        return sum(b.work_unit.hours for b in self.badges)


def answer_anchor(node: TreeNode, answer_index: int) -> Tuple[float, float]:
    pos = node.position
    x = (pos.x if pos else 0) + NODE_WIDTH
    y = (pos.y if pos else 0) + answer_index * ANSWER_ROW_HEIGHT + ANSWER_ROW_OFFSET
    return (x, y)


def target_anchor(node: TreeNode) -> Tuple[float, float]:
    pos = node.position
    return ((pos.x if pos else 0), (pos.y if pos else 0) + TARGET_ANCHOR_Y)


def connection_paths(tree: DecisionTree) -> List[ConnectionPath]:
    paths: List[ConnectionPath] = []
    for node in tree:
        if not node.is_decision or node.position is None:
            continue
        for index, answer in enumerate(node.answers):
            if answer.target_id is None or answer.target_id not in tree:
                continue
            target = tree.get(answer.target_id)
            if target.position is None:
                continue

            start = answer_anchor(node, index)
            end = target_anchor(target)
            control = min(MAX_CONTROL_DISTANCE, abs(end[1] - start[1]) * 0.5)

            paths.append(ConnectionPath(
                source_id=node.id,
                target_id=target.id,
                answer_index=index,
                label=answer.text,
                start=start,
                end=end,
                control_1=(start[0] + control, start[1]),
                control_2=(end[0] - control, end[1]),
            ))
    return paths


def node_boxes(tree: DecisionTree, work_units: Optional[Dict[str, WorkUnit]] = None) -> List[NodeBox]:
    work_units = work_units or {}
    boxes: List[NodeBox] = []
    for node in tree:
        pos = node.position
        badges = [
            NodeBadge(answer_text=a.text, work_unit=work_units[a.work_unit_id])
            for a in node.answers
            if a.work_unit_id and a.work_unit_id in work_units
        ]
        rows = max(len(node.answers), 1)
        height = max(NODE_MIN_HEIGHT, rows * ANSWER_ROW_HEIGHT + ANSWER_ROW_OFFSET)
        boxes.append(NodeBox(
            node=node,
            x=pos.x if pos else 0,
            y=pos.y if pos else 0,
            width=NODE_WIDTH,
            height=height,
            badges=badges,
        ))
    return boxes


def canvas_bounds(boxes: List[NodeBox]) -> Tuple[float, float]:
    """Width and height needed to show every node box, padded."""
    if not boxes:
        return (CANVAS_PADDING * 2, CANVAS_PADDING * 2)
    width = max(b.x + b.width for b in boxes) + LABEL_WIDTH + CANVAS_PADDING
    height = max(b.y + b.height for b in boxes) + CANVAS_PADDING
    return (max(width, CANVAS_PADDING * 2), max(height, CANVAS_PADDING * 2))


def hit_test(tree: DecisionTree, x: float, y: float) -> Optional[str]:
    """Node id under a canvas point, topmost (last drawn) first."""
    for box in reversed(node_boxes(tree)):
        if box.x <= x <= box.x + box.width and box.y <= y <= box.y + box.height:
            return box.node.id
    return None
