from collections import deque
from typing import Dict, List, Optional

from app.tree.model import DecisionTree
from app.tree.types import Position

HORIZONTAL_SPACING = 200
VERTICAL_SPACING = 100
ORIGIN_X = 50

# Answer rows inside a rendered node
ANSWER_ROW_HEIGHT = 30
ANSWER_ROW_OFFSET = 10

FREE_SLOT_MAX_ATTEMPTS = 100
SLOT_X_TOLERANCE = 50


def apply_layout(tree: DecisionTree) -> DecisionTree:
    """
    Position every node left-to-right by depth and top-to-bottom by branch order.

    Roots stack in the first column. A child sits one column right of its
    parent, and the connected children of a parent are centred on the
    parent's row. Only the graph shape is read, so running this twice gives
    the same positions.
    """
    positions: Dict[str, Position] = {}
    depth: Dict[str, int] = {}
    primary_parent = _primary_parents(tree)

    queue = deque()
    for root_index, root_id in enumerate(tree.roots()):
        positions[root_id] = Position(x=ORIGIN_X, y=root_index * VERTICAL_SPACING * 2)
        depth[root_id] = 0
        queue.append(root_id)

    while queue:
        parent_id = queue.popleft()
        parent = tree.get(parent_id)
        connected = [a for a in parent.answers if a.target_id is not None]
        sibling_count = len(connected) or 1

        for sibling_index, answer in enumerate(connected):
            child_id = answer.target_id
            if child_id in positions or primary_parent.get(child_id) != parent_id:
                continue
            offset = (sibling_index - (sibling_count - 1) / 2) * VERTICAL_SPACING
            depth[child_id] = depth[parent_id] + 1
            positions[child_id] = Position(
                x=ORIGIN_X + depth[child_id] * HORIZONTAL_SPACING,
                y=positions[parent_id].y + offset,
            )
            queue.append(child_id)

    for node_id, position in positions.items():
        tree.get(node_id).position = position

    return tree


def _primary_parents(tree: DecisionTree) -> Dict[str, str]:
    # A node reachable from several parents is placed under the first one in document order.
    parents: Dict[str, str] = {}
    for node in tree:
        for answer in node.answers:
            if answer.target_id is not None and answer.target_id not in parents:
                parents[answer.target_id] = node.id
    return parents


def find_free_slot(tree: DecisionTree, source_id: str, answer_index: int) -> Position:
    """
    Pick a spot for a new follow-up node next to a source answer.

    Starts level with the answer row one column to the right, then steps
    down and up by VERTICAL_SPACING until no sibling overlaps.
    """
    source = tree.get(source_id)
    origin = source.position or Position(0, 0)

    target_x = origin.x + HORIZONTAL_SPACING
    target_y = origin.y + answer_index * ANSWER_ROW_HEIGHT + ANSWER_ROW_OFFSET

    siblings: List[Position] = []
    for child_id in tree.children(source_id):
        child_pos: Optional[Position] = tree.get(child_id).position if child_id in tree else None
        if child_pos and abs(child_pos.x - target_x) < SLOT_X_TOLERANCE:
            siblings.append(child_pos)

    def overlaps(y: float) -> bool:
        return any(abs(p.y - y) < VERTICAL_SPACING for p in siblings)

    attempts = 0
    while overlaps(target_y) and attempts < FREE_SLOT_MAX_ATTEMPTS:
        if attempts % 2 == 0:
            target_y += VERTICAL_SPACING
        else:
            target_y -= VERTICAL_SPACING * 2
        attempts += 1

    return Position(x=target_x, y=target_y)
