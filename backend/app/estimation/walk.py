from collections import deque
from typing import List, Mapping, Optional, Set

from app.tree.model import DecisionTree


def presentation_order(tree: DecisionTree) -> List[str]:
    """All nodes breadth-first from the roots, each listed once."""
    order: List[str] = []
    seen: Set[str] = set()
    queue = deque(tree.roots())
    while queue:
        node_id = queue.popleft()
        if node_id in seen:
            continue
        seen.add(node_id)
        order.append(node_id)
        queue.extend(tree.children(node_id))
    return order


def next_node(tree: DecisionTree, node_id: str, answer_text: str) -> Optional[str]:
    """Target of the first answer on node whose text matches, if it has one."""
    for answer in tree.get(node_id).answers:
        if answer.text == answer_text:
            return answer.target_id
    return None


def walk_path(
    tree: DecisionTree,
    answers: Mapping[str, str],
    start_id: Optional[str] = None,
) -> List[str]:
    """
    Nodes visited when following the recorded answers from a start node.

    Stops at a node with no recorded answer, at an answer without a target,
    or at a leaf.
    """
    if start_id is None:
        roots = tree.roots()
        if not roots:
            return []
        start_id = roots[0]

    path: List[str] = []
    current: Optional[str] = start_id
    while current is not None and current not in path:
        path.append(current)
        chosen = answers.get(current)
        if chosen is None:
            break
        current = next_node(tree, current, chosen)
    return path
