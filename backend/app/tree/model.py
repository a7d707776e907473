"""
Decision tree graph model.

Nodes live in an id-indexed arena; answers point at other nodes by id only.
Every edge insertion goes through a reachability check, so the graph stays
acyclic and descendant collection always terminates.
"""

import copy
import logging
import uuid
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from app.errors import MinimumAnswersError, NotFoundError, TreeValidationError
from app.tree.types import Answer, NodeKind, Position, TreeNode

logger = logging.getLogger(__name__)

DEFAULT_ANSWER_TEXTS = ("Yes", "No")
NEW_ANSWER_TEXT = "New Option"
MIN_DECISION_ANSWERS = 2

NODE_FIELDS = {"content", "position"}
ANSWER_FIELDS = {"text", "work_unit_id"}


def _default_node_id(kind: NodeKind) -> str:
    return f"{kind.value}-{uuid.uuid4().hex[:12]}"


class DecisionTree:
    """
    In-memory decision tree used by the editor.

    Usage:
        tree = DecisionTree()
        q1 = tree.add_node(NodeKind.DECISION)
        q2 = tree.add_node(NodeKind.DECISION)
        tree.connect(q1, 0, q2)      # True
        tree.connect(q2, 0, q1)      # False, would close a cycle
    """

    def __init__(
        self,
        nodes: Optional[Iterable[TreeNode]] = None,
        id_factory: Callable[[NodeKind], str] = _default_node_id,
    ):
        self._nodes: Dict[str, TreeNode] = {}
        self._pending_slot: Optional[Tuple[str, int]] = None
        self._id_factory = id_factory

        if nodes is not None:
            self._load(nodes)

    # ---------- loading ----------

    def _load(self, nodes: Iterable[TreeNode]) -> None:
        issues: List[str] = []
        for node in nodes:
            if node.id in self._nodes:
                issues.append(f"duplicate node id '{node.id}'")
                continue
            self._nodes[node.id] = copy.deepcopy(node)

        for node in self._nodes.values():
            if not node.is_decision and node.answers:
                issues.append(f"leaf node '{node.id}' must not have answers")
            for index, answer in enumerate(node.answers):
                if answer.target_id is not None and answer.target_id not in self._nodes:
                    issues.append(
                        f"answer {index} of node '{node.id}' targets unknown node '{answer.target_id}'"
                    )

        if not issues:
            cycle = self.find_cycle()
            if cycle:
                issues.append("cycle detected: " + " -> ".join(cycle))

        if issues:
            raise TreeValidationError(issues)

    @classmethod
    def from_nodes(cls, nodes: Iterable[TreeNode]) -> "DecisionTree":
        return cls(nodes=nodes)

    def snapshot(self) -> List[TreeNode]:
        """Deep copy of the nodes in insertion order."""
        return [copy.deepcopy(n) for n in self._nodes.values()]

    # ---------- lookup ----------

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[TreeNode]:
        return iter(list(self._nodes.values()))

    @property
    def node_ids(self) -> List[str]:
        return list(self._nodes)

    def get(self, node_id: str) -> TreeNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise NotFoundError("node", node_id)
        return node

    def answer(self, node_id: str, index: int) -> Answer:
        node = self.get(node_id)
        if index < 0 or index >= len(node.answers):
            raise IndexError(f"node '{node_id}' has no answer {index}")
        return node.answers[index]

    def children(self, node_id: str) -> List[str]:
        """Target ids of a node's answers, in answer order."""
        return [a.target_id for a in self.get(node_id).answers if a.target_id is not None]

    def parents_of(self, node_id: str) -> List[str]:
        return [
            n.id for n in self._nodes.values()
            if any(a.target_id == node_id for a in n.answers)
        ]

    def roots(self) -> List[str]:
        targeted = {
            a.target_id
            for n in self._nodes.values()
            for a in n.answers
            if a.target_id is not None
        }
        return [node_id for node_id in self._nodes if node_id not in targeted]

    # ---------- reachability ----------

    def is_reachable(self, start_id: str, goal_id: str) -> bool:
        """True if goal can be reached from start by following answer targets."""
        stack = [start_id]
        seen: Set[str] = set()
        while stack:
            current = stack.pop()
            if current == goal_id:
                return True
            if current in seen or current not in self._nodes:
                continue
            seen.add(current)
            stack.extend(self.children(current))
        return False

    def would_create_cycle(self, source_id: str, target_id: str) -> bool:
        # The provisional edge source -> target closes a cycle iff target already reaches source.
        return source_id == target_id or self.is_reachable(target_id, source_id)

    def descendants(self, node_id: str) -> Set[str]:
        result: Set[str] = set()
        stack = list(self.children(node_id))
        while stack:
            current = stack.pop()
            if current in result or current not in self._nodes:
                continue
            result.add(current)
            stack.extend(self.children(current))
        return result

    def available_targets(self, source_id: str) -> List[str]:
        """Nodes the source may link to without closing a cycle."""
        self.get(source_id)
        return [
            node_id for node_id in self._nodes
            if node_id != source_id and not self.is_reachable(node_id, source_id)
        ]

    def find_cycle(self) -> Optional[List[str]]:
        visited: Set[str] = set()
        on_path: List[str] = []

        def dfs(node_id: str) -> Optional[List[str]]:
            visited.add(node_id)
            on_path.append(node_id)
            for child in self.children(node_id):
                if child in on_path:
                    return on_path[on_path.index(child):] + [child]
                if child not in visited:
                    found = dfs(child)
                    if found:
                        return found
            on_path.pop()
            return None

        for node_id in self._nodes:
            if node_id not in visited:
                found = dfs(node_id)
                if found:
                    return found
        return None

    # ---------- pending follow-up slot ----------

    @property
    def pending_slot(self) -> Optional[Tuple[str, int]]:
        return self._pending_slot

    def set_pending_slot(self, parent_id: str, answer_index: int) -> None:
        self.answer(parent_id, answer_index)
        self._pending_slot = (parent_id, answer_index)

    def clear_pending_slot(self) -> None:
        self._pending_slot = None

    # ---------- mutations ----------

    def add_node(
        self,
        kind: NodeKind = NodeKind.DECISION,
        content: str = "",
        position: Optional[Position] = None,
    ) -> str:
        """
        Create a node. Decision nodes start with "Yes"/"No" answers.

        If a follow-up slot is pending, the slot's answer is pointed at the
        new node as part of this same call.
        """
        kind = NodeKind(kind)
        node_id = self._id_factory(kind)
        while node_id in self._nodes:
            node_id = self._id_factory(kind)

        answers = [Answer(text=t) for t in DEFAULT_ANSWER_TEXTS] if kind == NodeKind.DECISION else []
        self._nodes[node_id] = TreeNode(
            id=node_id,
            kind=kind,
            content=content,
            position=position,
            answers=answers,
        )

        if self._pending_slot is not None:
            parent_id, index = self._pending_slot
            self._pending_slot = None
            if parent_id in self._nodes and index < len(self._nodes[parent_id].answers):
                self._nodes[parent_id].answers[index].target_id = node_id

        logger.debug("Added %s node %s", kind.value, node_id)
        return node_id

    def update_node(self, node_id: str, **changes) -> TreeNode:
        unknown = set(changes) - NODE_FIELDS
        if unknown:
            raise ValueError(f"cannot update node fields: {sorted(unknown)}")
        node = self.get(node_id)
        for key, value in changes.items():
            setattr(node, key, value)
        return node

    def update_answer(self, node_id: str, index: int, **changes) -> Answer:
        unknown = set(changes) - ANSWER_FIELDS
        if unknown:
            raise ValueError(f"cannot update answer fields: {sorted(unknown)}")
        answer = self.answer(node_id, index)
        for key, value in changes.items():
            setattr(answer, key, value)
        return answer

    def add_answer(self, node_id: str, text: str = NEW_ANSWER_TEXT) -> int:
        node = self.get(node_id)
        if not node.is_decision:
            raise TreeValidationError([f"leaf node '{node_id}' cannot have answers"])
        node.answers.append(Answer(text=text))
        return len(node.answers) - 1

    def remove_answer(self, node_id: str, index: int) -> Answer:
        node = self.get(node_id)
        self.answer(node_id, index)
        if node.is_decision and len(node.answers) <= MIN_DECISION_ANSWERS:
            raise MinimumAnswersError(node_id, MIN_DECISION_ANSWERS)

        removed = node.answers.pop(index)
        if self._pending_slot and self._pending_slot[0] == node_id:
            self._pending_slot = None
        return removed

    def connect(self, node_id: str, answer_index: int, target_id: str) -> bool:
        """Point an answer at target. Returns False and changes nothing if that would close a cycle."""
        answer = self.answer(node_id, answer_index)
        if target_id not in self._nodes:
            return False
        if self.would_create_cycle(node_id, target_id):
            logger.info("Rejected connection %s[%d] -> %s: cycle", node_id, answer_index, target_id)
            return False
        answer.target_id = target_id
        return True

    def disconnect(self, node_id: str, answer_index: int) -> None:
        self.answer(node_id, answer_index).target_id = None

    def remove_node(self, node_id: str) -> Set[str]:
        """
        Remove a node and everything below it.

        Inbound answers are nulled first; any answer elsewhere that pointed into
        the removed subtree is nulled as well. Returns the removed ids.
        """
        self.get(node_id)
        removed = {node_id} | self.descendants(node_id)

        for node in self._nodes.values():
            if node.id in removed:
                continue
            for answer in node.answers:
                if answer.target_id in removed:
                    answer.target_id = None

        for removed_id in removed:
            del self._nodes[removed_id]

        if self._pending_slot and self._pending_slot[0] in removed:
            self._pending_slot = None

        logger.debug("Removed %d node(s) rooted at %s", len(removed), node_id)
        return removed

    # ---------- positions ----------

    def set_position(self, node_id: str, x: float, y: float) -> None:
        self.get(node_id).position = Position(x=x, y=y)

    def move_by(self, node_id: str, dx: float, dy: float) -> Position:
        node = self.get(node_id)
        current = node.position or Position(0, 0)
        node.position = Position(x=current.x + dx, y=current.y + dy)
        return node.position
