"""
Template Validator - Checks a template before it is saved.

Catches issues like:
- Missing template name
- Duplicate node IDs
- Answers pointing at nodes that do not exist
- Self-loops and cycles
- Leaf nodes carrying answers, decisions with fewer than two answers
- Work units that are unknown or have negative hours
"""

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Set

from app.errors import TreeValidationError
from app.tree.model import MIN_DECISION_ANSWERS
from app.tree.types import NodeKind, TemplateDetails, TreeNode, WorkUnit


class ValidationSeverity(Enum):
    ERROR = "error"      # Template cannot be saved
    WARNING = "warning"  # Saves, but the questionnaire will behave oddly
    INFO = "info"        # Suggestions for improvement


@dataclass
class ValidationIssue:
    """A single validation issue found in the template"""
    severity: ValidationSeverity
    code: str           # Machine-readable issue code
    message: str        # Human-readable description
    node_id: Optional[str] = None
    answer_index: Optional[int] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "node_id": self.node_id,
            "answer_index": self.answer_index,
            "suggestion": self.suggestion,
        }


@dataclass
class TemplateValidationResult:
    """Result of template validation"""
    is_valid: bool
    issues: List[ValidationIssue] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == ValidationSeverity.ERROR]

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == ValidationSeverity.WARNING)

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "issues": [i.to_dict() for i in self.issues],
            "stats": self.stats,
        }

    def get_summary(self) -> str:
        status = "Valid" if self.is_valid else "Invalid"
        return f"{status} | Errors: {self.error_count}, Warnings: {self.warning_count}"


class TemplateValidator:
    """
    Validates a template's details and node list.

    Usage:
        validator = TemplateValidator()
        result = validator.validate(details, nodes, work_units)

        if not result.is_valid:
            for issue in result.errors:
                ...
    """

    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode

    def validate(
        self,
        details: Optional[TemplateDetails],
        nodes: List[TreeNode],
        work_units: Optional[Mapping[str, WorkUnit]] = None,
    ) -> TemplateValidationResult:
        issues: List[ValidationIssue] = []
        node_ids = {n.id for n in nodes}

        issues.extend(self._check_details(details))
        issues.extend(self._check_duplicate_node_ids(nodes))
        issues.extend(self._check_node_shapes(nodes))
        issues.extend(self._check_missing_targets(nodes, node_ids))
        issues.extend(self._check_self_loops(nodes))
        issues.extend(self._check_cycles(nodes))
        if work_units is not None:
            issues.extend(self._check_work_units(nodes, work_units))

        has_errors = any(i.severity == ValidationSeverity.ERROR for i in issues)
        has_warnings = any(i.severity == ValidationSeverity.WARNING for i in issues)
        is_valid = not has_errors
        if self.strict_mode:
            is_valid = not has_errors and not has_warnings

        return TemplateValidationResult(
            is_valid=is_valid,
            issues=issues,
            stats=self._calculate_stats(nodes),
        )

    def _check_details(self, details: Optional[TemplateDetails]) -> List[ValidationIssue]:
        if details is None:
            return []
        issues = []
        if not details.name or not details.name.strip():
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                code="EMPTY_NAME",
                message="Template name is required",
                suggestion="Enter a template name",
            ))
        return issues

    def _check_duplicate_node_ids(self, nodes: List[TreeNode]) -> List[ValidationIssue]:
        issues = []
        seen_ids: Dict[str, int] = defaultdict(int)
        for node in nodes:
            seen_ids[node.id] += 1
        for node_id, count in seen_ids.items():
            if count > 1:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="DUPLICATE_NODE_ID",
                    message=f"Duplicate node ID '{node_id}' appears {count} times",
                    node_id=node_id,
                ))
        return issues

    def _check_node_shapes(self, nodes: List[TreeNode]) -> List[ValidationIssue]:
        issues = []
        for node in nodes:
            if not node.content or not node.content.strip():
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    code="EMPTY_CONTENT",
                    message=f"Node '{node.id}' has no content",
                    node_id=node.id,
                    suggestion="Enter the question or terminal description",
                ))
            if node.kind == NodeKind.LEAF and node.answers:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="LEAF_WITH_ANSWERS",
                    message=f"Leaf node '{node.id}' has {len(node.answers)} answers",
                    node_id=node.id,
                ))
            if node.kind == NodeKind.DECISION and len(node.answers) < MIN_DECISION_ANSWERS:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    code="TOO_FEW_ANSWERS",
                    message=f"Decision node '{node.id}' has fewer than {MIN_DECISION_ANSWERS} answers",
                    node_id=node.id,
                ))
            for index, answer in enumerate(node.answers):
                if not answer.text or not answer.text.strip():
                    issues.append(ValidationIssue(
                        severity=ValidationSeverity.WARNING,
                        code="EMPTY_ANSWER_TEXT",
                        message=f"Answer {index} of node '{node.id}' has no text",
                        node_id=node.id,
                        answer_index=index,
                    ))
        return issues

    def _check_missing_targets(self, nodes: List[TreeNode], node_ids: Set[str]) -> List[ValidationIssue]:
        issues = []
        for node in nodes:
            for index, answer in enumerate(node.answers):
                if answer.target_id is not None and answer.target_id not in node_ids:
                    issues.append(ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        code="MISSING_TARGET_NODE",
                        message=f"Answer {index} of node '{node.id}' targets non-existent node '{answer.target_id}'",
                        node_id=node.id,
                        answer_index=index,
                        suggestion="Reconnect the answer or clear its target",
                    ))
        return issues

    def _check_self_loops(self, nodes: List[TreeNode]) -> List[ValidationIssue]:
        issues = []
        for node in nodes:
            for index, answer in enumerate(node.answers):
                if answer.target_id == node.id:
                    issues.append(ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        code="SELF_LOOP",
                        message=f"Answer {index} of node '{node.id}' points back at its own node",
                        node_id=node.id,
                        answer_index=index,
                    ))
        return issues

    def _check_cycles(self, nodes: List[TreeNode]) -> List[ValidationIssue]:
        issues = []
        adjacency: Dict[str, List[str]] = defaultdict(list)
        for node in nodes:
            for answer in node.answers:
                if answer.target_id is not None and answer.target_id != node.id:
                    adjacency[node.id].append(answer.target_id)

        visited: Set[str] = set()
        rec_stack: Set[str] = set()
        cycles_found: List[List[str]] = []

        def dfs(node_id: str, path: List[str]) -> bool:
            visited.add(node_id)
            rec_stack.add(node_id)
            for neighbor in adjacency.get(node_id, []):
                if neighbor not in visited:
                    if dfs(neighbor, path + [neighbor]):
                        return True
                elif neighbor in rec_stack:
                    cycle_start = path.index(neighbor) if neighbor in path else 0
                    cycles_found.append(path[cycle_start:] + [neighbor])
                    return True
            rec_stack.remove(node_id)
            return False

        for node in nodes:
            if node.id not in visited:
                rec_stack.clear()
                dfs(node.id, [node.id])

        for cycle in cycles_found[:3]:
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                code="CIRCULAR_REFERENCE",
                message=f"Circular reference detected: {' -> '.join(cycle)}",
                node_id=cycle[0],
                suggestion="Disconnect one of the answers in the loop",
            ))
        return issues

    def _check_work_units(
        self,
        nodes: List[TreeNode],
        work_units: Mapping[str, WorkUnit],
    ) -> List[ValidationIssue]:
        issues = []
        for node in nodes:
            for index, answer in enumerate(node.answers):
                if not answer.work_unit_id:
                    continue
                unit = work_units.get(answer.work_unit_id)
                if unit is None:
                    issues.append(ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        code="UNKNOWN_WORK_UNIT",
                        message=f"Answer {index} of node '{node.id}' references unknown work unit '{answer.work_unit_id}'",
                        node_id=node.id,
                        answer_index=index,
                    ))
                elif unit.hours < 0:
                    issues.append(ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        code="NEGATIVE_HOURS",
                        message=f"Work unit '{unit.id}' has negative hours ({unit.hours})",
                        node_id=node.id,
                        answer_index=index,
                    ))
        return issues

    def _calculate_stats(self, nodes: List[TreeNode]) -> Dict[str, int]:
        answers = [a for n in nodes for a in n.answers]
        return {
            "nodes": len(nodes),
            "decisions": sum(1 for n in nodes if n.kind == NodeKind.DECISION),
            "leaves": sum(1 for n in nodes if n.kind == NodeKind.LEAF),
            "answers": len(answers),
            "connections": sum(1 for a in answers if a.target_id is not None),
            "work_unit_assignments": sum(1 for a in answers if a.work_unit_id),
        }


def validate_template(
    details: Optional[TemplateDetails],
    nodes: List[TreeNode],
    work_units: Optional[Mapping[str, WorkUnit]] = None,
    strict: bool = False,
) -> TemplateValidationResult:
    """Convenience function to validate a template."""
    return TemplateValidator(strict_mode=strict).validate(details, nodes, work_units)


def raise_on_errors(
    details: Optional[TemplateDetails],
    nodes: List[TreeNode],
    work_units: Optional[Mapping[str, WorkUnit]] = None,
) -> None:
    """Validate and raise TreeValidationError listing every error-level issue."""
    result = validate_template(details, nodes, work_units)
    if not result.is_valid:
        raise TreeValidationError([f"[{i.code}] {i.message}" for i in result.errors])
