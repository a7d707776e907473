"""Tests for the template validator"""

import pytest

from app.errors import TreeValidationError
from app.tree.types import NodeKind, TemplateDetails, WorkUnit
from app.validation import ValidationSeverity, raise_on_errors, validate_template
from conftest import make_node


def codes(result, severity=None):
    return {i.code for i in result.issues if severity is None or i.severity == severity}


def test_clean_template_is_valid():
    nodes = [
        make_node("q", "New product?", answers=[("Yes", "end", None), ("No", "end", None)]),
        make_node("end", "Done", kind=NodeKind.LEAF),
    ]
    result = validate_template(TemplateDetails(name="Motor"), nodes)
    assert result.is_valid
    assert result.issues == []
    assert result.stats["connections"] == 2
    assert result.get_summary() == "Valid | Errors: 0, Warnings: 0"


def test_structural_errors():
    nodes = [
        make_node("a", "A", answers=[("Yes", "a", None), ("No", "ghost", None)]),
        make_node("b", "B", answers=[("Yes", "c", None), ("No", None, None)]),
        make_node("c", "C", answers=[("Yes", "b", None), ("No", None, None)]),
        make_node("b", "B again"),
    ]
    result = validate_template(TemplateDetails(name=""), nodes)

    assert not result.is_valid
    assert {"EMPTY_NAME", "SELF_LOOP", "MISSING_TARGET_NODE", "CIRCULAR_REFERENCE", "DUPLICATE_NODE_ID"} <= codes(
        result, ValidationSeverity.ERROR
    )


def test_node_shape_checks():
    leaf = make_node("leaf", "Done", kind=NodeKind.LEAF, answers=[("Yes", None, None)])
    thin = make_node("thin", "", answers=[("", None, None)])
    result = validate_template(TemplateDetails(name="Motor"), [leaf, thin])

    assert codes(result, ValidationSeverity.ERROR) == {"LEAF_WITH_ANSWERS"}
    assert codes(result, ValidationSeverity.WARNING) == {"EMPTY_CONTENT", "TOO_FEW_ANSWERS", "EMPTY_ANSWER_TEXT"}


def test_warnings_fail_only_in_strict_mode():
    nodes = [make_node("q", "")]
    assert validate_template(TemplateDetails(name="Motor"), nodes).is_valid
    assert not validate_template(TemplateDetails(name="Motor"), nodes, strict=True).is_valid


def test_work_unit_checks():
    units = {"wu-bad": WorkUnit(id="wu-bad", name="Broken", team_id="qa", hours=-1)}
    nodes = [make_node("q", "Q", answers=[("Yes", None, "wu-bad"), ("No", None, "wu-missing")])]
    result = validate_template(TemplateDetails(name="Motor"), nodes, units)
    assert codes(result, ValidationSeverity.ERROR) == {"NEGATIVE_HOURS", "UNKNOWN_WORK_UNIT"}


def test_raise_on_errors_lists_issues():
    with pytest.raises(TreeValidationError) as info:
        raise_on_errors(TemplateDetails(name=" "), [make_node("q", "Q")])
    assert info.value.issues == ["[EMPTY_NAME] Template name is required"]
