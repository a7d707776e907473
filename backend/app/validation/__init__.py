"""
Validation module for decision-tree templates.
"""

from app.validation.tree_validator import (
    TemplateValidator,
    TemplateValidationResult,
    ValidationIssue,
    ValidationSeverity,
    validate_template,
    raise_on_errors,
)

__all__ = [
    "TemplateValidator",
    "TemplateValidationResult",
    "ValidationIssue",
    "ValidationSeverity",
    "validate_template",
    "raise_on_errors",
]
