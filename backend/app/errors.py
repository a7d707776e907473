"""Error taxonomy shared by the model, the store, the API and the editor client."""

from typing import List, Optional


class EstimatorError(Exception):
    """Base class for all estimator errors."""

    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class NotFoundError(EstimatorError):
    """Referenced template / intake / catalog entry is absent or inactive."""

    def __init__(self, entity: str, entity_id):
        super().__init__(
            f"{entity} '{entity_id}' not found",
            context={"entity": entity, "id": str(entity_id)},
        )
        self.entity = entity
        self.entity_id = entity_id


class TreeValidationError(EstimatorError):
    """Input is incomplete or structurally invalid; nothing was sent or written."""

    def __init__(self, issues: List[str]):
        super().__init__(
            "Validation failed: " + "; ".join(issues),
            context={"issues": list(issues)},
        )
        self.issues = list(issues)


class PersistenceError(EstimatorError):
    """A store write failed and the whole transaction was rolled back."""

    def __init__(self, operation: str, original_error: Exception):
        super().__init__(
            f"Store operation '{operation}' failed: {original_error}",
            context={"operation": operation, "original_error": str(original_error)},
        )
        self.operation = operation
        self.original_error = original_error


class NetworkError(EstimatorError):
    """A call to the estimator API failed; local edits are kept."""

    def __init__(self, operation: str, original_error: Exception, status_code: Optional[int] = None):
        super().__init__(
            f"Request '{operation}' failed: {original_error}",
            context={
                "operation": operation,
                "status_code": status_code,
                "original_error": str(original_error),
            },
        )
        self.operation = operation
        self.status_code = status_code
        self.original_error = original_error


class MinimumAnswersError(EstimatorError):
    """A decision node must keep at least two answers."""

    def __init__(self, node_id: str, minimum: int):
        super().__init__(
            f"Decision node '{node_id}' must keep at least {minimum} answers",
            context={"node_id": node_id, "minimum": minimum},
        )


class SaveInProgressError(EstimatorError):
    """A save or submit was triggered while the previous one is still pending."""

    def __init__(self, operation: str):
        super().__init__(
            f"'{operation}' is already in progress",
            context={"operation": operation},
        )
