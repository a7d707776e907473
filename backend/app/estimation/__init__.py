from app.estimation.aggregate import (
    YES_ANSWER,
    EstimateItem,
    EstimateSummary,
    TeamEstimate,
    aggregate_hours,
    assigned_work_units_by_team,
)
from app.estimation.walk import next_node, presentation_order, walk_path

__all__ = [
    "YES_ANSWER",
    "EstimateItem",
    "EstimateSummary",
    "TeamEstimate",
    "aggregate_hours",
    "assigned_work_units_by_team",
    "next_node",
    "presentation_order",
    "walk_path",
]
