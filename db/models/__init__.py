"""
Model package exports.

Importing this package registers every table on ``Base.metadata``.
"""

from db.models.deal import CANONICAL_STAGE_ORDER, Deal, DealStage
from db.models.lead import Lead, LeadStatus
from db.models.target import Target, TargetType

__all__ = [
    "CANONICAL_STAGE_ORDER",
    "Deal",
    "DealStage",
    "Lead",
    "LeadStatus",
    "Target",
    "TargetType",
]
