"""
Repository layer exports.
"""

from db.repositories.target_repository import TargetRepository

__all__ = [
    "TargetRepository",
]
