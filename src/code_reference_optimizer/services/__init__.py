"""Service layer for business logic."""

from code_reference_optimizer.services.diff_engine import DiffEngine
from code_reference_optimizer.services.optimizer_service import OptimizerService
from code_reference_optimizer.services.relevance_cache import RelevanceCache
from code_reference_optimizer.services.snapshot_store import SnapshotStore

__all__ = ["DiffEngine", "SnapshotStore", "RelevanceCache", "OptimizerService"]
