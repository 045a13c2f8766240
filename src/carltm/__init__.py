"""
carltm - hierarchical work item completion for CARL projects.

Work items are tracked as paired intent/state records in a hierarchy:
Epic → Feature → Story → Technical task. Completed items are archived into
their scope's completed/ directory and completion rolls up to their parents.
"""

from .version import VERSION
from .config import CarlConfig
from .models import (
    ScopeType,
    IntentRecord,
    StateRecord,
    WorkItem,
    RelationshipGraph,
    CompletionCheck,
    RecalculationResult,
    ArchiveResult,
)
from .data import RecordStore
from .relationships import RelationshipIndex
from .completion import check_intent_completion, get_completion_percentage, calculate_average_completion
from .aggregation import AggregationEngine
from .archive import ArchivalWorkflow
from .orchestrator import CompletionOrchestrator

__version__ = VERSION

__all__ = [
    "VERSION",
    "CarlConfig",
    "ScopeType",
    "IntentRecord",
    "StateRecord",
    "WorkItem",
    "RelationshipGraph",
    "CompletionCheck",
    "RecalculationResult",
    "ArchiveResult",
    "RecordStore",
    "RelationshipIndex",
    "check_intent_completion",
    "get_completion_percentage",
    "calculate_average_completion",
    "AggregationEngine",
    "ArchivalWorkflow",
    "CompletionOrchestrator",
]
