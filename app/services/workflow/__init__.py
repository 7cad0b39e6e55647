from .statuses import (
    Action, RequestType, StepStatus, WorkflowDefinition, ProcessingTransition,
    TsrStatus, ClaimStatus, VisaStatus, AccommodationStatus, TransportStatus,
    WORKFLOWS, get_workflow,
)
from .engine import TransitionResult, compute_transition, compute_processing_transition, replay_status
from .dedup import DedupGuard, DedupResult, DedupStore, InMemoryDedupStore, RedisDedupStore, build_dedup_store
from .request_ids import generate_request_id, parse_request_id

__all__ = [
    "Action", "RequestType", "StepStatus", "WorkflowDefinition", "ProcessingTransition",
    "TsrStatus", "ClaimStatus", "VisaStatus", "AccommodationStatus", "TransportStatus",
    "WORKFLOWS", "get_workflow",
    "TransitionResult", "compute_transition", "compute_processing_transition", "replay_status",
    "DedupGuard", "DedupResult", "DedupStore", "InMemoryDedupStore", "RedisDedupStore", "build_dedup_store",
    "generate_request_id", "parse_request_id",
]
