"""Engine components orchestrating extract → dedup → paginate → reconcile."""

from .dedup import Deduplicator, deduplicate
from .driver import BaseDriver, PlaywrightDriver
from .extractor import ExtractionBatch, ExtractionOutcome, Extractor, ShapeProbe
from .paginator import (
    PaginationController,
    PaginationResult,
    PaginationState,
    ResponseBuffer,
    StopReason,
)
from .reconciler import ReconciliationPlan, Reconciler
from .records import AdRecord, Liveness, PageMetadata

__all__ = [
    "AdRecord",
    "BaseDriver",
    "Deduplicator",
    "ExtractionBatch",
    "ExtractionOutcome",
    "Extractor",
    "Liveness",
    "PageMetadata",
    "PaginationController",
    "PaginationResult",
    "PaginationState",
    "PlaywrightDriver",
    "ReconciliationPlan",
    "Reconciler",
    "ResponseBuffer",
    "ShapeProbe",
    "StopReason",
    "deduplicate",
]
