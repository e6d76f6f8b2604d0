"""Pydantic models for data flowing through the barcode sorting pipeline.

Model Hierarchy:
- SourceDocument → RenderedPage → PreprocessedImage → DecodeResult
- DecodeResult → ProcessingOutcome → DocumentResult → BatchSummary
"""

from .base import (
    BaseIRModel,
    DocumentState,
    OutcomeStatus,
)
from .document import (
    ARTIFACT_SUFFIX,
    PDF_SUFFIX,
    PreprocessedImage,
    RenderedPage,
    SourceDocument,
)
from .result import (
    BatchSummary,
    DecodeResult,
    DocumentResult,
    ProcessingOutcome,
)

__all__ = [
    # Base types
    "BaseIRModel",
    "DocumentState",
    "OutcomeStatus",
    # Document
    "ARTIFACT_SUFFIX",
    "PDF_SUFFIX",
    "SourceDocument",
    "RenderedPage",
    "PreprocessedImage",
    # Results
    "DecodeResult",
    "ProcessingOutcome",
    "DocumentResult",
    "BatchSummary",
]
