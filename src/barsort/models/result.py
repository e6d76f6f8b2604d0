"""Decode results, per-document outcomes and batch summaries."""

from typing import Optional

from pydantic import Field

from .base import BaseIRModel, DocumentState, OutcomeStatus


class DecodeResult(BaseIRModel):
    """Either a decoded barcode (symbology and text) or not found."""

    found: bool
    symbology: Optional[str] = None
    text: Optional[str] = None
    reason: Optional[str] = Field(None, description="Why nothing was decoded")

    @classmethod
    def decoded(cls, symbology: str, text: str) -> "DecodeResult":
        return cls(found=True, symbology=symbology, text=text)

    @classmethod
    def not_found(cls, reason: str = "no barcode detected") -> "DecodeResult":
        return cls(found=False, reason=reason)


class ProcessingOutcome(BaseIRModel):
    """Where a document ended up after disposition."""

    status: OutcomeStatus
    destination_path: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def relocated(cls, destination: str) -> "ProcessingOutcome":
        return cls(status=OutcomeStatus.RELOCATED, destination_path=destination)

    @classmethod
    def left_in_place(cls, reason: str) -> "ProcessingOutcome":
        return cls(status=OutcomeStatus.LEFT_IN_PLACE, reason=reason)


class DocumentResult(BaseIRModel):
    """
    Result of one pipeline invocation.

    Records the traversed states so callers can verify that every
    invocation reached cleanup.
    """

    source_path: str
    status: OutcomeStatus
    destination_path: Optional[str] = None
    reason: Optional[str] = None
    error_type: Optional[str] = Field(None, description="Exception class for failed documents")
    symbology: Optional[str] = None
    barcode_text: Optional[str] = None
    states: list[DocumentState] = Field(default_factory=list)
    artifact_removed: bool = False

    @property
    def is_failed(self) -> bool:
        return self.status == OutcomeStatus.FAILED

    @property
    def reached_cleanup(self) -> bool:
        return bool(self.states) and self.states[-1] == DocumentState.CLEANED_UP

    def describe(self) -> str:
        """One human-readable line for console output."""
        if self.status == OutcomeStatus.RELOCATED:
            return f"{self.source_path} -> {self.destination_path}"
        if self.status == OutcomeStatus.FAILED:
            return f"{self.source_path}: error ({self.error_type}: {self.reason})"
        if self.status == OutcomeStatus.CANCELLED:
            return f"{self.source_path}: cancelled"
        return f"{self.source_path}: left in place ({self.reason})"


class BatchSummary(BaseIRModel):
    """Aggregate outcome of one directory scan."""

    input_folder: str
    output_folder: str
    results: list[DocumentResult] = Field(default_factory=list)
    skipped: int = Field(default=0, description="Entries that were not PDF files")

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for result in self.results if result.status == status)

    @property
    def relocated(self) -> int:
        return self._count(OutcomeStatus.RELOCATED)

    @property
    def left_in_place(self) -> int:
        return self._count(OutcomeStatus.LEFT_IN_PLACE)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def cancelled(self) -> int:
        return self._count(OutcomeStatus.CANCELLED)

    @property
    def processed(self) -> int:
        return len(self.results)

    def counts(self) -> dict[str, int]:
        return {
            "relocated": self.relocated,
            "left_in_place": self.left_in_place,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "skipped": self.skipped,
        }
