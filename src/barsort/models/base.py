"""Base models and common types for Barcode Sorter."""

from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentState(str, Enum):
    """States a document passes through during one pipeline invocation."""

    DISCOVERED = "discovered"
    RENDERED = "rendered"
    PREPROCESSED = "preprocessed"
    DECODED = "decoded"
    DISPOSED = "disposed"
    CLEANED_UP = "cleaned_up"


class OutcomeStatus(str, Enum):
    """Final disposition of a document."""

    RELOCATED = "relocated"
    LEFT_IN_PLACE = "left_in_place"
    FAILED = "failed"
    CANCELLED = "cancelled"


class BaseIRModel(BaseModel):
    """Base class for pipeline models with common fields."""

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(from_attributes=True)
