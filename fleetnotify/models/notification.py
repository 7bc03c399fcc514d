"""
Notification and delivery result models
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class NotificationContent(BaseModel):
    model_config = ConfigDict(frozen=True)
    title: str = Field(min_length=1)
    body: str = Field(min_length=1)


class TokenRecord(BaseModel):
    """One push token registered by a recipient."""
    model_config = ConfigDict(frozen=True)
    token: str = Field(min_length=1)
    platform: Optional[str] = None
    registered_at: Optional[datetime] = None


class DeliveryErrorKind(str, Enum):
    UNREGISTERED = "registration-token-not-registered"
    INVALID_TOKEN = "invalid-registration-token"
    SENDER_ID_MISMATCH = "sender-id-mismatch"
    QUOTA_EXCEEDED = "quota-exceeded"
    UNAVAILABLE = "unavailable"
    INTERNAL = "internal-error"
    UNKNOWN = "unknown"

    @property
    def is_permanent(self) -> bool:
        """True when the token itself is dead and can be deleted."""
        return self in PERMANENT_ERROR_KINDS


PERMANENT_ERROR_KINDS = frozenset({
    DeliveryErrorKind.UNREGISTERED,
    DeliveryErrorKind.INVALID_TOKEN,
    DeliveryErrorKind.SENDER_ID_MISMATCH,
})


class DeliveryOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)
    token: str
    success: bool
    error_kind: Optional[DeliveryErrorKind] = None

    @property
    def permanently_invalid(self) -> bool:
        return not self.success and self.error_kind is not None and self.error_kind.is_permanent


class BatchResult(BaseModel):
    success_count: int = 0
    failure_count: int = 0
    outcomes: List[DeliveryOutcome] = Field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: List[DeliveryOutcome]) -> "BatchResult":
        sent = sum(1 for outcome in outcomes if outcome.success)
        return cls(success_count=sent, failure_count=len(outcomes) - sent, outcomes=list(outcomes))

    def invalid_tokens(self) -> List[str]:
        return [outcome.token for outcome in self.outcomes if outcome.permanently_invalid]
