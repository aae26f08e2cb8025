# clubsync/models/domain/status_domain.py
"""
Internal taxonomies that external membership statuses are projected onto.
"""

from dataclasses import dataclass
from enum import Enum


class PipelineStage(str, Enum):
    """Stages of the staff-facing membership sales pipeline."""

    INTAKE = "intake"
    CLOSED_WON_ACTIVE = "closed-won-active"
    PAYMENT_DECLINED = "payment-declined"
    CLOSED_LOST = "closed-lost"


class ContactStatus(str, Enum):
    """Automated lifecycle flag on the CRM contact."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    FORMER_MEMBER = "former_member"  # set by churn detection only


@dataclass(frozen=True, slots=True)
class StatusMapping:
    """Projection of one external status token. None means "leave as is"."""

    stage: PipelineStage | None
    contact_status: ContactStatus | None

    @property
    def is_mapped(self) -> bool:
        return self.stage is not None or self.contact_status is not None
