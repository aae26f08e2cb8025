"""
Projects billing/scheduling membership statuses onto the CRM.

Two independent tables: one moves the sales-pipeline stage, the other sets
the contact status. A token missing from a table means "do not change that
field", never a default.
"""

from clubsync.models.domain.status_domain import ContactStatus, PipelineStage, StatusMapping
from clubsync.rules.normalizer import normalize_status_token

STAGE_BY_STATUS: dict[str, PipelineStage] = {
    "active": PipelineStage.CLOSED_WON_ACTIVE,
    "pending": PipelineStage.PAYMENT_DECLINED,
    "declined": PipelineStage.PAYMENT_DECLINED,
    "suspended": PipelineStage.PAYMENT_DECLINED,
    "expired": PipelineStage.PAYMENT_DECLINED,
    "froze": PipelineStage.PAYMENT_DECLINED,
    "frozen": PipelineStage.PAYMENT_DECLINED,
    "past_due": PipelineStage.PAYMENT_DECLINED,
    "paymentfailed": PipelineStage.PAYMENT_DECLINED,
    "terminated": PipelineStage.CLOSED_LOST,
    "cancelled": PipelineStage.CLOSED_LOST,
    "non-member": PipelineStage.CLOSED_LOST,
}

CONTACT_STATUS_BY_STATUS: dict[str, ContactStatus] = {
    "active": ContactStatus.ACTIVE,
    "pending": ContactStatus.INACTIVE,
    "declined": ContactStatus.INACTIVE,
    "suspended": ContactStatus.INACTIVE,
    "expired": ContactStatus.INACTIVE,
    "froze": ContactStatus.INACTIVE,
    "frozen": ContactStatus.INACTIVE,
    "past_due": ContactStatus.INACTIVE,
    "terminated": ContactStatus.INACTIVE,
    "cancelled": ContactStatus.INACTIVE,
    "non-member": ContactStatus.INACTIVE,
}

# Billing events rather than membership states: they move the pipeline only.
CONTACT_STATUS_EXEMPT_TOKENS = frozenset({"paymentfailed"})


def map_pipeline_stage(raw: str | None) -> PipelineStage | None:
    token = normalize_status_token(raw)
    return STAGE_BY_STATUS.get(token) if token else None


def map_contact_status(raw: str | None) -> ContactStatus | None:
    token = normalize_status_token(raw)
    return CONTACT_STATUS_BY_STATUS.get(token) if token else None


def map_status(raw: str | None) -> StatusMapping:
    return StatusMapping(stage=map_pipeline_stage(raw), contact_status=map_contact_status(raw))
