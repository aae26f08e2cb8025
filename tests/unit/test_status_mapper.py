import pytest

from clubsync.models.domain.status_domain import ContactStatus, PipelineStage
from clubsync.rules.status_mapper import (
    CONTACT_STATUS_BY_STATUS,
    CONTACT_STATUS_EXEMPT_TOKENS,
    STAGE_BY_STATUS,
    map_contact_status,
    map_pipeline_stage,
    map_status,
)


def test_active_maps_to_closed_won_and_active():
    mapping = map_status("active")

    assert mapping.stage is PipelineStage.CLOSED_WON_ACTIVE
    assert mapping.contact_status is ContactStatus.ACTIVE


def test_past_due_maps_to_payment_declined_and_inactive():
    mapping = map_status("past_due")

    assert mapping.stage is PipelineStage.PAYMENT_DECLINED
    assert mapping.contact_status is ContactStatus.INACTIVE


@pytest.mark.parametrize("raw", ["terminated", "cancelled", "non-member"])
def test_churned_statuses_close_the_deal(raw):
    assert map_pipeline_stage(raw) is PipelineStage.CLOSED_LOST
    assert map_contact_status(raw) is ContactStatus.INACTIVE


def test_input_is_cleaned_before_lookup():
    assert map_status("  Past Due ").stage is PipelineStage.PAYMENT_DECLINED
    assert map_status("ACTIVE").contact_status is ContactStatus.ACTIVE


@pytest.mark.parametrize("raw", ["trialing", "", None, "   "])
def test_unknown_status_has_no_mapping(raw):
    mapping = map_status(raw)

    assert mapping.stage is None
    assert mapping.contact_status is None
    assert not mapping.is_mapped


def test_payment_failed_moves_pipeline_only():
    mapping = map_status("paymentfailed")

    assert mapping.stage is PipelineStage.PAYMENT_DECLINED
    assert mapping.contact_status is None


def test_stage_tokens_have_compatible_contact_status():
    for token, stage in STAGE_BY_STATUS.items():
        if token in CONTACT_STATUS_EXEMPT_TOKENS:
            assert token not in CONTACT_STATUS_BY_STATUS
            continue
        expected = (
            ContactStatus.ACTIVE
            if stage is PipelineStage.CLOSED_WON_ACTIVE
            else ContactStatus.INACTIVE
        )
        assert CONTACT_STATUS_BY_STATUS[token] is expected, token


def test_contact_status_tokens_all_move_the_pipeline():
    assert set(CONTACT_STATUS_BY_STATUS) <= set(STAGE_BY_STATUS)


def test_former_member_is_never_produced():
    assert ContactStatus.FORMER_MEMBER not in CONTACT_STATUS_BY_STATUS.values()
