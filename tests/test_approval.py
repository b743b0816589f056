"""Approval state machine tests."""
import uuid

import pytest

from partner_portal.core.exceptions import AuthorizationError
from partner_portal.models.partner import ApprovalStatus, Partner, PartnerRole
from partner_portal.services.partner_service import can_authenticate, transition


def make_partner(role: str, status: ApprovalStatus = ApprovalStatus.PENDING) -> Partner:
    return Partner(
        id=uuid.uuid4(),
        email=f"{uuid.uuid4().hex[:8]}@example.com",
        role=role,
        approval_status=status.value,
    )


@pytest.mark.parametrize("status, allowed", [
    ("approved", True),
    ("pending", False),
    ("rejected", False),
    ("suspended", False),
    (ApprovalStatus.APPROVED, True),
])
def test_can_authenticate(status, allowed):
    assert can_authenticate(status) is allowed


def test_admin_approves_partner():
    admin = make_partner(PartnerRole.ADMIN.value, ApprovalStatus.APPROVED)
    dealer = make_partner(PartnerRole.DEALER.value)

    transition(dealer, ApprovalStatus.APPROVED, admin)

    assert dealer.approval_status == "approved"
    assert dealer.approved_by == admin.id
    assert dealer.approved_at is not None


def test_rejecting_clears_approval_stamp():
    admin = make_partner(PartnerRole.ADMIN.value, ApprovalStatus.APPROVED)
    dealer = make_partner(PartnerRole.DEALER.value)
    transition(dealer, "approved", admin)

    transition(dealer, "rejected", admin)

    assert dealer.approval_status == "rejected"
    assert dealer.approved_at is None
    assert dealer.approved_by is None


def test_rejected_partner_can_be_approved_again():
    admin = make_partner(PartnerRole.ADMIN.value, ApprovalStatus.APPROVED)
    dealer = make_partner(PartnerRole.SUB_DEALER.value, ApprovalStatus.REJECTED)

    transition(dealer, ApprovalStatus.APPROVED, admin)

    assert can_authenticate(dealer.approval_status)


@pytest.mark.parametrize("actor_role", [PartnerRole.DEALER.value, None])
def test_only_admin_can_transition(actor_role):
    actor = make_partner(actor_role, ApprovalStatus.APPROVED) if actor_role else None
    dealer = make_partner(PartnerRole.RETAILER_OUTLET.value)

    with pytest.raises(AuthorizationError):
        transition(dealer, ApprovalStatus.APPROVED, actor)
    assert dealer.approval_status == "pending"
