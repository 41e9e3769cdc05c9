"""
Commission lifecycle tests
"""

from datetime import datetime

import pytest

from revenue_engine.commissions.service import can_transition
from revenue_engine.core.errors import CommissionStateError, EntityNotFoundError
from revenue_engine.policies.models import CommissionStatus, CommissionType

from conftest import AGENT_ID


async def _issued_policy(engine, product_type="WHOLE_LIFE", premium=1000, phone="555-0400"):
    lead = await engine.pipeline.create_lead(
        agent_id=AGENT_ID, first_name="Maria", last_name="Lopez", phone=phone,
    )
    return await engine.pipeline.create_policy(
        agent_id=AGENT_ID,
        lead_id=lead.id,
        carrier="Acme Life",
        product_type=product_type,
        face_amount=250000,
        premium=premium,
        status="ISSUED",
    )


async def _first_commission(engine, policy):
    commissions = await engine.commissions.list_policy_commissions(policy.id)
    return commissions[0]


class TestTransitions:
    def test_allowed(self):
        assert can_transition(CommissionStatus.PENDING, CommissionStatus.PAID)[0]
        assert can_transition(CommissionStatus.PENDING, CommissionStatus.CLAWED_BACK)[0]
        assert can_transition(CommissionStatus.PAID, CommissionStatus.CLAWED_BACK)[0]

    def test_rejected(self):
        ok, reason = can_transition(CommissionStatus.CLAWED_BACK, CommissionStatus.PAID)
        assert not ok
        assert "CLAWED_BACK" in reason
        assert not can_transition(CommissionStatus.PAID, CommissionStatus.PAID)[0]
        assert not can_transition(CommissionStatus.PAID, CommissionStatus.PENDING)[0]


class TestPayment:
    @pytest.mark.asyncio
    async def test_mark_paid(self, engine):
        policy = await _issued_policy(engine)
        commission = await _first_commission(engine, policy)
        paid_on = datetime(2025, 1, 15)

        paid = await engine.commissions.mark_paid(commission.id, paid_date=paid_on)

        assert paid.status == CommissionStatus.PAID
        assert paid.paid_date == paid_on

    @pytest.mark.asyncio
    async def test_pay_twice_fails(self, engine):
        policy = await _issued_policy(engine)
        commission = await _first_commission(engine, policy)
        await engine.commissions.mark_paid(commission.id)

        with pytest.raises(CommissionStateError):
            await engine.commissions.mark_paid(commission.id)

    @pytest.mark.asyncio
    async def test_pay_policy_commission(self, engine):
        policy = await _issued_policy(engine)

        paid = await engine.commissions.mark_policy_commission_paid(policy.id)

        assert paid.type == CommissionType.FIRST_YEAR
        assert paid.status == CommissionStatus.PAID
        with pytest.raises(EntityNotFoundError):
            await engine.commissions.mark_policy_commission_paid(policy.id)

    @pytest.mark.asyncio
    async def test_clawback_needs_reason(self, engine):
        policy = await _issued_policy(engine)
        commission = await _first_commission(engine, policy)

        with pytest.raises(CommissionStateError):
            await engine.commissions.clawback(commission.id, "  ")

    @pytest.mark.asyncio
    async def test_clawback_after_payment(self, engine):
        policy = await _issued_policy(engine)
        commission = await _first_commission(engine, policy)
        await engine.commissions.mark_paid(commission.id)

        clawed = await engine.commissions.clawback(commission.id, "Policy lapsed in month 3")

        assert clawed.status == CommissionStatus.CLAWED_BACK
        assert "Clawed back: Policy lapsed in month 3" in clawed.notes
        with pytest.raises(CommissionStateError):
            await engine.commissions.mark_paid(commission.id)

    @pytest.mark.asyncio
    async def test_missing_commission(self, engine):
        with pytest.raises(EntityNotFoundError):
            await engine.commissions.mark_paid("COM-NOPE")


class TestRenewals:
    @pytest.mark.asyncio
    async def test_whole_life_renewal(self, engine):
        policy = await _issued_policy(engine)

        renewal = await engine.commissions.create_renewal_commission(policy.id)

        assert renewal.type == CommissionType.RENEWAL
        assert renewal.amount == 35.0
        assert renewal.scheduled_date.year == datetime.utcnow().year + 1

    @pytest.mark.asyncio
    async def test_one_pending_renewal_at_a_time(self, engine):
        policy = await _issued_policy(engine)
        await engine.commissions.create_renewal_commission(policy.id)

        assert await engine.commissions.create_renewal_commission(policy.id) is None

    @pytest.mark.asyncio
    async def test_term_life_has_no_renewal(self, engine):
        policy = await _issued_policy(engine, product_type="TERM_LIFE")
        assert await engine.commissions.create_renewal_commission(policy.id) is None

    @pytest.mark.asyncio
    async def test_unissued_policy_has_no_renewal(self, engine):
        lead = await engine.pipeline.create_lead(
            agent_id=AGENT_ID, first_name="Tom", last_name="Ng", phone="555-0499",
        )
        policy = await engine.pipeline.create_policy(
            AGENT_ID, lead.id, "Acme Life", "WHOLE_LIFE", 100000, 900,
        )
        assert await engine.commissions.create_renewal_commission(policy.id) is None

    @pytest.mark.asyncio
    async def test_missing_policy(self, engine):
        with pytest.raises(EntityNotFoundError):
            await engine.commissions.create_renewal_commission("POL-NOPE")

    @pytest.mark.asyncio
    async def test_due_renewals_for_agent(self, engine):
        await _issued_policy(engine, phone="555-0401")
        await _issued_policy(engine, product_type="TERM_LIFE", phone="555-0402")
        await _issued_policy(engine, product_type="ANNUITY", premium=20000, phone="555-0403")

        created = await engine.commissions.create_due_renewals(AGENT_ID)

        assert sorted(c.amount for c in created) == [35.0, 200.0]


class TestSummary:
    @pytest.mark.asyncio
    async def test_summary(self, engine):
        first = await _issued_policy(engine, phone="555-0411")
        second = await _issued_policy(engine, product_type="TERM_LIFE", premium=1200, phone="555-0412")
        await engine.commissions.mark_policy_commission_paid(second.id)
        await engine.commissions.create_renewal_commission(first.id)

        summary = await engine.commissions.commission_summary(AGENT_ID)

        assert summary == {
            "pending_count": 2,
            "paid_count": 1,
            "clawed_back_count": 0,
            "pending_amount": 585.0,
            "paid_amount": 1080.0,
            "clawed_back_amount": 0.0,
            "total_amount": 1665.0,
        }
