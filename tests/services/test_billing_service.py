'''
Tests for the BillingService: plans, subscriptions with proration and payment methods.
'''
import pytest
from datetime import timedelta
from decimal import Decimal
from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy import select

from tutor_hub_backend.services.billing_service import BillingService
from tutor_hub_backend.database import models as db_models
from tutor_hub_backend.database.db_enums import SubscriptionStatus, InvoiceStatus, PaymentStatus
from tutor_hub_backend.models import billing as billing_models
from tutor_hub_backend.common.time_utils import as_utc, utcnow

from tests.database import factories


def card_details(last_four: str, **overrides) -> billing_models.PaymentMethodCreate:
    data = dict(last_four=last_four, expiry_month=12, expiry_year=2030, holder_name="Test Parent")
    data.update(overrides)
    return billing_models.PaymentMethodCreate(**data)


@pytest.fixture
async def plans(db_session):
    basic = factories.PlanFactory(name="Basic", price=Decimal("30.00"))
    premium = factories.PlanFactory(name="Premium", price=Decimal("60.00"), children_limit=10)
    retired = factories.PlanFactory(name="Legacy", price=Decimal("10.00"), is_active=False)
    await db_session.flush()
    return basic, premium, retired


@pytest.fixture
async def card(db_session, test_parent):
    method = factories.PaymentMethodFactory(user_id=test_parent.id, is_default=True)
    await db_session.flush()
    return method


@pytest.mark.anyio
class TestPlans:

    async def test_non_admins_see_active_plans_only(self, billing_service: BillingService, plans, test_parent):
        names = [plan.name for plan in await billing_service.list_plans(test_parent)]
        assert names == ["Basic", "Premium"]

    async def test_admins_see_every_plan(self, billing_service: BillingService, plans, test_admin):
        names = [plan.name for plan in await billing_service.list_plans(test_admin)]
        assert "Legacy" in names

    async def test_only_admins_create_plans(self, billing_service: BillingService, test_parent, test_admin):
        data = billing_models.PlanCreate(name="Family", price=Decimal("45.00"), features=["sessions", "reports"])
        with pytest.raises(HTTPException) as exc_info:
            await billing_service.create_plan(data, test_parent)
        assert exc_info.value.status_code == 403

        created = await billing_service.create_plan(data, test_admin)
        assert created.name == "Family"
        assert created.price == Decimal("45.00")


@pytest.mark.anyio
class TestSubscriptions:
    """First subscription, upgrades, downgrades and cancellation."""

    async def test_first_subscription_is_charged_in_full(
        self, billing_service: BillingService, plans, card, test_parent, db_session
    ):
        basic, _, _ = plans
        result = await billing_service.change_plan(billing_models.ChangePlanRequest(plan_id=basic.id), test_parent)

        assert result.action == "subscribed"
        assert result.subscription.status == SubscriptionStatus.ACTIVE
        assert result.subscription.plan.id == basic.id
        assert result.invoice.status == InvoiceStatus.PAID
        assert result.invoice.amount == Decimal("30.00")

        payments = (await db_session.execute(
            select(db_models.Payments).filter(db_models.Payments.user_id == test_parent.id)
        )).scalars().all()
        assert len(payments) == 1
        assert payments[0].status == PaymentStatus.COMPLETED.value
        assert payments[0].payment_method_id == card.id

    async def test_subscribing_needs_a_payment_method(self, billing_service: BillingService, plans, test_parent):
        basic, _, _ = plans
        with pytest.raises(HTTPException) as exc_info:
            await billing_service.change_plan(billing_models.ChangePlanRequest(plan_id=basic.id), test_parent)
        assert exc_info.value.status_code == 400

    async def test_inactive_plans_cannot_be_chosen(self, billing_service: BillingService, plans, card, test_parent):
        _, _, retired = plans
        with pytest.raises(HTTPException) as exc_info:
            await billing_service.change_plan(billing_models.ChangePlanRequest(plan_id=retired.id), test_parent)
        assert exc_info.value.status_code == 400

    async def test_upgrade_creates_an_unpaid_prorated_invoice(
        self, billing_service: BillingService, plans, card, test_parent
    ):
        basic, premium, _ = plans
        await billing_service.change_plan(billing_models.ChangePlanRequest(plan_id=basic.id), test_parent)

        result = await billing_service.change_plan(billing_models.ChangePlanRequest(plan_id=premium.id), test_parent)

        assert result.action == "changed"
        assert result.subscription.plan.id == premium.id
        assert result.proration_amount > 0
        assert result.invoice.status == InvoiceStatus.UNPAID
        assert result.invoice.amount == result.proration_amount

    async def test_downgrade_is_credited(self, billing_service: BillingService, plans, card, test_parent):
        basic, premium, _ = plans
        await billing_service.change_plan(billing_models.ChangePlanRequest(plan_id=premium.id), test_parent)

        result = await billing_service.change_plan(billing_models.ChangePlanRequest(plan_id=basic.id), test_parent)

        assert result.proration_amount < 0
        assert result.invoice.status == InvoiceStatus.PAID

    async def test_same_plan_is_rejected(self, billing_service: BillingService, plans, card, test_parent):
        basic, _, _ = plans
        await billing_service.change_plan(billing_models.ChangePlanRequest(plan_id=basic.id), test_parent)
        with pytest.raises(HTTPException) as exc_info:
            await billing_service.change_plan(billing_models.ChangePlanRequest(plan_id=basic.id), test_parent)
        assert exc_info.value.status_code == 400

    async def test_cancel_keeps_the_period(self, billing_service: BillingService, plans, card, test_parent):
        basic, _, _ = plans
        subscribed = await billing_service.change_plan(billing_models.ChangePlanRequest(plan_id=basic.id), test_parent)

        cancelled = await billing_service.cancel_subscription(
            billing_models.CancelSubscriptionRequest(reason="Moving to another city"), test_parent
        )

        assert cancelled.status == SubscriptionStatus.CANCELLED
        assert cancelled.cancellation_reason == "Moving to another city"
        assert cancelled.cancelled_at is not None
        assert cancelled.end_date == subscribed.subscription.end_date

    async def test_reactivating_a_lapsed_subscription_starts_a_new_period(
        self, billing_service: BillingService, plans, card, test_parent, db_session
    ):
        basic, premium, _ = plans
        await billing_service.change_plan(billing_models.ChangePlanRequest(plan_id=basic.id), test_parent)
        await billing_service.cancel_subscription(
            billing_models.CancelSubscriptionRequest(reason="Taking a break for summer"), test_parent
        )
        subscription = (await db_session.execute(
            select(db_models.Subscriptions).filter(db_models.Subscriptions.user_id == test_parent.id)
        )).scalars().one()
        subscription.end_date = utcnow() - timedelta(days=10)
        await db_session.flush()

        result = await billing_service.change_plan(billing_models.ChangePlanRequest(plan_id=premium.id), test_parent)

        assert result.subscription.status == SubscriptionStatus.ACTIVE
        assert result.subscription.cancelled_at is None
        assert as_utc(result.subscription.end_date) > utcnow() + timedelta(days=27)
        assert as_utc(result.subscription.start_date) <= utcnow()
        assert result.proration_amount == Decimal("0.00")

    async def test_cancel_without_subscription(self, billing_service: BillingService, test_parent):
        with pytest.raises(HTTPException) as exc_info:
            await billing_service.cancel_subscription(
                billing_models.CancelSubscriptionRequest(reason="Not needed anymore"), test_parent
            )
        assert exc_info.value.status_code == 400

    async def test_usage_against_plan_limits(self, billing_service: BillingService, plans, card, test_parent):
        _, premium, _ = plans
        await billing_service.change_plan(billing_models.ChangePlanRequest(plan_id=premium.id), test_parent)

        usage = await billing_service.get_usage(test_parent)

        assert usage.plan.name == "Premium"
        assert usage.children.used == 1
        assert usage.children.limit == 10
        assert usage.sessions_this_month.used == 0


@pytest.mark.anyio
class TestPaymentMethods:

    async def test_first_method_becomes_default(self, billing_service: BillingService, test_parent):
        first = await billing_service.add_payment_method(card_details("4242", brand="visa"), test_parent)
        second = await billing_service.add_payment_method(card_details("5555", brand="mastercard"), test_parent)
        assert first.is_default is True
        assert second.is_default is False

    async def test_set_default_clears_the_others(self, billing_service: BillingService, test_parent):
        first = await billing_service.add_payment_method(card_details("1111"), test_parent)
        second = await billing_service.add_payment_method(card_details("2222"), test_parent)

        await billing_service.set_default_payment_method(second.id, test_parent)

        defaults = [m.id for m in await billing_service.list_payment_methods(test_parent) if m.is_default]
        assert defaults == [second.id]
        assert first.id not in defaults

    async def test_deleting_the_default_promotes_another(self, billing_service: BillingService, test_parent):
        first = await billing_service.add_payment_method(card_details("1111"), test_parent)
        second = await billing_service.add_payment_method(card_details("2222"), test_parent)

        await billing_service.delete_payment_method(first.id, test_parent)

        remaining = await billing_service.list_payment_methods(test_parent)
        assert [m.id for m in remaining] == [second.id]
        assert remaining[0].is_default is True

    async def test_other_users_methods_are_not_found(self, billing_service: BillingService, test_parent, test_teacher):
        method = await billing_service.add_payment_method(card_details("1111"), test_parent)
        with pytest.raises(HTTPException) as exc_info:
            await billing_service.delete_payment_method(method.id, test_teacher)
        assert exc_info.value.status_code == 404


def test_cards_need_an_expiry():
    with pytest.raises(ValidationError):
        billing_models.PaymentMethodCreate(last_four="1111")


@pytest.mark.anyio
class TestInvoices:

    async def test_invoices_are_private(self, billing_service: BillingService, plans, card, test_parent, test_teacher):
        basic, _, _ = plans
        result = await billing_service.change_plan(billing_models.ChangePlanRequest(plan_id=basic.id), test_parent)

        detail = await billing_service.get_invoice(result.invoice.id, test_parent)
        assert len(detail.payments) == 1

        with pytest.raises(HTTPException) as exc_info:
            await billing_service.get_invoice(result.invoice.id, test_teacher)
        assert exc_info.value.status_code == 404

    async def test_list_invoices_by_status(self, billing_service: BillingService, plans, card, test_parent):
        basic, premium, _ = plans
        await billing_service.change_plan(billing_models.ChangePlanRequest(plan_id=basic.id), test_parent)
        await billing_service.change_plan(billing_models.ChangePlanRequest(plan_id=premium.id), test_parent)

        unpaid = await billing_service.list_invoices(test_parent, billing_models.InvoiceFilters(status=InvoiceStatus.UNPAID))
        everything = await billing_service.list_invoices(test_parent, billing_models.InvoiceFilters())

        assert unpaid.total == 1
        assert everything.total == 2
