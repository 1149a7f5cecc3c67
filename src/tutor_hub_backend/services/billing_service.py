'''
Plans, subscriptions, payment methods, invoices and payments.
No real payment gateway is involved: charges are recorded as completed payments.
'''
from decimal import Decimal
from typing import Optional, Annotated
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import (
    UserRole, SubscriptionStatus, InvoiceStatus, PaymentStatus, NotificationType, SessionStatus
)
from ..models import billing as billing_models
from ..models.common import Page
from ..core.billing import remaining_days, prorate, period_end, invoice_due_date
from ..core.references import invoice_number, transaction_id
from ..core.date_ranges import resolve_date_range, local_day_bounds_utc, local_today
from ..common.time_utils import utcnow, as_utc
from ..common.logger import log
from .pagination import paginate, contains_pattern, LIKE_ESCAPE
from .notification_service import NotificationService


class BillingService:
    """
    Service for everything money related.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)]
    ):
        self.db = db
        self.notification_service = notification_service

    # --- Authorization Helpers ---

    def _authorize_admin(self, current_user: db_models.Users):
        if current_user.role != UserRole.ADMIN.value:
            log.warning(f"User {current_user.id} (Role: {current_user.role}) tried to manage plans.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only admins can manage plans."
            )

    # --- Plans ---

    async def _get_plan_internal(self, plan_id: UUID) -> db_models.Plans:
        plan = await self.db.get(db_models.Plans, plan_id)
        if not plan:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plan not found.")
        return plan

    async def list_plans(self, current_user: Optional[db_models.Users] = None) -> list[billing_models.PlanRead]:
        stmt = select(db_models.Plans).order_by(db_models.Plans.price)
        if current_user is None or current_user.role != UserRole.ADMIN.value:
            stmt = stmt.filter(db_models.Plans.is_active.is_(True))
        result = await self.db.execute(stmt)
        return [billing_models.PlanRead.model_validate(p) for p in result.scalars().all()]

    async def create_plan(self, data: billing_models.PlanCreate, current_user: db_models.Users) -> billing_models.PlanRead:
        self._authorize_admin(current_user)
        plan = db_models.Plans(**data.model_dump(exclude={'interval'}), interval=data.interval.value)
        self.db.add(plan)
        await self.db.flush()
        log.info(f"Admin {current_user.id} created plan {plan.id} ({plan.name}).")
        return billing_models.PlanRead.model_validate(plan)

    async def update_plan(self, plan_id: UUID, data: billing_models.PlanUpdate, current_user: db_models.Users) -> billing_models.PlanRead:
        self._authorize_admin(current_user)
        plan = await self._get_plan_internal(plan_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(plan, key, value)
        await self.db.flush()
        log.info(f"Admin {current_user.id} updated plan {plan_id}.")
        return billing_models.PlanRead.model_validate(plan)

    # --- Subscriptions ---

    async def _current_subscription(self, user_id: UUID) -> db_models.Subscriptions | None:
        """The most recent active or cancelled subscription, with its plan."""
        stmt = select(db_models.Subscriptions).options(
            selectinload(db_models.Subscriptions.plan)
        ).filter(
            db_models.Subscriptions.user_id == user_id,
            db_models.Subscriptions.status != SubscriptionStatus.EXPIRED.value,
        ).order_by(db_models.Subscriptions.created_at.desc()).execution_options(populate_existing=True)
        return (await self.db.execute(stmt)).scalars().first()

    async def get_subscription(self, current_user: db_models.Users) -> billing_models.SubscriptionRead | None:
        subscription = await self._current_subscription(current_user.id)
        if subscription is None:
            return None
        return billing_models.SubscriptionRead.model_validate(subscription)

    async def _default_payment_method(self, user_id: UUID) -> db_models.PaymentMethods | None:
        result = await self.db.execute(
            select(db_models.PaymentMethods).filter(
                db_models.PaymentMethods.user_id == user_id,
                db_models.PaymentMethods.is_default.is_(True),
            )
        )
        return result.scalars().first()

    def _new_invoice(self, user_id: UUID, subscription_id: UUID, amount: Decimal, description: str, paid: bool) -> db_models.Invoices:
        now = utcnow()
        return db_models.Invoices(
            user_id=user_id,
            subscription_id=subscription_id,
            invoice_number=invoice_number(),
            amount=amount,
            status=InvoiceStatus.PAID.value if paid else InvoiceStatus.UNPAID.value,
            description=description,
            due_date=now if paid else invoice_due_date(now),
            paid_at=now if paid else None,
        )

    async def change_plan(
        self,
        data: billing_models.ChangePlanRequest,
        current_user: db_models.Users
    ) -> billing_models.ChangePlanResult:
        """
        Subscribes a user for the first time (charged in full to the default
        payment method) or moves them to another plan with a prorated invoice.
        """
        plan = await self._get_plan_internal(data.plan_id)
        if not plan.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This plan is not available.")
        try:
            subscription = await self._current_subscription(current_user.id)
            now = utcnow()
            invoice = None
            proration = Decimal("0.00")

            if subscription is None:
                method = await self._default_payment_method(current_user.id)
                if method is None:
                    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Add a payment method before subscribing.")
                subscription = db_models.Subscriptions(
                    user_id=current_user.id,
                    plan_id=plan.id,
                    status=SubscriptionStatus.ACTIVE.value,
                    start_date=now,
                    end_date=period_end(now, plan.interval),
                )
                self.db.add(subscription)
                await self.db.flush()

                invoice = self._new_invoice(current_user.id, subscription.id, plan.price, f"Subscription to {plan.name}", paid=True)
                self.db.add(invoice)
                await self.db.flush()
                self.db.add(db_models.Payments(
                    user_id=current_user.id,
                    invoice_id=invoice.id,
                    payment_method_id=method.id,
                    amount=plan.price,
                    status=PaymentStatus.COMPLETED.value,
                    transaction_id=transaction_id(),
                ))
                action = 'subscribed'
            else:
                if subscription.plan_id == plan.id and subscription.status == SubscriptionStatus.ACTIVE.value:
                    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You are already on this plan.")

                days_left = remaining_days(as_utc(subscription.end_date), now)
                proration = prorate(subscription.plan.price, plan.price, days_left)
                old_name = subscription.plan.name

                subscription.plan = plan
                if subscription.status == SubscriptionStatus.CANCELLED.value:
                    # Reactivation starts a fresh period on the new plan
                    subscription.status = SubscriptionStatus.ACTIVE.value
                    subscription.cancelled_at = None
                    subscription.cancellation_reason = None
                    subscription.start_date = now
                    subscription.end_date = period_end(now, plan.interval)

                description = f"Plan change from {old_name} to {plan.name} ({days_left} days prorated)"
                if proration > 0:
                    invoice = self._new_invoice(current_user.id, subscription.id, proration, description, paid=False)
                    self.db.add(invoice)
                elif proration < 0:
                    invoice = self._new_invoice(current_user.id, subscription.id, proration, description, paid=True)
                    self.db.add(invoice)
                    await self.db.flush()
                    self.db.add(db_models.Payments(
                        user_id=current_user.id,
                        invoice_id=invoice.id,
                        amount=proration,
                        status=PaymentStatus.COMPLETED.value,
                        transaction_id=transaction_id("CREDIT"),
                    ))
                action = 'changed'

            await self.db.flush()
            await self.notification_service.send_to_user(
                current_user.id,
                NotificationType.BILLING,
                "Subscription updated",
                f"You are now on the {plan.name} plan.",
                action_text="View billing",
                action_url="/billing",
                metadata={"plan_id": str(plan.id), "amount": str(proration)},
            )
            log.info(f"User {current_user.id} {action} plan {plan.id} (proration {proration}).")

            subscription = await self._current_subscription(current_user.id)
            return billing_models.ChangePlanResult(
                subscription=billing_models.SubscriptionRead.model_validate(subscription),
                invoice=billing_models.InvoiceRead.model_validate(invoice) if invoice else None,
                proration_amount=proration,
                action=action,
            )
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error changing plan for user {current_user.id}: {e}", exc_info=True)
            raise

    async def cancel_subscription(
        self,
        data: billing_models.CancelSubscriptionRequest,
        current_user: db_models.Users
    ) -> billing_models.SubscriptionRead:
        subscription = await self._current_subscription(current_user.id)
        if subscription is None or subscription.status != SubscriptionStatus.ACTIVE.value:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You have no active subscription.")
        subscription.status = SubscriptionStatus.CANCELLED.value
        subscription.cancelled_at = utcnow()
        subscription.cancellation_reason = data.reason
        await self.db.flush()
        log.info(f"User {current_user.id} cancelled subscription {subscription.id}.")
        return billing_models.SubscriptionRead.model_validate(await self._current_subscription(current_user.id))

    # --- Payment methods ---

    async def _get_payment_method_internal(self, method_id: UUID, current_user: db_models.Users) -> db_models.PaymentMethods:
        method = await self.db.get(db_models.PaymentMethods, method_id)
        if not method or method.user_id != current_user.id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment method not found.")
        return method

    async def _all_methods(self, user_id: UUID) -> list[db_models.PaymentMethods]:
        result = await self.db.execute(
            select(db_models.PaymentMethods).filter(db_models.PaymentMethods.user_id == user_id).order_by(
                db_models.PaymentMethods.created_at.desc()
            )
        )
        return list(result.scalars().all())

    async def list_payment_methods(self, current_user: db_models.Users) -> list[billing_models.PaymentMethodRead]:
        return [billing_models.PaymentMethodRead.model_validate(m) for m in await self._all_methods(current_user.id)]

    async def add_payment_method(
        self,
        data: billing_models.PaymentMethodCreate,
        current_user: db_models.Users
    ) -> billing_models.PaymentMethodRead:
        existing = await self._all_methods(current_user.id)
        method = db_models.PaymentMethods(
            user_id=current_user.id,
            **data.model_dump(exclude={'type'}),
            type=data.type.value,
            is_default=not existing,
        )
        self.db.add(method)
        await self.db.flush()
        log.info(f"User {current_user.id} added payment method {method.id} (default={method.is_default}).")
        return billing_models.PaymentMethodRead.model_validate(method)

    async def set_default_payment_method(self, method_id: UUID, current_user: db_models.Users) -> billing_models.PaymentMethodRead:
        target = await self._get_payment_method_internal(method_id, current_user)
        for method in await self._all_methods(current_user.id):
            method.is_default = method.id == target.id
        await self.db.flush()
        log.info(f"User {current_user.id} set payment method {method_id} as default.")
        return billing_models.PaymentMethodRead.model_validate(target)

    async def delete_payment_method(self, method_id: UUID, current_user: db_models.Users) -> None:
        method = await self._get_payment_method_internal(method_id, current_user)
        was_default = method.is_default
        await self.db.delete(method)
        await self.db.flush()
        if was_default:
            remaining = await self._all_methods(current_user.id)
            if remaining:
                remaining[0].is_default = True
                await self.db.flush()
                log.info(f"Payment method {remaining[0].id} is the new default for user {current_user.id}.")
        log.info(f"User {current_user.id} deleted payment method {method_id}.")

    # --- Invoices & payments ---

    async def list_invoices(
        self,
        current_user: db_models.Users,
        filters: billing_models.InvoiceFilters
    ) -> Page[billing_models.InvoiceRead]:
        stmt = select(db_models.Invoices).filter(db_models.Invoices.user_id == current_user.id)
        if filters.status:
            stmt = stmt.filter(db_models.Invoices.status == filters.status.value)
        if filters.search:
            stmt = stmt.filter(
                func.lower(db_models.Invoices.invoice_number).like(contains_pattern(filters.search), escape=LIKE_ESCAPE)
            )
        stmt = stmt.order_by(db_models.Invoices.created_at.desc())
        return await paginate(self.db, stmt, filters.page, billing_models.InvoiceRead)

    async def get_invoice(self, invoice_id: UUID, current_user: db_models.Users) -> billing_models.InvoiceDetail:
        stmt = select(db_models.Invoices).options(
            selectinload(db_models.Invoices.payments)
        ).filter(db_models.Invoices.id == invoice_id)
        invoice = (await self.db.execute(stmt)).scalars().first()
        if not invoice or (invoice.user_id != current_user.id and current_user.role != UserRole.ADMIN.value):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found.")
        return billing_models.InvoiceDetail.model_validate(invoice)

    async def list_payments(self, current_user: db_models.Users, page: int = 1) -> Page[billing_models.PaymentRead]:
        stmt = select(db_models.Payments).filter(
            db_models.Payments.user_id == current_user.id
        ).order_by(db_models.Payments.created_at.desc())
        return await paginate(self.db, stmt, page, billing_models.PaymentRead)

    async def get_usage(self, current_user: db_models.Users) -> billing_models.UsageRead:
        """Children and this month's sessions measured against the current plan's limits."""
        subscription = await self._current_subscription(current_user.id)
        plan = subscription.plan if subscription and subscription.status == SubscriptionStatus.ACTIVE.value else None

        children_count = 0
        sessions_stmt = select(func.count(db_models.LearningSessions.id)).filter(
            db_models.LearningSessions.status != SessionStatus.CANCELLED.value
        )
        if current_user.role == UserRole.PARENT.value and current_user.parent_profile:
            children_count = (await self.db.execute(
                select(func.count(db_models.Children.id)).filter(
                    db_models.Children.parent_profile_id == current_user.parent_profile.id
                )
            )).scalar_one()
            sessions_stmt = sessions_stmt.join(
                db_models.Children, db_models.Children.id == db_models.LearningSessions.children_id
            ).filter(db_models.Children.parent_profile_id == current_user.parent_profile.id)
        else:
            sessions_stmt = sessions_stmt.filter(db_models.LearningSessions.teacher_id == current_user.id)

        first, last = resolve_date_range("this_month", local_today(utcnow(), current_user.timezone))
        start, end = local_day_bounds_utc(first, last, current_user.timezone)
        sessions_count = (await self.db.execute(
            sessions_stmt.filter(
                db_models.LearningSessions.start_time >= start,
                db_models.LearningSessions.start_time < end,
            )
        )).scalar_one()

        return billing_models.UsageRead(
            plan=billing_models.PlanRead.model_validate(plan) if plan else None,
            children=billing_models.UsageItem(used=children_count, limit=plan.children_limit if plan else None),
            sessions_this_month=billing_models.UsageItem(used=sessions_count, limit=plan.sessions_limit if plan else None),
        )
