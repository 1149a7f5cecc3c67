'''
API endpoints for Billing: plans, subscription, payment methods, invoices, payments and usage.
'''
from typing import Annotated, Any, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status, Response

from ..database import models as db_models
from ..models import billing as billing_models
from ..models.common import Page
from ..services.security import verify_token_and_get_user, require_admin
from ..services.billing_service import BillingService

class BillingAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/billing",
            tags=["Billing"]
        )
        self._register_routes()

    def _register_routes(self):
        # --- Plans ---
        self.router.add_api_route(
                "/plans",
                self.list_plans,
                methods=["GET"],
                response_model=List[billing_models.PlanRead])

        self.router.add_api_route(
                "/plans",
                self.create_plan,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=billing_models.PlanRead)

        self.router.add_api_route(
                "/plans/{plan_id}",
                self.update_plan,
                methods=["PATCH"],
                response_model=billing_models.PlanRead)

        # --- Subscription ---
        self.router.add_api_route(
                "/subscription",
                self.get_subscription,
                methods=["GET"],
                response_model=Optional[billing_models.SubscriptionRead])

        self.router.add_api_route(
                "/subscription/change-plan",
                self.change_plan,
                methods=["POST"],
                response_model=billing_models.ChangePlanResult)

        self.router.add_api_route(
                "/subscription/cancel",
                self.cancel_subscription,
                methods=["POST"],
                response_model=billing_models.SubscriptionRead)

        # --- Payment methods ---
        self.router.add_api_route(
                "/payment-methods",
                self.list_payment_methods,
                methods=["GET"],
                response_model=List[billing_models.PaymentMethodRead])

        self.router.add_api_route(
                "/payment-methods",
                self.add_payment_method,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=billing_models.PaymentMethodRead)

        self.router.add_api_route(
                "/payment-methods/{method_id}/default",
                self.set_default_payment_method,
                methods=["POST"],
                response_model=billing_models.PaymentMethodRead)

        self.router.add_api_route(
                "/payment-methods/{method_id}",
                self.delete_payment_method,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

        # --- Invoices, payments & usage ---
        self.router.add_api_route(
                "/invoices",
                self.list_invoices,
                methods=["GET"],
                response_model=Page[billing_models.InvoiceRead])

        self.router.add_api_route(
                "/invoices/{invoice_id}",
                self.get_invoice,
                methods=["GET"],
                response_model=billing_models.InvoiceDetail)

        self.router.add_api_route(
                "/payments",
                self.list_payments,
                methods=["GET"],
                response_model=Page[billing_models.PaymentRead])

        self.router.add_api_route(
                "/usage",
                self.get_usage,
                methods=["GET"],
                response_model=billing_models.UsageRead)

    async def list_plans(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        billing_service: Annotated[BillingService, Depends(BillingService)]
    ) -> List[Any]:
        return await billing_service.list_plans(current_user)

    async def create_plan(
        self,
        plan_data: billing_models.PlanCreate,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        billing_service: Annotated[BillingService, Depends(BillingService)]
    ) -> Any:
        return await billing_service.create_plan(plan_data, current_user)

    async def update_plan(
        self,
        plan_id: UUID,
        plan_data: billing_models.PlanUpdate,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        billing_service: Annotated[BillingService, Depends(BillingService)]
    ) -> Any:
        return await billing_service.update_plan(plan_id, plan_data, current_user)

    async def get_subscription(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        billing_service: Annotated[BillingService, Depends(BillingService)]
    ) -> Any:
        return await billing_service.get_subscription(current_user)

    async def change_plan(
        self,
        change: billing_models.ChangePlanRequest,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        billing_service: Annotated[BillingService, Depends(BillingService)]
    ) -> Any:
        """
        Subscribes, or switches plans with a prorated invoice or credit.
        """
        return await billing_service.change_plan(change, current_user)

    async def cancel_subscription(
        self,
        cancellation: billing_models.CancelSubscriptionRequest,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        billing_service: Annotated[BillingService, Depends(BillingService)]
    ) -> Any:
        return await billing_service.cancel_subscription(cancellation, current_user)

    async def list_payment_methods(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        billing_service: Annotated[BillingService, Depends(BillingService)]
    ) -> List[Any]:
        return await billing_service.list_payment_methods(current_user)

    async def add_payment_method(
        self,
        method_data: billing_models.PaymentMethodCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        billing_service: Annotated[BillingService, Depends(BillingService)]
    ) -> Any:
        return await billing_service.add_payment_method(method_data, current_user)

    async def set_default_payment_method(
        self,
        method_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        billing_service: Annotated[BillingService, Depends(BillingService)]
    ) -> Any:
        return await billing_service.set_default_payment_method(method_id, current_user)

    async def delete_payment_method(
        self,
        method_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        billing_service: Annotated[BillingService, Depends(BillingService)]
    ):
        await billing_service.delete_payment_method(method_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    async def list_invoices(
        self,
        filters: Annotated[billing_models.InvoiceFilters, Query()],
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        billing_service: Annotated[BillingService, Depends(BillingService)]
    ) -> Any:
        return await billing_service.list_invoices(current_user, filters)

    async def get_invoice(
        self,
        invoice_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        billing_service: Annotated[BillingService, Depends(BillingService)]
    ) -> Any:
        return await billing_service.get_invoice(invoice_id, current_user)

    async def list_payments(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        billing_service: Annotated[BillingService, Depends(BillingService)],
        page: Annotated[int, Query(ge=1)] = 1
    ) -> Any:
        return await billing_service.list_payments(current_user, page)

    async def get_usage(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        billing_service: Annotated[BillingService, Depends(BillingService)]
    ) -> Any:
        return await billing_service.get_usage(current_user)

# Instantiate the class and export its router
billing_api = BillingAPI()
router = billing_api.router
