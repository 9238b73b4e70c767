"""
API routes for payment orchestration, orders, diagnostics and monitoring.
"""
from datetime import timedelta
from typing import Any, Dict, List
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from payment_orchestrator.config import Settings, get_settings
from payment_orchestrator.config.settings import PLACEHOLDER_MARKERS
from payment_orchestrator.core.ledger import TransactionLedger
from payment_orchestrator.core.models import CaptureRequest, PaymentRequest, PaymentResult, RefundRequest
from payment_orchestrator.core.orchestrator import PaymentOrchestrator
from payment_orchestrator.core.orders import OrderManager
from payment_orchestrator.core.refund_advisor import assess_refund_eligibility
from payment_orchestrator.database.store import RecordStore
from payment_orchestrator.monitoring.health import HealthCheck

from .auth import require_bearer_token
from .dependencies import get_ledger, get_orchestrator, get_order_manager, get_store
from .schemas import (
    ConfigTestResponse,
    DatabaseTestResponse,
    HealthCheckResponse,
    OrderResponse,
    PaymentResponse,
    RefundCheckResponse,
    TransactionResponse,
)

logger = structlog.get_logger(__name__)

# Payments, orders and diagnostics require a bearer token; health checks and metrics do not.
AUTHENTICATED = [Depends(require_bearer_token)]
UNAUTHORIZED_RESPONSE: Dict[int | str, Dict[str, Any]] = {
    401: {"description": "Missing or invalid bearer token"},
}

payment_router = APIRouter(
    prefix="/api/payments",
    tags=["payments"],
    dependencies=AUTHENTICATED,
    responses=UNAUTHORIZED_RESPONSE,
)
order_router = APIRouter(
    prefix="/api/orders",
    tags=["orders"],
    dependencies=AUTHENTICATED,
    responses=UNAUTHORIZED_RESPONSE,
)
diagnostics_router = APIRouter(
    prefix="/api/diagnostics",
    tags=["diagnostics"],
    dependencies=AUTHENTICATED,
    responses=UNAUTHORIZED_RESPONSE,
)
monitoring_router = APIRouter(tags=["monitoring"])

health_check = HealthCheck()

PAYMENT_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"model": PaymentResponse, "description": "Payment operation failed"},
}


def _payment_response(result: PaymentResult) -> JSONResponse:
    """200 for a successful operation, 400 for any failure result."""
    body = PaymentResponse.from_result(result).model_dump(mode="json")
    code = status.HTTP_200_OK if result.success else status.HTTP_400_BAD_REQUEST
    return JSONResponse(status_code=code, content=body)


def mask_credential(value: str) -> str:
    """Show just enough of a credential to recognise it."""
    if not value:
        return "Not configured"
    if any(marker in value for marker in PLACEHOLDER_MARKERS):
        return "Using placeholder values - UPDATE REQUIRED"
    if len(value) <= 3:
        return "***"
    return value[:3] + "***"


# Payments


@payment_router.post(
    "/purchase",
    response_model=PaymentResponse,
    responses=PAYMENT_RESPONSES,
    summary="Purchase",
    description="Authorize and capture a card payment in one step",
)
async def purchase(
    request: PaymentRequest,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    logger.info("api_purchase_request", customer_id=request.customer_id, amount=str(request.amount))
    return _payment_response(await orchestrator.purchase(request))


@payment_router.post(
    "/authorize",
    response_model=PaymentResponse,
    responses=PAYMENT_RESPONSES,
    summary="Authorize",
    description="Hold funds on a card for a later capture",
)
async def authorize(
    request: PaymentRequest,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    logger.info("api_authorize_request", customer_id=request.customer_id, amount=str(request.amount))
    return _payment_response(await orchestrator.authorize(request))


@payment_router.post(
    "/capture/{transaction_id}",
    response_model=PaymentResponse,
    responses=PAYMENT_RESPONSES,
    summary="Capture",
    description="Capture a previously authorized transaction",
)
async def capture(
    transaction_id: str,
    request: CaptureRequest,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    logger.info("api_capture_request", transaction_id=transaction_id, amount=str(request.amount))
    return _payment_response(await orchestrator.capture(transaction_id, request.amount))


@payment_router.post(
    "/void/{transaction_id}",
    response_model=PaymentResponse,
    responses=PAYMENT_RESPONSES,
    summary="Void",
    description="Cancel an authorization or an unsettled purchase",
)
async def void(
    transaction_id: str,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    logger.info("api_void_request", transaction_id=transaction_id)
    return _payment_response(await orchestrator.void(transaction_id))


@payment_router.post(
    "/refund/{transaction_id}",
    response_model=PaymentResponse,
    responses=PAYMENT_RESPONSES,
    summary="Refund",
    description="Refund part or all of a settled transaction",
)
async def refund(
    transaction_id: str,
    request: RefundRequest,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    logger.info("api_refund_request", transaction_id=transaction_id, amount=str(request.amount))
    return _payment_response(
        await orchestrator.refund(transaction_id, request.amount, request.reason)
    )


# Orders


@order_router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order",
    description="Order details with transaction history",
)
async def get_order(
    order_id: UUID,
    orders: OrderManager = Depends(get_order_manager),
) -> OrderResponse:
    order = await orders.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return OrderResponse.from_order(order)


@order_router.get(
    "",
    response_model=List[OrderResponse],
    summary="List orders",
    description="Orders newest first; page starts at 1, page_size is 1-100",
)
async def list_orders(
    page: int = 1,
    page_size: int = 10,
    orders: OrderManager = Depends(get_order_manager),
    settings: Settings = Depends(get_settings),
) -> List[OrderResponse]:
    # Out-of-range values fall back to defaults instead of failing validation.
    if page < 1:
        page = 1
    if page_size < 1 or page_size > settings.orders_max_page_size:
        page_size = settings.orders_default_page_size
    return [OrderResponse.from_order(o) for o in await orders.list_orders(page, page_size)]


@order_router.get(
    "/{order_id}/transactions",
    response_model=List[TransactionResponse],
    summary="List order transactions",
    description="Transactions of an order, newest first",
)
async def list_order_transactions(
    order_id: UUID,
    ledger: TransactionLedger = Depends(get_ledger),
) -> List[TransactionResponse]:
    transactions = await ledger.list_order_transactions(order_id)
    return [TransactionResponse.from_transaction(t) for t in transactions]


# Diagnostics


@diagnostics_router.get(
    "/config-test",
    response_model=ConfigTestResponse,
    summary="Configuration test",
    description="Configuration status with masked credentials",
)
async def config_test(settings: Settings = Depends(get_settings)) -> ConfigTestResponse:
    return ConfigTestResponse(
        authorize_net_configured=settings.gateway_configured,
        api_login_id_masked=mask_credential(settings.authorize_net_api_login_id),
        transaction_key_masked=mask_credential(settings.authorize_net_transaction_key),
        environment=settings.authorize_net_environment,
        database_connection_configured=bool(settings.database_url),
    )


@diagnostics_router.get(
    "/database-test",
    response_model=DatabaseTestResponse,
    summary="Database test",
    description="Database connectivity and row counts",
)
async def database_test(store: RecordStore = Depends(get_store)) -> DatabaseTestResponse:
    try:
        if not await store.ping():
            return DatabaseTestResponse(can_connect=False, message="Cannot connect to database")
        return DatabaseTestResponse(
            can_connect=True,
            order_count=await store.count_orders(),
            transaction_count=await store.count_transactions(),
            message="Database connection successful",
        )
    except Exception as e:
        logger.error("database_test_failed", error=str(e))
        await store.session.rollback()
        return DatabaseTestResponse(can_connect=False, message=f"Database error: {e}")


@diagnostics_router.get(
    "/transaction-refund-check/{transaction_id}",
    response_model=RefundCheckResponse,
    responses={404: {"description": "Transaction not found"}},
    summary="Refund eligibility",
    description="Whether a transaction should be refunded or voided",
)
async def transaction_refund_check(
    transaction_id: str,
    ledger: TransactionLedger = Depends(get_ledger),
    settings: Settings = Depends(get_settings),
) -> Any:
    transaction = await ledger.get_transaction(transaction_id)
    if transaction is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"message": "Transaction not found"},
        )
    eligibility = assess_refund_eligibility(
        transaction,
        settlement_window=timedelta(minutes=settings.refund_settlement_window_minutes),
    )
    return RefundCheckResponse(**eligibility.to_dict())


# Monitoring


@monitoring_router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check",
    description="Check overall system health",
)
async def health() -> Dict[str, Any]:
    """Overall health check."""
    return await health_check.check_all()


@monitoring_router.get(
    "/health/live",
    response_model=HealthCheckResponse,
    summary="Liveness probe",
    description="Kubernetes liveness probe",
)
async def liveness() -> Dict[str, Any]:
    """Liveness probe."""
    return await health_check.liveness()


@monitoring_router.get(
    "/health/ready",
    response_model=HealthCheckResponse,
    summary="Readiness probe",
    description="Kubernetes readiness probe",
)
async def readiness() -> Dict[str, Any]:
    """Readiness probe."""
    result = await health_check.readiness()
    if result["status"] != "healthy":
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result)
    return result


@monitoring_router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics",
    response_class=Response,
)
async def prometheus_metrics() -> Response:
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
