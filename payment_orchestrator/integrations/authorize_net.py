"""
Authorize.Net API client with circuit breaking and error classification.

Implements:
- createTransactionRequest over the JSON endpoint
- Explicit sandbox/production endpoint per client instance
- Circuit breaker pattern
- Transport error classification (no automatic retries)
"""
import json
import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
import structlog

from payment_orchestrator.config import Settings
from payment_orchestrator.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

RESULT_CODE_OK = "Ok"


class GatewayEnvironment(Enum):
    """Authorize.Net environments and their API endpoints."""

    SANDBOX = "https://apitest.authorize.net/xml/v1/request.api"
    PRODUCTION = "https://api.authorize.net/xml/v1/request.api"

    @classmethod
    def from_name(cls, name: str) -> "GatewayEnvironment":
        return cls.PRODUCTION if name.strip().lower() == "production" else cls.SANDBOX

    @property
    def endpoint(self) -> str:
        return self.value


class GatewayOperation(str, Enum):
    """transactionType values understood by the gateway."""

    AUTH_CAPTURE = "authCaptureTransaction"
    AUTH_ONLY = "authOnlyTransaction"
    PRIOR_AUTH_CAPTURE = "priorAuthCaptureTransaction"
    VOID = "voidTransaction"
    REFUND = "refundTransaction"


class GatewayErrorType(Enum):
    """Classification of gateway faults."""

    TRANSIENT = "transient"  # timeouts, connection drops, 5xx, open circuit
    PERMANENT = "permanent"  # 4xx, unparseable payloads


class GatewayError(Exception):
    """Raised when the gateway could not be reached or answered garbage."""

    def __init__(
        self,
        message: str,
        error_type: GatewayErrorType,
        original_error: Optional[Exception] = None,
    ):
        """
        Initialize gateway error.

        Args:
            message: Error message
            error_type: Classification of error
            original_error: Underlying transport exception
        """
        super().__init__(message)
        self.error_type = error_type
        self.original_error = original_error


@dataclass(frozen=True)
class MerchantCredentials:
    api_login_id: str
    transaction_key: str


@dataclass(frozen=True)
class GatewayConfig:
    """Everything a client instance needs; nothing is read from globals."""

    credentials: MerchantCredentials
    environment: GatewayEnvironment = GatewayEnvironment.SANDBOX
    timeout_seconds: float = 30.0
    failure_threshold: int = 5
    recovery_timeout: int = 60

    @classmethod
    def from_settings(cls, settings: Settings) -> "GatewayConfig":
        return cls(
            credentials=MerchantCredentials(
                api_login_id=settings.authorize_net_api_login_id,
                transaction_key=settings.authorize_net_transaction_key,
            ),
            environment=GatewayEnvironment.from_name(settings.authorize_net_environment),
            timeout_seconds=settings.authorize_net_timeout_seconds,
            failure_threshold=settings.gateway_failure_threshold,
            recovery_timeout=settings.gateway_recovery_timeout,
        )


@dataclass(frozen=True)
class CardDetails:
    card_number: str
    expiration_date: str  # MMYYYY
    card_code: Optional[str] = None

    @classmethod
    def masked(cls, last_four_digits: str, expiration_month: int, expiration_year: int) -> "CardDetails":
        """Card reference for refunds: last four digits padded to 16 with X."""
        return cls(
            card_number=last_four_digits.rjust(16, "X"),
            expiration_date=f"{expiration_month:02d}{expiration_year}",
        )


@dataclass(frozen=True)
class GatewayRequest:
    """One createTransactionRequest."""

    operation: GatewayOperation
    amount: Optional[Decimal] = None
    card: Optional[CardDetails] = None
    ref_transaction_id: Optional[str] = None


@dataclass(frozen=True)
class GatewayMessage:
    code: Optional[str] = None
    text: Optional[str] = None


@dataclass
class GatewayResponse:
    """Parsed createTransactionResponse."""

    result_code: Optional[str] = None
    messages: List[GatewayMessage] = field(default_factory=list)
    transaction_id: Optional[str] = None
    response_code: Optional[str] = None
    auth_code: Optional[str] = None
    transaction_messages: List[GatewayMessage] = field(default_factory=list)
    errors: List[GatewayMessage] = field(default_factory=list)

    @property
    def is_approved(self) -> bool:
        """Ok result code and at least one transaction-level message."""
        return self.result_code == RESULT_CODE_OK and bool(self.transaction_messages)

    @property
    def first_transaction_message(self) -> Optional[str]:
        return self.transaction_messages[0].text if self.transaction_messages else None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "GatewayResponse":
        top = payload.get("messages") or {}
        txn = payload.get("transactionResponse") or {}
        return cls(
            result_code=top.get("resultCode"),
            messages=[
                GatewayMessage(code=m.get("code"), text=m.get("text"))
                for m in top.get("message") or []
            ],
            transaction_id=txn.get("transId") or None,
            response_code=txn.get("responseCode"),
            auth_code=txn.get("authCode") or None,
            transaction_messages=[
                GatewayMessage(code=m.get("code"), text=m.get("description"))
                for m in txn.get("messages") or []
            ],
            errors=[
                GatewayMessage(code=e.get("errorCode"), text=e.get("errorText"))
                for e in txn.get("errors") or []
            ],
        )


class CircuitBreaker:
    """
    Circuit breaker for gateway calls.

    Prevents cascading failures by temporarily stopping requests
    when consecutive transport faults exceed threshold.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        timeout: int = 60,
        success_threshold: int = 2,
    ):
        """
        Initialize circuit breaker.

        Args:
            failure_threshold: Number of failures before opening circuit
            timeout: Seconds before attempting to close circuit
            success_threshold: Successful calls needed to close circuit
        """
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.success_threshold = success_threshold
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time: Optional[float] = None
        self.state = "closed"  # closed, open, half_open

    async def call(self, func: Callable[[], Awaitable[Any]]) -> Any:
        """
        Await ``func()`` with circuit breaker protection.

        Raises:
            GatewayError: If circuit is open
        """
        if self.state == "open":
            if (
                self.last_failure_time
                and time.time() - self.last_failure_time > self.timeout
            ):
                self._set_state("half_open")
                self.success_count = 0
                logger.info("circuit_breaker_half_open")
            else:
                raise GatewayError(
                    "Circuit breaker is open",
                    GatewayErrorType.TRANSIENT,
                )

        try:
            result = await func()
        except GatewayError:
            self.on_failure()
            raise
        self.on_success()
        return result

    def on_success(self) -> None:
        """Record successful call."""
        self.failure_count = 0
        if self.state == "half_open":
            self.success_count += 1
            if self.success_count >= self.success_threshold:
                self._set_state("closed")
                logger.info("circuit_breaker_closed")

    def on_failure(self) -> None:
        """Record failed call."""
        self.failure_count += 1
        self.last_failure_time = time.time()
        if self.state == "half_open" or self.failure_count >= self.failure_threshold:
            self._set_state("open")
            logger.warning(
                "circuit_breaker_opened",
                failure_count=self.failure_count,
            )

    def _set_state(self, state: str) -> None:
        self.state = state
        metrics.set_circuit_breaker_state(state)


class AuthorizeNetClient:
    """
    Async wrapper for the Authorize.Net transaction API.

    Features:
    - One HTTP request per submitted transaction, never retried
    - Circuit breaker pattern
    - Comprehensive error classification
    """

    def __init__(
        self,
        config: GatewayConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ) -> None:
        """
        Initialize gateway client.

        Args:
            config: Credentials, environment and timeouts
            http_client: Optional pre-built HTTP client (tests inject a mock transport)
            circuit_breaker: Optional circuit breaker
        """
        self.config = config
        self.http_client = http_client or httpx.AsyncClient(timeout=config.timeout_seconds)
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=config.failure_threshold,
            timeout=config.recovery_timeout,
        )

        logger.info(
            "authorize_net_client_initialized",
            environment=config.environment.name.lower(),
            endpoint=config.environment.endpoint,
        )

    @property
    def endpoint(self) -> str:
        return self.config.environment.endpoint

    def build_payload(self, request: GatewayRequest) -> Dict[str, Any]:
        """
        Build the createTransactionRequest body.

        The gateway validates element order against its XML schema, so keys
        are inserted in schema order: transactionType, amount, payment,
        refTransId.
        """
        transaction_request: Dict[str, Any] = {"transactionType": request.operation.value}
        if request.amount is not None:
            transaction_request["amount"] = str(request.amount.quantize(Decimal("0.01")))
        if request.card is not None:
            credit_card: Dict[str, Any] = {
                "cardNumber": request.card.card_number,
                "expirationDate": request.card.expiration_date,
            }
            if request.card.card_code:
                credit_card["cardCode"] = request.card.card_code
            transaction_request["payment"] = {"creditCard": credit_card}
        if request.ref_transaction_id is not None:
            transaction_request["refTransId"] = request.ref_transaction_id

        return {
            "createTransactionRequest": {
                "merchantAuthentication": {
                    "name": self.config.credentials.api_login_id,
                    "transactionKey": self.config.credentials.transaction_key,
                },
                "transactionRequest": transaction_request,
            }
        }

    async def submit_transaction(self, request: GatewayRequest) -> GatewayResponse:
        """
        Submit one transaction to the gateway.

        Args:
            request: Operation, amount, card and reference id

        Returns:
            GatewayResponse: Parsed response (approved or declined)

        Raises:
            GatewayError: If the gateway could not be reached or the body is unreadable
        """
        operation = request.operation.value
        logger.info(
            "gateway_request_started",
            operation=operation,
            amount=str(request.amount) if request.amount is not None else None,
            ref_transaction_id=request.ref_transaction_id,
        )
        start_time = time.time()

        try:
            response = await self.circuit_breaker.call(lambda: self._post(request))
        except GatewayError as e:
            duration = time.time() - start_time
            metrics.record_gateway_call(operation, "error", duration)
            metrics.record_gateway_error(e.error_type.value)
            logger.error(
                "gateway_request_failed",
                operation=operation,
                error=str(e),
                error_type=e.error_type.value,
                duration_seconds=duration,
            )
            raise

        duration = time.time() - start_time
        outcome = "approved" if response.is_approved else "declined"
        metrics.record_gateway_call(operation, outcome, duration)
        logger.info(
            "gateway_request_completed",
            operation=operation,
            outcome=outcome,
            result_code=response.result_code,
            response_code=response.response_code,
            gateway_transaction_id=response.transaction_id,
            auth_code=response.auth_code,
            duration_seconds=duration,
        )
        return response

    async def _post(self, request: GatewayRequest) -> GatewayResponse:
        try:
            http_response = await self.http_client.post(
                self.endpoint, json=self.build_payload(request)
            )
            http_response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error_type = (
                GatewayErrorType.TRANSIENT
                if e.response.status_code >= 500
                else GatewayErrorType.PERMANENT
            )
            raise GatewayError(
                f"Gateway returned HTTP {e.response.status_code}", error_type, e
            ) from e
        except httpx.TimeoutException as e:
            raise GatewayError("Gateway request timed out", GatewayErrorType.TRANSIENT, e) from e
        except httpx.HTTPError as e:
            raise GatewayError(f"Gateway connection failed: {e}", GatewayErrorType.TRANSIENT, e) from e

        try:
            # The JSON endpoint prefixes its body with a UTF-8 BOM.
            payload = json.loads(http_response.content.decode("utf-8-sig"))
        except (UnicodeDecodeError, ValueError) as e:
            raise GatewayError("Gateway returned an unreadable body", GatewayErrorType.PERMANENT, e) from e

        if not isinstance(payload, dict):
            raise GatewayError("Gateway returned an unexpected body", GatewayErrorType.PERMANENT)
        return GatewayResponse.from_payload(payload)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.http_client.aclose()
