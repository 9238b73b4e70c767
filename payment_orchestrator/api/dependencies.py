"""FastAPI dependencies wiring the store, gateway client and orchestrator."""
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from payment_orchestrator.config import get_settings
from payment_orchestrator.core.ledger import TransactionLedger
from payment_orchestrator.core.orchestrator import PaymentOrchestrator
from payment_orchestrator.core.orders import OrderManager
from payment_orchestrator.database.connection import get_db
from payment_orchestrator.database.store import RecordStore
from payment_orchestrator.integrations.authorize_net import AuthorizeNetClient, GatewayConfig


async def get_store(db: AsyncSession = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


@lru_cache()
def get_gateway_client() -> AuthorizeNetClient:
    """One gateway client (and circuit breaker) per process."""
    return AuthorizeNetClient(GatewayConfig.from_settings(get_settings()))


async def close_gateway_client() -> None:
    if get_gateway_client.cache_info().currsize:
        await get_gateway_client().aclose()
        get_gateway_client.cache_clear()


def get_orchestrator(
    store: RecordStore = Depends(get_store),
    gateway: AuthorizeNetClient = Depends(get_gateway_client),
) -> PaymentOrchestrator:
    return PaymentOrchestrator(store, gateway)


def get_order_manager(store: RecordStore = Depends(get_store)) -> OrderManager:
    return OrderManager(store)


def get_ledger(store: RecordStore = Depends(get_store)) -> TransactionLedger:
    return TransactionLedger(store)
