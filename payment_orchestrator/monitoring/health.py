"""
Health checks for liveness and readiness probes.

Readiness covers the two things a payment needs: a reachable database and
gateway credentials that are not placeholders. The gateway itself is never
called from a probe.
"""
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payment_orchestrator.config import Settings, get_settings
from payment_orchestrator.database.connection import get_session_factory
from payment_orchestrator.database.store import RecordStore

logger = structlog.get_logger(__name__)


class HealthCheckError(Exception):
    """Raised when health check fails."""

    pass


class HealthCheck:
    """Runs dependency checks and aggregates them into one status."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    ) -> None:
        """
        Args:
            settings: Settings to inspect (defaults to the cached settings)
            session_factory: Session source for the database check
                (defaults to the application's factory, resolved per call)
        """
        self.settings = settings or get_settings()
        self.session_factory = session_factory

    async def check_database(self) -> Dict[str, Any]:
        """
        Ping the database through the record store.

        Raises:
            HealthCheckError: If the database cannot be reached
        """
        factory = self.session_factory or get_session_factory()
        try:
            async with factory() as session:
                await RecordStore(session).ping()
        except Exception as e:
            logger.error("database_health_check_failed", error=str(e))
            raise HealthCheckError(f"Database health check failed: {e}") from e

        return {"status": "healthy", "service": "database", "message": "Database connection successful"}

    async def check_gateway(self) -> Dict[str, Any]:
        """
        Check that gateway credentials are set and not placeholders.

        Raises:
            HealthCheckError: If credentials are missing
        """
        settings = self.settings
        if not settings.gateway_configured or not settings.authorize_net_transaction_key:
            logger.error("gateway_health_check_failed", environment=settings.authorize_net_environment)
            raise HealthCheckError("Authorize.Net credentials are not configured")

        return {
            "status": "healthy",
            "service": "authorize_net",
            "message": "Authorize.Net credentials configured",
            "environment": settings.authorize_net_environment,
        }

    async def check_all(self) -> Dict[str, Any]:
        checks: Dict[str, Callable[[], Awaitable[Dict[str, Any]]]] = {
            "database": self.check_database,
            "authorize_net": self.check_gateway,
        }
        results: Dict[str, Any] = {}
        for name, check in checks.items():
            try:
                results[name] = await check()
            except HealthCheckError as e:
                results[name] = {"status": "unhealthy", "service": name, "error": str(e)}

        healthy = all(result["status"] == "healthy" for result in results.values())
        return {"status": "healthy" if healthy else "unhealthy", "checks": results}

    async def liveness(self) -> Dict[str, Any]:
        """The process is up; dependencies are not checked."""
        return {"status": "alive", "message": "Application is running"}

    async def readiness(self) -> Dict[str, Any]:
        return await self.check_all()
