"""External integrations for payment processing."""
from .authorize_net import (
    AuthorizeNetClient,
    GatewayConfig,
    GatewayError,
    GatewayOperation,
    GatewayRequest,
    GatewayResponse,
)

__all__ = [
    "AuthorizeNetClient",
    "GatewayConfig",
    "GatewayError",
    "GatewayOperation",
    "GatewayRequest",
    "GatewayResponse",
]
