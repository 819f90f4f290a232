from .api_client import ExternalApiClient
from .oauth_client import OAuthClient
from .transport import ApiRequest, PacingGate, RateLimitedTransport

__all__ = [
    "ApiRequest",
    "ExternalApiClient",
    "OAuthClient",
    "PacingGate",
    "RateLimitedTransport",
]
