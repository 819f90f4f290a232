"""
OAuth token endpoint client (authorization-code and refresh-token grants).
"""

from typing import Dict

from pydantic import ValidationError as PydanticValidationError

from ..config import OAuthConfig
from ..exceptions import AuthorizationFailedError, RefreshFailedError, TransportError
from ..schemas.credential_schemas import TokenResponse
from ..utils.logger import get_logger
from .transport import ApiRequest, RateLimitedTransport


class OAuthClient:
    """
    Exchanges grants for tokens.

    Token calls go through the shared transport so they are paced with the
    rest of the traffic, but are never retried: a refresh token is single
    use, and replaying a grant after an ambiguous failure can burn it.
    """

    def __init__(self, config: OAuthConfig, transport: RateLimitedTransport):
        self.config = config
        self.transport = transport
        self.logger = get_logger()

    def _request_tokens(self, form: Dict[str, str], operation: str) -> TokenResponse:
        request = ApiRequest(
            method="POST",
            url=self.config.token_url,
            data=form,
            headers={"Accept": "application/json"},
            auth=(self.config.client_id, self.config.client_secret),
            operation=operation,
        )
        response = self.transport.execute(request, retry=False)
        return TokenResponse.model_validate(response.json())

    def exchange_code(self, code: str) -> TokenResponse:
        """
        Exchange an authorization code for a token pair.

        Raises:
            AuthorizationFailedError: If the endpoint rejects the code or answers garbage
        """
        try:
            tokens = self._request_tokens(
                {"grant_type": "authorization_code", "code": code}, "oauth_authorize"
            )
        except TransportError as e:
            raise AuthorizationFailedError(
                f"Authorization code exchange failed: {e.message}",
                cause=e,
                integration=self.config.integration,
            ) from e
        except (PydanticValidationError, ValueError) as e:
            raise AuthorizationFailedError(
                "Token endpoint returned an invalid response",
                cause=e,
                integration=self.config.integration,
            ) from e

        self.logger.info(
            "Authorization code exchanged",
            extra={"integration": self.config.integration, "expires_in": tokens.expires_in},
        )
        return tokens

    def refresh(self, refresh_token: str) -> TokenResponse:
        """
        Exchange a refresh token for a new (rotated) token pair.

        Raises:
            RefreshFailedError: On HTTP errors, revoked tokens, network errors
                or a malformed token response
        """
        try:
            tokens = self._request_tokens(
                {"grant_type": "refresh_token", "refresh_token": refresh_token}, "oauth_refresh"
            )
        except TransportError as e:
            raise RefreshFailedError(
                f"Token refresh failed: {e.message}",
                cause=e,
                integration=self.config.integration,
            ) from e
        except (PydanticValidationError, ValueError) as e:
            raise RefreshFailedError(
                "Token endpoint returned an invalid refresh response",
                cause=e,
                integration=self.config.integration,
            ) from e

        self.logger.info(
            "Access token refreshed",
            extra={"integration": self.config.integration, "expires_in": tokens.expires_in},
        )
        return tokens
