"""
Token manager: the only component that sees the OAuth secrets.

Callers ask for "a token valid for at least the safety margin" and never
handle refresh tokens or expiry themselves.

Refresh lock: all refreshes in the process are serialized by one lock.
A caller that finds the stored token inside the margin takes the lock,
re-reads the credential, and only refreshes if it is still stale, so N
concurrent callers produce a single refresh call. Across processes the
credential row is written under ``SELECT ... FOR UPDATE`` on PostgreSQL.
"""

import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..constants import TOKEN_SAFETY_MARGIN_SECONDS
from ..db.db_base import utc_now
from ..exceptions import AuthNotConfiguredError, RefreshFailedError, RepositoryError
from ..repositories.credential_repository import CredentialStore
from ..schemas.credential_schemas import CredentialRecord, CredentialSnapshot
from ..utils.logger import get_logger


class TokenManager:
    def __init__(
        self,
        store: CredentialStore,
        oauth_client,
        integration: str,
        safety_margin_seconds: int = TOKEN_SAFETY_MARGIN_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            store: Credential persistence
            oauth_client: Client for the token endpoint (``exchange_code``/``refresh``)
            integration: Integration name, for logs
            safety_margin_seconds: Minimum remaining lifetime of a returned token
            clock: Returns the current UTC datetime
        """
        self.store = store
        self.oauth_client = oauth_client
        self.integration = integration
        self.safety_margin = timedelta(seconds=safety_margin_seconds)
        self.clock = clock or utc_now
        self._refresh_lock = threading.Lock()
        self.logger = get_logger()

    def _require_active(self) -> CredentialRecord:
        credential = self.store.get_active()
        if credential is None:
            raise AuthNotConfiguredError(integration=self.integration)
        return credential

    def get_valid_token(self) -> str:
        """
        Return an access token valid for at least the safety margin.

        Raises:
            AuthNotConfiguredError: No active credential
            RefreshFailedError: The refresh exchange failed; stored state is unchanged
        """
        credential = self._require_active()
        if credential.is_fresh(self.clock(), self.safety_margin):
            return credential.access_token

        with self._refresh_lock:
            credential = self._require_active()
            if credential.is_fresh(self.clock(), self.safety_margin):
                self.logger.debug(
                    "Token already refreshed by another caller",
                    extra={"integration": self.integration},
                )
                return credential.access_token

            return self._refresh(credential)

    def _refresh(self, credential: CredentialRecord) -> str:
        self.logger.info(
            "Access token inside safety margin, refreshing",
            extra={
                "integration": self.integration,
                "credential_id": credential.id,
                "expires_at": credential.expires_at.isoformat(),
            },
        )

        tokens = self.oauth_client.refresh(credential.refresh_token)

        try:
            updated = self.store.save_refreshed(credential.id, tokens, self.clock())
        except RepositoryError as e:
            raise RefreshFailedError(
                "Refreshed tokens could not be stored",
                cause=e,
                integration=self.integration,
            ) from e

        # The old refresh token is spent, so rotated tokens are kept even when unusable
        if not updated.is_fresh(self.clock(), self.safety_margin):
            raise RefreshFailedError(
                "Refreshed token expires within the safety margin",
                integration=self.integration,
                expires_in=tokens.expires_in,
                safety_margin_seconds=int(self.safety_margin.total_seconds()),
            )

        return updated.access_token

    def authorize(self, code: str) -> CredentialSnapshot:
        """
        Complete the OAuth authorization-code flow.

        Raises:
            AuthorizationFailedError: If the code exchange fails
        """
        tokens = self.oauth_client.exchange_code(code)
        with self._refresh_lock:
            credential = self.store.save_authorized(tokens, self.clock())

        return CredentialSnapshot(
            integration=credential.integration,
            is_active=credential.is_active,
            expires_at=credential.expires_at,
        )

    def disconnect(self) -> bool:
        """Deactivate the credential. Returns False if none was active."""
        with self._refresh_lock:
            return self.store.deactivate()

    def credential_snapshot(self) -> Optional[CredentialSnapshot]:
        return self.store.snapshot()
