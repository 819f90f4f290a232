"""
Token store: persistence of the single active OAuth credential.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..db.db_credential_models import IntegrationCredential
from ..exceptions import AuthNotConfiguredError
from ..schemas.credential_schemas import CredentialRecord, CredentialSnapshot, TokenResponse
from ..utils.encryption_utils import decrypt_token, encrypt_token
from .base_repository import BaseRepository


class CredentialStore(ABC):
    """Storage contract the token manager depends on."""

    @abstractmethod
    def get_active(self) -> Optional[CredentialRecord]:
        """Return the active credential, or None when not authorized."""

    @abstractmethod
    def save_authorized(self, tokens: TokenResponse, issued_at: datetime) -> CredentialRecord:
        """Store tokens from an authorization-code exchange."""

    @abstractmethod
    def save_refreshed(
        self, credential_id: str, tokens: TokenResponse, issued_at: datetime
    ) -> CredentialRecord:
        """Replace access token, refresh token and expiry of an active credential."""

    @abstractmethod
    def deactivate(self) -> bool:
        """Deactivate the active credential. Returns False if there was none."""

    @abstractmethod
    def snapshot(self) -> Optional[CredentialSnapshot]:
        """Non-secret view of the most recent credential."""


class CredentialRepository(BaseRepository, CredentialStore):
    """
    SQLAlchemy implementation of the token store.

    Rows are never deleted: disconnecting flips ``is_active`` and
    re-authorizing while a row is active updates that row in place.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        integration: str,
        encryption_key: Optional[str] = None,
    ):
        super().__init__(session_factory, integration)
        self.encryption_key = encryption_key

    def _active_query(self, session: Session):
        return session.query(IntegrationCredential).filter(
            IntegrationCredential.integration == self.integration,
            IntegrationCredential.is_active.is_(True),
        )

    def _to_record(self, session: Session, row: IntegrationCredential) -> CredentialRecord:
        return CredentialRecord(
            id=row.id,
            integration=row.integration,
            access_token=decrypt_token(
                session, row.access_token, self.integration, "access", self.encryption_key
            ),
            refresh_token=decrypt_token(
                session, row.refresh_token, self.integration, "refresh", self.encryption_key
            ),
            expires_at=row.expires_at,
            token_type=row.token_type,
            scope=row.scope,
            is_active=row.is_active,
        )

    def _apply_tokens(
        self,
        session: Session,
        row: IntegrationCredential,
        tokens: TokenResponse,
        issued_at: datetime,
    ) -> None:
        row.access_token = encrypt_token(
            session, tokens.access_token, self.integration, "access", self.encryption_key
        )
        row.refresh_token = encrypt_token(
            session, tokens.refresh_token, self.integration, "refresh", self.encryption_key
        )
        row.expires_at = tokens.expires_at(issued_at)
        row.token_type = tokens.token_type
        row.scope = tokens.scope
        row.updated_at = issued_at

    def get_active(self) -> Optional[CredentialRecord]:
        with self.session_scope("get_active_credential") as session:
            row = self._active_query(session).first()
            if row is None:
                return None
            return self._to_record(session, row)

    def save_authorized(self, tokens: TokenResponse, issued_at: datetime) -> CredentialRecord:
        with self.session_scope("save_authorized_credential") as session:
            row = self._active_query(session).with_for_update().first()
            if row is None:
                row = IntegrationCredential(integration=self.integration, is_active=True)
                session.add(row)
                action = "created"
            else:
                action = "updated"

            self._apply_tokens(session, row, tokens, issued_at)
            session.flush()

            self.logger.info(
                f"Credential {action} from authorization",
                extra={
                    "integration": self.integration,
                    "credential_id": row.id,
                    "expires_at": row.expires_at.isoformat(),
                },
            )
            return self._to_record(session, row)

    def save_refreshed(
        self, credential_id: str, tokens: TokenResponse, issued_at: datetime
    ) -> CredentialRecord:
        with self.session_scope("save_refreshed_credential") as session:
            row = (
                self._active_query(session)
                .filter(IntegrationCredential.id == credential_id)
                .with_for_update()
                .one_or_none()
            )
            if row is None:
                raise AuthNotConfiguredError(
                    "Credential was disconnected while its token was being refreshed",
                    integration=self.integration,
                    credential_id=credential_id,
                )

            self._apply_tokens(session, row, tokens, issued_at)
            session.flush()

            self.logger.info(
                "Credential refreshed",
                extra={
                    "integration": self.integration,
                    "credential_id": row.id,
                    "expires_at": row.expires_at.isoformat(),
                },
            )
            return self._to_record(session, row)

    def deactivate(self) -> bool:
        with self.session_scope("deactivate_credential") as session:
            rows = self._active_query(session).with_for_update().all()
            for row in rows:
                row.is_active = False

            self.logger.info(
                "Credential deactivated" if rows else "No active credential to deactivate",
                extra={"integration": self.integration, "deactivated": len(rows)},
            )
            return bool(rows)

    def snapshot(self) -> Optional[CredentialSnapshot]:
        with self.session_scope("credential_snapshot") as session:
            row = (
                session.query(IntegrationCredential)
                .filter(IntegrationCredential.integration == self.integration)
                .order_by(
                    IntegrationCredential.is_active.desc(),
                    IntegrationCredential.updated_at.desc(),
                )
                .first()
            )
            if row is None:
                return None
            return CredentialSnapshot(
                integration=row.integration,
                is_active=row.is_active,
                expires_at=row.expires_at,
                updated_at=row.updated_at,
            )
