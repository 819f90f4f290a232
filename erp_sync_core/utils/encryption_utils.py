"""
Token encryption at rest.

PostgreSQL encrypts with pgcrypto (``pgp_sym_encrypt``); SQLite, used for
tests and local development, stores the plaintext.
"""

from typing import Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from ..exceptions import ErrorCode, ServiceError


def _is_postgres(session: Session) -> bool:
    return session.get_bind().dialect.name == "postgresql"


def _token_key(encryption_key: Optional[str], integration: str, kind: str) -> str:
    if not encryption_key:
        raise ServiceError(
            "Encryption key is required to store tokens in PostgreSQL",
            error_code=ErrorCode.CONFIGURATION_ERROR,
            operation="encrypt_token",
        )
    return f"{encryption_key}_{integration}_{kind}"


def encrypt_token(
    session: Session,
    value: str,
    integration: str,
    kind: str,
    encryption_key: Optional[str] = None,
):
    """
    Encrypt one token for storage.

    Args:
        session: Database session
        value: Plaintext token
        integration: Integration name, part of the key
        kind: "access" or "refresh", part of the key
        encryption_key: Secret from SecurityConfig (required on PostgreSQL)

    Returns:
        Ciphertext bytes on PostgreSQL, the plaintext elsewhere
    """
    if _is_postgres(session):
        return session.execute(
            text("SELECT pgp_sym_encrypt(:data, :key)"),
            {"data": value, "key": _token_key(encryption_key, integration, kind)},
        ).scalar()
    return value


def decrypt_token(
    session: Session,
    stored,
    integration: str,
    kind: str,
    encryption_key: Optional[str] = None,
) -> Optional[str]:
    """Reverse of ``encrypt_token``."""
    if not stored:
        return None

    if _is_postgres(session):
        return session.execute(
            text("SELECT pgp_sym_decrypt(:data, :key)"),
            {"data": stored, "key": _token_key(encryption_key, integration, kind)},
        ).scalar()

    if isinstance(stored, bytes):
        return stored.decode()
    return stored
