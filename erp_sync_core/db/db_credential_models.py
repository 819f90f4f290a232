"""
OAuth credential storage.

Just the data structure; reads and writes go through CredentialRepository.
"""

from sqlalchemy import Boolean, Column, Index, String, text

from .db_base import EncryptedBinary, TimestampMixin, UTCDateTime, UUIDMixin
from .db_config import Base


class IntegrationCredential(Base, UUIDMixin, TimestampMixin):
    """Access/refresh token pair for one integration."""

    __tablename__ = "integration_credentials"

    integration = Column(String(100), nullable=False, index=True)

    # Encrypted with pgcrypto on PostgreSQL
    access_token = Column(EncryptedBinary, nullable=False)
    refresh_token = Column(EncryptedBinary, nullable=False)

    expires_at = Column(UTCDateTime, nullable=False)
    token_type = Column(String(50), nullable=False, default="Bearer")
    scope = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # At most one active credential per integration
    __table_args__ = (
        Index(
            "ix_integration_credentials_one_active",
            "integration",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<IntegrationCredential(id='{self.id}', integration='{self.integration}', "
            f"active={self.is_active}, expires_at={self.expires_at})>"
        )
