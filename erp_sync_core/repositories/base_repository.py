"""
Session handling shared by the repositories.

Repositories are built from a ``sessionmaker`` and open one short-lived
session per operation, so calls from different threads never share a
transaction.
"""

from contextlib import contextmanager
from typing import Callable, Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import ErrorCode, RepositoryError
from ..utils.logger import get_logger


class BaseRepository:
    """Common base for repositories that own their sessions."""

    def __init__(self, session_factory: Callable[[], Session], integration: str):
        self.session_factory = session_factory
        self.integration = integration
        self.logger = get_logger()

    @contextmanager
    def session_scope(self, operation: str) -> Iterator[Session]:
        """
        Open a session, commit on success, roll back on any error.

        Args:
            operation: Name used in logs and in the wrapped error

        Raises:
            RepositoryError: If the database rejects the operation
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise RepositoryError(
                f"Database error during {operation}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
                cause=e,
                operation=operation,
                integration=self.integration,
            ) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
