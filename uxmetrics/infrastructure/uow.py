from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .exceptions import handle_database_error
from .logging import get_logger

logger = get_logger(__name__)


class UnitOfWork:
    """
    Transaction scope for one batch of reads and writes.

    Example:
        >>> uow = UnitOfWork(SessionLocal)
        >>> with uow.begin() as s:
        ...     create_study(s, "Checkout", "shop-app")
    """

    def __init__(self, SessionLocal: sessionmaker):
        self.SessionLocal = SessionLocal

    @contextmanager
    def begin(self) -> Iterator[Session]:
        s = self.SessionLocal()
        try:
            yield s
            s.commit()
        except SQLAlchemyError as e:
            s.rollback()
            logger.error(f"Transaction rolled back: {str(e)}")
            raise handle_database_error(e, "commit transaction") from e
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()
