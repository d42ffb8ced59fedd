import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pto_service.core.exceptions import StoreError


class BaseService:
    """Shared plumbing for services bound to a database session."""

    def __init__(self, db: Session):
        self.db = db
        self._logger = logging.getLogger(self.__class__.__module__)

    def log_info(self, message: str, **extra):
        self._logger.info(message, extra=extra or None)

    def log_warning(self, message: str, **extra):
        self._logger.warning(message, extra=extra or None)

    def log_error(self, message: str, **extra):
        self._logger.error(message, extra=extra or None)

    @contextmanager
    def store_errors(self, operation: str):
        """Roll back and surface any database failure as a StoreError."""
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            self._logger.error(f"Store operation '{operation}' failed: {e}", exc_info=True)
            raise StoreError() from e

    def commit(self, operation: str):
        with self.store_errors(operation):
            self.db.commit()
