"""
Shared transaction helpers for module services.

Used by p2p_modules/*/service.py so every public operation has the same
boundary: commit on success, rollback on any failure, storage errors
surfaced as StorageError.

Architecture: Modules layer. Imports only from p2p_kernel.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from p2p_kernel.exceptions import OptimisticLockError, P2PError, StorageError
from p2p_kernel.logging_config import get_logger

logger = get_logger("modules.posting_helpers")


@contextmanager
def unit_of_work(session: Session, operation: str) -> Iterator[Session]:
    """
    Run one public operation as a single transaction.

    Typed P2PError exceptions pass through unchanged after the rollback.
    A lost optimistic-lock race becomes OptimisticLockError; any other
    SQLAlchemy failure becomes StorageError.
    """
    try:
        yield session
        session.commit()
    except P2PError as exc:
        session.rollback()
        logger.info(
            "unit_of_work_rolled_back",
            extra={"operation": operation, "error_code": exc.code},
        )
        raise
    except StaleDataError:
        session.rollback()
        logger.warning("unit_of_work_version_conflict", extra={"operation": operation})
        raise OptimisticLockError(operation, None) from None
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(
            "unit_of_work_storage_failure",
            extra={"operation": operation},
            exc_info=True,
        )
        raise StorageError(operation, str(exc.__class__.__name__)) from exc
    except Exception:
        session.rollback()
        logger.error("unit_of_work_failed", extra={"operation": operation}, exc_info=True)
        raise


def flush_versioned(session: Session, entity_type: str, entity_id) -> None:
    """Flush pending changes, mapping a stale version to OptimisticLockError."""
    try:
        session.flush()
    except StaleDataError:
        raise OptimisticLockError(entity_type, entity_id) from None
