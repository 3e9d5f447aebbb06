from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from pricing_config.core.config import settings
from pricing_config.core.errors import PersistenceFailure, PricingConfigError

logger = logging.getLogger(__name__)

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, echo=settings.SQL_ECHO)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Unit of work for a mutation and its audit row.

    Commits when the block exits cleanly; rolls back on every exception path.
    Raw SQLAlchemy errors surface as PersistenceFailure, engine errors
    (validation, audit, version conflicts) propagate unchanged.
    """
    try:
        yield db
        db.commit()
    except PricingConfigError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("transaction_rolled_back error=%s", exc)
        raise PersistenceFailure(message=f"Storage operation failed: {exc}") from exc
    except BaseException:
        db.rollback()
        raise
