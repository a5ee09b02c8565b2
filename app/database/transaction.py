from contextlib import contextmanager

from sqlalchemy.orm import Session


@contextmanager
def transaction(db: Session):
    """
    Unit of work around a service write.

    Commits when the block exits normally; on any exception rolls back and
    re-raises, so nothing the block flushed is persisted. Services never
    commit on their own.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
