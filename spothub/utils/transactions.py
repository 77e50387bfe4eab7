"""
spothub/utils/transactions.py
─────────────────────────────
One helper: run a block as a single database transaction.

    with atomic('redeem voucher'):
        ... conditional UPDATEs, INSERTs ...

On success the session is committed. On any exception the session is
rolled back, so none of the block's writes survive. Business errors
(HubError) propagate unchanged; SQLAlchemy failures are logged and
re-raised as PersistenceError.
"""
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from spothub import db
from spothub.errors import HubError, PersistenceError


@contextmanager
def atomic(label: str):
    try:
        yield db.session
        db.session.commit()
    except HubError:
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        # CHECK constraints (stock >= 0, balance >= 0) land here too
        current_app.logger.error(f"{label}: integrity error, rolled back: {exc.orig}")
        raise PersistenceError() from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"{label}: database error, rolled back: {exc}")
        raise PersistenceError() from exc
    except Exception:
        db.session.rollback()
        raise
