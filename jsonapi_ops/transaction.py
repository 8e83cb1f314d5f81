"""Batch transaction (unit-of-work) helpers.

All the operations of a batch are applied in a single SQLAlchemy transaction:
- every operation is flushed so later operations see its changes
- the transaction is committed once, after the last operation
- it is rolled back when an operation fails or the batch is aborted (any exception)

`in_batch()` tells model code (validators, event listeners) whether it runs inside an atomic batch.
"""
from contextvars import ContextVar
from sqlalchemy.orm import scoped_session
import jsonapi_ops

_BATCH_ACTIVE: ContextVar[bool] = ContextVar("jsonapi_ops_batch_active", default=False)


def in_batch() -> bool:
    """Return True when an atomic operations batch is being executed."""
    return _BATCH_ACTIVE.get()


class OperationsTransaction:
    """
    Context manager around the session transaction of one batch,
    the transaction is rolled back on exit unless `commit()` succeeded
    """

    def __init__(self, session):
        self.session = session
        self.committed = False
        self._token = None

    def _current_session(self):
        # a scoped_session proxies begin/commit/rollback but not in_transaction()
        if isinstance(self.session, scoped_session):
            return self.session()
        return self.session

    def __enter__(self):
        if not self._current_session().in_transaction():
            self.session.begin()
        self._token = _BATCH_ACTIVE.set(True)
        jsonapi_ops.log.debug("Begin atomic batch")
        return self

    def flush(self):
        self.session.flush()

    def commit(self):
        self.session.commit()
        self.committed = True
        jsonapi_ops.log.debug("Atomic batch committed")

    def __exit__(self, exc_type, exc_val, exc_tb):
        _BATCH_ACTIVE.reset(self._token)
        if not self.committed:
            if exc_type is not None:
                jsonapi_ops.log.warning(f"Atomic batch aborted: {exc_type.__name__}")
            self.session.rollback()
            jsonapi_ops.log.debug("Atomic batch rolled back")
        # exceptions propagate
        return False
