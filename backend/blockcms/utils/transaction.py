from contextlib import contextmanager
from blockcms.extensions import db

_DEPTH_KEY = "blockcms.tx_depth"


@contextmanager
def transactional():
    """
    Context manager for database transactions.

    Blocks may nest: only the outermost one commits or rolls back, so a
    use case composed of other use cases (restore = snapshot + copy +
    snapshot) still runs as a single transaction.
    """
    session = db.session
    depth = session.info.get(_DEPTH_KEY, 0)
    session.info[_DEPTH_KEY] = depth + 1
    try:
        yield session
        if depth == 0:
            session.commit()
    except Exception:
        if depth == 0:
            session.rollback()
        raise
    finally:
        session.info[_DEPTH_KEY] = depth
