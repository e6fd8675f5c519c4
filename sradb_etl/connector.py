"""Read-only access to an SRAmetadb SQLite snapshot"""

import logging
from contextlib import contextmanager
from pathlib import Path
from urllib.parse import quote

from sqlalchemy import create_engine
from sqlalchemy.engine import URL

from .exceptions import SnapshotNotFoundError

logger = logging.getLogger(__name__)


def snapshot_url(path):
    """Build an SQLAlchemy URL that opens the snapshot read-only"""
    resolved = Path(path).resolve()
    # percent-encode so URI syntax in the path stays literal
    return URL.create(
        'sqlite',
        database=f'file:{quote(resolved.as_posix(), safe="/:")}',
        query={'mode': 'ro', 'uri': 'true'},
    )


@contextmanager
def open_snapshot(path):
    """Yield an engine bound to the snapshot and dispose of it on exit"""
    snapshot = Path(path)
    if not snapshot.is_file():
        raise SnapshotNotFoundError(snapshot)

    engine = create_engine(snapshot_url(snapshot))
    logger.debug(f"Opened snapshot {snapshot} read-only")
    try:
        yield engine
    finally:
        engine.dispose()
        logger.debug(f"Released snapshot {snapshot}")
