"""
fileio.py

File writing helpers.
"""

import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, IO, Union


@contextmanager
def atomic_write(path: Union[str, Path], mode: str = 'w', perms: int = 0o644) -> Iterator[IO]:
    """
    Write a file through a temporary sibling and rename it into place.

    Readers observe either the old file or the complete new one. The
    temporary file is removed if the block raises.

    Args:
        path: Destination file
        mode: 'w' for text or 'wb' for bytes
        perms: Permission bits of the final file

    Example:
        >>> with atomic_write('/tmp/config.json') as f:
        ...     f.write('{}')
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix='.tmp')
    try:
        with os.fdopen(fd, mode) as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, perms)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
