"""
File helpers shared by the feed and identifier stores.
"""

import os
import tempfile
from pathlib import Path


def write_atomic(path: Path, data: str, encoding: str = "utf-8") -> Path:
    """Write text to ``path`` by replacing it with a fully written temp file.

    Readers never observe a partially written document.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    return path
