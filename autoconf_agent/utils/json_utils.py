import json
import os
import tempfile
from pathlib import Path
from typing import Any


def read_json(path: str | Path) -> Any:
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def atomic_write_json(path: str | Path, payload: Any, mode: int = 0o644) -> None:
    """Replace ``path`` with ``payload`` so readers never observe a partial file.

    The temp file lives in the target directory so ``os.replace`` stays on one
    filesystem. Its name is unique per call, concurrent writers never share it.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
            handle.write("\n")
            handle.flush()
            os.fsync(handle.fileno())
        # mkstemp creates 0600; the replaced file keeps the temp file's mode
        os.chmod(temp_name, mode)
        os.replace(temp_name, str(target))
    except BaseException:
        try:
            os.remove(temp_name)
        except OSError:
            pass
        raise
