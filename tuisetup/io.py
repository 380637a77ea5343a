import os
import shutil
import tempfile
from pathlib import Path
from typing import Union

from .errors import WriteFailed
from .logging_config import get_logger

_logger = get_logger(__name__)


def read_text(path: Union[str, Path]) -> str:
    return Path(path).read_text(encoding="utf-8")


def _copy_owner(src: Path, dst: Path) -> None:
    st = src.stat()
    tmp_st = dst.stat()
    if (st.st_uid, st.st_gid) != (tmp_st.st_uid, tmp_st.st_gid):
        os.chown(str(dst), st.st_uid, st.st_gid)


def atomic_write_bytes(path: Union[str, Path], data: bytes) -> Path:
    """
    Replace ``path`` with ``data`` via a temp file in the same directory and a rename.

    A symlinked ``path`` is followed, so the link stays and its target is
    replaced. The temp file lives next to that target so the rename stays on one
    filesystem. Mode, owner and group of an existing target are carried over. On
    any failure the temp file is removed, the target is left as it was and
    WriteFailed is raised.
    """
    p = Path(path).resolve()
    try:
        fd, tmp_name = tempfile.mkstemp(dir=str(p.parent), prefix=f".{p.name}.", suffix=".tmp")
    except OSError as e:
        raise WriteFailed(f"cannot create temp file next to {p}: {e}") from e

    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        if p.exists():
            shutil.copymode(str(p), str(tmp))
            _copy_owner(p, tmp)
        os.replace(str(tmp), str(p))
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise WriteFailed(f"failed to replace {p}: {e}") from e

    _logger.debug("Replaced %s (%d bytes)", str(p), len(data))
    return p


def atomic_write_text(path: Union[str, Path], text: str) -> Path:
    return atomic_write_bytes(path, text.encode("utf-8"))
