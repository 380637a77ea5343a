import os
import re
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Union

from .errors import BackupFailed, BackupNotFound
from .io import atomic_write_bytes
from .logging_config import get_logger

_logger = get_logger(__name__)

Clock = Callable[[], datetime]

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
BACKUP_MARKER = ".backup."
# collisions within one second get _1, _2, ...
MAX_SUFFIX = 1000


def timestamp(clock: Optional[Clock] = None) -> str:
    now = (clock or datetime.now)()
    return now.strftime(TIMESTAMP_FORMAT)


def backup_path_for(path: Union[str, Path], stamp: str) -> Path:
    p = Path(path)
    return p.with_name(f"{p.name}{BACKUP_MARKER}{stamp}")


def _backup_pattern(path: Path) -> "re.Pattern[str]":
    return re.compile(re.escape(path.name + BACKUP_MARKER) + r"(\d{8}_\d{6})(?:_(\d+))?$")


def create_backup(path: Union[str, Path], clock: Optional[Clock] = None) -> Path:
    """
    Copy ``path`` byte for byte to ``<path>.backup.<YYYYMMDD_HHMMSS>``.

    Backups are created exclusively and never overwrite an existing file. A
    partially written backup is removed before BackupFailed is raised.
    """
    src = Path(path)
    try:
        data = src.read_bytes()
        mode = src.stat().st_mode & 0o777
    except OSError as e:
        raise BackupFailed(f"cannot read {src}: {e}") from e

    base = backup_path_for(src, timestamp(clock))
    for n in range(MAX_SUFFIX):
        dst = base if n == 0 else base.with_name(f"{base.name}_{n}")
        try:
            fh = open(dst, "xb")
        except FileExistsError:
            continue
        except OSError as e:
            raise BackupFailed(f"cannot create backup {dst}: {e}") from e

        try:
            with fh:
                fh.write(data)
            os.chmod(dst, mode)
        except OSError as e:
            dst.unlink(missing_ok=True)
            raise BackupFailed(f"failed writing backup {dst}: {e}") from e

        _logger.info("Backed up %s -> %s", str(src), str(dst))
        return dst

    raise BackupFailed(f"too many backups of {src} for timestamp {base.name}")


def list_backups(path: Union[str, Path]) -> List[Path]:
    """Backups of ``path`` found next to it, oldest first."""
    p = Path(path)
    pattern = _backup_pattern(p)
    found = []
    if not p.parent.is_dir():
        return []
    for candidate in p.parent.iterdir():
        m = pattern.match(candidate.name)
        if m and candidate.is_file():
            found.append(((m.group(1), int(m.group(2) or 0)), candidate))
    return [c for _, c in sorted(found)]


def restore_backup(path: Union[str, Path], backup: Optional[Union[str, Path]] = None) -> Path:
    p = Path(path)
    if backup is None:
        backups = list_backups(p)
        if not backups:
            raise BackupNotFound(f"no backups found for {p}")
        chosen = backups[-1]
    else:
        chosen = Path(backup)
        if not chosen.is_file():
            raise BackupNotFound(f"backup not found: {chosen}")

    try:
        data = chosen.read_bytes()
    except OSError as e:
        raise BackupNotFound(f"cannot read backup {chosen}: {e}") from e

    atomic_write_bytes(p, data)
    _logger.info("Restored %s from %s", str(p), str(chosen))
    return chosen
