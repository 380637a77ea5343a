from pathlib import Path
from typing import Optional

from .backup import Clock, create_backup
from .editors import JsonFieldEditor, split_field_path, string_field_pattern
from .errors import ConfigNotFound, ReadCurrentValueFailed, WriteFailed
from .io import atomic_write_text, read_text
from .logging_config import get_logger
from .types import PatchSettings, PatchResult

_logger = get_logger(__name__)


def read_current_value(text: str, key: str = "Address") -> str:
    """
    First string value of any key named ``key``, found by a text scan.

    This is not scoped to the field the editor writes: with several ``Address``
    keys at different depths the value shown may belong to another object.
    """
    m = string_field_pattern(key).search(text)
    if not m:
        raise ReadCurrentValueFailed(f'no "{key}" string field found')
    return m.group(1)


class ConfigPatcher:
    def __init__(self, settings: PatchSettings, editor: JsonFieldEditor, clock: Optional[Clock] = None):
        self.settings = settings
        self.editor = editor
        self.clock = clock

    @property
    def path(self) -> Path:
        return Path(self.settings.config_path)

    def run(self) -> PatchResult:
        """
        Back up the config file and point the configured field at the target address.

        Raises ConfigNotFound before touching anything, BackupFailed before any
        edit, and WriteFailed with the original file left in place.
        """
        path = self.path
        if not path.is_file():
            raise ConfigNotFound(f"Daemon config not found at {path}")

        backup = create_backup(path, clock=self.clock)

        try:
            original = read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            raise WriteFailed(f"cannot read {path}: {e}") from e

        key = split_field_path(self.settings.field_path)[-1]
        try:
            previous = read_current_value(original, key)
        except ReadCurrentValueFailed as e:
            _logger.warning("could not read current %s: %s", key, e)
            previous = None
        _logger.info("current %s: %s", self.settings.field_path, previous if previous is not None else "unknown")

        updated = self.editor.set_field(original, self.settings.field_path, self.settings.target_address)
        changed = updated != original
        if changed:
            atomic_write_text(path, updated)
            _logger.info("set %s to %s using %s editor", self.settings.field_path, self.settings.target_address, self.editor.name)
        else:
            _logger.info("%s already set to %s", self.settings.field_path, self.settings.target_address)

        return PatchResult(
            config_path=str(path),
            backup_path=str(backup),
            target_address=self.settings.target_address,
            editor=self.editor.name,
            previous_address=previous,
            changed=changed,
        )
