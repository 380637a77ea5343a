class SetupError(Exception):
    """Base class for failures that end a run with a non-zero exit code."""

    exit_code = 1


class ConfigNotFound(SetupError):
    exit_code = 1


class BackupFailed(SetupError):
    exit_code = 2


class WriteFailed(SetupError):
    exit_code = 3


class BackupNotFound(SetupError):
    exit_code = 4


class SettingsError(SetupError):
    exit_code = 5


class EditorUnavailable(SetupError):
    exit_code = 5


class ReadCurrentValueFailed(SetupError):
    """Only used for display; the patcher never lets this escape."""


__all__ = [
    "SetupError",
    "ConfigNotFound",
    "BackupFailed",
    "WriteFailed",
    "BackupNotFound",
    "SettingsError",
    "EditorUnavailable",
    "ReadCurrentValueFailed",
]
