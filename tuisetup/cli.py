import argparse
import json
import sys
from typing import List, Optional

from .backup import list_backups, restore_backup
from .editors import select_editor
from .errors import ConfigNotFound, SetupError
from .logging_config import configure_logging, get_logger
from .patcher import ConfigPatcher
from .settings import build_settings
from .types import EDITOR_CHOICES, PatchResult, PatchSettings

_logger = get_logger("cli")

BANNER = "OpenSnitch TUI Daemon Setup"
# BSD EX_USAGE; 2 already means the backup failed
USAGE_EXIT_CODE = 64


class ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(USAGE_EXIT_CODE, f"{self.prog}: error: {message}\n")


def _add_config_path(parser, default=None) -> None:
    parser.add_argument("--config-path", default=default, help="Daemon config file")


def _add_patch_options(parser, default=None) -> None:
    _add_config_path(parser, default)
    parser.add_argument("--target-address", default=default, help="Address to install, e.g. unix:///tmp/osui.sock")
    parser.add_argument("--editor", default=default, choices=EDITOR_CHOICES, help="How to edit the JSON (default: auto)")
    parser.add_argument("--json", dest="as_json", action="store_true",
                        default=False if default is None else default, help="Print the result as JSON")


def build_parser() -> argparse.ArgumentParser:
    parser = ArgumentParser(prog="tuisetup", description="Point the OpenSnitch daemon at the TUI socket")
    parser.add_argument("--settings", help="YAML settings file")
    parser.add_argument("--log-file", help="Also write the log to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    # patch options also work without a subcommand, since patch is the default
    _add_patch_options(parser)
    parser.set_defaults(backup=None)

    sub = parser.add_subparsers(dest="command")
    # SUPPRESS keeps a subcommand from resetting values given before it
    keep = argparse.SUPPRESS

    p_patch = sub.add_parser("patch", help="Back up the daemon config and set Server.Address (default)")
    _add_patch_options(p_patch, keep)

    p_list = sub.add_parser("backups", help="List backups of the daemon config, oldest first")
    _add_config_path(p_list, keep)

    p_restore = sub.add_parser("restore", help="Restore the daemon config from a backup")
    _add_config_path(p_restore, keep)
    p_restore.add_argument("--backup", help="Backup file to restore (default: the latest)")
    return parser


def print_report(result: PatchResult, settings: PatchSettings) -> None:
    print(BANNER)
    print("=" * len(BANNER))
    print(f"Backed up current config to {result.backup_path}")
    print(f"Current {settings.field_path}: {result.display_previous}")
    print(f"Updating {settings.field_path} to: {result.target_address}")
    print("")
    print("Configuration updated!" if result.changed else "Configuration already up to date.")
    print("")
    print("Next steps:")
    print(f"  1. Start the TUI first:  {settings.tui_command}")
    print(f"  2. Restart the daemon:   sudo systemctl restart {settings.service_name}")
    print("")
    print("To revert to the original config:")
    print(f"  tuisetup restore --config-path {result.config_path} --backup {result.backup_path}")
    print(f"  sudo systemctl restart {settings.service_name}")


def _patch(settings: PatchSettings, as_json: bool) -> int:
    editor = select_editor(settings.editor)
    result = ConfigPatcher(settings, editor).run()
    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_report(result, settings)
    return 0


def _backups(settings: PatchSettings) -> int:
    for path in list_backups(settings.config_path):
        print(path)
    return 0


def _restore(settings: PatchSettings, backup: Optional[str]) -> int:
    used = restore_backup(settings.config_path, backup)
    print(f"Restored {settings.config_path} from {used}")
    print(f"Restart the daemon:  sudo systemctl restart {settings.service_name}")
    return 0


def run(argv: List[str] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = build_settings(
            settings_file=args.settings,
            overrides={
                "config_path": args.config_path,
                "target_address": args.target_address,
                "editor": args.editor,
                "log_file": args.log_file,
            },
        )
    except SetupError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return e.exit_code

    configure_logging(settings.log_file, verbose=args.verbose)
    _logger.debug("settings: %s", settings.to_dict())

    try:
        if args.command == "backups":
            return _backups(settings)
        if args.command == "restore":
            return _restore(settings, args.backup)
        return _patch(settings, args.as_json)
    except SetupError as e:
        _logger.debug("%s failed", args.command, exc_info=True)
        print(f"ERROR: {e}", file=sys.stderr)
        if isinstance(e, ConfigNotFound):
            print("Is OpenSnitch daemon installed?", file=sys.stderr)
        return e.exit_code


if __name__ == "__main__":
    raise SystemExit(run())
