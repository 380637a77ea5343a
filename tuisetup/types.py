from dataclasses import dataclass, asdict, fields
from typing import Optional, Dict, Any

DEFAULT_CONFIG_PATH = "/etc/opensnitchd/default-config.json"
DEFAULT_TARGET_ADDRESS = "unix:///tmp/osui.sock"
DEFAULT_FIELD_PATH = "Server.Address"
EDITOR_CHOICES = ("auto", "jq", "json", "text")


@dataclass
class PatchSettings:
    config_path: str = DEFAULT_CONFIG_PATH
    target_address: str = DEFAULT_TARGET_ADDRESS
    field_path: str = DEFAULT_FIELD_PATH
    editor: str = "auto"
    tui_command: str = "./target/release/opensnitch-tui"
    service_name: str = "opensnitchd"
    log_file: Optional[str] = None

    @classmethod
    def field_names(cls) -> set:
        return {f.name for f in fields(cls)}

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PatchResult:
    config_path: str
    backup_path: str
    target_address: str
    editor: str
    previous_address: Optional[str] = None
    changed: bool = True

    @property
    def display_previous(self) -> str:
        return self.previous_address if self.previous_address is not None else "unknown"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PatchResult":
        return cls(
            config_path=d.get("config_path", ""),
            backup_path=d.get("backup_path", ""),
            target_address=d.get("target_address", ""),
            editor=d.get("editor", ""),
            previous_address=d.get("previous_address"),
            changed=bool(d.get("changed", True)),
        )


__all__ = ["PatchSettings", "PatchResult", "DEFAULT_CONFIG_PATH", "DEFAULT_TARGET_ADDRESS", "DEFAULT_FIELD_PATH", "EDITOR_CHOICES"]
