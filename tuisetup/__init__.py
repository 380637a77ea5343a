from .patcher import ConfigPatcher, read_current_value
from .editors import JsonFieldEditor, JqFieldEditor, JsonModuleEditor, TextSubstitutionEditor, select_editor
from .types import PatchSettings, PatchResult

__all__ = [
    "ConfigPatcher",
    "read_current_value",
    "JsonFieldEditor",
    "JqFieldEditor",
    "JsonModuleEditor",
    "TextSubstitutionEditor",
    "select_editor",
    "PatchSettings",
    "PatchResult",
]
