import json
import re
import shutil
import subprocess
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

from .errors import EditorUnavailable, SettingsError, WriteFailed
from .logging_config import get_logger
from .types import EDITOR_CHOICES

_logger = get_logger(__name__)

JQ_TIMEOUT_SECONDS = 30


def split_field_path(field_path: str) -> List[str]:
    keys = field_path.split(".")
    if not field_path or any(not k for k in keys):
        raise SettingsError(f"invalid field path: {field_path!r}")
    return keys


def string_field_pattern(key: str) -> "re.Pattern[str]":
    """Lexical match of ``"key": "value"``; the value may not contain a quote."""
    return re.compile(r'"%s"\s*:\s*"([^"]*)"' % re.escape(key))


class JsonFieldEditor(ABC):
    name = "abstract"

    @abstractmethod
    def set_field(self, text: str, field_path: str, value: str) -> str:
        """Return ``text`` with the string field at ``field_path`` set to ``value``."""
        raise NotImplementedError


class JqFieldEditor(JsonFieldEditor):
    name = "jq"

    def __init__(self, executable: str = "jq", timeout: float = JQ_TIMEOUT_SECONDS):
        self.executable = executable
        self.timeout = timeout

    def set_field(self, text: str, field_path: str, value: str) -> str:
        keys = split_field_path(field_path)
        # setpath creates missing objects and fails on non-object parents, same as `.a.b = v`
        cmd = [self.executable, "--arg", "v", value, "--argjson", "p", json.dumps(keys), "setpath($p; $v)"]
        _logger.debug("running %s", " ".join(cmd))
        try:
            r = subprocess.run(cmd, input=text, capture_output=True, encoding="utf-8", timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise WriteFailed(f"jq timed out after {self.timeout}s") from e
        except OSError as e:
            raise WriteFailed(f"failed to run jq: {e}") from e
        if r.returncode != 0:
            raise WriteFailed(f"jq exited with {r.returncode}: {r.stderr.strip()}")
        if not r.stdout.strip():
            raise WriteFailed("jq produced no output")
        return r.stdout


class JsonModuleEditor(JsonFieldEditor):
    """
    Edits with Python's json parser but only rewrites the bytes of the target value.

    The parser locates the member; the new string literal is spliced into that
    span so every other byte of the file stays as it was. Only a missing
    parent object forces a full re-serialization.
    """

    name = "json"

    _decoder = json.JSONDecoder()
    _ws = " \t\n\r"

    @staticmethod
    def _detect_indent(text: str):
        m = re.search(r"\n([ \t]+)\S", text)
        return m.group(1) if m else 2

    def _skip_ws(self, text: str, pos: int) -> int:
        while pos < len(text) and text[pos] in self._ws:
            pos += 1
        return pos

    def _members(self, text: str, pos: int) -> List[Tuple[str, int, int]]:
        """(key, value_start, value_end) for the object starting at ``pos``."""
        members = []
        pos = self._skip_ws(text, pos + 1)
        if text[pos] == "}":
            return members
        while True:
            key, pos = self._decoder.raw_decode(text, pos)
            pos = self._skip_ws(text, pos)
            pos = self._skip_ws(text, pos + 1)  # ':'
            _, end = self._decoder.raw_decode(text, pos)
            members.append((key, pos, end))
            pos = self._skip_ws(text, end)
            if text[pos] == "}":
                return members
            pos = self._skip_ws(text, pos + 1)  # ','

    def _locate(self, text: str, keys: List[str]) -> Optional[Tuple[int, int]]:
        """Span of the value at ``keys``; None when a member on the way is missing."""
        start = self._skip_ws(text, 0)
        for i, key in enumerate(keys):
            # later duplicates win, as with json.loads
            found = [m for m in self._members(text, start) if m[0] == key]
            if not found:
                return None
            _, value_start, value_end = found[-1]
            if i == len(keys) - 1:
                return value_start, value_end
            if text[value_start] != "{":
                raise WriteFailed(f"cannot set {'.'.join(keys)}: {'.'.join(keys[:i + 1])} is not an object")
            start = value_start
        return None

    def set_field(self, text: str, field_path: str, value: str) -> str:
        keys = split_field_path(field_path)
        try:
            doc = json.loads(text)
        except json.JSONDecodeError as e:
            raise WriteFailed(f"config is not valid JSON: {e}") from e
        if not isinstance(doc, dict):
            raise WriteFailed("config top level is not a JSON object")

        span = self._locate(text, keys)
        if span is not None:
            start, end = span
            return text[:start] + json.dumps(value, ensure_ascii=False) + text[end:]

        node = doc
        for i, key in enumerate(keys[:-1]):
            node = node.setdefault(key, {})
            if not isinstance(node, dict):
                raise WriteFailed(f"cannot set {field_path}: {'.'.join(keys[:i + 1])} is not an object")
        node[keys[-1]] = value
        try:
            out = json.dumps(doc, indent=self._detect_indent(text), ensure_ascii=False, allow_nan=False)
        except ValueError as e:
            # e.g. 1e400 parses to inf, which has no JSON spelling
            raise WriteFailed(f"cannot re-serialize config: {e}") from e
        return out + "\n"


class TextSubstitutionEditor(JsonFieldEditor):
    """
    Lexical fallback: rewrites the first ``"<key>": "<value>"`` pair where <key>
    is the last segment of the field path.

    It does not parse JSON. A key of the same name in another object that
    appears earlier in the file is the one that gets rewritten, and the result
    is not validated.
    """

    name = "text"

    def set_field(self, text: str, field_path: str, value: str) -> str:
        key = split_field_path(field_path)[-1]
        replacement = '"%s": %s' % (key, json.dumps(value, ensure_ascii=False))
        new_text, count = string_field_pattern(key).subn(lambda _m: replacement, text, count=1)
        if count == 0:
            raise WriteFailed(f'no "{key}" string field found to substitute')
        return new_text


def select_editor(preference: str = "auto", which: Optional[Callable[[str], Optional[str]]] = None) -> JsonFieldEditor:
    """
    Pick the editor once at startup.

    'auto' prefers jq when it is on PATH and otherwise uses the json module.
    The text editor is only used when asked for by name.
    """
    which = which or shutil.which
    if preference not in EDITOR_CHOICES:
        raise SettingsError(f"unknown editor {preference!r}; expected one of {', '.join(EDITOR_CHOICES)}")

    if preference in ("auto", "jq"):
        jq = which("jq")
        if jq:
            _logger.debug("jq found at %s", jq)
            return JqFieldEditor(jq)
        if preference == "jq":
            raise EditorUnavailable("jq was requested but is not on PATH")
        _logger.info("jq not found, editing with the json module")
        return JsonModuleEditor()

    if preference == "json":
        return JsonModuleEditor()
    return TextSubstitutionEditor()
