"""Flat INI codec for the settings tree.

The persisted dialect has no nesting: top-level ``key=value`` pairs come
first, then ``[section]`` blocks whose pairs become a group mapping.
Booleans and numbers are written in a canonical form and read back with
their type. Strings that would read back as something else (or that the
line grammar cannot carry bare) are written as JSON string literals.

Structured values living inside a single field (the engine list, for
example) are opaque strings here; their owner decodes them.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Iterator, Mapping
from typing import Any, Final

from chessconf.errors import ConfigParseError, ConfigSerializeError

_INT_PATTERN: Final[re.Pattern[str]] = re.compile(r"-?\d+")
_FLOAT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"-?\d+\.\d+(?:[eE][-+]?\d+)?|-?\d+[eE][-+]?\d+"
)
_COMMENT_CHARS: Final[str] = ";#"
_VALUE_UNSAFE: Final[tuple[str, ...]] = (";", "#", "\n", "\r")
_KEY_UNSAFE: Final[tuple[str, ...]] = ("=", ";", "#", "\n", "\r")
_SECTION_UNSAFE: Final[tuple[str, ...]] = ("[", "]", ";", "#", "\n", "\r")

_JSON_DECODER: Final[json.JSONDecoder] = json.JSONDecoder()


def serialize(tree: Mapping[str, object]) -> str:
    """Encode ``tree`` as INI text.

    Top-level scalars are written before any section so they cannot be
    mistaken for members of the last group. ``None`` values are skipped.
    """

    header: list[str] = []
    sections: list[str] = []
    for key, value in tree.items():
        if value is None:
            continue
        if isinstance(value, Mapping):
            sections.append(_render_section(key, value))
        else:
            header.append(_render_pair(key, value, path=key))

    blocks: list[str] = []
    if header:
        blocks.append("\n".join(header))
    blocks.extend(sections)
    if not blocks:
        return ""
    return "\n\n".join(blocks) + "\n"


def parse(text: str) -> dict[str, Any]:
    """Decode INI ``text`` into a tree.

    Raises ``ConfigParseError`` on the first malformed line; no partial
    tree is returned.
    """

    tree: dict[str, Any] = {}
    current: dict[str, Any] = tree
    for line_number, raw_line in _numbered_lines(text):
        line = raw_line.strip()
        if not line or line[0] in _COMMENT_CHARS:
            continue
        if line[0] == "[":
            name = _parse_section_header(line, line_number)
            existing = tree.get(name)
            if not isinstance(existing, dict):
                existing = {}
                tree[name] = existing
            current = existing
            continue
        key, value = _parse_pair(line, line_number)
        current[key] = value
    return tree


def decode_scalar(text: str) -> str | int | float | bool:
    """Decode a bare (unquoted) value to its canonical type."""

    if text == "true":
        return True
    if text == "false":
        return False
    if _INT_PATTERN.fullmatch(text):
        return int(text)
    if _FLOAT_PATTERN.fullmatch(text):
        return float(text)
    return text


def encode_scalar(value: object, *, path: str = "<value>") -> str:
    """Encode one scalar to its canonical text form."""

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ConfigSerializeError(f"{path}: non-finite float {value!r} has no text form")
        return repr(value)
    if isinstance(value, str):
        if _needs_value_quotes(value):
            return _quote(value)
        return value
    raise ConfigSerializeError(f"{path}: unsupported value type {type(value).__name__}")


def _render_section(name: str, fields: Mapping[str, object]) -> str:
    if not isinstance(name, str):
        raise ConfigSerializeError(f"section names must be strings, got {type(name).__name__}")
    lines = [f"[{_quote(name) if _needs_quotes(name, _SECTION_UNSAFE) else name}]"]
    for key, value in fields.items():
        if value is None:
            continue
        if isinstance(value, (Mapping, list, tuple)):
            raise ConfigSerializeError(
                f"{name}.{key}: nested {type(value).__name__} cannot be stored in a flat section"
            )
        lines.append(_render_pair(key, value, path=f"{name}.{key}"))
    return "\n".join(lines)


def _render_pair(key: str, value: object, *, path: str) -> str:
    if not isinstance(key, str):
        raise ConfigSerializeError(f"{path}: keys must be strings, got {type(key).__name__}")
    rendered_key = _quote(key) if _needs_quotes(key, _KEY_UNSAFE) or key.startswith("[") else key
    return f"{rendered_key}={encode_scalar(value, path=path)}"


def _needs_value_quotes(value: str) -> bool:
    if _needs_quotes(value, _VALUE_UNSAFE, allow_empty=True):
        return True
    # A bare string must not read back as a bool or number.
    return not isinstance(decode_scalar(value), str)


def _needs_quotes(text: str, unsafe: tuple[str, ...], *, allow_empty: bool = False) -> bool:
    if not text:
        return not allow_empty
    if text != text.strip() or text.startswith('"'):
        return True
    return any(token in text for token in unsafe)


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _numbered_lines(text: str) -> Iterator[tuple[int, str]]:
    # ``str.splitlines`` also breaks on characters JSON leaves unescaped.
    for index, line in enumerate(text.split("\n"), start=1):
        yield index, line


def _parse_section_header(line: str, line_number: int) -> str:
    body = line[1:].lstrip()
    if body.startswith('"'):
        name, rest = _read_quoted(body, line, line_number)
        rest = rest.lstrip()
        if not rest.startswith("]"):
            raise ConfigParseError("expected ']' after section name", line_number=line_number, line=line)
        rest = rest[1:]
    else:
        end = body.find("]")
        if end < 0:
            raise ConfigParseError("unterminated section header", line_number=line_number, line=line)
        name = body[:end].strip()
        rest = body[end + 1 :]
        if not name:
            raise ConfigParseError("empty section name", line_number=line_number, line=line)
    _expect_trailing_comment(rest, line, line_number)
    return name


def _parse_pair(line: str, line_number: int) -> tuple[str, str | int | float | bool]:
    if line.startswith('"'):
        key, rest = _read_quoted(line, line, line_number)
        rest = rest.lstrip()
        if not rest.startswith("="):
            raise ConfigParseError("expected '=' after quoted key", line_number=line_number, line=line)
        raw_value = rest[1:]
    else:
        if "=" not in line:
            raise ConfigParseError("expected key=value", line_number=line_number, line=line)
        key, raw_value = line.split("=", 1)
        key = key.strip()
        if not key:
            raise ConfigParseError("empty key", line_number=line_number, line=line)

    raw_value = raw_value.strip()
    if raw_value.startswith('"'):
        value, rest = _read_quoted(raw_value, line, line_number)
        _expect_trailing_comment(rest, line, line_number)
        return key, value
    return key, decode_scalar(_strip_inline_comment(raw_value))


def _read_quoted(text: str, line: str, line_number: int) -> tuple[str, str]:
    try:
        value, end = _JSON_DECODER.raw_decode(text)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(
            f"malformed quoted string ({exc.msg})", line_number=line_number, line=line
        ) from exc
    return value, text[end:]


def _strip_inline_comment(value: str) -> str:
    cut = len(value)
    for marker in _COMMENT_CHARS:
        index = value.find(marker)
        if 0 <= index < cut:
            cut = index
    return value[:cut].strip()


def _expect_trailing_comment(rest: str, line: str, line_number: int) -> None:
    rest = rest.strip()
    if rest and rest[0] not in _COMMENT_CHARS:
        raise ConfigParseError("unexpected trailing text", line_number=line_number, line=line)


__all__ = ["decode_scalar", "encode_scalar", "parse", "serialize"]
