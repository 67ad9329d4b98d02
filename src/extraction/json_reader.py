"""Tolerant JSON reader for truncated or sloppy model output.

read_partial_json() walks a JSON-ish object with a small recursive-descent
reader instead of patching the text with regular expressions. It accepts the
mistakes generative models usually make:

- unquoted identifier keys (`title: "Soup"`)
- single-quoted strings
- trailing commas before `}` / `]`
- Python-style literals (True, False, None)
- text cut off at any point

When input ends early the reader closes every open container, drops the
dangling key or the truncated scalar it was reading, and reports the damage in
PartialJSON.notes instead of raising. Callers decide what to do with an
incomplete value by looking at `complete` and `found_keys`.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Optional

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")
_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_LITERALS = {
    "true": True,
    "false": False,
    "null": None,
    "True": True,
    "False": False,
    "None": None,
}


class JSONReadError(ValueError):
    """Raised when the text contains no object to read at all."""


class _Truncated(Exception):
    """Internal signal: input ended in the middle of a value."""


@dataclass
class PartialJSON:
    """Result of a tolerant read.

    Attributes:
        value: The object read so far (always a dict).
        complete: True if the top-level object was closed by its own `}`.
        found_keys: Top-level keys present in `value`.
        notes: Human-readable repair diagnostics, in the order they happened.
    """

    value: dict
    complete: bool
    found_keys: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    def has(self, key: str) -> bool:
        return key in self.value


class _Reader:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self.notes: list[str] = []

    def _skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in " \t\r\n":
            self.pos += 1

    def _peek(self) -> Optional[str]:
        self._skip_ws()
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def read_value(self) -> Any:
        ch = self._peek()
        if ch is None:
            raise _Truncated()
        if ch == "{":
            return self.read_object()
        if ch == "[":
            return self.read_array()
        if ch in "\"'":
            return self.read_string()
        if ch == "-" or ch.isdigit():
            return self.read_number()
        return self.read_literal()

    def read_object(self) -> dict:
        self.pos += 1  # consume "{"
        result: dict = {}
        while True:
            ch = self._peek()
            if ch is None:
                self.notes.append("closed unterminated object")
                raise _PartialContainer(result)
            if ch == "}":
                self.pos += 1
                return result
            if ch == ",":
                self.pos += 1
                continue

            key = self.read_key()
            if key is None:
                self.notes.append("dropped dangling key at end of input")
                raise _PartialContainer(result)

            if self._peek() != ":":
                if self._peek() is None:
                    self.notes.append(f"dropped key '{key}' with no value")
                    raise _PartialContainer(result)
                raise ValueError(f"expected ':' after key '{key}' at offset {self.pos}")
            self.pos += 1

            try:
                result[key] = self.read_value()
            except _Truncated:
                self.notes.append(f"dropped truncated value for '{key}'")
                raise _PartialContainer(result)
            except _PartialContainer as partial:
                result[key] = partial.value
                raise _PartialContainer(result)

    def read_key(self) -> Optional[str]:
        ch = self._peek()
        if ch in ("\"", "'"):
            try:
                return self.read_string()
            except _Truncated:
                return None
        match = _IDENTIFIER_RE.match(self.text, self.pos)
        if not match:
            raise ValueError(f"unexpected character {ch!r} at offset {self.pos}")
        self.pos = match.end()
        self.notes.append(f"accepted unquoted key '{match.group()}'")
        return match.group()

    def read_array(self) -> list:
        self.pos += 1  # consume "["
        result: list = []
        while True:
            ch = self._peek()
            if ch is None:
                self.notes.append("closed unterminated array")
                raise _PartialContainer(result)
            if ch == "]":
                self.pos += 1
                return result
            if ch == ",":
                self.pos += 1
                continue
            try:
                result.append(self.read_value())
            except _Truncated:
                self.notes.append("dropped truncated array item")
                raise _PartialContainer(result)
            except _PartialContainer as partial:
                result.append(partial.value)
                raise _PartialContainer(result)

    def read_string(self) -> str:
        quote = self.text[self.pos]
        start = self.pos
        self.pos += 1
        chars: list[str] = []
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if ch == "\\":
                if self.pos + 1 >= len(self.text):
                    break
                chars.append(self.text[self.pos:self.pos + 2])
                self.pos += 2
                continue
            if ch == quote:
                self.pos += 1
                return self._decode_string("".join(chars), quote)
            chars.append(ch)
            self.pos += 1
        self.pos = start
        raise _Truncated()

    @staticmethod
    def _decode_string(body: str, quote: str) -> str:
        if quote == "'":
            body = body.replace("\\'", "'").replace('"', '\\"')
        try:
            return json.loads(f'"{body}"')
        except json.JSONDecodeError:
            # raw control characters or invalid escapes; keep the text as written
            return body.replace('\\"', '"')

    def read_number(self) -> Any:
        match = _NUMBER_RE.match(self.text, self.pos)
        if not match:
            raise ValueError(f"invalid number at offset {self.pos}")
        if match.end() >= len(self.text):
            # a number running into end of input may have lost digits
            raise _Truncated()
        self.pos = match.end()
        token = match.group()
        return float(token) if any(c in token for c in ".eE") else int(token)

    def read_literal(self) -> Any:
        match = _IDENTIFIER_RE.match(self.text, self.pos)
        if not match:
            raise ValueError(f"unexpected character {self.text[self.pos]!r} at offset {self.pos}")
        word = match.group()
        if word not in _LITERALS:
            if match.end() >= len(self.text) and any(lit.startswith(word) for lit in _LITERALS):
                raise _Truncated()
            raise ValueError(f"unknown literal '{word}' at offset {self.pos}")
        self.pos = match.end()
        return _LITERALS[word]


class _PartialContainer(Exception):
    """Internal signal: a container was closed early; carries what was read."""

    def __init__(self, value: Any) -> None:
        super().__init__("partial container")
        self.value = value


def read_partial_json(text: str) -> PartialJSON:
    """Read the first JSON object in `text`, tolerating truncation and sloppy syntax.

    Args:
        text: Raw text. Anything before the first `{` is skipped.

    Returns:
        PartialJSON with the object read so far and repair diagnostics.

    Raises:
        JSONReadError: If there is no `{` in the text.
        ValueError: If the text is structurally invalid in a way that is not
            truncation (for example two values with no separator).
    """
    start = text.find("{")
    if start < 0:
        raise JSONReadError("no JSON object start found")

    reader = _Reader(text)
    reader.pos = start
    if start > 0:
        reader.notes.append(f"skipped {start} leading characters")

    try:
        value = reader.read_object()
        complete = True
    except _PartialContainer as partial:
        value = partial.value
        complete = False

    if complete:
        reader._skip_ws()
        if reader.pos < len(text):
            reader.notes.append(f"ignored {len(text) - reader.pos} trailing characters")

    return PartialJSON(value=value, complete=complete, found_keys=list(value.keys()), notes=reader.notes)
