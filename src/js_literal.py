# src/js_literal.py
"""
Parser for the JavaScript data literal embedded in the upstream bundle.

The snippet looks like ``m={sections:[...],intents:[...]}``. It is never
executed: this module only understands a small data grammar (objects, arrays,
strings, numbers, true/false/null plus the minifier forms ``!0``/``!1`` and
``void 0``) and rejects everything else with a ParseError.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List

from palette_errors import ParseError

_IDENT_RE = re.compile(r"[A-Za-z_$][\w$]*")
_NUMBER_RE = re.compile(
    r"[+-]?(?:0[xX][0-9a-fA-F]+|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
)
_HEX4_RE = re.compile(r"[0-9a-fA-F]{4}")
_HEX2_RE = re.compile(r"[0-9a-fA-F]{2}")

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
}
_LINE_TERMINATORS = "\n\r\u2028\u2029"

_KEYWORDS = {"true": True, "false": False, "null": None}


class _LiteralParser:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    # -------------
    # Low-level scan
    # -------------

    def error(self, message: str) -> ParseError:
        return ParseError(message, self.pos)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip_ws(self) -> None:
        text, n = self.text, len(self.text)
        while self.pos < n:
            ch = text[self.pos]
            if ch.isspace() or ch == "\ufeff":
                self.pos += 1
            elif text.startswith("//", self.pos):
                end = text.find("\n", self.pos)
                self.pos = n if end < 0 else end + 1
            elif text.startswith("/*", self.pos):
                end = text.find("*/", self.pos + 2)
                if end < 0:
                    raise self.error("unterminated comment")
                self.pos = end + 2
            else:
                break

    def expect(self, ch: str) -> None:
        self.skip_ws()
        if self.peek() != ch:
            found = self.peek() or "end of input"
            raise self.error(f"expected {ch!r}, found {found!r}")
        self.pos += 1

    # -------------
    # Grammar rules
    # -------------

    def parse_snippet(self) -> Any:
        self.skip_ws()
        m = _IDENT_RE.match(self.text, self.pos)
        if m and m.group(0) not in _KEYWORDS:
            after = m.end()
            rest = self.text[after:].lstrip()
            if rest.startswith("=") and not rest.startswith("=="):
                self.pos = after
                self.expect("=")
        value = self.parse_value()
        self.skip_ws()
        if self.peek() == ";":
            self.pos += 1
            self.skip_ws()
        if self.pos != len(self.text):
            raise self.error("unexpected trailing input")
        return value

    def parse_value(self) -> Any:
        self.skip_ws()
        ch = self.peek()
        if ch == "{":
            return self.parse_object()
        if ch == "[":
            return self.parse_array()
        if ch in ("'", '"'):
            return self.parse_string()
        if ch == "!":
            return self.parse_negated_number()
        if ch.isdigit() or ch in "+-.":
            return self.parse_number()
        m = _IDENT_RE.match(self.text, self.pos)
        if m:
            word = m.group(0)
            if word in _KEYWORDS:
                self.pos = m.end()
                return _KEYWORDS[word]
            if word == "void":
                self.pos = m.end()
                self.skip_ws()
                self.parse_number()
                return None
            raise self.error(f"unsupported identifier {word!r}")
        if not ch:
            raise self.error("unexpected end of input")
        raise self.error(f"unexpected character {ch!r}")

    def parse_object(self) -> Dict[str, Any]:
        self.expect("{")
        out: Dict[str, Any] = {}
        self.skip_ws()
        if self.peek() == "}":
            self.pos += 1
            return out
        while True:
            key = self.parse_key()
            self.expect(":")
            out[key] = self.parse_value()
            self.skip_ws()
            ch = self.peek()
            if ch == ",":
                self.pos += 1
                self.skip_ws()
                if self.peek() == "}":
                    self.pos += 1
                    return out
                continue
            if ch == "}":
                self.pos += 1
                return out
            raise self.error("expected ',' or '}' in object")

    def parse_key(self) -> str:
        self.skip_ws()
        ch = self.peek()
        if ch in ("'", '"'):
            return self.parse_string()
        if ch.isdigit() or ch == ".":
            num = self.parse_number()
            return str(num)
        m = _IDENT_RE.match(self.text, self.pos)
        if not m:
            raise self.error("expected object key")
        self.pos = m.end()
        return m.group(0)

    def parse_array(self) -> List[Any]:
        self.expect("[")
        out: List[Any] = []
        self.skip_ws()
        if self.peek() == "]":
            self.pos += 1
            return out
        while True:
            out.append(self.parse_value())
            self.skip_ws()
            ch = self.peek()
            if ch == ",":
                self.pos += 1
                self.skip_ws()
                if self.peek() == "]":
                    self.pos += 1
                    return out
                continue
            if ch == "]":
                self.pos += 1
                return out
            raise self.error("expected ',' or ']' in array")

    def parse_number(self):
        m = _NUMBER_RE.match(self.text, self.pos)
        if not m:
            raise self.error("malformed number")
        self.pos = m.end()
        raw = m.group(0)
        sign = -1 if raw.startswith("-") else 1
        body = raw.lstrip("+-")
        if body[:2].lower() == "0x":
            return sign * int(body, 16)
        if body.isdigit():
            return sign * int(body)
        value = float(body) * sign
        # JS has a single number type; integral values serialise without ".0".
        if value.is_integer():
            return int(value)
        return value

    def parse_negated_number(self) -> bool:
        self.pos += 1
        self.skip_ws()
        m = _NUMBER_RE.match(self.text, self.pos)
        if not m or m.group(0)[0] in "+-":
            raise self.error("only !<number> is supported after '!'")
        return not self.parse_number()

    def parse_string(self) -> str:
        quote = self.text[self.pos]
        self.pos += 1
        text, n = self.text, len(self.text)
        chunks: List[str] = []
        start = self.pos
        while True:
            if self.pos >= n:
                raise self.error("unterminated string")
            ch = text[self.pos]
            if ch == quote:
                chunks.append(text[start:self.pos])
                self.pos += 1
                break
            if ch in "\n\r":
                raise self.error("newline in string literal")
            if ch == "\\":
                chunks.append(text[start:self.pos])
                self.pos += 1
                chunks.append(self.parse_escape())
                start = self.pos
                continue
            self.pos += 1
        out = "".join(chunks)
        if any("\ud800" <= c <= "\udfff" for c in out):
            # Join UTF-16 surrogate pairs into real code points.
            out = out.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "surrogatepass")
        return out

    def parse_escape(self) -> str:
        if self.pos >= len(self.text):
            raise self.error("unterminated escape sequence")
        ch = self.text[self.pos]
        self.pos += 1
        if ch in _SIMPLE_ESCAPES:
            return _SIMPLE_ESCAPES[ch]
        if ch == "0" and not self.peek().isdigit():
            return "\0"
        if ch == "x":
            m = _HEX2_RE.match(self.text, self.pos)
            if not m:
                raise self.error("malformed \\x escape")
            self.pos = m.end()
            return chr(int(m.group(0), 16))
        if ch == "u":
            if self.peek() == "{":
                end = self.text.find("}", self.pos)
                digits = self.text[self.pos + 1:end] if end > 0 else ""
                if not digits or not re.fullmatch(r"[0-9a-fA-F]+", digits) or int(digits, 16) > 0x10FFFF:
                    raise self.error("malformed \\u{} escape")
                self.pos = end + 1
                return chr(int(digits, 16))
            m = _HEX4_RE.match(self.text, self.pos)
            if not m:
                raise self.error("malformed \\u escape")
            self.pos = m.end()
            return chr(int(m.group(0), 16))
        if ch in _LINE_TERMINATORS:
            # line continuation
            if ch == "\r" and self.peek() == "\n":
                self.pos += 1
            return ""
        return ch


def evaluate_literal(snippet: str) -> Any:
    """
    Parse an extracted snippet (optionally ``name=`` prefixed) into Python values.
    Objects become dicts, arrays lists, numbers int/float.
    """
    parser = _LiteralParser(snippet)
    try:
        return parser.parse_snippet()
    except RecursionError as exc:
        raise ParseError("literal nested too deeply", parser.pos) from exc
