from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .errors import LuaSyntaxError

KEYWORDS = {
    "and",
    "break",
    "do",
    "else",
    "elseif",
    "end",
    "false",
    "for",
    "function",
    "goto",
    "if",
    "in",
    "local",
    "nil",
    "not",
    "or",
    "repeat",
    "return",
    "then",
    "true",
    "until",
    "while",
}

# longest first so that "..." wins over ".." and "."
OPERATORS = (
    "...",
    "..",
    "==",
    "~=",
    "<=",
    ">=",
    "<<",
    ">>",
    "//",
    "::",
    "+",
    "-",
    "*",
    "/",
    "%",
    "^",
    "#",
    "&",
    "~",
    "|",
    "<",
    ">",
    "=",
    ".",
)

PUNCTUATION = "(){}[];,:"

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "\n": "\n",
}


@dataclass
class Token:
    kind: str
    value: str
    line: int
    column: int

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"Token({self.kind!r}, {self.value!r}, {self.line}:{self.column})"


class LuaLexer:
    def __init__(self, source: str, chunkname: str = "?"):
        self.source = source
        self.chunkname = chunkname
        self.length = len(source)
        self.pos = 0
        self.line = 1
        self.column = 1
        if source.startswith("#"):
            # shebang line
            while self._peek() not in {"\n", "\0"}:
                self._advance()

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        while True:
            token = self._next_token()
            if token is None:
                break
            tokens.append(token)
        tokens.append(Token("EOF", "<eof>", self.line, self.column))
        return tokens

    # ------------------------------- internals ---------------------------- #
    def _error(self, message: str, line: Optional[int] = None) -> LuaSyntaxError:
        return LuaSyntaxError(f"{self.chunkname}:{line or self.line}: {message}")

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx >= self.length:
            return "\0"
        return self.source[idx]

    def _advance(self, count: int = 1) -> str:
        ch = ""
        for _ in range(count):
            if self.pos >= self.length:
                return "\0"
            ch = self.source[self.pos]
            self.pos += 1
            if ch == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        return ch

    def _skip_whitespace_and_comments(self) -> None:
        while True:
            ch = self._peek()
            if ch in " \t\r\n\f\v":
                self._advance()
                continue
            if ch == "-" and self._peek(1) == "-":
                self._advance(2)
                level = self._long_bracket_level()
                if level is not None:
                    self._long_bracket(level, "comment")
                    continue
                while self._peek() not in {"\n", "\0"}:
                    self._advance()
                continue
            break

    def _next_token(self) -> Optional[Token]:
        self._skip_whitespace_and_comments()
        start_line, start_col = self.line, self.column
        ch = self._peek()
        if ch == "\0" and self.pos >= self.length:
            return None

        if ch.isdigit() or (ch == "." and self._peek(1).isdigit()):
            return self._number(start_line, start_col)
        if ch == '"' or ch == "'":
            return self._string(start_line, start_col)
        if ch == "[":
            level = self._long_bracket_level()
            if level is not None:
                value = self._long_bracket(level, "string")
                return Token("STRING", value, start_line, start_col)
        if ch.isalpha() or ch == "_":
            return self._identifier(start_line, start_col)

        for op in OPERATORS:
            if self.source.startswith(op, self.pos):
                self._advance(len(op))
                if op == "...":
                    return Token("VARARG", op, start_line, start_col)
                return Token("OP", op, start_line, start_col)
        if ch in PUNCTUATION:
            self._advance()
            return Token(ch, ch, start_line, start_col)

        raise self._error(f"unexpected symbol near '{ch}'")

    def _long_bracket_level(self) -> Optional[int]:
        if self._peek() != "[":
            return None
        level = 0
        while self._peek(level + 1) == "=":
            level += 1
        if self._peek(level + 1) != "[":
            return None
        return level

    def _long_bracket(self, level: int, what: str) -> str:
        start_line = self.line
        self._advance(level + 2)
        if self._peek() == "\r":
            self._advance()
        if self._peek() == "\n":
            self._advance()
        closing = "]" + "=" * level + "]"
        end = self.source.find(closing, self.pos)
        if end < 0:
            raise self._error(f"unfinished long {what}", start_line)
        value = self.source[self.pos:end]
        self._advance(end - self.pos + len(closing))
        return value

    def _number(self, line: int, col: int) -> Token:
        start = self.pos
        if self._peek() == "0" and self._peek(1) in "xX":
            self._advance(2)
            exponent_marks = "pP"
            digits = "0123456789abcdefABCDEF"
        else:
            exponent_marks = "eE"
            digits = "0123456789"
        while True:
            ch = self._peek()
            if ch in exponent_marks and ch != "\0":
                self._advance()
                if self._peek() in "+-":
                    self._advance()
            elif (ch in digits and ch != "\0") or ch == ".":
                self._advance()
            else:
                break
        if self._peek().isalpha() or self._peek() == "_":
            raise self._error(f"malformed number near '{self.source[start:self.pos + 1]}'")
        value = self.source[start:self.pos]
        return Token("NUMBER", value, line, col)

    def _string(self, line: int, col: int) -> Token:
        quote = self._advance()
        chars: List[str] = []
        while True:
            ch = self._peek()
            if ch == "\0" and self.pos >= self.length or ch == "\n":
                raise self._error("unfinished string", line)
            if ch == quote:
                break
            if ch == "\\":
                self._advance()
                chars.append(self._escape())
                continue
            chars.append(self._advance())
        self._advance()  # closing quote
        return Token("STRING", "".join(chars), line, col)

    def _escape(self) -> str:
        ch = self._peek()
        if ch in _ESCAPES:
            self._advance()
            return _ESCAPES[ch]
        if ch == "x":
            self._advance()
            digits = self.source[self.pos:self.pos + 2]
            try:
                code = int(digits, 16)
            except ValueError:
                raise self._error("hexadecimal digit expected") from None
            self._advance(2)
            return chr(code)
        if ch == "z":
            self._advance()
            while self._peek() in " \t\r\n\f\v" and self.pos < self.length:
                self._advance()
            return ""
        if ch == "u":
            self._advance()
            if self._peek() != "{":
                raise self._error("missing '{' in \\u{xxxx}")
            end = self.source.find("}", self.pos)
            if end < 0:
                raise self._error("missing '}' in \\u{xxxx}")
            try:
                code = int(self.source[self.pos + 1:end], 16)
            except ValueError:
                raise self._error("hexadecimal digit expected") from None
            self._advance(end - self.pos + 1)
            return chr(code)
        if ch.isdigit():
            digits = ""
            while len(digits) < 3 and self._peek().isdigit():
                digits += self._advance()
            code = int(digits)
            if code > 255:
                raise self._error("decimal escape too large")
            return chr(code)
        raise self._error("invalid escape sequence")

    def _identifier(self, line: int, col: int) -> Token:
        start = self.pos
        while True:
            ch = self._peek()
            if not (ch.isalnum() or ch == "_"):
                break
            self._advance()
        value = self.source[start:self.pos]
        kind = value if value in KEYWORDS else "IDENT"
        return Token(kind, value, line, col)


__all__ = ["LuaLexer", "Token", "KEYWORDS"]
