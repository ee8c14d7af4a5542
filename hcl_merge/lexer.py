"""
Tokenizer for the HCL native syntax.

Only the structure of a document matters to the merge, so expressions are
not interpreted: the lexer produces just enough tokens for the parser to find
where an expression starts and ends. Template strings and heredocs are
consumed whole, comments and horizontal whitespace are dropped.
"""

import bisect
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from .errors import ParseError


class TokenType(Enum):
    """Lexical token categories"""
    IDENT = "identifier"
    NUMBER = "number"
    STRING = "string"
    HEREDOC = "heredoc"
    OPEN_BRACE = "{"
    CLOSE_BRACE = "}"
    OPEN_BRACKET = "["
    CLOSE_BRACKET = "]"
    OPEN_PAREN = "("
    CLOSE_PAREN = ")"
    EQUAL = "="
    OPERATOR = "operator"
    NEWLINE = "newline"
    EOF = "end of file"


OPENING = {TokenType.OPEN_BRACE, TokenType.OPEN_BRACKET, TokenType.OPEN_PAREN}
CLOSING = {TokenType.CLOSE_BRACE, TokenType.CLOSE_BRACKET, TokenType.CLOSE_PAREN}

PAIRS = {
    TokenType.OPEN_BRACE: TokenType.CLOSE_BRACE,
    TokenType.OPEN_BRACKET: TokenType.CLOSE_BRACKET,
    TokenType.OPEN_PAREN: TokenType.CLOSE_PAREN,
}


@dataclass
class Token:
    """Lexical token with its source span"""
    type: TokenType
    text: str
    start: int  # offset of first character
    end: int  # offset past last character
    line: int
    column: int

    def describe(self) -> str:
        """Human readable token description for diagnostics"""
        if self.type in (TokenType.NEWLINE, TokenType.EOF):
            return self.type.value
        return f"'{self.text}'"


IDENT_RE = re.compile(r"[^\W\d][\w-]*")
NUMBER_RE = re.compile(r"[0-9]+(\.[0-9]+)?([eE][+-]?[0-9]+)?")
HEREDOC_RE = re.compile(r"<<(-?)([^\W\d][\w-]*)[ \t]*\r?\n")

BRACKETS = {
    "{": TokenType.OPEN_BRACE,
    "}": TokenType.CLOSE_BRACE,
    "[": TokenType.OPEN_BRACKET,
    "]": TokenType.CLOSE_BRACKET,
    "(": TokenType.OPEN_PAREN,
    ")": TokenType.CLOSE_PAREN,
}

# Longest operators first
OPERATORS = ("...", "==", "!=", "<=", ">=", "&&", "||", "=>",
             "+", "-", "*", "/", "%", "!", "<", ">", "?", ":", ",", ".")


class Lexer:
    """Split HCL source text into tokens"""

    def __init__(self, text: str, source_name: str = "<input>"):
        self.text = text
        self.source_name = source_name
        self._line_starts = [0] + [m.end() for m in re.finditer(r"\n", text)]

    def position(self, offset: int) -> Tuple[int, int]:
        """1-based (line, column) of a source offset"""
        index = bisect.bisect_right(self._line_starts, offset) - 1
        return index + 1, offset - self._line_starts[index] + 1

    def error(self, offset: int, summary: str, detail: str = "") -> ParseError:
        line, column = self.position(offset)
        return ParseError(summary, detail, line=line, column=column,
                          source_name=self.source_name)

    def tokenize(self) -> List[Token]:
        """Tokenize the whole source, always ending with an EOF token"""
        tokens: List[Token] = []
        text = self.text
        pos = 0
        length = len(text)

        # Byte order mark
        if text.startswith("\ufeff"):
            pos = 1

        while pos < length:
            ch = text[pos]

            if ch in " \t\r":
                pos += 1
                continue

            if ch == "\n":
                tokens.append(self._token(TokenType.NEWLINE, pos, pos + 1))
                pos += 1
                continue

            # Comments
            if ch == "#" or text.startswith("//", pos):
                end = text.find("\n", pos)
                pos = length if end == -1 else end
                continue
            if text.startswith("/*", pos):
                end = text.find("*/", pos + 2)
                if end == -1:
                    raise self.error(pos, "Unterminated comment",
                                     "There is no closing marker for this multi-line comment.")
                pos = end + 2
                continue

            if ch in BRACKETS:
                tokens.append(self._token(BRACKETS[ch], pos, pos + 1))
                pos += 1
                continue

            if ch == '"':
                end = self._scan_template(pos)
                tokens.append(self._token(TokenType.STRING, pos, end))
                pos = end
                continue

            match = HEREDOC_RE.match(text, pos)
            if match:
                end = self._scan_heredoc(pos, match)
                tokens.append(self._token(TokenType.HEREDOC, pos, end))
                pos = end
                continue

            match = IDENT_RE.match(text, pos)
            if match:
                tokens.append(self._token(TokenType.IDENT, pos, match.end()))
                pos = match.end()
                continue

            match = NUMBER_RE.match(text, pos)
            if match:
                tokens.append(self._token(TokenType.NUMBER, pos, match.end()))
                pos = match.end()
                continue

            if ch == "=" and not text.startswith("==", pos) and not text.startswith("=>", pos):
                tokens.append(self._token(TokenType.EQUAL, pos, pos + 1))
                pos += 1
                continue

            for op in OPERATORS:
                if text.startswith(op, pos):
                    tokens.append(self._token(TokenType.OPERATOR, pos, pos + len(op)))
                    pos += len(op)
                    break
            else:
                raise self.error(pos, "Invalid character",
                                 f"This character is not used within the language: {ch!r}")

        tokens.append(self._token(TokenType.EOF, length, length))
        return tokens

    def _token(self, token_type: TokenType, start: int, end: int) -> Token:
        line, column = self.position(start)
        return Token(token_type, self.text[start:end], start, end, line, column)

    def _scan_template(self, pos: int) -> int:
        """Scan a quoted template starting at its opening quote, return end offset"""
        text = self.text
        i = pos + 1
        while i < len(text):
            ch = text[i]
            if ch == "\n":
                break
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                return i + 1
            if text.startswith("$${", i) or text.startswith("%%{", i):
                i += 3
                continue
            if text.startswith("${", i) or text.startswith("%{", i):
                i = self._scan_interpolation(i)
                continue
            i += 1
        raise self.error(pos, "Unterminated template string",
                         "No closing marker was found for the string.")

    def _scan_interpolation(self, pos: int) -> int:
        """Scan a ${...} or %{...} sequence, return offset past its closing brace"""
        text = self.text
        depth = 1
        i = pos + 2
        while i < len(text):
            ch = text[i]
            if ch == '"':
                i = self._scan_template(i)
                continue
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return i + 1
            i += 1
        raise self.error(pos, "Unterminated template sequence",
                         "There is no closing brace for this interpolation.")

    def _scan_heredoc(self, pos: int, match: "re.Match") -> int:
        """Scan a heredoc through its closing marker line, return end offset"""
        text = self.text
        marker = match.group(2)
        i = match.end()
        while i < len(text):
            end = text.find("\n", i)
            line_end = len(text) if end == -1 else end
            if text[i:line_end].strip() == marker:
                # Closing marker may be indented; trailing \r belongs to the newline
                return line_end - 1 if text[i:line_end].endswith("\r") else line_end
            if end == -1:
                break
            i = end + 1
        raise self.error(pos, "Unterminated template string",
                         f"Heredoc is missing its closing marker {marker!r}.")
