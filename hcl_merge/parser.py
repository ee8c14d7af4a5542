"""
Parser for structured-config (HCL) documents.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from .errors import ParseError
from .lexer import CLOSING, OPENING, PAIRS, Lexer, Token, TokenType
from .models import Block, Document


logger = logging.getLogger(__name__)


class DocumentParser:
    """Parser for HCL documents into Block/attribute trees"""

    @staticmethod
    def from_file(filepath: Union[str, Path]) -> Document:
        """Load document from an HCL file"""
        filepath = Path(filepath)

        with open(filepath, 'r', encoding='utf-8') as f:
            text = f.read()

        return DocumentParser.parse(text, source_name=str(filepath))

    @staticmethod
    def parse(text: str, source_name: str = "<input>") -> Document:
        """
        Parse HCL source text.

        Attribute values are kept as the verbatim source text of their
        expression; expressions are never evaluated.

        Raises:
            ParseError: If the text is not a valid document
                (including nesting too deep to parse)
        """
        parser = _BodyParser(text, source_name)
        try:
            document = parser.parse_document()
        except RecursionError:
            raise parser.error(parser.peek(), "Nesting too deep",
                               "Blocks or brackets are nested deeper than the parser can follow.") from None
        logger.debug(f"Parsed {source_name}: {len(document.blocks)} top-level blocks, "
                     f"{len(document.attributes)} root attributes")
        return document


class _BodyParser:
    """Recursive descent over the token stream of one document"""

    def __init__(self, text: str, source_name: str):
        self.text = text
        self.source_name = source_name
        self.tokens = Lexer(text, source_name).tokenize()
        self.pos = 0

    def peek(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def error(self, token: Token, summary: str, detail: str = "") -> ParseError:
        return ParseError(summary, detail, line=token.line, column=token.column,
                          source_name=self.source_name)

    def parse_document(self) -> Document:
        document = Document()
        self._parse_body(document.attributes, document.blocks, opener=None)
        return document

    def _parse_body(self,
                    attributes: Dict[str, str],
                    blocks: List[Block],
                    opener: Optional[Token]):
        """Parse attributes and blocks up to the closing brace of opener (or EOF)"""
        # Still on the line of the opening brace: at most one argument, then "}"
        single_line = opener is not None
        while True:
            token = self.peek()

            if token.type == TokenType.NEWLINE:
                single_line = False
                self.advance()
                continue

            if token.type == TokenType.EOF:
                if opener is not None:
                    raise self.error(opener, "Unclosed configuration block",
                                     "There is no closing brace for this block before the end of the file.")
                return

            if token.type == TokenType.CLOSE_BRACE:
                if opener is None:
                    raise self.error(token, "Argument or block definition required",
                                     "An argument or block definition is required here, found '}'.")
                self.advance()
                return

            if token.type != TokenType.IDENT:
                raise self.error(token, "Argument or block definition required",
                                 f"An argument or block definition is required here, "
                                 f"found {token.describe()}.")

            name = self.advance()
            if self.peek().type == TokenType.EQUAL:
                self.advance()
                if name.text in attributes:
                    raise self.error(name, "Attribute redefined",
                                     f"The argument {name.text!r} was already set. "
                                     f"Each argument may be set only once.")
                attributes[name.text] = self._parse_expression(name)
                if single_line and self.peek().type != TokenType.CLOSE_BRACE:
                    raise self._single_line_error(self.peek())
            elif single_line:
                raise self.error(name, "Invalid single-argument block definition",
                                 "A single-line block definition can contain only a single argument. "
                                 "To define a nested block, place it on a line of its own within "
                                 "its parent block.")
            else:
                blocks.append(self._parse_block(name))

    def _single_line_error(self, token: Token) -> ParseError:
        return self.error(token, "Invalid single-argument block definition",
                          "A single-line block definition must end with a closing brace "
                          "immediately after its single argument definition.")

    def _parse_block(self, name: Token) -> Block:
        labels = []
        while True:
            token = self.peek()
            if token.type == TokenType.STRING:
                labels.append(self._label_value(token))
                self.advance()
            elif token.type == TokenType.IDENT:
                labels.append(token.text)
                self.advance()
            elif token.type == TokenType.OPEN_BRACE:
                opener = self.advance()
                break
            else:
                raise self.error(token, "Invalid block definition",
                                 f"Either a quoted string block label or an opening brace "
                                 f"(\"{{\") is expected here, found {token.describe()}.")

        block = Block(type=name.text, labels=labels)
        self._parse_body(block.attributes, block.children, opener)

        token = self.peek()
        if token.type not in (TokenType.NEWLINE, TokenType.EOF, TokenType.CLOSE_BRACE):
            raise self.error(token, "Missing newline after block definition",
                             "A block definition must end with a newline.")
        return block

    def _label_value(self, token: Token) -> str:
        """Content of a quoted label, which must be a plain literal"""
        content = token.text[1:-1]
        stripped = content.replace("$${", "").replace("%%{", "")
        if "${" in stripped or "%{" in stripped:
            raise self.error(token, "Invalid string literal",
                             "Template sequences are not allowed in this string. "
                             "To include a literal \"$\", double it (as \"$$\") to escape it.")
        return content

    def _parse_expression(self, name: Token) -> str:
        """Consume one expression, return its verbatim source text"""
        first = self.peek()
        if first.type in (TokenType.NEWLINE, TokenType.EOF, TokenType.CLOSE_BRACE):
            raise self.error(first, "Missing expression",
                             f"Expected the start of an expression for argument {name.text!r}, "
                             f"but found {first.describe()}.")

        stack: List[Token] = []
        last = first
        while True:
            token = self.peek()

            if not stack and token.type in (TokenType.NEWLINE, TokenType.EOF, TokenType.CLOSE_BRACE):
                break

            if token.type == TokenType.EOF:
                opener = stack[-1]
                raise self.error(opener, "Unbalanced brackets",
                                 f"There is no closing '{PAIRS[opener.type].value}' "
                                 f"for this '{opener.text}'.")

            if token.type in OPENING:
                stack.append(token)
            elif token.type in CLOSING:
                if not stack or PAIRS[stack[-1].type] != token.type:
                    raise self.error(token, "Unbalanced brackets",
                                     f"Unexpected {token.describe()} in expression.")
                stack.pop()
            elif token.type == TokenType.EQUAL and not stack:
                raise self.error(token, "Invalid expression",
                                 "Unexpected '=' after expression; each argument must be "
                                 "on its own line.")

            last = self.advance()

        return self.text[first.start:last.end]
