"""
CZar Lexer (Tokenizer)
======================

This module implements the lexer for CZar source files (.cz).
It converts source text into a flat stream of tokens that the
parser wraps into the translation-unit token vector.

Unlike a conventional C lexer, nothing is thrown away: whitespace,
comments and preprocessor lines are real tokens, so that concatenating
the text of every token reproduces the input exactly (binary literals
and digit separators excepted, see below).

Token Categories
----------------
- Whitespace: runs of space, tab, LF, CR, VT, FF
- Comments: // line and /* block */ (block comments do not nest)
- Preprocessor: '#' through the end of the logical line, newline included
- Identifiers: [A-Za-z_][A-Za-z0-9_]* (keywords are identifiers too)
- Numbers: decimal, hexadecimal (0x), binary (0b), fractions, exponents
- Strings: "double quoted"
- Characters: 'single quoted'
- Operators: + - * / % & | ^ ! < > = ~ ? : . and the compound forms
- Punctuation: ( ) { } [ ] ; ,

Number Formats
--------------
| Format      | Prefix | Example     | Token text |
|-------------|--------|-------------|------------|
| Decimal     | (none) | 1_000       | 1000       |
| Hexadecimal | 0x/0X  | 0xFF_FF     | 0xFFFF     |
| Binary      | 0b/0B  | 0b1010u     | 10u        |
| Fraction    | (none) | 2.5e-3f     | 2.5e-3f    |

Binary literals are rewritten to decimal at lex time, since C before
C23 has no binary literal syntax.

The lexer never fails. A character it cannot classify becomes a single
UNKNOWN token and an unterminated string or comment runs to the end of
the input.

Example Usage
-------------
>>> from czar.lexer import CzarLexer
>>> for token in CzarLexer('u8 x = 0b11;').tokenize():
...     print(token)
Token(IDENTIFIER, 'u8', 1:1)
Token(WHITESPACE, ' ', 1:3)
Token(IDENTIFIER, 'x', 1:4)
...
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional
import string


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """
    Token kinds produced by the lexer.

    KEYWORD is never produced by the lexer itself; passes decide from
    context whether an identifier acts as a keyword. It is available for
    tokens synthesised by feature passes.
    """

    EOF = auto()
    IDENTIFIER = auto()
    KEYWORD = auto()
    NUMBER = auto()
    STRING = auto()
    CHAR = auto()
    OPERATOR = auto()
    PUNCTUATION = auto()
    PREPROCESSOR = auto()
    WHITESPACE = auto()
    COMMENT = auto()
    UNKNOWN = auto()


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass
class Token:
    """
    A single lexical token.

    Tokens are mutable: feature passes rewrite the text in place. An
    empty text is the canonical "deleted" marker; the token keeps its
    slot in the vector but contributes nothing to the output.

    Attributes:
        type: The TokenType classification
        text: The token text as it will be emitted
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
    """
    type: TokenType
    text: str
    line: int = 0
    column: int = 0

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.text!r}, {self.line}:{self.column})"

    @property
    def length(self) -> int:
        return len(self.text)

    @property
    def is_deleted(self) -> bool:
        return self.text == "" and self.type is not TokenType.EOF

    def delete(self) -> None:
        """Empty the token text; it stays in the vector as a placeholder."""
        self.text = ""

    def is_trivia(self) -> bool:
        """True for whitespace, comments and deleted tokens."""
        return (
            self.type in (TokenType.WHITESPACE, TokenType.COMMENT)
            or self.text == ""
        )

    def is_identifier(self, text: Optional[str] = None) -> bool:
        if self.type not in (TokenType.IDENTIFIER, TokenType.KEYWORD):
            return False
        return text is None or self.text == text

    def is_punct(self, text: str) -> bool:
        return self.type is TokenType.PUNCTUATION and self.text == text

    def is_op(self, text: str) -> bool:
        return self.type is TokenType.OPERATOR and self.text == text


# =============================================================================
# Character Classes
# =============================================================================

# Characters that can start an identifier
IDENT_START = string.ascii_letters + "_"

# Characters that can continue an identifier
IDENT_CHARS = string.ascii_letters + string.digits + "_"

# isspace() in the C locale
WHITESPACE_CHARS = " \t\n\r\v\f"

# Operator opener characters; the first eight are punctuation
PUNCTUATION_CHARS = "(){}[];,"
OPERATOR_CHARS = "+-*/%&|^!<>=~?:." + PUNCTUATION_CHARS

# Agglomerated forms, matched greedily
TWO_CHAR_OPERATORS = frozenset({
    "++", "--", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=",
    "==", "!=", "<=", ">=", "&&", "||", "<<", ">>", "->",
})
THREE_CHAR_OPERATORS = frozenset({"<<=", ">>="})

# Integer and float suffix letters, kept up to this many characters
SUFFIX_CHARS = "fFlLuU"
MAX_SUFFIX_LENGTH = 9


# =============================================================================
# Lexer Implementation
# =============================================================================

class CzarLexer:
    """
    Tokenizes CZar source code.

    Usage:
        lexer = CzarLexer(source_text, filename)
        tokens = list(lexer.tokenize())

    The final token is always EOF.

    Attributes:
        source: The source code being tokenized
        filename: Name of the source file (for diagnostics)
    """

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename

        # Current position in source
        self._pos = 0
        self._line = 1
        self._column = 1

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens from the source code.

        Yields:
            Token objects for every lexical element, then EOF
        """
        while not self._at_end():
            yield self._scan_token()

        yield Token(TokenType.EOF, "", self._line, self._column)

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        """Look ahead without advancing; empty string past the end."""
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        """Consume one character, updating line and column."""
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1

        if char == "\n":
            self._line += 1
            self._column = 1
        else:
            self._column += 1

        return char

    def _match(self, expected: str) -> bool:
        if self._peek() == expected:
            self._advance()
            return True
        return False

    def _text_from(self, start: int) -> str:
        return self.source[start:self._pos]

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Token:
        start_line = self._line
        start_column = self._column
        start = self._pos

        char = self._peek()

        if char in WHITESPACE_CHARS:
            while self._peek() and self._peek() in WHITESPACE_CHARS:
                self._advance()
            token_type = TokenType.WHITESPACE

        elif char == "#":
            self._scan_preprocessor()
            token_type = TokenType.PREPROCESSOR

        elif char == "/" and self._peek(1) == "/":
            while self._peek() and self._peek() != "\n":
                self._advance()
            token_type = TokenType.COMMENT

        elif char == "/" and self._peek(1) == "*":
            self._scan_block_comment()
            token_type = TokenType.COMMENT

        elif char == '"' or char == "'":
            self._scan_quoted(char)
            token_type = TokenType.STRING if char == '"' else TokenType.CHAR

        elif char in IDENT_START:
            while self._peek() and self._peek() in IDENT_CHARS:
                self._advance()
            token_type = TokenType.IDENTIFIER

        elif char.isdigit() or (char == "." and self._peek(1).isdigit()):
            return self._scan_number(start_line, start_column)

        elif char in OPERATOR_CHARS:
            self._scan_operator()
            if char in PUNCTUATION_CHARS:
                token_type = TokenType.PUNCTUATION
            else:
                token_type = TokenType.OPERATOR

        else:
            self._advance()
            token_type = TokenType.UNKNOWN

        return Token(token_type, self._text_from(start), start_line, start_column)

    def _scan_preprocessor(self) -> None:
        """
        Consume a directive through its terminating newline.

        Backslash-newline continuations keep the directive going. The
        directive may start anywhere on a line, which is what allows a
        trailing '#defer { ... }' after a declaration. A #defer block
        still open at the newline runs on through the line holding its
        closing '}', so the whole block stays one token.
        """
        start = self._pos
        self._advance()  # consume #
        depth = 0
        quote = ""
        while not self._at_end():
            char = self._peek()
            if char == "\\" and self._peek(1) == "\n":
                self._advance()
            elif char == "\n":
                self._advance()
                if depth <= 0 or not self._is_defer(start):
                    break
                quote = ""
                continue
            elif quote:
                if char == "\\":
                    self._advance()
                elif char == quote:
                    quote = ""
            elif char in "\"'":
                quote = char
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
            self._advance()

    def _is_defer(self, start: int) -> bool:
        name = self.source[start + 1:self._pos].lstrip()
        if not name.startswith("defer"):
            return False
        return len(name) == 5 or name[5] not in IDENT_CHARS

    def _scan_block_comment(self) -> None:
        self._advance()  # consume /
        self._advance()  # consume *
        while not self._at_end():
            if self._peek() == "*" and self._peek(1) == "/":
                self._advance()
                self._advance()
                return
            self._advance()

    def _scan_quoted(self, quote: str) -> None:
        """Consume a string or char literal, passing escapes through."""
        self._advance()  # opening quote
        while self._peek() and self._peek() != quote:
            if self._peek() == "\\":
                self._advance()
                if self._peek():
                    self._advance()
            else:
                self._advance()
        self._match(quote)

    def _scan_operator(self) -> None:
        first = self._advance()
        pair = first + self._peek()
        if pair in TWO_CHAR_OPERATORS:
            self._advance()
            if pair + self._peek() in THREE_CHAR_OPERATORS:
                self._advance()

    # =========================================================================
    # Numbers
    # =========================================================================

    def _scan_number(self, start_line: int, start_column: int) -> Token:
        """
        Scan a numeric literal.

        Handles:
        - Hexadecimal: 0x7F, 0xFF_FF
        - Binary: 0b1010 (rewritten to decimal)
        - Decimal: 123, 1_000, 2.5, .5, 1e10, 6.02E+23
        - Suffixes: any mix of u/U/l/L/f/F, kept verbatim
        """
        start = self._pos
        is_binary = False

        if self._peek() == "0" and self._peek(1) in ("x", "X"):
            self._advance()
            self._advance()
            while self._peek() and (self._peek() in string.hexdigits or self._peek() == "_"):
                self._advance()

        elif self._peek() == "0" and self._peek(1) in ("b", "B"):
            is_binary = True
            self._advance()
            self._advance()
            while self._peek() and self._peek() in "01_":
                self._advance()

        else:
            self._scan_digits()
            if self._peek() == "." and self._peek(1).isdigit():
                self._advance()
                self._scan_digits()
            if self._peek() in ("e", "E"):
                self._advance()
                if self._peek() in ("+", "-"):
                    self._advance()
                self._scan_digits()

        digits_end = self._pos
        while self._peek() and self._peek() in SUFFIX_CHARS:
            self._advance()
        suffix = self.source[digits_end:self._pos][:MAX_SUFFIX_LENGTH]

        body = self.source[start:digits_end].replace("_", "")
        if is_binary:
            body = self._binary_to_decimal(body)

        return Token(TokenType.NUMBER, body + suffix, start_line, start_column)

    def _scan_digits(self) -> None:
        while self._peek() and (self._peek().isdigit() or self._peek() == "_"):
            self._advance()

    @staticmethod
    def _binary_to_decimal(text: str) -> str:
        """
        Convert '0b1010' to '10'.

        Literals wider than 64 bits, or with no digits at all, are left
        as written.
        """
        digits = text[2:]
        if not digits or len(digits) > 64:
            return text
        return str(int(digits, 2))


# =============================================================================
# Convenience Functions
# =============================================================================

def tokenize(source: str, filename: str = "<input>") -> list[Token]:
    """Tokenize a complete source string, EOF token included."""
    return list(CzarLexer(source, filename).tokenize())
