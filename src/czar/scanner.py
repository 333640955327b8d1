"""
Token Vector Scanning Helpers
=============================

Small index-based helpers shared by every feature pass. All of them
treat whitespace, comments and deleted (empty) tokens as trivia, so a
pass never has to care whether an earlier pass emptied something.

Conventions
-----------
- Forward scans return len(unit) when nothing is found.
- Backward scans return -1 when nothing is found.
- Bracket matching only counts PUNCTUATION tokens, so brackets inside
  strings, comments and preprocessor lines are ignored.
"""

from typing import List, Optional, Tuple

from czar.lexer import CzarLexer, Token, TokenType
from czar.parser import TranslationUnit


# =============================================================================
# Keyword Sets
# =============================================================================

C_TYPE_KEYWORDS = frozenset({
    "void", "char", "short", "int", "long", "float", "double",
    "signed", "unsigned", "_Bool",
})

CZAR_TYPE_KEYWORDS = frozenset({
    "u8", "u16", "u32", "u64",
    "i8", "i16", "i32", "i64",
    "f32", "f64", "usize", "isize", "bool",
})

STDINT_TYPE_KEYWORDS = frozenset({
    "uint8_t", "uint16_t", "uint32_t", "uint64_t",
    "int8_t", "int16_t", "int32_t", "int64_t",
    "size_t", "ptrdiff_t",
})

TYPE_KEYWORDS = C_TYPE_KEYWORDS | CZAR_TYPE_KEYWORDS | STDINT_TYPE_KEYWORDS

AGGREGATE_KEYWORDS = frozenset({"struct", "union", "enum"})

# Qualifiers and storage classes that may precede a declared type
DECLARATION_PREFIXES = frozenset({
    "static", "extern", "register", "auto", "volatile", "inline",
    "const", "mut", "_Thread_local",
})

# Keywords that look like a call when followed by '('
CALL_LIKE_KEYWORDS = frozenset({
    "if", "while", "for", "switch", "return", "sizeof", "_Alignof",
    "alignof", "defined", "__attribute__", "typeof", "__typeof__",
})

STATEMENT_KEYWORDS = frozenset({
    "if", "else", "while", "for", "do", "switch", "case", "default",
    "break", "continue", "return", "goto", "sizeof", "typedef",
}) | CALL_LIKE_KEYWORDS

ASSIGNMENT_OPERATORS = frozenset({
    "=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<=", ">>=",
})

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {")": "(", "]": "[", "}": "{"}

UNKNOWN_FUNCTION = "<unknown>"


# =============================================================================
# Token Construction
# =============================================================================

def make_token(
    text: str,
    token_type: TokenType = TokenType.IDENTIFIER,
    like: Optional[Token] = None,
) -> Token:
    """Create a synthetic token, borrowing the position of `like`."""
    if like is None:
        return Token(token_type, text)
    return Token(token_type, text, like.line, like.column)


def ws(text: str = " ", like: Optional[Token] = None) -> Token:
    return make_token(text, TokenType.WHITESPACE, like)


def op(text: str, like: Optional[Token] = None) -> Token:
    return make_token(text, TokenType.OPERATOR, like)


def punct(text: str, like: Optional[Token] = None) -> Token:
    return make_token(text, TokenType.PUNCTUATION, like)


def fragment(text: str, like: Optional[Token] = None) -> List[Token]:
    """
    Lex a snippet of generated code into tokens positioned at `like`.

    Used when a pass synthesises a construct that later passes must be
    able to parse, such as a rewritten for-loop header.
    """
    tokens = []
    for token in CzarLexer(text).tokenize():
        if token.type is TokenType.EOF:
            break
        if like is not None:
            token.line, token.column = like.line, like.column
        tokens.append(token)
    return tokens


# =============================================================================
# Trivia Skipping
# =============================================================================

def next_significant(unit: TranslationUnit, index: int) -> int:
    """Index of the first non-trivia token at or after index."""
    count = len(unit)
    while index < count and unit[index].is_trivia():
        index += 1
    return index


def prev_significant(unit: TranslationUnit, index: int) -> int:
    """Index of the last non-trivia token strictly before index."""
    index -= 1
    while index >= 0 and unit[index].is_trivia():
        index -= 1
    return index


def token_at(unit: TranslationUnit, index: int) -> Optional[Token]:
    if 0 <= index < len(unit):
        return unit[index]
    return None


def text_at(unit: TranslationUnit, index: int) -> str:
    token = token_at(unit, index)
    return token.text if token is not None else ""


def is_punct_at(unit: TranslationUnit, index: int, text: str) -> bool:
    token = token_at(unit, index)
    return token is not None and token.is_punct(text)


def is_op_at(unit: TranslationUnit, index: int, text: str) -> bool:
    token = token_at(unit, index)
    return token is not None and token.is_op(text)


def is_ident_at(unit: TranslationUnit, index: int, text: Optional[str] = None) -> bool:
    token = token_at(unit, index)
    return token is not None and token.is_identifier(text)


def significant_between(unit: TranslationUnit, start: int, end: int) -> List[int]:
    """Indices of non-trivia tokens in [start, end)."""
    return [i for i in range(start, min(end, len(unit))) if not unit[i].is_trivia()]


def delete_range(unit: TranslationUnit, start: int, end: int) -> None:
    for i in range(start, min(end, len(unit))):
        unit[i].delete()


def delete_trailing_whitespace(unit: TranslationUnit, index: int) -> None:
    """Empty whitespace tokens directly after index."""
    i = index + 1
    while i < len(unit) and unit[i].type is TokenType.WHITESPACE:
        unit[i].delete()
        i += 1


# =============================================================================
# Bracket Matching
# =============================================================================

def match_forward(unit: TranslationUnit, index: int) -> int:
    """
    Given index of an opening bracket, return the index of its closer.

    Returns len(unit) if the bracket is never closed.
    """
    opener = unit[index].text
    closer = OPENERS[opener]
    depth = 0
    for i in range(index, len(unit)):
        token = unit[i]
        if token.type is not TokenType.PUNCTUATION:
            continue
        if token.text == opener:
            depth += 1
        elif token.text == closer:
            depth -= 1
            if depth == 0:
                return i
    return len(unit)


def match_backward(unit: TranslationUnit, index: int) -> int:
    """Given index of a closing bracket, return its opener or -1."""
    closer = unit[index].text
    opener = CLOSERS[closer]
    depth = 0
    for i in range(index, -1, -1):
        token = unit[i]
        if token.type is not TokenType.PUNCTUATION:
            continue
        if token.text == closer:
            depth += 1
        elif token.text == opener:
            depth -= 1
            if depth == 0:
                return i
    return -1


def split_arguments(unit: TranslationUnit, open_index: int, close_index: int) -> List[Tuple[int, int]]:
    """
    Split a parenthesised list at top-level commas.

    Returns:
        (start, end) half-open index ranges, one per argument. An
        argument list holding only trivia yields an empty list.
    """
    ranges = []
    depth = 0
    start = open_index + 1
    for i in range(open_index + 1, close_index):
        token = unit[i]
        if token.type is not TokenType.PUNCTUATION:
            continue
        if token.text in OPENERS:
            depth += 1
        elif token.text in CLOSERS:
            depth -= 1
        elif token.text == "," and depth == 0:
            ranges.append((start, i))
            start = i + 1
    ranges.append((start, close_index))

    if len(ranges) == 1 and not significant_between(unit, *ranges[0]):
        return []
    return ranges


def trimmed_text(unit: TranslationUnit, start: int, end: int) -> str:
    return unit.text(start, end).strip()


# =============================================================================
# Structural Queries
# =============================================================================

def is_statement_start(unit: TranslationUnit, index: int) -> bool:
    """True if the previous significant token ends a statement or block."""
    prev = prev_significant(unit, index)
    if prev < 0:
        return True
    token = unit[prev]
    if token.type is TokenType.PREPROCESSOR or token.is_op(":"):
        return True
    return token.type is TokenType.PUNCTUATION and token.text in (";", "{", "}")


def brace_depths(unit: TranslationUnit) -> List[int]:
    """Brace depth in effect at every index (a '{' counts as inside)."""
    depths = []
    depth = 0
    for token in unit:
        if token.is_punct("{"):
            depth += 1
            depths.append(depth)
        elif token.is_punct("}"):
            depths.append(depth)
            depth = max(0, depth - 1)
        else:
            depths.append(depth)
    return depths


def function_name_before(unit: TranslationUnit, brace_index: int) -> Optional[str]:
    """
    Name of the function whose body opens at brace_index.

    Recognises 'name ( ... ) {' with optional trailing attributes between
    ')' and '{'. Returns None for any other brace.
    """
    close = prev_significant(unit, brace_index)
    if close < 0 or not unit[close].is_punct(")"):
        return None
    open_paren = match_backward(unit, close)
    if open_paren < 0:
        return None
    name = prev_significant(unit, open_paren)
    if name < 0 or not unit[name].is_identifier():
        return None
    if unit[name].text in STATEMENT_KEYWORDS:
        return None
    return unit[name].text


def enclosing_function_name(unit: TranslationUnit, index: int) -> str:
    """
    Name of the function whose body contains index.

    Tracks brace depth from the start of the unit and anchors on the
    outermost brace, so nested blocks, compound literals and braced
    initializers never shadow the real function.
    """
    depth = 0
    current = None
    for i in range(min(index, len(unit))):
        token = unit[i]
        if token.is_punct("{"):
            if depth == 0:
                current = function_name_before(unit, i)
            depth += 1
        elif token.is_punct("}"):
            depth = max(0, depth - 1)
            if depth == 0:
                current = None
    if depth == 0 or current is None:
        return UNKNOWN_FUNCTION
    return current


def is_aggregate_brace(unit: TranslationUnit, brace_index: int, lookback: int = 30) -> bool:
    """
    True if the '{' at brace_index opens a struct/union/enum body.

    Looks back up to `lookback` tokens for an aggregate keyword with no
    ';' in between. A brace preceded by ')' is a function or statement
    body even when the return type is an aggregate.
    """
    if is_punct_at(unit, prev_significant(unit, brace_index), ")"):
        return False
    lower = max(0, brace_index - lookback)
    for j in range(brace_index - 1, lower - 1, -1):
        token = unit[j]
        if token.is_punct(";") or token.is_punct("}"):
            return False
        if token.is_identifier() and token.text in AGGREGATE_KEYWORDS:
            return True
    return False


def innermost_open_brace(unit: TranslationUnit, index: int) -> int:
    """Index of the nearest unclosed '{' before index, or -1."""
    depth = 0
    for i in range(index - 1, -1, -1):
        token = unit[i]
        if token.is_punct("}"):
            depth += 1
        elif token.is_punct("{"):
            if depth == 0:
                return i
            depth -= 1
    return -1


def in_function_body(unit: TranslationUnit, index: int) -> bool:
    """
    True if index sits inside a function body rather than at file scope
    or directly inside an aggregate definition.
    """
    brace = innermost_open_brace(unit, index)
    if brace < 0:
        return False
    return not is_aggregate_brace(unit, brace)


def find_statement_end(unit: TranslationUnit, index: int) -> int:
    """Index of the ';' ending the statement at index (outside brackets)."""
    depth = 0
    for i in range(index, len(unit)):
        token = unit[i]
        if token.type is not TokenType.PUNCTUATION:
            continue
        if token.text in OPENERS:
            depth += 1
        elif token.text in CLOSERS:
            if depth == 0:
                return i
            depth -= 1
        elif token.text == ";" and depth == 0:
            return i
    return len(unit)
