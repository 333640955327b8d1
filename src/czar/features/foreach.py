"""
Foreach Loops
=============

Two loop forms are lowered to plain C for statements.

Range (inclusive)::

    for (u8 i : 0..9) { ... }
    for (mut u8 i = 0; i <= 9; i++) { ... }

Array::

    for (usize i, u8 b : bytes) { ... }
    for (mut usize i = 0; i < (sizeof(bytes) / sizeof((bytes)[0])); i++) { u8 b = bytes[i]; ... }

An index named '_' gets a fresh name. The lexer reads '0..9' as '0',
'.', '.9', so both '. .' and '. .<number>' separate a range.
"""

from typing import Optional, Tuple
import logging

from czar.context import TranslationContext
from czar.lexer import TokenType
from czar.parser import TranslationUnit
from czar.scanner import (
    delete_range,
    find_statement_end,
    fragment,
    is_punct_at,
    match_forward,
    next_significant,
    significant_between,
)

logger = logging.getLogger(__name__)


UNUSED_INDEX = "_"
DEFAULT_INDEX_TYPE = "usize"


def _header_colon(unit: TranslationUnit, open_paren: int, close_paren: int) -> int:
    depth = 0
    for i in range(open_paren + 1, close_paren):
        token = unit[i]
        if token.type is TokenType.PUNCTUATION:
            if token.text in ("(", "[", "{"):
                depth += 1
            elif token.text in (")", "]", "}"):
                depth -= 1
            elif token.text == ";":
                return -1
        elif token.is_op("?"):
            return -1
        elif token.is_op(":") and depth == 0:
            return i
    return -1


def _split_range(unit: TranslationUnit, start: int, end: int) -> Optional[Tuple[str, str]]:
    """Split 'a..b' in [start, end) into ('a', 'b')."""
    significant = significant_between(unit, start, end)
    for n, i in enumerate(significant[:-1]):
        if not unit[i].is_op("."):
            continue
        following = unit[significant[n + 1]]
        begin = unit.text(start, i).strip()
        if following.is_op("."):
            finish = unit.text(significant[n + 1] + 1, end).strip()
        elif following.type is TokenType.NUMBER and following.text.startswith("."):
            finish = (following.text[1:] + unit.text(significant[n + 1] + 1, end)).strip()
        else:
            continue
        if begin and finish:
            return begin, finish
    return None


def _split_declaration(text: str) -> Tuple[str, str]:
    """'mut u8 v' -> ('mut u8', 'v')."""
    words = text.replace("*", " * ").split()
    if len(words) == 1:
        return "", words[0]
    head = text[:text.rstrip().rfind(words[-1])].strip()
    return head, words[-1]


def _mutable(type_text: str) -> str:
    return type_text if type_text.split()[:1] == ["mut"] else f"mut {type_text}"


def _top_level_comma(unit: TranslationUnit, start: int, end: int) -> int:
    depth = 0
    for i in range(start, end):
        token = unit[i]
        if token.type is not TokenType.PUNCTUATION:
            continue
        if token.text in ("(", "[", "{"):
            depth += 1
        elif token.text in (")", "]", "}"):
            depth -= 1
        elif token.text == "," and depth == 0:
            return i
    return -1


def _replace_header(unit: TranslationUnit, open_paren: int, close_paren: int, text: str) -> int:
    """Swap the header contents for text; return the new ')' index."""
    like = unit[open_paren]
    delete_range(unit, open_paren + 1, close_paren)
    return close_paren + unit.insert(close_paren, fragment(text, like))


def _lower_range(ctx: TranslationContext, open_paren: int, colon: int, close_paren: int) -> bool:
    unit = ctx.unit
    bounds = _split_range(unit, colon + 1, close_paren)
    if bounds is None:
        return False
    type_text, name = _split_declaration(unit.text(open_paren + 1, colon).strip())
    if not type_text:
        return False
    if name == UNUSED_INDEX:
        name = ctx.next_index_name()
    begin, finish = bounds
    _replace_header(
        unit, open_paren, close_paren,
        f"{_mutable(type_text)} {name} = {begin}; {name} <= {finish}; {name}++",
    )
    return True


def _lower_array(ctx: TranslationContext, open_paren: int, colon: int, close_paren: int, comma: int) -> bool:
    unit = ctx.unit
    index_type, index = _split_declaration(unit.text(open_paren + 1, comma).strip())
    element = unit.text(comma + 1, colon).strip()
    array = unit.text(colon + 1, close_paren).strip()
    if not element or not array:
        return False

    if index == UNUSED_INDEX:
        index = ctx.next_index_name()
    if not index_type:
        index_type = DEFAULT_INDEX_TYPE

    like = unit[open_paren]
    close_paren = _replace_header(
        unit, open_paren, close_paren,
        f"{_mutable(index_type)} {index} = 0; {index} < (sizeof({array}) / sizeof(({array})[0])); {index}++",
    )

    binding = f" {element} = {array}[{index}];"
    body = next_significant(unit, close_paren + 1)
    if is_punct_at(unit, body, "{"):
        unit.insert(body + 1, fragment(binding, like))
    else:
        end = find_statement_end(unit, body)
        unit.insert(end + 1, fragment(" }", like))
        unit.insert(body, fragment("{" + binding + " ", like))
    return True


def transform(ctx: TranslationContext) -> None:
    unit = ctx.unit
    lowered = 0

    # Last loop first; rewriting a header never moves an earlier one
    for i in range(len(unit) - 1, -1, -1):
        if not unit[i].is_identifier("for"):
            continue
        paren = next_significant(unit, i + 1)
        if not is_punct_at(unit, paren, "("):
            continue
        close = match_forward(unit, paren)
        colon = _header_colon(unit, paren, close)
        if colon < 0:
            continue

        comma = _top_level_comma(unit, paren + 1, colon)
        if comma >= 0:
            done = _lower_array(ctx, paren, colon, close, comma)
        else:
            done = _lower_range(ctx, paren, colon, close)
        lowered += int(done)

    logger.debug(f"Lowered {lowered} foreach loop(s)")
