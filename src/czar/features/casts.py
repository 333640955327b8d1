"""
Cast Discipline
===============

C-style casts are rejected. Conversions are written as template calls:

    cast<u8>(value)              (uint8_t)(value), with a warning
    cast<u8>(value, fallback)    ((value) > 255 ? (fallback) : (uint8_t)(value))

Validation runs on the original source. Lowering runs after the type
lowering pass, so the target type is usually already in its stdint.h
spelling; the upper-bound table accepts both spellings.
"""

from typing import Optional, Set, Tuple
import logging

from czar.context import TranslationContext
from czar.declarations import collect_type_names
from czar.errors import CastError
from czar.lexer import TokenType
from czar.parser import TranslationUnit
from czar.scanner import (
    AGGREGATE_KEYWORDS,
    TYPE_KEYWORDS,
    is_punct_at,
    match_forward,
    next_significant,
    prev_significant,
    split_arguments,
    text_at,
    trimmed_text,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Type Bounds
# =============================================================================

TYPE_MAX = {
    "u8": "255",
    "u16": "65535",
    "u32": "4294967295U",
    "u64": "18446744073709551615ULL",
    "i8": "127",
    "i16": "32767",
    "i32": "2147483647",
    "i64": "9223372036854775807LL",
    "usize": "SIZE_MAX",
    "isize": "PTRDIFF_MAX",
    "uint8_t": "255",
    "uint16_t": "65535",
    "uint32_t": "4294967295U",
    "uint64_t": "18446744073709551615ULL",
    "int8_t": "127",
    "int16_t": "32767",
    "int32_t": "2147483647",
    "int64_t": "9223372036854775807LL",
    "size_t": "SIZE_MAX",
    "ptrdiff_t": "PTRDIFF_MAX",
}

# Operators that can start an expression after a C-style cast
UNARY_OPERATORS = frozenset({"-", "+", "!", "~", "&", "*", "++", "--"})

# Keywords whose parenthesised operand is a type, not a cast
TYPE_OPERAND_KEYWORDS = frozenset({"sizeof", "_Alignof", "alignof", "typeof", "__typeof__"})

# Identifiers that may follow a parameter list
SIGNATURE_SUFFIXES = frozenset({"__attribute__", "asm", "__asm__"})

CAST_KEYWORD = "cast"


# =============================================================================
# Shape Matching
# =============================================================================

def _c_style_cast(unit: TranslationUnit, index: int, type_names: Set[str]) -> Optional[Tuple[int, str]]:
    """
    Match '( Type {*} )' at index.

    Returns:
        (index of ')', type text) or None
    """
    i = next_significant(unit, index + 1)
    if i >= len(unit) or not unit[i].is_identifier():
        return None

    words = []
    text = unit[i].text
    if text in AGGREGATE_KEYWORDS:
        tag = next_significant(unit, i + 1)
        if tag >= len(unit) or not unit[tag].is_identifier():
            return None
        words = [text, unit[tag].text]
        i = next_significant(unit, tag + 1)
    elif text in TYPE_KEYWORDS:
        while i < len(unit) and unit[i].is_identifier() and unit[i].text in TYPE_KEYWORDS:
            words.append(unit[i].text)
            i = next_significant(unit, i + 1)
    elif text in type_names:
        words = [text]
        i = next_significant(unit, i + 1)
    else:
        return None

    stars = ""
    while i < len(unit) and unit[i].is_op("*"):
        stars += "*"
        i = next_significant(unit, i + 1)

    if i >= len(unit) or not unit[i].is_punct(")"):
        return None
    type_text = " ".join(words) + (" " + stars if stars else "")
    return i, type_text


def _starts_expression(unit: TranslationUnit, index: int) -> bool:
    if index >= len(unit):
        return False
    token = unit[index]
    if token.type in (TokenType.NUMBER, TokenType.STRING, TokenType.CHAR):
        return True
    if token.is_identifier():
        return token.text not in SIGNATURE_SUFFIXES
    if token.is_punct("("):
        return True
    return token.type is TokenType.OPERATOR and token.text in UNARY_OPERATORS


def _template_call(unit: TranslationUnit, index: int) -> Optional[Tuple[int, int, int]]:
    """
    Match 'cast < T > (' at index.

    Returns:
        (index of '<', index of '>', index of '(') with '(' equal to
        len(unit) when the parentheses are missing, or None when there
        is no '<'.
    """
    less = next_significant(unit, index + 1)
    if less >= len(unit) or not unit[less].is_op("<"):
        return None
    greater = less + 1
    while greater < len(unit) and not unit[greater].is_op(">"):
        if unit[greater].type is TokenType.PUNCTUATION and unit[greater].text in (";", "{", "}"):
            return None
        greater += 1
    if greater >= len(unit):
        return None
    paren = next_significant(unit, greater + 1)
    if paren >= len(unit) or not unit[paren].is_punct("("):
        paren = len(unit)
    return less, greater, paren


def _is_cast_keyword(unit: TranslationUnit, index: int) -> bool:
    if not unit[index].is_identifier(CAST_KEYWORD):
        return False
    prev = prev_significant(unit, index)
    return not (prev >= 0 and (unit[prev].is_op(".") or unit[prev].is_op("->")))


# =============================================================================
# Validation
# =============================================================================

def validate(ctx: TranslationContext) -> None:
    unit = ctx.unit
    type_names = collect_type_names(unit)

    for i, token in enumerate(unit):
        if token.is_punct("("):
            prev = prev_significant(unit, i)
            if text_at(unit, prev) in TYPE_OPERAND_KEYWORDS:
                continue
            match = _c_style_cast(unit, i, type_names)
            if match is None:
                continue
            close, type_text = match
            if _starts_expression(unit, next_significant(unit, close + 1)):
                ctx.error(
                    f"Unsafe C-style cast '({type_text})' is not allowed. "
                    f"Use cast<{type_text}>(value[, fallback]) instead.",
                    token,
                    CastError,
                )

        elif _is_cast_keyword(unit, i):
            _validate_template_cast(ctx, i)


def _validate_template_cast(ctx: TranslationContext, index: int) -> None:
    unit = ctx.unit
    token = unit[index]

    shape = _template_call(unit, index)
    if shape is None:
        if is_punct_at(unit, next_significant(unit, index + 1), "("):
            ctx.error("cast requires template syntax: cast<Type>(value)", token, CastError)
        return

    less, greater, paren = shape
    if paren >= len(unit):
        ctx.error("cast requires function call syntax with parentheses", token, CastError)

    type_text = trimmed_text(unit, less + 1, greater)
    args = split_arguments(unit, paren, match_forward(unit, paren))
    if len(args) not in (1, 2):
        ctx.error("cast requires 1 or 2 arguments: cast<Type>(value[, fallback])", token, CastError)
    if len(args) == 1:
        ctx.warn(
            f"cast<{type_text}>(value) without fallback. "
            f"Consider the safer cast<{type_text}>(value, fallback).",
            token,
        )


# =============================================================================
# Lowering
# =============================================================================

def _trim_edges(unit: TranslationUnit, start: int, end: int) -> None:
    """Empty whitespace at both edges of [start, end)."""
    i = start
    while i < end and unit[i].is_trivia():
        unit[i].delete()
        i += 1
    j = end - 1
    while j >= i and unit[j].is_trivia():
        unit[j].delete()
        j -= 1


def _lower(unit: TranslationUnit, index: int) -> bool:
    shape = _template_call(unit, index)
    if shape is None or shape[2] >= len(unit):
        return False
    less, greater, paren = shape
    close = match_forward(unit, paren)
    if close >= len(unit):
        return False
    args = split_arguments(unit, paren, close)
    if len(args) not in (1, 2):
        return False

    type_text = trimmed_text(unit, less + 1, greater)
    maximum = TYPE_MAX.get(type_text)

    if len(args) == 1 or maximum is None:
        # (T)(value)
        unit[index].text = "("
        unit[less].delete()
        unit[greater].text = ")"
        for i in range(greater + 1, paren):
            unit[i].delete()
        if len(args) == 2:
            comma = args[0][1]
            for i in range(comma, close):
                unit[i].delete()
        return True

    (value_start, value_end), (fallback_start, fallback_end) = args
    comma = value_end

    _trim_edges(unit, value_start, value_end)
    _trim_edges(unit, fallback_start, fallback_end)
    value_text = unit.text(value_start, value_end)

    unit[index].text = "(("
    for i in range(index + 1, paren + 1):
        unit[i].delete()
    unit[comma].text = f") > {maximum} ? ("
    unit[close].text = f") : ({type_text})({value_text}))"
    return True


def lower(ctx: TranslationContext) -> None:
    unit = ctx.unit
    lowered = 0
    # Innermost casts first, so an outer cast copies already-lowered text
    for i in range(len(unit) - 1, -1, -1):
        if _is_cast_keyword(unit, i) and _lower(unit, i):
            lowered += 1
    logger.debug(f"Lowered {lowered} cast(s)")
