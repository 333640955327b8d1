"""
Zero-Initialisation Check
=========================

CZar requires every variable to be explicitly initialised:

    u8 x;              // error
    u8 x = 0;          // ok
    Vec2 v = {0};      // ok
    u8 a = 1, b;       // error on 'b'

The rule applies to locals and file-scope variables. Struct, union and
enum bodies are skipped, as are extern declarations and the init clause
of a for statement.
"""

from typing import Set
import logging

from czar.context import TranslationContext
from czar.declarations import (
    Declaration,
    collect_type_names,
    declaration_at_statement,
    next_declarator,
)
from czar.errors import UninitializedVariableError
from czar.lexer import TokenType
from czar.parser import TranslationUnit
from czar.scanner import (
    TYPE_KEYWORDS,
    UNKNOWN_FUNCTION,
    find_statement_end,
    is_aggregate_brace,
    next_significant,
)

logger = logging.getLogger(__name__)


def _enum_tags(unit: TranslationUnit) -> Set[str]:
    tags = set()
    for i, token in enumerate(unit):
        if token.is_identifier("enum"):
            tag = next_significant(unit, i + 1)
            if tag < len(unit) and unit[tag].is_identifier():
                tags.add(unit[tag].text)
    return tags


def _zero_value(unit: TranslationUnit, decl: Declaration, enum_tags: Set[str]) -> str:
    """Suggested initializer: {0} for aggregates and arrays, 0 otherwise."""
    if decl.is_array:
        return "{0}"
    if decl.is_pointer:
        return "0"
    words = decl.type_text(unit).split()
    if words[0] in ("struct", "union"):
        return "{0}"
    if words[0] == "enum" or words[-1] in TYPE_KEYWORDS or words[-1] in enum_tags:
        return "0"
    return "{0}"


def _initializer_end(unit: TranslationUnit, index: int) -> int:
    """From an '=' at index, return the ',' or ';' ending its initializer."""
    depth = 0
    for i in range(index + 1, len(unit)):
        token = unit[i]
        if token.type is not TokenType.PUNCTUATION:
            continue
        if token.text in ("(", "[", "{"):
            depth += 1
        elif token.text in (")", "]", "}"):
            if depth == 0:
                return i
            depth -= 1
        elif token.text in (",", ";") and depth == 0:
            return i
    return len(unit)


def _report(ctx: TranslationContext, index: int, type_text: str, zero: str, multi: bool) -> None:
    name = ctx.unit[index].text
    function = ctx.function_at(index)
    prefix = f"[in {function}()] " if function != UNKNOWN_FUNCTION else ""

    message = f"{prefix}Variable '{name}' must be explicitly initialized. CZar requires zero-initialization"
    if not multi:
        message += f": {type_text} {name} = {zero};"
    ctx.error(message, ctx.unit[index], UninitializedVariableError)


def validate(ctx: TranslationContext) -> None:
    unit = ctx.unit
    type_names = collect_type_names(unit, set(ctx.symbols.structs))
    enum_tags = _enum_tags(unit)
    aggregate_stack = []
    checked = 0

    for i, token in enumerate(unit):
        if token.is_punct("{"):
            aggregate_stack.append(is_aggregate_brace(unit, i))
            continue
        if token.is_punct("}"):
            if aggregate_stack:
                aggregate_stack.pop()
            continue
        if not token.is_identifier() or (aggregate_stack and aggregate_stack[-1]):
            continue

        decl = declaration_at_statement(unit, i, type_names)
        if decl is None or decl.start != i or "extern" in decl.prefixes:
            continue

        checked += 1
        type_text = decl.full_type_text(unit)
        zero = _zero_value(unit, decl, enum_tags)

        terminator = decl.terminator_text(unit)
        if terminator in (";", ","):
            _report(ctx, decl.name_index, type_text, zero, multi=(terminator == ","))
        if terminator != "=":
            continue

        # Remaining declarators of 'T a = 1, b = 2;'
        end = find_statement_end(unit, decl.terminator)
        sep = _initializer_end(unit, decl.terminator)
        while sep < end and unit[sep].is_punct(","):
            name = next_declarator(unit, sep, end)
            if name is None:
                break
            after = next_significant(unit, name + 1)
            if after >= end or not unit[after].is_op("="):
                _report(ctx, name, type_text, zero, multi=True)
            sep = _initializer_end(unit, after)

    logger.debug(f"Checked {checked} declarations for initialisation")
