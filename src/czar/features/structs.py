"""
Struct Typedefs and Initialisers
================================

    struct Vec2 { f32 x; f32 y; };     typedef struct Vec2_s { f32 x; f32 y; } Vec2_t;
    Vec2 v = {};                       Vec2 v = {0};
    Vec2 v = Vec2 { 1, 2 };            Vec2 v = { 1, 2 };
    Vec2 v = Vec2 {};                  Vec2 v = {0};

Every struct seen here is recorded as Name -> Name_t. Type uses of the
name are rewritten later, once methods have been resolved.
"""

from typing import List, Tuple
import logging

from czar.context import TranslationContext
from czar.imports import seed_from_imports
from czar.lexer import TokenType
from czar.parser import TranslationUnit
from czar.scanner import (
    delete_trailing_whitespace,
    is_ident_at,
    is_op_at,
    is_punct_at,
    make_token,
    match_forward,
    next_significant,
    prev_significant,
    ws,
)

logger = logging.getLogger(__name__)


TAG_SUFFIX = "_s"
ALIAS_SUFFIX = "_t"


def find_struct_definitions(unit: TranslationUnit) -> List[Tuple[int, int, int, int]]:
    """
    Every 'struct Name { ... };' not already part of a typedef.

    Returns:
        (struct keyword index, name index, '}' index, ';' index)
    """
    found = []
    for i, token in enumerate(unit):
        if not token.is_identifier("struct"):
            continue
        if is_ident_at(unit, prev_significant(unit, i), "typedef"):
            continue
        name = next_significant(unit, i + 1)
        brace = next_significant(unit, name + 1)
        if not is_ident_at(unit, name) or not is_punct_at(unit, brace, "{"):
            continue
        close = match_forward(unit, brace)
        semicolon = next_significant(unit, close + 1)
        if is_punct_at(unit, semicolon, ";"):
            found.append((i, name, close, semicolon))
    return found


def scan_existing_typedefs(ctx: TranslationContext) -> int:
    """Register 'typedef struct Name_s { ... } Name_t;' already in the unit."""
    unit = ctx.unit
    count = 0
    for i, token in enumerate(unit):
        if not token.is_identifier("typedef"):
            continue
        keyword = next_significant(unit, i + 1)
        tag = next_significant(unit, keyword + 1)
        brace = next_significant(unit, tag + 1)
        if not (is_ident_at(unit, keyword, "struct") and is_ident_at(unit, tag) and is_punct_at(unit, brace, "{")):
            continue
        alias = next_significant(unit, match_forward(unit, brace) + 1)
        if not is_ident_at(unit, alias):
            continue
        tag_text, alias_text = unit[tag].text, unit[alias].text
        if tag_text.endswith(TAG_SUFFIX) and alias_text.endswith(ALIAS_SUFFIX):
            name = tag_text[:-len(TAG_SUFFIX)]
            if alias_text[:-len(ALIAS_SUFFIX)] == name:
                ctx.symbols.add_struct(name)
                count += 1
    return count


def _rewrite_definitions(ctx: TranslationContext) -> int:
    unit = ctx.unit
    definitions = find_struct_definitions(unit)

    for keyword, name_index, close, semicolon in reversed(definitions):
        name = unit[name_index].text
        ctx.symbols.add_struct(name)

        like = unit[close]
        unit.insert(semicolon, [ws(" ", like), make_token(f"{name}{ALIAS_SUFFIX}", like=like)])
        unit[name_index].text = f"{name}{TAG_SUFFIX}"
        unit.insert(keyword, [make_token("typedef", like=unit[keyword]), ws(" ", unit[keyword])])
        logger.debug(f"struct {name} -> {name}{ALIAS_SUFFIX}")

    return len(definitions)


def _rewrite_initialisers(ctx: TranslationContext) -> int:
    unit = ctx.unit
    structs = ctx.symbols.structs
    count = 0

    # 'Name {' after '=' loses the redundant type name
    for i, token in enumerate(unit):
        if not token.is_identifier() or token.text not in structs:
            continue
        if is_op_at(unit, prev_significant(unit, i), "=") and is_punct_at(unit, next_significant(unit, i + 1), "{"):
            token.delete()
            delete_trailing_whitespace(unit, i)
            count += 1

    # '= {}' becomes '= {0}'; walk backwards so insertions stay behind us
    for i in range(len(unit) - 1, -1, -1):
        if not unit[i].is_punct("{") or not is_op_at(unit, prev_significant(unit, i), "="):
            continue
        if is_punct_at(unit, next_significant(unit, i + 1), "}"):
            unit.insert(i + 1, [make_token("0", TokenType.NUMBER, unit[i])])
            count += 1

    return count


def transform(ctx: TranslationContext) -> None:
    seed_from_imports(ctx)
    existing = scan_existing_typedefs(ctx)
    defined = _rewrite_definitions(ctx)
    initialisers = _rewrite_initialisers(ctx)
    logger.debug(f"Structs: {defined} defined, {existing} existing, {initialisers} initialiser(s) rewritten")
