"""
Enums
=====

Enum members are ALL_UPPERCASE and are namespaced by their enum:

    enum Color { RED, GREEN };          typedef enum Color_e { COLOR_RED, COLOR_GREEN } Color_t;
    Color c = Color.RED;                Color_t c = COLOR_RED;
    Color d = GREEN;                    Color_t d = COLOR_GREEN;

Validation records every enum in the symbol tables (members of
anonymous enums keep their names) and then checks switch statements,
since exhaustiveness needs the member lists. The rewrite runs after the
struct and method passes.
"""

from typing import List, Optional, Tuple
import logging
import re

from czar.context import EnumInfo, EnumMember, TranslationContext
from czar.errors import EnumError
from czar.features import switches
from czar.parser import TranslationUnit
from czar.scanner import (
    is_ident_at,
    is_op_at,
    is_punct_at,
    match_forward,
    next_significant,
    prev_significant,
    split_arguments,
    ws,
    make_token,
)

logger = logging.getLogger(__name__)


UPPERCASE_PATTERN = re.compile(r"^[A-Z_][A-Z0-9_]*$")

ENUM_TAG_SUFFIX = "_e"
ENUM_ALIAS_SUFFIX = "_t"


# =============================================================================
# Declaration Scanning
# =============================================================================

def find_enum_bodies(unit: TranslationUnit) -> List[Tuple[int, Optional[int], int, int]]:
    """
    Every 'enum [Name] { ... }' definition.

    Returns:
        (enum keyword index, name index or None, '{' index, '}' index)
    """
    found = []
    for i, token in enumerate(unit):
        if not token.is_identifier("enum"):
            continue
        j = next_significant(unit, i + 1)
        name = None
        if is_ident_at(unit, j):
            name = j
            j = next_significant(unit, j + 1)
        if not is_punct_at(unit, j, "{"):
            continue
        close = match_forward(unit, j)
        if close < len(unit):
            found.append((i, name, j, close))
    return found


def member_indices(unit: TranslationUnit, open_brace: int, close_brace: int) -> List[int]:
    """Index of the name token of each member in an enum body."""
    indices = []
    for start, end in split_arguments(unit, open_brace, close_brace):
        first = next_significant(unit, start)
        if first < end and unit[first].is_identifier():
            indices.append(first)
    return indices


def _scan_enums(ctx: TranslationContext) -> None:
    unit = ctx.unit
    symbols = ctx.symbols

    for keyword, name_index, open_brace, close_brace in find_enum_bodies(unit):
        name = unit[name_index].text if name_index is not None else None
        info = EnumInfo(name, line=unit[keyword].line)

        for index in member_indices(unit, open_brace, close_brace):
            member = unit[index].text
            if not UPPERCASE_PATTERN.match(member):
                ctx.error(
                    f"Enum value '{member}' in enum '{name or '<anonymous>'}' must be "
                    f"ALL_UPPERCASE (e.g., {member.upper()})",
                    unit[index],
                    EnumError,
                )
            info.members.append(EnumMember(member, f"{info.prefix}{member}"))

        if name is None:
            symbols.anonymous_enums.append(info)
        else:
            symbols.enums[name] = info
        logger.debug(f"enum {name or '<anonymous>'}: {len(info.members)} member(s)")


def validate(ctx: TranslationContext) -> None:
    _scan_enums(ctx)
    switches.validate(ctx)


# =============================================================================
# Rewrite
# =============================================================================

def _preceded_by_member_access(unit: TranslationUnit, index: int) -> bool:
    prev = prev_significant(unit, index)
    return is_op_at(unit, prev, ".") or is_op_at(unit, prev, "->")


def _rewrite_definitions(ctx: TranslationContext) -> List[Tuple[int, int]]:
    """
    Prefix members, rename tags and add typedefs.

    Returns:
        (start, end) ranges of the enum bodies after insertion
    """
    unit = ctx.unit
    symbols = ctx.symbols
    bodies = find_enum_bodies(unit)

    # Right to left, so earlier indices stay valid while inserting
    ranges = []
    for keyword, name_index, open_brace, close_brace in reversed(bodies):
        if name_index is None:
            ranges.append((open_brace, close_brace))
            continue
        name = unit[name_index].text
        info = symbols.enums.get(name)
        if info is None:
            continue

        for index in member_indices(unit, open_brace, close_brace):
            member = info.member(unit[index].text)
            if member is not None:
                unit[index].text = member.prefixed

        unit[name_index].text = f"{name}{ENUM_TAG_SUFFIX}"

        after = next_significant(unit, close_brace + 1)
        already_typedef = is_ident_at(unit, prev_significant(unit, keyword), "typedef")
        if is_punct_at(unit, after, ";") and not already_typedef:
            like = unit[close_brace]
            unit.insert(close_brace + 1, [ws(" ", like), make_token(f"{name}{ENUM_ALIAS_SUFFIX}", like=like)])
            unit.insert(keyword, [make_token("typedef", like=unit[keyword]), ws(" ", unit[keyword])])
            ranges = [(start + 4, end + 4) for start, end in ranges]
            open_brace += 2
            close_brace += 2
        ranges.append((open_brace, close_brace))
    return ranges


def _inside(ranges: List[Tuple[int, int]], index: int) -> bool:
    return any(start < index < end for start, end in ranges)


def transform(ctx: TranslationContext) -> None:
    unit = ctx.unit
    symbols = ctx.symbols
    if not symbols.enums:
        return

    bodies = _rewrite_definitions(ctx)
    rewritten = 0

    for i, token in enumerate(unit):
        if not token.is_identifier() or _inside(bodies, i):
            continue
        text = token.text

        if text in symbols.enums:
            info = symbols.enums[text]
            prev = prev_significant(unit, i)
            dot = next_significant(unit, i + 1)
            member_index = next_significant(unit, dot + 1)

            if is_op_at(unit, dot, ".") and is_ident_at(unit, member_index):
                # Color.RED -> COLOR_RED
                member = info.member(unit[member_index].text)
                if member is not None:
                    token.delete()
                    unit[dot].delete()
                    unit[member_index].text = member.prefixed
                    rewritten += 1
                continue

            if is_ident_at(unit, prev, "enum"):
                token.text = f"{text}{ENUM_TAG_SUFFIX}"
            elif not _preceded_by_member_access(unit, i):
                token.text = f"{text}{ENUM_ALIAS_SUFFIX}"
            continue

        if _preceded_by_member_access(unit, i):
            continue
        found = symbols.enum_member(text)
        if found is not None:
            token.text = found[1].prefixed
            rewritten += 1

    logger.debug(f"Rewrote {rewritten} enum reference(s)")
