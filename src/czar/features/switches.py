"""
Switch Statements
=================

CZar switches never fall through by accident:

- Every case body ends in explicit control flow: break, continue,
  return, goto, UNREACHABLE, TODO or FIXME. Empty cases are allowed.
- 'continue' inside a switch that no loop encloses means "fall through"
  and becomes __attribute__((fallthrough)). Under a loop it keeps its C
  meaning.
- A switch on an enum must name every member and carry a default.
- Any other switch without a default gets one that aborts at runtime.

Validation runs from the enum validator, once the member lists are
known. The rewrite runs right after the enum rewrite.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple
import logging

from czar.context import EnumInfo, TranslationContext
from czar.errors import SwitchError
from czar.features.unreachable import unreachable_block
from czar.lexer import TokenType
from czar.parser import TranslationUnit
from czar.scanner import (
    find_statement_end,
    is_ident_at,
    is_punct_at,
    make_token,
    match_forward,
    next_significant,
    op,
    prev_significant,
    significant_between,
    trimmed_text,
    ws,
)

logger = logging.getLogger(__name__)


TERMINATORS = frozenset({
    "break", "continue", "return", "goto", "UNREACHABLE", "TODO", "FIXME",
})

LOOP_KEYWORDS = frozenset({"for", "while", "do"})

FALLTHROUGH = "__attribute__((fallthrough))"


# =============================================================================
# Switch Structure
# =============================================================================

@dataclass
class Label:
    """A case or default label directly inside a switch body."""
    keyword: int
    colon: int
    is_default: bool = False
    member: Optional[str] = None
    scoped: bool = False


@dataclass
class Switch:
    keyword: int
    subject_open: int
    subject_close: int
    body_open: int
    body_close: int
    labels: List[Label]

    @property
    def has_default(self) -> bool:
        return any(label.is_default for label in self.labels)


def _label_colon(unit: TranslationUnit, index: int, limit: int) -> int:
    depth = 0
    for i in range(index + 1, limit):
        token = unit[i]
        if token.type is TokenType.PUNCTUATION:
            if token.text in ("(", "["):
                depth += 1
            elif token.text in (")", "]"):
                depth -= 1
            elif token.text in (";", "{", "}"):
                return -1
        elif token.is_op(":") and depth == 0:
            return i
    return -1


def _parse_label(unit: TranslationUnit, keyword: int, colon: int) -> Label:
    if unit[keyword].text == "default":
        return Label(keyword, colon, is_default=True)

    significant = significant_between(unit, keyword + 1, colon)
    texts = [unit[i].text for i in significant]
    if len(texts) == 1 and unit[significant[0]].is_identifier():
        return Label(keyword, colon, member=texts[0])
    if len(texts) == 3 and texts[1] == "." and unit[significant[2]].is_identifier():
        return Label(keyword, colon, member=texts[2], scoped=True)
    return Label(keyword, colon)


def _skip_statement(unit: TranslationUnit, index: int) -> int:
    """Index of the last token of the statement or block starting at index."""
    index = next_significant(unit, index)
    if is_punct_at(unit, index, "{"):
        return match_forward(unit, index)
    return find_statement_end(unit, index)


def _skip_construct(unit: TranslationUnit, keyword: int) -> int:
    """Index of the last token of a loop or switch starting at keyword."""
    if unit[keyword].text == "do":
        return _skip_statement(unit, keyword + 1)
    paren = next_significant(unit, keyword + 1)
    if not is_punct_at(unit, paren, "("):
        return keyword
    return _skip_statement(unit, match_forward(unit, paren) + 1)


def parse_switch(unit: TranslationUnit, keyword: int) -> Optional[Switch]:
    paren = next_significant(unit, keyword + 1)
    if not is_punct_at(unit, paren, "("):
        return None
    close_paren = match_forward(unit, paren)
    body = next_significant(unit, close_paren + 1)
    if not is_punct_at(unit, body, "{"):
        return None
    close = match_forward(unit, body)
    if close >= len(unit):
        return None

    labels = []
    depth = 0
    i = body + 1
    while i < close:
        token = unit[i]
        if token.is_punct("{"):
            depth += 1
        elif token.is_punct("}"):
            depth -= 1
        elif token.is_identifier("switch"):
            i = _skip_construct(unit, i) + 1
            continue
        elif depth == 0 and token.is_identifier() and token.text in ("case", "default"):
            colon = _label_colon(unit, i, close)
            if colon > 0:
                labels.append(_parse_label(unit, i, colon))
                i = colon
        i += 1

    return Switch(keyword, paren, close_paren, body, close, labels)


def find_switches(unit: TranslationUnit) -> List[Switch]:
    switches = []
    for i, token in enumerate(unit):
        if token.is_identifier("switch"):
            switch = parse_switch(unit, i)
            if switch is not None:
                switches.append(switch)
    return switches


# =============================================================================
# Validation
# =============================================================================

def subject_enum(ctx: TranslationContext, switch: Switch) -> Optional[EnumInfo]:
    """Enum type of a plain identifier subject, from its declaration."""
    unit = ctx.unit
    variable = trimmed_text(unit, switch.subject_open + 1, switch.subject_close)
    if not variable.isidentifier():
        return None

    for i in range(switch.keyword - 1, -1, -1):
        if not unit[i].is_identifier(variable):
            continue
        type_index = prev_significant(unit, i)
        if is_ident_at(unit, type_index) and unit[type_index].text in ctx.symbols.enums:
            return ctx.symbols.enums[unit[type_index].text]
    return None


def _has_terminator(unit: TranslationUnit, start: int, end: int) -> bool:
    i = start
    while i < end:
        token = unit[i]
        if token.is_identifier():
            if token.text in LOOP_KEYWORDS or token.text == "switch":
                i = _skip_construct(unit, i) + 1
                continue
            if token.text in TERMINATORS:
                return True
        i += 1
    return False


def _check_case_bodies(ctx: TranslationContext, switch: Switch) -> None:
    unit = ctx.unit
    for n, label in enumerate(switch.labels):
        end = switch.labels[n + 1].keyword if n + 1 < len(switch.labels) else switch.body_close
        if not significant_between(unit, label.colon + 1, end):
            continue
        if not _has_terminator(unit, label.colon + 1, end):
            ctx.error(
                "Switch case must have explicit control flow. Use 'break' to end case, "
                "'continue' for fallthrough, or 'return'/'goto' for other control flow.",
                unit[label.keyword],
                SwitchError,
            )


def _check_enum_switch(ctx: TranslationContext, switch: Switch, info: EnumInfo) -> None:
    unit = ctx.unit
    covered = set()
    for label in switch.labels:
        if label.member is None:
            continue
        member = info.member(label.member)
        if member is not None:
            covered.add(member.original)

    for name in info.member_names:
        if name not in covered:
            ctx.error(
                f"Non-exhaustive switch on enum '{info.name}': missing case for '{name}'. "
                f"All enum values must be explicitly handled.",
                unit[switch.keyword],
                SwitchError,
            )

    if not switch.has_default:
        ctx.error(
            f"Switch on enum '{info.name}' must have a default case. "
            f"Add 'default: UNREACHABLE()' if all cases are covered.",
            unit[switch.keyword],
            SwitchError,
        )


def _warn_unscoped(ctx: TranslationContext, switch: Switch) -> None:
    for label in switch.labels:
        if label.member is None or label.scoped:
            continue
        found = ctx.symbols.enum_member(label.member)
        if found is not None:
            info = found[0]
            ctx.warn(
                f"Unscoped enum constant '{label.member}' in switch. "
                f"Prefer scoped syntax: 'case {info.name}.{label.member}'",
                ctx.unit[label.keyword],
            )


def validate(ctx: TranslationContext) -> None:
    switches = find_switches(ctx.unit)
    for switch in switches:
        _warn_unscoped(ctx, switch)
        info = subject_enum(ctx, switch)
        if info is not None:
            _check_enum_switch(ctx, switch, info)
        elif not switch.has_default:
            ctx.warn(
                "Switch statement should have a default case. Consider adding "
                "'default: UNREACHABLE(\"\");' or appropriate handling.",
                ctx.unit[switch.keyword],
            )
        _check_case_bodies(ctx, switch)

    logger.debug(f"Validated {len(switches)} switch statement(s)")


# =============================================================================
# Rewrite
# =============================================================================

def _breakable_ranges(unit: TranslationUnit) -> List[Tuple[int, int, str]]:
    """(start, end, keyword) for every loop and switch in unit."""
    ranges = []
    for i, token in enumerate(unit):
        if token.is_identifier() and (token.text in LOOP_KEYWORDS or token.text == "switch"):
            end = _skip_construct(unit, i)
            if end > i:
                ranges.append((i, end, token.text))
    return ranges


def _rewrite_fallthrough(unit: TranslationUnit) -> int:
    """Turn 'continue' into a fallthrough where no loop can own it."""
    ranges = _breakable_ranges(unit)
    count = 0
    for i, token in enumerate(unit):
        if not token.is_identifier("continue"):
            continue
        enclosing = {keyword for start, end, keyword in ranges if start < i <= end}
        if "switch" in enclosing and not enclosing & LOOP_KEYWORDS:
            token.text = FALLTHROUGH
            count += 1
    return count


def _insert_default(ctx: TranslationContext, switch: Switch) -> None:
    unit = ctx.unit
    close = switch.body_close
    brace = unit[close]
    block = unreachable_block(ctx.filename, brace.line, ctx.function_at(close))

    prev = close - 1
    if prev > switch.body_open and unit[prev].type is TokenType.WHITESPACE and "\n" in unit[prev].text:
        tokens = [
            ws("    ", brace),
            make_token("default", like=brace),
            op(":", brace),
            ws(" ", brace),
            make_token(block, like=brace),
            ws(unit[prev].text, brace),
        ]
    else:
        tokens = [
            ws(" ", brace),
            make_token("default", like=brace),
            op(":", brace),
            ws(" ", brace),
            make_token(block, like=brace),
            ws(" ", brace),
        ]
    unit.insert(close, tokens)


def transform(ctx: TranslationContext) -> None:
    unit = ctx.unit
    fallthroughs = _rewrite_fallthrough(unit)

    # Highest closing brace first, so pending switches keep their indices
    inserted = 0
    for switch in sorted(find_switches(unit), key=lambda s: s.body_close, reverse=True):
        if not switch.has_default:
            _insert_default(ctx, switch)
            inserted += 1

    logger.debug(f"Switches: {fallthroughs} fallthrough(s), {inserted} default(s) inserted")
