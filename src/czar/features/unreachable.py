"""
UNREACHABLE, TODO and FIXME
===========================

Each marker call expands in place to a block that reports the location
on stderr and aborts:

    UNREACHABLE("bad state");
    { fprintf(stderr, "main.cz:12: run: Unreachable code reached: bad state\\n"); abort(); };

TODO and FIXME expand the same way with the message prefixed by
"TODO: " or "FIXME: ". The text becomes part of the fprintf format, so
any '%' in it is doubled.
"""

import logging

from czar.context import TranslationContext
from czar.lexer import TokenType
from czar.scanner import (
    delete_range,
    match_forward,
    next_significant,
    prev_significant,
    is_op_at,
    is_punct_at,
    significant_between,
)

logger = logging.getLogger(__name__)


MARKER_PREFIXES = {
    "UNREACHABLE": "",
    "TODO": "TODO: ",
    "FIXME": "FIXME: ",
}


def _format_literal(text: str) -> str:
    """Text as it must appear inside a printf format string."""
    return text.replace("%", "%%")


def unreachable_block(filename: str, line: int, function: str, message: str = "") -> str:
    """Inline block reporting unreachable code on stderr and aborting."""
    location = _format_literal(f"{filename}:{line}: {function}")
    return (
        f'{{ fprintf(stderr, "{location}: '
        f'Unreachable code reached: {_format_literal(message)}\\n"); abort(); }}'
    )


def _message(ctx: TranslationContext, open_paren: int, close_paren: int) -> str:
    """Body of the string literal argument, empty if there is none."""
    unit = ctx.unit
    args = significant_between(unit, open_paren + 1, close_paren)
    if len(args) == 1 and unit[args[0]].type is TokenType.STRING:
        return unit[args[0]].text[1:-1]
    return ""


def expand_markers(ctx: TranslationContext, marker: str) -> int:
    unit = ctx.unit
    prefix = MARKER_PREFIXES[marker]
    count = 0

    for i, token in enumerate(unit):
        if not token.is_identifier(marker):
            continue
        prev = prev_significant(unit, i)
        if is_op_at(unit, prev, ".") or is_op_at(unit, prev, "->"):
            continue
        paren = next_significant(unit, i + 1)
        if not is_punct_at(unit, paren, "("):
            continue
        close = match_forward(unit, paren)
        if close >= len(unit):
            continue

        message = prefix + _message(ctx, paren, close)
        token.text = unreachable_block(ctx.filename, token.line, ctx.function_at(i), message)
        delete_range(unit, i + 1, close + 1)
        count += 1

    return count


def transform_unreachable(ctx: TranslationContext) -> None:
    count = expand_markers(ctx, "UNREACHABLE")
    logger.debug(f"Expanded {count} UNREACHABLE marker(s)")


def transform_todo(ctx: TranslationContext) -> None:
    count = expand_markers(ctx, "TODO")
    logger.debug(f"Expanded {count} TODO marker(s)")


def transform_fixme(ctx: TranslationContext) -> None:
    count = expand_markers(ctx, "FIXME")
    logger.debug(f"Expanded {count} FIXME marker(s)")
