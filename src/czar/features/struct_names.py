"""
Struct Name Replacement
=======================

Once methods are resolved, a tracked struct name used as a type becomes
its typedef alias: `Vec2 v` -> `Vec2_t v`, `Vec2 *p` -> `Vec2_t *p`.

An identifier is renamed only when it is a tracked struct name, is not
a member access (after '.' or '->'), is not the tag after 'struct', and
is not itself followed by '.' or '('.
"""

import logging

from czar.context import TranslationContext
from czar.imports import seed_from_imports
from czar.scanner import is_ident_at, is_op_at, is_punct_at, next_significant, prev_significant

logger = logging.getLogger(__name__)


def transform(ctx: TranslationContext) -> None:
    seed_from_imports(ctx)
    unit = ctx.unit
    aliases = ctx.symbols.structs
    if not aliases:
        return

    renamed = 0
    for i, token in enumerate(unit):
        if not token.is_identifier() or token.text not in aliases:
            continue
        prev = prev_significant(unit, i)
        if is_ident_at(unit, prev, "struct") or is_op_at(unit, prev, ".") or is_op_at(unit, prev, "->"):
            continue
        following = next_significant(unit, i + 1)
        if is_op_at(unit, following, ".") or is_punct_at(unit, following, "("):
            continue
        token.text = aliases[token.text]
        renamed += 1

    logger.debug(f"Renamed {renamed} struct type use(s)")
