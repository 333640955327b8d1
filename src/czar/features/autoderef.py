"""
Auto-dereference
================

Inside a function, member access through a pointer parameter may be
written with '.'; it is rewritten to '->':

    f32 Vec2.length(Vec2 *v) { return v.x; }    ...{ return v->x; }

Pointer parameters ('Type * name', 'Type * * name') are collected from
the parameter list of every function definition, and a '.' is rewritten
only inside the body of the function that declares the parameter.
"""

from typing import Dict, List, Tuple
import logging

from czar.context import TranslationContext
from czar.parser import TranslationUnit
from czar.scanner import (
    brace_depths,
    is_ident_at,
    is_op_at,
    is_punct_at,
    match_forward,
    next_significant,
    prev_significant,
    significant_between,
    split_arguments,
)

logger = logging.getLogger(__name__)


def collect_pointer_parameters(unit: TranslationUnit) -> List[Tuple[str, int, int, int]]:
    """
    Pointer parameters of every function definition.

    Returns:
        (name, declaration index, body '{' index, body '}' index)
    """
    depths = brace_depths(unit)
    found = []
    for i, token in enumerate(unit):
        if not token.is_punct("(") or depths[i] != 0:
            continue
        if not is_ident_at(unit, prev_significant(unit, i)):
            continue
        close = match_forward(unit, i)
        body = next_significant(unit, close + 1)
        if not is_punct_at(unit, body, "{"):
            continue
        body_close = match_forward(unit, body)

        for start, end in split_arguments(unit, i, close):
            significant = significant_between(unit, start, end)
            if len(significant) < 3:
                continue
            name, star = significant[-1], significant[-2]
            if unit[name].is_identifier() and unit[star].is_op("*"):
                found.append((unit[name].text, name, body, body_close))
    return found


def _member_root(unit: TranslationUnit, index: int) -> bool:
    prev = prev_significant(unit, index)
    return not (is_op_at(unit, prev, ".") or is_op_at(unit, prev, "->"))


def transform(ctx: TranslationContext) -> None:
    unit = ctx.unit
    parameters = collect_pointer_parameters(unit)
    if not parameters:
        return

    scopes: Dict[str, List[Tuple[int, int]]] = {}
    for name, declared_at, body, body_close in parameters:
        ctx.symbols.pointer_locals.setdefault(name, declared_at)
        scopes.setdefault(name, []).append((body, body_close))

    rewritten = 0
    for i, token in enumerate(unit):
        if not token.is_op("."):
            continue
        left = prev_significant(unit, i)
        right = next_significant(unit, i + 1)
        if not (is_ident_at(unit, left) and is_ident_at(unit, right)):
            continue
        ranges = scopes.get(unit[left].text)
        if not ranges or not any(start < i < end for start, end in ranges):
            continue
        # a.b.c: only the root can be the parameter
        if not _member_root(unit, left):
            continue
        token.text = "->"
        rewritten += 1

    logger.debug(f"Auto-dereferenced {rewritten} member access(es)")
