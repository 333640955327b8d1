"""
Methods
=======

Functions can be attached to a struct and called through it:

    f32 Vec2.length(Vec2 *v) { ... }      f32 Vec2_length(Vec2 *v) { ... }
    void Vec2.reset() { ... }             void Vec2_reset(Vec2 * self) { ... }
    Vec2.reset(&p);                       Vec2_reset(&p);
    p.reset();                            Vec2_reset(&p);
    Log.info("hi");                       cz_log_info("hi");

A method whose first parameter is already a pointer to its struct uses
that parameter as the receiver; any other method gets 'Struct * self'
prepended. Instance calls are resolved by method name alone, so a name
defined on two structs cannot be called through an instance.
"""

from typing import List, Optional, Set
import logging

from czar.context import LOG_STRUCT, MethodInfo, TranslationContext
from czar.declarations import collect_type_names
from czar.errors import MethodError
from czar.features.functions import is_type_word
from czar.imports import seed_from_imports
from czar.parser import TranslationUnit
from czar.scanner import (
    is_ident_at,
    is_op_at,
    is_punct_at,
    make_token,
    match_forward,
    next_significant,
    op,
    prev_significant,
    punct,
    significant_between,
    split_arguments,
    ws,
)

logger = logging.getLogger(__name__)


RECEIVER_NAME = "self"
LOG_PREFIX = "cz_log_"

RECEIVER_QUALIFIERS = frozenset({"mut", "const"})


def _member_call(unit: TranslationUnit, index: int) -> Optional[tuple]:
    """
    Match 'ident . name (' at index.

    Returns:
        (dot index, name index, '(' index) or None
    """
    if not unit[index].is_identifier():
        return None
    dot = next_significant(unit, index + 1)
    name = next_significant(unit, dot + 1)
    paren = next_significant(unit, name + 1)
    if is_op_at(unit, dot, ".") and is_ident_at(unit, name) and is_punct_at(unit, paren, "("):
        return dot, name, paren
    return None


def _existing_receiver(unit: TranslationUnit, struct_name: str, paren: int, close: int) -> Optional[str]:
    """Name of the first parameter if it is declared 'Struct * name'."""
    args = split_arguments(unit, paren, close)
    if not args:
        return None
    words = [unit[i].text for i in significant_between(unit, *args[0])]
    words = [w for w in words if w not in RECEIVER_QUALIFIERS]
    if len(words) == 3 and words[0] == struct_name and words[1] == "*":
        return words[2]
    return None


# =============================================================================
# Declarations
# =============================================================================

def _rewrite_declaration(ctx: TranslationContext, index: int, dot: int, name: int, paren: int) -> MethodInfo:
    unit = ctx.unit
    struct_name = unit[index].text
    method_name = unit[name].text
    close = match_forward(unit, paren)

    receiver = _existing_receiver(unit, struct_name, paren, close)

    unit[index].text = f"{struct_name}_{method_name}"
    unit[dot].delete()
    unit[name].delete()

    if receiver is None:
        receiver = RECEIVER_NAME
        params = significant_between(unit, paren + 1, close)
        if len(params) == 1 and unit[params[0]].is_identifier("void"):
            unit[params[0]].delete()
            params = []

        like = unit[paren]
        tokens = [
            make_token(struct_name, like=like),
            ws(" ", like),
            op("*", like),
            ws(" ", like),
            make_token(RECEIVER_NAME, like=like),
        ]
        if params:
            tokens += [punct(",", like), ws(" ", like)]
        unit.insert(paren + 1, tokens)

    return MethodInfo(struct_name, method_name, receiver)


def _declarations(ctx: TranslationContext) -> List[MethodInfo]:
    unit = ctx.unit
    structs = ctx.symbols.structs

    sites = []
    for i, token in enumerate(unit):
        if not token.is_identifier() or token.text not in structs:
            continue
        match = _member_call(unit, i)
        if match is not None and is_type_word(unit, prev_significant(unit, i)):
            sites.append((i,) + match)

    methods = []
    for site in reversed(sites):
        info = _rewrite_declaration(ctx, *site)
        ctx.symbols.add_method(info)
        methods.append(info)
        logger.debug(f"method {info.struct_name}.{info.method_name} -> {info.function_name}")
    return methods


# =============================================================================
# Calls
# =============================================================================

def _is_pointer_variable(unit: TranslationUnit, index: int, name: str, type_names: Set[str]) -> bool:
    """True if the nearest earlier declaration of name is 'Type * name'."""
    for i in range(index - 1, -1, -1):
        if not unit[i].is_identifier(name):
            continue
        prev = prev_significant(unit, i)
        if is_op_at(unit, prev, "*"):
            before = prev_significant(unit, prev)
            if is_op_at(unit, before, "*") or (is_ident_at(unit, before) and unit[before].text in type_names):
                return True
        elif is_ident_at(unit, prev) and unit[prev].text in type_names:
            return False
    return False


def _rewrite_static_call(ctx: TranslationContext, index: int, dot: int, name: int) -> None:
    unit = ctx.unit
    struct_name = unit[index].text
    method_name = unit[name].text
    if struct_name == LOG_STRUCT:
        unit[index].text = f"{LOG_PREFIX}{method_name}"
    else:
        unit[index].text = f"{struct_name}_{method_name}"
    unit[dot].delete()
    unit[name].delete()


def _rewrite_instance_call(ctx: TranslationContext, index: int, dot: int, name: int, paren: int) -> bool:
    unit = ctx.unit
    instance = unit[index].text
    method_name = unit[name].text

    owners = ctx.symbols.structs_with_method(method_name)
    if not owners:
        return False
    if len(owners) > 1:
        ctx.error(
            f"Ambiguous method call '{instance}.{method_name}()': '{method_name}' is defined "
            f"on {', '.join(owners)}. Call it explicitly as {owners[0]}.{method_name}(...).",
            unit[index],
            MethodError,
        )

    struct_name = owners[0]
    pointer = _is_pointer_variable(unit, index, instance, collect_type_names(unit, set(ctx.symbols.structs)))
    close = match_forward(unit, paren)
    has_args = bool(split_arguments(unit, paren, close))

    unit[index].text = f"{struct_name}_{method_name}"
    unit[dot].delete()
    unit[name].delete()

    like = unit[paren]
    tokens = [] if pointer else [op("&", like)]
    tokens.append(make_token(instance, like=like))
    if has_args:
        tokens += [punct(",", like), ws(" ", like)]
    unit.insert(paren + 1, tokens)
    return True


def transform(ctx: TranslationContext) -> None:
    seed_from_imports(ctx)
    unit = ctx.unit
    symbols = ctx.symbols

    declared = _declarations(ctx)

    calls = 0
    # Right to left: receiver insertions never disturb pending call sites
    for i in range(len(unit) - 1, -1, -1):
        match = _member_call(unit, i)
        if match is None:
            continue
        prev = prev_significant(unit, i)
        if is_op_at(unit, prev, ".") or is_op_at(unit, prev, "->"):
            continue

        dot, name, paren = match
        owner = unit[i].text
        if owner == LOG_STRUCT or owner in symbols.structs:
            if symbols.has_method(owner, unit[name].text) or owner == LOG_STRUCT:
                _rewrite_static_call(ctx, i, dot, name)
                calls += 1
        elif _rewrite_instance_call(ctx, i, dot, name, paren):
            calls += 1

    logger.debug(f"Methods: {len(declared)} declared, {calls} call(s) rewritten")
