"""
Named Arguments
===============

Call arguments may be labelled with the parameter they bind to:

    Rect r = make_rect(width = 4, height = 2);     make_rect(4, 2)

Labels must follow parameter order. Two adjacent parameters of the same
type must be labelled at the call site, since swapping them would
compile silently. Labels are checked against every function signature
in the unit; calls to other functions only have their labels removed.
"""

from typing import Dict, List, Optional, Tuple
import logging

from czar.context import Parameter, TranslationContext
from czar.errors import NamedArgumentError
from czar.features.functions import find_signatures
from czar.parser import TranslationUnit
from czar.scanner import (
    STATEMENT_KEYWORDS,
    TYPE_KEYWORDS,
    is_op_at,
    is_punct_at,
    match_forward,
    next_significant,
    prev_significant,
    significant_between,
    split_arguments,
)

logger = logging.getLogger(__name__)


# Qualifiers that do not distinguish one parameter type from another
IGNORED_QUALIFIERS = frozenset({"mut", "const", "volatile", "register"})


# =============================================================================
# Signature Table
# =============================================================================

def parse_parameters(unit: TranslationUnit, open_paren: int, close_paren: int) -> List[Parameter]:
    """(name, type) for each named parameter; stops at a variadic '...'."""
    parameters = []
    for start, end in split_arguments(unit, open_paren, close_paren):
        words = [unit[i].text for i in significant_between(unit, start, end)]
        if not words or words == ["void"] or words[0] == ".":
            break
        name = words[-1]
        if not name.isidentifier() or name in TYPE_KEYWORDS:
            parameters.append(Parameter("", " ".join(words)))
            continue
        type_words = [w for w in words[:-1] if w not in IGNORED_QUALIFIERS]
        parameters.append(Parameter(name, " ".join(type_words)))
    return parameters


def collect_functions(ctx: TranslationContext) -> List[int]:
    """Record every signature in ctx.symbols.functions; return name indices."""
    unit = ctx.unit
    names = []
    for signature in find_signatures(unit):
        if signature.is_method:
            continue
        name = unit[signature.name_index].text
        ctx.symbols.functions[name] = parse_parameters(unit, signature.open_paren, signature.close_paren)
        names.append(signature.name_index)
    return names


# =============================================================================
# Calls
# =============================================================================

def _label(unit: TranslationUnit, start: int, end: int) -> Optional[Tuple[int, int]]:
    """(label index, '=' index) if the argument in [start, end) is labelled."""
    first = next_significant(unit, start)
    if first >= end or not unit[first].is_identifier():
        return None
    equals = next_significant(unit, first + 1)
    if equals < end and is_op_at(unit, equals, "="):
        return first, equals
    return None


def _strip_label(unit: TranslationUnit, label: int, equals: int, end: int) -> None:
    for i in range(label, equals + 1):
        unit[i].delete()
    i = equals + 1
    while i < end and unit[i].is_trivia():
        unit[i].delete()
        i += 1


def _check_call(
    ctx: TranslationContext,
    name_index: int,
    parameters: List[Parameter],
    labels: List[Optional[Tuple[int, int]]],
) -> None:
    unit = ctx.unit
    name = unit[name_index].text

    for position, label in enumerate(labels):
        if label is None or position >= len(parameters):
            continue
        given = unit[label[0]].text
        expected = parameters[position].name
        if expected and given != expected:
            ctx.error(
                f"Named argument '{given}' at position {position + 1} does not match expected "
                f"parameter '{expected}'. Named arguments must preserve parameter order.",
                unit[label[0]],
                NamedArgumentError,
            )

    method = ctx.symbols.method_for_function(name)
    receiver = method.receiver if method is not None else None

    for position in range(min(len(parameters), len(labels)) - 1):
        first, second = parameters[position], parameters[position + 1]
        if not (first.name and second.name) or first.type_text != second.type_text:
            continue
        if first.name == receiver:
            continue
        if labels[position] is None and labels[position + 1] is None:
            ctx.error(
                f"Ambiguous function call with consecutive same-type parameters without labels. "
                f"Use named arguments for clarity: {name}({first.name} = ..., {second.name} = ...)",
                unit[name_index],
                NamedArgumentError,
            )


def _is_call(unit: TranslationUnit, index: int, declarations: set) -> bool:
    token = unit[index]
    if not token.is_identifier() or index in declarations:
        return False
    if token.text in STATEMENT_KEYWORDS or token.text in TYPE_KEYWORDS:
        return False
    if not is_punct_at(unit, next_significant(unit, index + 1), "("):
        return False
    prev = prev_significant(unit, index)
    return not (is_op_at(unit, prev, ".") or is_op_at(unit, prev, "->"))


def transform(ctx: TranslationContext) -> None:
    unit = ctx.unit
    declarations = set(collect_functions(ctx))
    functions: Dict[str, List[Parameter]] = ctx.symbols.functions

    stripped = 0
    for i in range(len(unit)):
        if not _is_call(unit, i, declarations):
            continue
        paren = next_significant(unit, i + 1)
        close = match_forward(unit, paren)
        if close >= len(unit):
            continue

        args = split_arguments(unit, paren, close)
        labels = [_label(unit, start, end) for start, end in args]

        parameters = functions.get(unit[i].text)
        if parameters is not None:
            _check_call(ctx, i, parameters, labels)

        for (start, end), label in zip(args, labels):
            if label is not None:
                _strip_label(unit, label[0], label[1], end)
                stripped += 1

    logger.debug(f"Named arguments: {len(functions)} signature(s), {stripped} label(s) stripped")
