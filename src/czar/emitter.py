"""
CZar Dual Emitter
=================

Writes one translation unit as a header/source pair.

Header (`name.cz.h`)
--------------------
    #pragma once
    <standard include preamble>
    [#include "cz.h"]          when runtime names are used
    <everything except function bodies>

Each function definition is cut at its opening '{' and closed with ';',
so the header carries a prototype for every function. Struct, enum and
typedef definitions, globals and preprocessor lines are copied as they
are. `#import` directives become `#include` lines.

Source (`name.cz.c`)
--------------------
    #include "name.cz.h"
    [#include "<sibling>.cz.h" ...]    when the unit uses #import
    <emit hook output>
    <function definitions only>

A token contributes exactly its current text; deleted tokens contribute
nothing.
"""

from dataclasses import dataclass
from typing import List, Optional, TYPE_CHECKING
import logging

from czar.imports import import_path, render_import, sibling_headers, uses_imports
from czar.lexer import TokenType
from czar.parser import TranslationUnit
from czar.scanner import match_forward

if TYPE_CHECKING:
    from czar.context import TranslationContext
    from czar.registry import FeatureRegistry

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

PREAMBLE_HEADERS = (
    "stdlib.h",
    "stdio.h",
    "stdint.h",
    "stddef.h",
    "stdbool.h",
    "assert.h",
    "stdarg.h",
    "string.h",
)

RUNTIME_HEADER = "cz.h"

# Identifiers (or prefixes) provided by the runtime header
RUNTIME_NAMES = ("cz_log_", "cz_format", "cz_monotonic_clock_ns", "cz_assert")

# A definition header longer than this many tokens is not recognised
DEFINITION_LOOKAHEAD = 100

NON_DEFINITION_STARTS = frozenset({"struct", "union", "enum", "typedef"})


# =============================================================================
# Definition Detection
# =============================================================================

@dataclass
class FunctionDefinition:
    """Token span of one function definition: [start, body_close]."""
    start: int
    body_open: int
    body_close: int


def definition_at(unit: TranslationUnit, index: int) -> Optional[FunctionDefinition]:
    """
    The function definition starting at index, if any.

    Scans forward over at most DEFINITION_LOOKAHEAD significant tokens.
    At parenthesis depth 0 a ';', '=' or '}' ends the search; a '{'
    directly after ')' is a function body.
    """
    token = unit[index]
    if token.is_trivia() or token.type is TokenType.PREPROCESSOR:
        return None
    if token.is_identifier() and token.text in NON_DEFINITION_STARTS:
        return None

    depth = 0
    seen = 0
    previous = None
    for i in range(index, len(unit)):
        current = unit[i]
        if current.is_trivia():
            continue
        seen += 1
        if seen > DEFINITION_LOOKAHEAD or current.type is TokenType.PREPROCESSOR:
            return None

        if current.is_punct("("):
            depth += 1
        elif current.is_punct(")"):
            depth -= 1
        elif depth == 0:
            if current.is_punct(";") or current.is_punct("}") or current.is_op("="):
                return None
            if current.is_punct("{"):
                if previous is None or not previous.is_punct(")"):
                    return None
                close = match_forward(unit, i)
                if close >= len(unit):
                    return None
                return FunctionDefinition(index, i, close)
        previous = current

    return None


def find_definitions(unit: TranslationUnit) -> List[FunctionDefinition]:
    """Every function definition in the unit, in source order."""
    definitions = []
    i = 0
    while i < len(unit):
        definition = definition_at(unit, i)
        if definition is None:
            i += 1
            continue
        definitions.append(definition)
        i = definition.body_close + 1
    return definitions


# =============================================================================
# Emitter
# =============================================================================

def uses_runtime(unit: TranslationUnit) -> bool:
    return any(
        token.is_identifier() and token.text.startswith(RUNTIME_NAMES)
        for token in unit
    )


def _squeeze(text: str) -> str:
    return "".join(text.split())


class CzarEmitter:
    """
    Renders a rewritten translation unit as C text.

    Usage:
        emitter = CzarEmitter(ctx, registry)
        header = emitter.emit_header()
        source = emitter.emit_source("main.cz.h")
    """

    def __init__(self, ctx: "TranslationContext", registry: Optional["FeatureRegistry"] = None, emit_preamble: bool = True):
        self.ctx = ctx
        self.unit = ctx.unit
        self.registry = registry
        self.emit_preamble = emit_preamble
        self._definitions = find_definitions(self.unit)

    @property
    def definitions(self) -> List[FunctionDefinition]:
        return self._definitions

    # =========================================================================
    # Header
    # =========================================================================

    def _preamble(self) -> str:
        lines = ["#pragma once\n", "\n"]
        if self.emit_preamble:
            lines.extend(f"#include <{header}>\n" for header in PREAMBLE_HEADERS)
        if uses_runtime(self.unit):
            lines.append(f'#include "{RUNTIME_HEADER}"\n')
        lines.append("\n")
        return "".join(lines)

    def _directive_text(self, text: str) -> Optional[str]:
        """Header text for a preprocessor line; None drops it."""
        path = import_path(text)
        if path is not None:
            return render_import(self.ctx.base_dir, path)
        if self.emit_preamble:
            squeezed = _squeeze(text)
            if any(squeezed == f"#include<{header}>" for header in PREAMBLE_HEADERS):
                return None
        return text

    def emit_header(self) -> str:
        unit = self.unit
        parts = [self._preamble()]
        starts = {d.start: d for d in self._definitions}

        i = 0
        while i < len(unit):
            definition = starts.get(i)
            if definition is not None:
                prototype = unit.text(definition.start, definition.body_open).rstrip()
                parts.append(prototype + ";\n")
                i = definition.body_close + 1
                continue

            token = unit[i]
            if token.type is TokenType.PREPROCESSOR:
                text = self._directive_text(token.text)
                if text:
                    parts.append(text)
            else:
                parts.append(token.text)
            i += 1

        logger.debug(f"Header: {len(self._definitions)} prototype(s)")
        return "".join(parts)

    # =========================================================================
    # Source
    # =========================================================================

    def emit_source(self, header_name: str) -> str:
        unit = self.unit
        parts = [f'#include "{header_name}"\n']
        if uses_imports(unit):
            parts.extend(f'#include "{header}"\n' for header in sibling_headers(self.ctx.path))
        parts.append("\n")

        if self.registry is not None:
            parts.append(self.registry.run_emit(self.ctx))

        for definition in self._definitions:
            parts.append(unit.text(definition.start, definition.body_close + 1))
            parts.append("\n\n")

        logger.debug(f"Source: {len(self._definitions)} definition(s)")
        return "".join(parts)
