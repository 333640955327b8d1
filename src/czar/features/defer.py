"""
#defer
======

Scope-exit cleanup built on the GCC/Clang cleanup attribute.

Declaration form::

    FILE *f = fopen(path, "r") #defer { fclose(f); };

becomes a generated cleanup function, emitted near the top of the
source file, and an attributed declaration::

    static void _cz_cleanup_f(void ** f) { fclose((*f)); }
    __attribute__((cleanup(_cz_cleanup_f))) FILE *f = fopen(path, "r");

`#defer name;` uses an existing function as the cleanup function.

Standalone form::

    #defer { puts("leaving"); };

becomes a dummy variable whose cleanup is a GCC nested function. Other
compilers get an #error pointing at the declaration form.

The block may span several lines; the lexer keeps a #defer directive
going until its braces balance, so the whole block arrives as one
token.
"""

from dataclasses import dataclass
from typing import List, Optional
import logging

from czar.context import TranslationContext
from czar.errors import DeferError
from czar.features.lowering import lower_tokens
from czar.lexer import TokenType
from czar.parser import TranslationUnit
from czar.scanner import (
    fragment,
    match_backward,
    next_significant,
    prev_significant,
)

logger = logging.getLogger(__name__)


DIRECTIVE = "defer"
CLEANUP_PREFIX = "_cz_cleanup_"
STANDALONE_PREFIX = "_cz_defer_"
STANDALONE_ARGUMENT = "_cz_defer_arg"

GNU_NESTED_FUNCTIONS = "#if defined(__GNUC__) && !defined(__clang__)"
STANDALONE_UNSUPPORTED = (
    '#error "Standalone #defer requires GCC nested functions. '
    'Attach it to a declaration instead: Type name = value #defer { ... };"'
)


@dataclass
class DeferSite:
    """
    One #defer directive, analysed but not yet applied.

    Attributes:
        index: The directive token
        start: First token of the declaration, None when standalone
        cleanup: Name of the cleanup function
        replacement: Text replacing the directive (declaration form)
        standalone: Code replacing the directive (standalone form)
    """
    index: int
    start: Optional[int]
    cleanup: str
    replacement: str = ";"
    standalone: str = ""


# =============================================================================
# Directive Text
# =============================================================================

def directive_tail(text: str) -> Optional[str]:
    """Text after '#defer', None if text is not a #defer directive."""
    body = text.lstrip().lstrip("#").lstrip()
    if not body.startswith(DIRECTIVE):
        return None
    tail = body[len(DIRECTIVE):]
    if tail and (tail[0].isalnum() or tail[0] == "_"):
        return None
    return tail


def _block(text: str) -> Optional[str]:
    """The outermost '{ ... }' in text, None if it never closes."""
    start = text.index("{")
    depth = 0
    quote = ""
    escaped = False
    for i in range(start, len(text)):
        char = text[i]
        if quote:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = ""
        elif char in "\"'":
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def _cleanup_block(ctx: TranslationContext, index: int, tail: str) -> str:
    block = _block(tail)
    if block is None:
        ctx.error("Unterminated '#defer' block. Close it with '};'.", ctx.unit[index], DeferError)
    return block


# =============================================================================
# Generated Code
# =============================================================================

def cleanup_function(function_name: str, variable: str, block: str) -> str:
    """
    Static cleanup function for a declaration-form #defer.

    The attribute passes the variable's address, so uses of the variable
    inside the block read through the pointer.
    """
    tokens = fragment(block)
    previous = None
    for token in tokens:
        if token.is_trivia():
            continue
        after_member = previous is not None and (previous.is_op(".") or previous.is_op("->"))
        if token.is_identifier(variable) and not after_member:
            token.text = f"(*{variable})"
        previous = token
    lower_tokens(tokens)
    body = "".join(token.text for token in tokens)
    return f"static void {function_name}(void ** {variable}) {body}\n"


def standalone_code(function_name: str, block: str) -> str:
    return (
        f"\n{GNU_NESTED_FUNCTIONS}\n"
        f"void {function_name}(int *{STANDALONE_ARGUMENT} __attribute__((unused))) {block}\n"
        f"int {function_name}_var __attribute__((cleanup({function_name}))) = 0;\n"
        f"#else\n"
        f"{STANDALONE_UNSUPPORTED}\n"
        f"#endif\n"
    )


# =============================================================================
# Analysis
# =============================================================================

def _statement_start(unit: TranslationUnit, index: int) -> int:
    """First significant token of the statement ending at index."""
    depth = 0
    i = index - 1
    while i >= 0:
        token = unit[i]
        if token.is_trivia():
            i -= 1
            continue
        if token.type is TokenType.PREPROCESSOR and depth == 0:
            break
        if token.type is TokenType.PUNCTUATION:
            if token.text in (")", "]"):
                depth += 1
            elif token.text in ("(", "["):
                depth -= 1
            elif token.text in (";", "{", "}") and depth == 0:
                break
        i -= 1
    return next_significant(unit, i + 1)


def _initializer(unit: TranslationUnit, start: int, end: int) -> int:
    """Index of the declaration's '=' in [start, end), or -1."""
    depth = 0
    for i in range(start, end):
        token = unit[i]
        if token.type is TokenType.PUNCTUATION:
            if token.text in ("(", "[", "{"):
                depth += 1
            elif token.text in (")", "]", "}"):
                depth -= 1
        elif token.is_op("=") and depth == 0:
            return i
    return -1


def _declared_name(unit: TranslationUnit, equals: int) -> int:
    name = prev_significant(unit, equals)
    while name >= 0 and unit[name].is_punct("]"):
        name = prev_significant(unit, match_backward(unit, name))
    return name


class _Namer:
    """Unique cleanup function names within one unit."""

    def __init__(self):
        self.used = set()
        self.standalone_count = 0

    def __call__(self, base: str) -> str:
        name = base
        n = 1
        while name in self.used:
            name = f"{base}_{n}"
            n += 1
        self.used.add(name)
        return name

    def standalone(self) -> str:
        name = f"{STANDALONE_PREFIX}{self.standalone_count}"
        self.standalone_count += 1
        return name


def _analyse(ctx: TranslationContext, index: int, tail: str, namer: _Namer) -> DeferSite:
    unit = ctx.unit
    token = unit[index]
    stripped = tail.strip().rstrip(";").strip()
    start = _statement_start(unit, index)

    if start >= index:
        if not stripped.startswith("{"):
            ctx.error(
                "Standalone '#defer' needs a cleanup block: #defer { ... };",
                token,
                DeferError,
            )
        block = _cleanup_block(ctx, index, tail)
        return DeferSite(index, None, namer.standalone(), standalone=block)

    equals = _initializer(unit, start, index)
    if equals < 0:
        ctx.error(
            f"'#defer' requires an initialized declaration, found '{unit.text(start, index).strip()}'. "
            f"Use: Type name = value #defer {{ ... }};",
            token,
            DeferError,
        )
    name = _declared_name(unit, equals)
    if name < 0 or not unit[name].is_identifier():
        ctx.error("Cannot find the variable a '#defer' block cleans up.", token, DeferError)
    variable = unit[name].text

    keep_newline = "\n" if token.text.endswith("\n") else ""
    if stripped.startswith("{"):
        block = _cleanup_block(ctx, index, tail)
        function_name = namer(f"{CLEANUP_PREFIX}{variable}")
        ctx.cleanup_functions.append(cleanup_function(function_name, variable, block))
        return DeferSite(index, start, function_name, replacement=";" + keep_newline)

    if stripped.isidentifier():
        return DeferSite(index, start, stripped, replacement=";" + keep_newline)

    ctx.error(
        "Malformed '#defer' directive. Use '#defer { ... };' or '#defer cleanup_function;'.",
        token,
        DeferError,
    )


# =============================================================================
# Hooks
# =============================================================================

def _apply(unit: TranslationUnit, site: DeferSite) -> None:
    directive = unit[site.index]
    if site.start is None:
        directive.delete()
        unit.insert(site.index, fragment(standalone_code(site.cleanup, site.standalone), directive))
        return

    directive.type = TokenType.PUNCTUATION
    directive.text = site.replacement
    i = site.index - 1
    while i > site.start and unit[i].type is TokenType.WHITESPACE:
        unit[i].delete()
        i -= 1
    attribute = f"__attribute__((cleanup({site.cleanup}))) "
    unit.insert(site.start, fragment(attribute, unit[site.start]))


def transform(ctx: TranslationContext) -> None:
    unit = ctx.unit
    namer = _Namer()

    sites: List[DeferSite] = []
    for i, token in enumerate(unit):
        if token.type is not TokenType.PREPROCESSOR:
            continue
        tail = directive_tail(token.text)
        if tail is not None:
            sites.append(_analyse(ctx, i, tail, namer))

    # Last site first; each insertion only moves later indices
    for site in reversed(sites):
        _apply(unit, site)

    logger.debug(f"#defer: {len(sites)} site(s), {len(ctx.cleanup_functions)} cleanup function(s)")


def emit(ctx: TranslationContext) -> str:
    """Cleanup functions, written before the first definition."""
    if not ctx.cleanup_functions:
        return ""
    return "".join(ctx.cleanup_functions) + "\n"
