"""
Function Signatures
===================

Normalisation applied to every function declared at file scope:

| Source                       | Output                                              |
|------------------------------|-----------------------------------------------------|
| u32 main(...)                | int main(...)                                       |
| u8 f()                       | u8 f(void)                                          |
| non-void f                   | __attribute__((warn_unused_result)) ...             |
| non-void f, no mut parameter | __attribute__((warn_unused_result)) __attribute__((pure)) ... |

Methods (`Ret Struct.name(...)`) are recognised here too. They never
get '(void)' since the method pass adds a receiver, and they are never
pure.
"""

from dataclasses import dataclass
from typing import List
import logging

from czar.context import TranslationContext
from czar.lexer import TokenType
from czar.parser import TranslationUnit
from czar.scanner import (
    CALL_LIKE_KEYWORDS,
    STATEMENT_KEYWORDS,
    TYPE_KEYWORDS,
    brace_depths,
    is_ident_at,
    is_op_at,
    make_token,
    match_forward,
    prev_significant,
    next_significant,
    significant_between,
    ws,
)

logger = logging.getLogger(__name__)


MAIN_FUNCTION = "main"
MAIN_RETURN_TYPES = frozenset({"u32", "uint32_t"})

WARN_UNUSED_RESULT = "__attribute__((warn_unused_result))"
PURE = "__attribute__((pure))"

# Words in a return type that say nothing about the type itself
STORAGE_WORDS = frozenset({"static", "inline", "extern", "__inline__", "_Noreturn"})


# =============================================================================
# Signature Discovery
# =============================================================================

@dataclass
class Signature:
    """
    A function declaration or definition header.

    Attributes:
        start: First token of the declaration (return type or storage class)
        name_index: The function name (the method name for methods)
        open_paren: '(' of the parameter list
        close_paren: Matching ')'
        struct_index: Struct name token of a method, else -1
    """
    start: int
    name_index: int
    open_paren: int
    close_paren: int
    struct_index: int = -1

    @property
    def is_method(self) -> bool:
        return self.struct_index >= 0

    def name(self, unit: TranslationUnit) -> str:
        if self.is_method:
            return f"{unit[self.struct_index].text}.{unit[self.name_index].text}"
        return unit[self.name_index].text

    def return_words(self, unit: TranslationUnit) -> List[str]:
        end = self.struct_index if self.is_method else self.name_index
        return [unit[i].text for i in significant_between(unit, self.start, end)]

    def returns_void(self, unit: TranslationUnit) -> bool:
        words = [w for w in self.return_words(unit) if w not in STORAGE_WORDS]
        return words == ["void"]

    def parameter_words(self, unit: TranslationUnit) -> List[str]:
        return [unit[i].text for i in significant_between(unit, self.open_paren + 1, self.close_paren)]

    def has_empty_parameters(self, unit: TranslationUnit) -> bool:
        return not significant_between(unit, self.open_paren + 1, self.close_paren)


def is_type_word(unit: TranslationUnit, index: int) -> bool:
    if index < 0:
        return False
    token = unit[index]
    if token.is_op("*"):
        return True
    if not token.is_identifier():
        return False
    return token.text not in STATEMENT_KEYWORDS


def _declaration_start(unit: TranslationUnit, index: int) -> int:
    """Walk back over type words from index to the start of the declaration."""
    start = index
    prev = prev_significant(unit, index)
    while prev >= 0 and is_type_word(unit, prev):
        start = prev
        prev = prev_significant(unit, prev)
    return start


def find_signatures(unit: TranslationUnit) -> List[Signature]:
    """Every function header at file scope, in source order."""
    depths = brace_depths(unit)
    signatures = []
    paren_depth = 0

    for i, token in enumerate(unit):
        if token.type is TokenType.PUNCTUATION:
            if token.text == "(":
                paren_depth += 1
            elif token.text == ")":
                paren_depth = max(0, paren_depth - 1)
            continue
        if depths[i] != 0 or paren_depth != 0 or not token.is_identifier() or token.is_deleted:
            continue
        if token.text in TYPE_KEYWORDS or token.text in CALL_LIKE_KEYWORDS or token.text in STATEMENT_KEYWORDS:
            continue

        open_paren = next_significant(unit, i + 1)
        if open_paren >= len(unit) or not unit[open_paren].is_punct("("):
            continue

        struct_index = -1
        head = i
        prev = prev_significant(unit, i)
        if is_op_at(unit, prev, "."):
            struct_index = prev_significant(unit, prev)
            if not is_ident_at(unit, struct_index):
                continue
            head = struct_index
            prev = prev_significant(unit, struct_index)

        if not is_type_word(unit, prev):
            continue

        close_paren = match_forward(unit, open_paren)
        if close_paren >= len(unit):
            continue

        signatures.append(Signature(
            start=_declaration_start(unit, head),
            name_index=i,
            open_paren=open_paren,
            close_paren=close_paren,
            struct_index=struct_index,
        ))

    return signatures


# =============================================================================
# Hooks
# =============================================================================

def validate(ctx: TranslationContext) -> None:
    unit = ctx.unit
    for signature in find_signatures(unit):
        if signature.is_method or not signature.has_empty_parameters(unit):
            continue
        name = signature.name(unit)
        ctx.warn(
            f"Function '{name}' declared with an empty parameter list. "
            f"Use '{name}(void)' to declare a function that takes no arguments.",
            unit[signature.name_index],
        )


def _is_pure(unit: TranslationUnit, signature: Signature) -> bool:
    if signature.is_method:
        return False
    return "mut" not in signature.parameter_words(unit)


def transform(ctx: TranslationContext) -> None:
    unit = ctx.unit
    signatures = find_signatures(unit)
    attributed = 0

    # Last signature first, so insertions never shift pending indices
    for signature in reversed(signatures):
        name = signature.name(unit)
        like = unit[signature.name_index]

        if name == MAIN_FUNCTION:
            for i in significant_between(unit, signature.start, signature.name_index):
                if unit[i].text in MAIN_RETURN_TYPES:
                    unit[i].text = "int"

        if not signature.is_method and signature.has_empty_parameters(unit):
            unit.insert(signature.close_paren, [make_token("void", like=like)])

        if name == MAIN_FUNCTION or signature.returns_void(unit):
            continue

        attributes = [make_token(WARN_UNUSED_RESULT, like=like), ws(" ", like)]
        if _is_pure(unit, signature):
            attributes += [make_token(PURE, like=like), ws(" ", like)]
        unit.insert(signature.start, attributes)
        attributed += 1

    logger.debug(f"Normalised {len(signatures)} signature(s), {attributed} attributed")
