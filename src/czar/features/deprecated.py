"""
#deprecated
===========

A '#deprecated' line directly before a function declaration becomes
the GCC/Clang attribute; anywhere else it is dropped.

    #deprecated                      __attribute__((deprecated))
    void old(void);                  void old(void);
"""

import logging

from czar.context import TranslationContext
from czar.lexer import TokenType
from czar.parser import TranslationUnit

logger = logging.getLogger(__name__)


DIRECTIVE = "deprecated"
ATTRIBUTE = "__attribute__((deprecated))\n"


def is_deprecated_directive(text: str) -> bool:
    body = text.lstrip().lstrip("#").strip()
    return body == DIRECTIVE


def precedes_function(unit: TranslationUnit, index: int) -> bool:
    """True if an identifier and then '(' follow before any ';', '{' or '}'."""
    seen_identifier = False
    for i in range(index + 1, len(unit)):
        token = unit[i]
        if token.is_trivia():
            continue
        if token.is_identifier():
            seen_identifier = True
        elif token.type is TokenType.PUNCTUATION:
            if token.text == "(" and seen_identifier:
                return True
            if token.text in (";", "{", "}"):
                return False
        elif token.type is TokenType.PREPROCESSOR:
            return False
    return False


def transform(ctx: TranslationContext) -> None:
    unit = ctx.unit
    for i, token in enumerate(unit):
        if token.type is not TokenType.PREPROCESSOR or not is_deprecated_directive(token.text):
            continue
        if precedes_function(unit, i):
            # Part of the declaration from here on, so it is emitted with it
            token.type = TokenType.IDENTIFIER
            token.text = ATTRIBUTE
            logger.debug(f"line {token.line}: #deprecated -> attribute")
        else:
            token.delete()
