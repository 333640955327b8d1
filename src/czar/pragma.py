"""
CZar Pragma Directives
======================

Translator options can be set from inside a source file:

    #pragma czar debug true      debug-level runtime logging on (default)
    #pragma czar debug false     only info and above

Directives are read before any feature pass runs. They are directed at
the translator, not the C compiler, so the directive lines are removed
from the token vector once parsed. Unknown '#pragma czar' settings and
malformed values are ignored; every other pragma passes through.
"""

from typing import Optional
import logging

from czar.context import PragmaContext
from czar.lexer import TokenType
from czar.parser import TranslationUnit

logger = logging.getLogger(__name__)


BOOLEAN_VALUES = {"true": True, "false": False}


def parse_pragma(text: str, pragmas: PragmaContext) -> bool:
    """
    Apply a single directive to pragmas.

    Returns:
        True if text is a '#pragma czar' directive (known or not)
    """
    words = text.lstrip().lstrip("#").split()
    if len(words) < 2 or words[0] != "pragma" or words[1] != "czar":
        return False

    if len(words) >= 4 and words[2] == "debug":
        value = BOOLEAN_VALUES.get(words[3])
        if value is not None:
            pragmas.debug_mode = value
            logger.debug(f"pragma: debug_mode = {value}")
    else:
        logger.debug(f"Ignoring unknown czar pragma: {text.strip()}")

    return True


def parse_pragmas(unit: TranslationUnit, pragmas: Optional[PragmaContext] = None) -> PragmaContext:
    """Read every '#pragma czar' directive in unit, removing it."""
    if pragmas is None:
        pragmas = PragmaContext()

    for token in unit:
        if token.type is not TokenType.PREPROCESSOR:
            continue
        if parse_pragma(token.text, pragmas):
            token.delete()

    return pragmas
