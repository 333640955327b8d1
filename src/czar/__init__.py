"""
CZar - A C Dialect Translator
=============================

CZar is a small superset of C. This package translates `.cz` sources
into portable C: a header (`name.cz.h`) with every declaration and
prototype, and a source file (`name.cz.c`) with the function bodies.

Language Additions
------------------
- Short integer and float type names (u8, i32, f64, usize, ...)
- Immutability by default with an explicit `mut` qualifier
- Struct methods (`Vec2.length(self)`) with automatic receiver passing
- `cast<T>(value [, fallback])` with range-checked narrowing
- Exhaustive switches over enums and scoped enum members
- Labelled call arguments (`move(from = a, to = b)`)
- Scope-exit cleanup with `#defer`
- `#unreachable`, `#todo` and `#fixme` runtime markers
- Range iteration with `for (u8 i : 0..10)`
- `#import` of sibling module directories

Components
----------
- **lexer**: Tokenizes source, whitespace and comments included
- **parser**: Wraps the tokens in a flat, mutable TranslationUnit
- **registry**: Ordered feature passes with dependencies
- **features**: The validation and rewrite passes
- **emitter**: Splits the rewritten unit into header and source
- **transpiler**: Orchestrates the pipeline

Example
-------
    >>> from czar import translate_source
    >>> result = translate_source("u8 x = 42;", "main.cz")
    >>> "uint8_t x = 42;" in result.header
    True
"""

__version__ = "1.0.0"
__author__ = "CZar Contributors"

# =============================================================================
# Public API Exports
# =============================================================================

from czar.errors import (
    CzarError,
    SourceLocation,
    TranslationError,
    UninitializedVariableError,
    CastError,
    EnumError,
    SwitchError,
    NamedArgumentError,
    MutabilityError,
    MethodError,
    DeferError,
    CzarWarning,
    DiagnosticCollector,
)

from czar.lexer import Token, TokenType, tokenize
from czar.parser import TranslationUnit, parse_source
from czar.registry import Feature, FeatureRegistry
from czar.features import default_registry, register_default_features
from czar.transpiler import (
    CzarTranspiler,
    TranspilerOptions,
    TranslationResult,
    translate_source,
    translate_file,
)

__all__ = [
    # Version
    "__version__",
    # Errors
    "CzarError",
    "SourceLocation",
    "TranslationError",
    "UninitializedVariableError",
    "CastError",
    "EnumError",
    "SwitchError",
    "NamedArgumentError",
    "MutabilityError",
    "MethodError",
    "DeferError",
    "CzarWarning",
    "DiagnosticCollector",
    # Lexing and parsing
    "Token",
    "TokenType",
    "tokenize",
    "TranslationUnit",
    "parse_source",
    # Features
    "Feature",
    "FeatureRegistry",
    "default_registry",
    "register_default_features",
    # Translation
    "CzarTranspiler",
    "TranspilerOptions",
    "TranslationResult",
    "translate_source",
    "translate_file",
]
