"""
CZar Error Hierarchy
====================

This module defines the exception hierarchy for the CZar translator.
All exceptions inherit from CzarError, allowing callers to catch every
translator failure with a single except clause if desired.

Exception Hierarchy
-------------------
CzarError (base)
└── TranslationError - fatal diagnostic, aborts the pipeline
    ├── UninitializedVariableError - declaration without initializer
    ├── CastError - C-style cast or malformed cast<T>(...)
    ├── EnumError - enum member not ALL_UPPERCASE
    ├── SwitchError - missing control flow, default or enum case
    ├── NamedArgumentError - label mismatch or ambiguous arguments
    ├── MutabilityError - const keyword, immutable assignment, mut misuse
    ├── MethodError - ambiguous instance method call
    └── DeferError - #defer that cannot be attached to a declaration

Warnings are not exceptions. They are collected as CzarWarning records
and reported by the caller once translation finishes.

Diagnostic Format
-----------------
Both kinds render the same way, followed by the offending source line:

    [CZAR] ERROR at main.cz:4: Variable 'x' must be explicitly initialized. ...
        > u8 x;
"""

from dataclasses import dataclass
from typing import Optional, List


# =============================================================================
# Base Exception Class
# =============================================================================

class CzarError(Exception):
    """
    Base exception for all CZar translator errors.

        try:
            translate_source(text, "main.cz")
        except CzarError as e:
            print(e)
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for diagnostics.

    Line and column are advisory: tokens inserted by feature passes keep
    the position of the token they were derived from, and existing tokens
    are never renumbered.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed, 0 if unknown)
    """
    filename: str
    line: int
    column: int = 0

    def __str__(self) -> str:
        """Format as 'filename:line' to match CZar diagnostics."""
        return f"{self.filename}:{self.line}"


def source_line(source: Optional[str], line: int) -> Optional[str]:
    """
    Return the 1-indexed line of source text, or None if out of range.

    Used to echo the offending line under a diagnostic. Lookup is
    best-effort; a missing line simply omits the echo.
    """
    if not source or line < 1:
        return None
    lines = source.splitlines()
    if line > len(lines):
        return None
    return lines[line - 1]


def _echo(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    stripped = text.strip()
    if not stripped:
        return None
    return f"    > {stripped}"


# =============================================================================
# Fatal Diagnostics
# =============================================================================

class TranslationError(CzarError):
    """
    Fatal diagnostic raised by a feature pass.

    Raising aborts the pipeline: no output files are written for the
    translation unit.

    Attributes:
        message: The error description
        location: Where in the source the error occurred
        source_line: The source text at the error location
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.location:
            parts = [f"[CZAR] ERROR at {self.location}: {self.message}"]
        else:
            parts = [f"[CZAR] ERROR: {self.message}"]

        echoed = _echo(self.source_line)
        if echoed:
            parts.append(echoed)

        return "\n".join(parts)


class UninitializedVariableError(TranslationError):
    """
    Variable declared without an initializer.

    CZar requires every declaration to be explicitly initialized:

        u8 x;        // error
        u8 x = 0;    // ok
    """
    pass


class CastError(TranslationError):
    """
    Unsafe or malformed cast.

    Raised for C-style casts such as (u8)value and for cast<T>(...)
    calls missing the template argument, the parentheses, or with the
    wrong number of arguments.
    """
    pass


class EnumError(TranslationError):
    """Enum member that is not ALL_UPPERCASE."""
    pass


class SwitchError(TranslationError):
    """
    Switch statement violating CZar control-flow rules.

    Examples:
        - case body without break/continue/return/goto/UNREACHABLE
        - switch on an enum without a default case
        - switch on an enum that does not handle every member
    """
    pass


class NamedArgumentError(TranslationError):
    """Named argument label out of order or ambiguous positional call."""
    pass


class MutabilityError(TranslationError):
    """
    Violation of immutable-by-default semantics.

    Examples:
        - explicit use of the C keyword const
        - assignment to a variable declared without mut
        - mut on a non-pointer parameter or a struct field
    """
    pass


class MethodError(TranslationError):
    """Instance method call that matches more than one struct."""
    pass


class DeferError(TranslationError):
    """#defer attached to a declaration that has no initializer."""
    pass


# =============================================================================
# Warnings
# =============================================================================

@dataclass
class CzarWarning:
    """
    Non-fatal diagnostic produced during translation.

    Attributes:
        message: The warning description
        location: Where in the source the warning applies
        source_line: The source text at the warning location
    """
    message: str
    location: Optional[SourceLocation] = None
    source_line: Optional[str] = None

    def __str__(self) -> str:
        if self.location:
            parts = [f"[CZAR] WARNING at {self.location}: {self.message}"]
        else:
            parts = [f"[CZAR] WARNING: {self.message}"]

        echoed = _echo(self.source_line)
        if echoed:
            parts.append(echoed)

        return "\n".join(parts)


# =============================================================================
# Diagnostic Collector
# =============================================================================

class DiagnosticCollector:
    """
    Collects errors and warnings across several translation units.

    The pipeline itself stops at the first fatal error of a unit; the
    collector lets a driver keep going with the remaining files and
    report everything at the end.

    Usage:
        collector = DiagnosticCollector()
        for path in paths:
            try:
                result = translate_file(path)
                collector.extend_warnings(result.warnings)
            except TranslationError as e:
                collector.add(e)
        collector.raise_if_errors()
    """

    def __init__(self, max_errors: int = 50):
        self.max_errors = max_errors
        self._errors: List[TranslationError] = []
        self._warnings: List[CzarWarning] = []

    def add(self, error: TranslationError) -> None:
        """Record a fatal error (silently drops past max_errors)."""
        if len(self._errors) < self.max_errors:
            self._errors.append(error)

    def add_warning(self, warning: CzarWarning) -> None:
        """Record a warning."""
        self._warnings.append(warning)

    def extend_warnings(self, warnings: List[CzarWarning]) -> None:
        for warning in warnings:
            self.add_warning(warning)

    @property
    def errors(self) -> List[TranslationError]:
        return list(self._errors)

    @property
    def warnings(self) -> List[CzarWarning]:
        return list(self._warnings)

    def has_errors(self) -> bool:
        return bool(self._errors)

    def error_count(self) -> int:
        return len(self._errors)

    def report(self) -> str:
        """Return warnings followed by errors, one diagnostic per block."""
        lines = [str(w) for w in self._warnings]
        lines.extend(str(e) for e in self._errors)
        if self._errors:
            noun = "error" if len(self._errors) == 1 else "errors"
            lines.append(f"{len(self._errors)} {noun} generated.")
        return "\n".join(lines)

    def clear(self) -> None:
        self._errors.clear()
        self._warnings.clear()

    def raise_if_errors(self) -> None:
        """Re-raise the first collected error, if any."""
        if self._errors:
            raise self._errors[0]
