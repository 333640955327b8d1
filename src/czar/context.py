"""
Translation Context and Symbol Tables
=====================================

Everything a feature pass may share with another pass lives here. One
TranslationContext is created per translation unit, so two files
translated in the same process never see each other's symbols.

Symbol Tables
-------------
| Table          | Keyed by                  | Records                          |
|----------------|---------------------------|----------------------------------|
| functions      | function name             | ordered (name, type) parameters  |
| structs        | original struct name      | typedef alias (Name -> Name_t)   |
| enums          | enum name                 | ordered members, original/prefix |
| methods        | (struct, method)          | MethodInfo                       |
| pointer_locals | identifier                | declaration index                |

Mutability is tracked by the mutability pass in a ScopeStack, a chain
of Scope records searched innermost first.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Type
import logging

from czar.errors import (
    CzarWarning,
    SourceLocation,
    TranslationError,
    source_line,
)
from czar.lexer import Token
from czar.parser import TranslationUnit
from czar.scanner import enclosing_function_name

logger = logging.getLogger(__name__)


# =============================================================================
# Pragma Context
# =============================================================================

@dataclass
class PragmaContext:
    """
    Per-unit compilation options set by '#pragma czar ...' directives.

    Attributes:
        debug_mode: Enables debug-level runtime logging (default True)
    """
    debug_mode: bool = True


# =============================================================================
# Symbol Records
# =============================================================================

@dataclass(frozen=True)
class Parameter:
    """One function parameter as written in the signature."""
    name: str
    type_text: str


@dataclass(frozen=True)
class EnumMember:
    original: str
    prefixed: str


@dataclass
class EnumInfo:
    """A named or anonymous enum and its members in declaration order."""
    name: Optional[str]
    members: List[EnumMember] = field(default_factory=list)
    line: int = 0

    @property
    def prefix(self) -> str:
        return f"{self.name.upper()}_" if self.name else ""

    def member(self, text: str) -> Optional[EnumMember]:
        for member in self.members:
            if text in (member.original, member.prefixed):
                return member
        return None

    @property
    def member_names(self) -> List[str]:
        return [m.original for m in self.members]


@dataclass(frozen=True)
class MethodInfo:
    """
    A method bound to a struct.

    Attributes:
        struct_name: Owning struct (original name, no suffix)
        method_name: Method name as declared
        receiver: Name of the receiver parameter, None if not known
    """
    struct_name: str
    method_name: str
    receiver: Optional[str] = "self"

    @property
    def function_name(self) -> str:
        return f"{self.struct_name}_{self.method_name}"


@dataclass
class VariableInfo:
    name: str
    mutable: bool
    line: int
    type_text: str = ""
    for_counter: bool = False


class Scope:
    """A block scope holding variable mutability records."""

    def __init__(self, parent: Optional["Scope"] = None, kind: str = "block"):
        self.parent = parent
        self.kind = kind
        self.variables: Dict[str, VariableInfo] = {}

    def declare(self, info: VariableInfo) -> None:
        self.variables[info.name] = info

    def lookup(self, name: str) -> Optional[VariableInfo]:
        scope = self
        while scope is not None:
            if name in scope.variables:
                return scope.variables[name]
            scope = scope.parent
        return None


class ScopeStack:
    """Push/pop wrapper around the linked Scope chain."""

    def __init__(self):
        self.current: Optional[Scope] = None

    @property
    def depth(self) -> int:
        depth = 0
        scope = self.current
        while scope is not None:
            depth += 1
            scope = scope.parent
        return depth

    def push(self, kind: str = "block") -> Scope:
        self.current = Scope(self.current, kind)
        return self.current

    def pop(self) -> Optional[Scope]:
        scope = self.current
        if scope is not None:
            self.current = scope.parent
        return scope

    def declare(self, info: VariableInfo) -> None:
        if self.current is None:
            self.push("file")
        self.current.declare(info)

    def lookup(self, name: str) -> Optional[VariableInfo]:
        if self.current is None:
            return None
        return self.current.lookup(name)


# =============================================================================
# Symbol Tables
# =============================================================================

# Methods of the runtime logger, reachable as Log.<method>(...)
LOG_STRUCT = "Log"
LOG_METHODS = ("verbose", "debug", "info", "warning", "error", "fatal")


class SymbolTables:
    """Cross-pass knowledge for one translation unit."""

    def __init__(self):
        self.functions: Dict[str, List[Parameter]] = {}
        self.structs: Dict[str, str] = {}
        self.enums: Dict[str, EnumInfo] = {}
        self.anonymous_enums: List[EnumInfo] = []
        self.methods: Dict[Tuple[str, str], MethodInfo] = {}
        self.pointer_locals: Dict[str, int] = {}
        self.imported_headers: List[Path] = []

        for method in LOG_METHODS:
            self.add_method(MethodInfo(LOG_STRUCT, method, receiver=None))

    def add_struct(self, name: str) -> None:
        self.structs[name] = f"{name}_t"

    def add_method(self, info: MethodInfo) -> None:
        self.methods[(info.struct_name, info.method_name)] = info

    def has_method(self, struct_name: str, method_name: str) -> bool:
        return (struct_name, method_name) in self.methods

    def structs_with_method(self, method_name: str) -> List[str]:
        """Structs (in registration order) that declare method_name."""
        return [
            info.struct_name
            for info in self.methods.values()
            if info.method_name == method_name and info.struct_name != LOG_STRUCT
        ]

    def method_for_function(self, function_name: str) -> Optional[MethodInfo]:
        for info in self.methods.values():
            if info.function_name == function_name:
                return info
        return None

    def all_enums(self) -> List[EnumInfo]:
        return list(self.enums.values()) + self.anonymous_enums

    def enum_member(self, text: str) -> Optional[Tuple[EnumInfo, EnumMember]]:
        """Find the named enum declaring member `text` (original spelling)."""
        for info in self.enums.values():
            for member in info.members:
                if member.original == text:
                    return info, member
        return None


# =============================================================================
# Translation Context
# =============================================================================

class TranslationContext:
    """
    State threaded through every feature hook.

    Attributes:
        unit: The token vector being rewritten
        filename: Source name used in diagnostics
        source: Original source text (for echoing lines)
        path: Source path on disk, None for in-memory input
        pragmas: Options from '#pragma czar' directives
        symbols: Cross-pass symbol tables
        warnings: Warnings collected so far
        cleanup_functions: Generated defer cleanup functions
    """

    def __init__(
        self,
        unit: TranslationUnit,
        source: str,
        filename: str = "<input>",
        path: Optional[Path] = None,
        pragmas: Optional[PragmaContext] = None,
    ):
        self.unit = unit
        self.source = source
        self.filename = filename
        self.path = path
        self.pragmas = pragmas or PragmaContext()
        self.symbols = SymbolTables()
        self.warnings: List[CzarWarning] = []
        self.cleanup_functions: List[str] = []
        self._unused_counter = 0
        self._index_counter = 0

    @property
    def base_dir(self) -> Path:
        """Directory that relative imports are resolved against."""
        if self.path is not None:
            return self.path.parent
        return Path(".")

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def location(self, token: Optional[Token]) -> SourceLocation:
        if token is None:
            return SourceLocation(self.filename, 0)
        return SourceLocation(self.filename, token.line, token.column)

    def error(
        self,
        message: str,
        token: Optional[Token] = None,
        error_class: Type[TranslationError] = TranslationError,
    ) -> None:
        """Raise a fatal diagnostic anchored at token."""
        line = token.line if token is not None else 0
        raise error_class(
            message,
            location=self.location(token),
            source_line=source_line(self.source, line),
        )

    def warn(self, message: str, token: Optional[Token] = None) -> CzarWarning:
        line = token.line if token is not None else 0
        warning = CzarWarning(
            message,
            location=self.location(token),
            source_line=source_line(self.source, line),
        )
        self.warnings.append(warning)
        logger.debug(f"warning: {warning.location}: {message}")
        return warning

    def function_at(self, index: int) -> str:
        return enclosing_function_name(self.unit, index)

    # =========================================================================
    # Fresh Names
    # =========================================================================

    def next_unused_name(self) -> str:
        name = f"_cz_unused_{self._unused_counter}"
        self._unused_counter += 1
        return name

    def next_index_name(self) -> str:
        """Loop index for 'for (_, T v : arr)'."""
        name = "_cz_idx" if self._index_counter == 0 else f"_cz_idx_{self._index_counter}"
        self._index_counter += 1
        return name
