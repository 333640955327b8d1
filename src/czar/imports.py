"""
CZar Imports
============

CZar has no module linker. `#import "path"` is a textual convention
resolved against the directory of the importing file:

| `path` names                      | Emitted as                           |
|-----------------------------------|--------------------------------------|
| a directory                       | one `#include "path/x.cz.h"` per     |
|                                   | `x.cz.h` (or `x.cz`) inside it       |
| a file (`path.cz`, `path.cz.h`)   | `#include "path.cz.h"`               |
| nothing                           | a `/* Warning: ... */` comment       |

Imported headers are generated CZar headers, so struct types always
appear as `typedef struct Name_s { ... } Name_t;`. They are scanned as
plain text before the struct passes run, so that `Name` can be rewritten
to `Name_t` and methods on imported types resolve.
"""

from pathlib import Path
from typing import List, Optional, Tuple
import logging
import re

from czar.context import MethodInfo, SymbolTables, TranslationContext
from czar.lexer import TokenType
from czar.parser import TranslationUnit

logger = logging.getLogger(__name__)


SOURCE_SUFFIX = ".cz"
HEADER_SUFFIX = ".cz.h"
MAIN_SOURCE = "main.cz"

# typedef struct Name_s { ... } Name_t;
STRUCT_TYPEDEF_PATTERN = re.compile(
    r"typedef\s+struct\s+(\w+)_s\s*\{.*?\}\s*(\w+)_t\s*;",
    re.DOTALL,
)

# Name_method(Name_t * self ...
METHOD_PROTOTYPE_PATTERN = re.compile(
    r"\b(\w+)\s*\(\s*(?:const\s+)?(\w+)_t\s*\*\s*(?:const\s+)?(\w+)\s*[,)]"
)


# =============================================================================
# Directive Parsing
# =============================================================================

def import_path(directive: str) -> Optional[str]:
    """Return the quoted path of an '#import' directive, else None."""
    body = directive.lstrip().lstrip("#").lstrip()
    if not body.startswith("import"):
        return None
    rest = body[len("import"):]
    start = rest.find('"')
    if start < 0:
        return None
    end = rest.find('"', start + 1)
    if end < 0:
        return None
    return rest[start + 1:end]


def find_imports(unit: TranslationUnit) -> List[Tuple[int, str]]:
    """(token index, path) for every '#import' directive in unit."""
    found = []
    for index, token in enumerate(unit):
        if token.type is not TokenType.PREPROCESSOR:
            continue
        path = import_path(token.text)
        if path is not None:
            found.append((index, path))
    return found


def uses_imports(unit: TranslationUnit) -> bool:
    return bool(find_imports(unit))


# =============================================================================
# Resolution
# =============================================================================

def _strip_source_suffix(path: str) -> str:
    for suffix in (HEADER_SUFFIX, SOURCE_SUFFIX):
        if path.endswith(suffix):
            return path[:-len(suffix)]
    return path


def _directory_headers(directory: Path) -> List[str]:
    """Header names for every CZar module in directory."""
    names = {p.name for p in directory.glob(f"*{HEADER_SUFFIX}")}
    names.update(p.name + ".h" for p in directory.glob(f"*{SOURCE_SUFFIX}"))
    return sorted(names)


def resolve_import(base_dir: Path, path: str) -> Optional[List[str]]:
    """
    Include targets for an import, relative to base_dir.

    Returns:
        Include paths in emission order, or None if nothing matches
    """
    target = base_dir / path
    if target.is_dir():
        prefix = path.rstrip("/")
        return [f"{prefix}/{name}" for name in _directory_headers(target)]

    stem = _strip_source_suffix(path)
    candidates = (
        base_dir / f"{stem}{SOURCE_SUFFIX}",
        base_dir / f"{stem}{HEADER_SUFFIX}",
        target,
    )
    if any(candidate.is_file() for candidate in candidates):
        return [f"{stem}{HEADER_SUFFIX}"]

    return None


def render_import(base_dir: Path, path: str) -> str:
    """C text replacing an '#import' directive, newline-terminated."""
    includes = resolve_import(base_dir, path)
    if includes is None:
        logger.debug(f"Unresolved import '{path}' (relative to {base_dir})")
        return f'/* Warning: cannot resolve import "{path}" */\n'
    return "".join(f'#include "{include}"\n' for include in includes)


def sibling_headers(source_path: Optional[Path]) -> List[str]:
    """
    Headers of the other CZar modules next to source_path.

    main.cz and the file itself are excluded.
    """
    if source_path is None:
        return []
    directory = source_path.parent
    if not directory.is_dir():
        return []
    headers = []
    for sibling in sorted(directory.glob(f"*{SOURCE_SUFFIX}")):
        if sibling.name in (MAIN_SOURCE, source_path.name):
            continue
        headers.append(sibling.name + ".h")
    return headers


# =============================================================================
# Header Scanning
# =============================================================================

def scan_header_text(text: str, symbols: SymbolTables) -> int:
    """
    Register struct typedefs and method prototypes found in header text.

    Returns:
        Number of struct types registered
    """
    count = 0
    for match in STRUCT_TYPEDEF_PATTERN.finditer(text):
        tag, alias = match.group(1), match.group(2)
        if tag == alias and tag not in symbols.structs:
            symbols.add_struct(tag)
            count += 1

    for match in METHOD_PROTOTYPE_PATTERN.finditer(text):
        function, struct_name, receiver = match.groups()
        prefix = f"{struct_name}_"
        if struct_name in symbols.structs and function.startswith(prefix) and len(function) > len(prefix):
            method = function[len(prefix):]
            if not symbols.has_method(struct_name, method):
                symbols.add_method(MethodInfo(struct_name, method, receiver))

    return count


def imported_header_files(ctx: TranslationContext) -> List[Path]:
    """Existing header files reachable from the unit's imports."""
    imports = find_imports(ctx.unit)
    if not imports:
        return []

    base_dir = ctx.base_dir
    files = []
    includes = []
    for _, path in imports:
        includes.extend(resolve_import(base_dir, path) or [])
    includes.extend(sibling_headers(ctx.path))

    for include in includes:
        header = base_dir / include
        if header.is_file() and header not in files:
            files.append(header)
    return files


def seed_from_imports(ctx: TranslationContext) -> None:
    """Scan imported headers once per translation unit."""
    symbols = ctx.symbols
    if symbols.imported_headers:
        return

    for header in imported_header_files(ctx):
        count = scan_header_text(header.read_text(encoding="utf-8"), symbols)
        symbols.imported_headers.append(header)
        logger.debug(f"Scanned {header}: {count} struct type(s)")
