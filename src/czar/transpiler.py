"""
CZar Transpiler Main Module
===========================

Orchestrates the translation of one CZar source file into a C header
and a C source file:

    Source → Lex → Token vector → Pragmas → Validate → Transform → Emit

Usage
-----
Command line:
    $ cz main.cz

Programmatic:
    >>> from czar import translate_source
    >>> result = translate_source("u8 x = 42;", "main.cz")
    >>> "uint8_t x = 42;" in result.header
    True

Pipeline
--------
1. **Lexing**: the source becomes a flat vector of tokens, whitespace and
   comments included.
2. **Pragmas**: `#pragma czar ...` lines set per-unit options and are
   removed.
3. **Validation**: every enabled feature checks the unit as written.
   The first fatal diagnostic raises a TranslationError.
4. **Transformation**: features rewrite the vector in registration order.
5. **Emission**: the vector is split into `<name>.cz.h` (declarations and
   prototypes) and `<name>.cz.c` (function definitions).

Every translation gets a fresh TranslationContext, so symbols never leak
from one file into the next.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple
import logging

from czar.context import PragmaContext, TranslationContext
from czar.emitter import CzarEmitter
from czar.errors import CzarWarning
from czar.features import default_registry
from czar.parser import parse_source
from czar.pragma import parse_pragmas
from czar.registry import FeatureRegistry

logger = logging.getLogger(__name__)


DEFAULT_FILENAME = "input.cz"
HEADER_EXTENSION = ".h"
SOURCE_EXTENSION = ".c"


@dataclass
class TranspilerOptions:
    """
    Transpiler configuration options.

    Attributes:
        debug_mode: Runtime debug logging default; '#pragma czar debug'
                    in the source overrides it
        disabled_features: Feature names to switch off in the registry
        emit_preamble: Emit the standard #include block in the header.
                       Duplicate includes of the same headers in the
                       source are dropped while it is on.
    """
    debug_mode: bool = True
    disabled_features: List[str] = field(default_factory=list)
    emit_preamble: bool = True


@dataclass
class TranslationResult:
    """
    Result of one translation.

    Attributes:
        filename: Source filename used in diagnostics
        header: Generated header text
        source: Generated C source text
        header_name: File name for the header (main.cz -> main.cz.h)
        source_name: File name for the source (main.cz -> main.cz.c)
        warnings: Non-fatal diagnostics, in the order they were raised
    """
    filename: str = ""
    header: str = ""
    source: str = ""
    header_name: str = ""
    source_name: str = ""
    warnings: List[CzarWarning] = field(default_factory=list)

    def write(self, directory: Path) -> Tuple[Path, Path]:
        """Write both outputs into directory; return their paths."""
        header_path = Path(directory) / self.header_name
        source_path = Path(directory) / self.source_name
        header_path.write_text(self.header, encoding="utf-8")
        source_path.write_text(self.source, encoding="utf-8")
        logger.debug(f"Wrote {header_path} and {source_path}")
        return header_path, source_path


def output_names(filename: str) -> Tuple[str, str]:
    """('main.cz.h', 'main.cz.c') for 'path/to/main.cz'."""
    base = Path(filename).name
    return base + HEADER_EXTENSION, base + SOURCE_EXTENSION


class CzarTranspiler:
    """
    CZar to C translator.

    Example:
        transpiler = CzarTranspiler()
        result = transpiler.translate_file("main.cz")
        result.write(Path("."))

    Attributes:
        options: Transpiler configuration options
    """

    def __init__(self, options: Optional[TranspilerOptions] = None, registry: Optional[FeatureRegistry] = None):
        """
        Initialize the transpiler.

        Args:
            options: Configuration (uses defaults if None)
            registry: Feature set to run (all built-in features if None)
        """
        self.options = options or TranspilerOptions()
        self.registry = registry or default_registry()
        for name in self.options.disabled_features:
            self.registry.disable(name)

    def translate_source(self, source: str, filename: str = DEFAULT_FILENAME, path: Optional[Path] = None) -> TranslationResult:
        """
        Translate CZar source text.

        Args:
            source: CZar source code
            filename: Name used in diagnostics and for the output names
            path: Location on disk, used to resolve #import directives

        Returns:
            TranslationResult with header and source text

        Raises:
            TranslationError: On the first fatal diagnostic
        """
        unit = parse_source(source, filename)
        pragmas = parse_pragmas(unit, PragmaContext(debug_mode=self.options.debug_mode))
        ctx = TranslationContext(unit, source, filename=filename, path=path, pragmas=pragmas)

        self.registry.run_validate(ctx)
        self.registry.run_transform(ctx)

        emitter = CzarEmitter(ctx, self.registry, emit_preamble=self.options.emit_preamble)
        header_name, source_name = output_names(filename)

        result = TranslationResult(
            filename=filename,
            header=emitter.emit_header(),
            source=emitter.emit_source(header_name),
            header_name=header_name,
            source_name=source_name,
            warnings=list(ctx.warnings),
        )
        logger.debug(f"Translated {filename}: {len(unit)} tokens, {len(result.warnings)} warning(s)")
        return result

    def translate_file(self, filepath) -> TranslationResult:
        """
        Translate a CZar source file.

        Raises:
            FileNotFoundError: If the source file does not exist
            TranslationError: On the first fatal diagnostic
        """
        path = Path(filepath)
        if not path.is_file():
            raise FileNotFoundError(f"Source file not found: {filepath}")

        source = path.read_text(encoding="utf-8")
        return self.translate_source(source, str(path), path=path)


# =============================================================================
# Convenience Functions
# =============================================================================

def translate_source(source: str, filename: str = DEFAULT_FILENAME, options: Optional[TranspilerOptions] = None) -> TranslationResult:
    """
    Translate CZar source text with the built-in features.

    Example:
        >>> result = translate_source("u8 x = 42;")
        >>> result.header_name
        'input.cz.h'
    """
    return CzarTranspiler(options).translate_source(source, filename)


def translate_file(filepath, output_dir: Optional[Path] = None, options: Optional[TranspilerOptions] = None) -> TranslationResult:
    """
    Translate a CZar file, optionally writing the outputs.

    Args:
        filepath: Path to the .cz file
        output_dir: Where to write <name>.cz.h and <name>.cz.c (not written if None)
        options: Transpiler options
    """
    result = CzarTranspiler(options).translate_file(filepath)
    if output_dir is not None:
        result.write(Path(output_dir))
    return result
