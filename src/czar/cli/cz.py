"""
cz - CZar Translator Command-Line Interface
===========================================

Translates each CZar source file into a C header and source pair next
to it:

    $ cz main.cz
    main.cz.h main.cz.c

Several files may be given; each is translated independently and a
failure in one does not stop the others. Warnings go to stdout and
fatal diagnostics to stderr. The exit status is 1 if any file failed,
including a file that cannot be read.

Verbose mode:
    $ cz -v main.cz
"""

import logging
import sys
from pathlib import Path
from typing import Tuple

import click

from czar import __version__
from czar.cli.errors import ExitCode, handle_cli_exception
from czar.errors import DiagnosticCollector, TranslationError
from czar.transpiler import CzarTranspiler

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s" if verbose else "%(message)s",
    )


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_files",
    nargs=-1,
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Log every pass (debug output on stderr)",
)
@click.version_option(version=__version__, prog_name="cz")
def main(input_files: Tuple[Path, ...], verbose: bool) -> None:
    """
    Translate CZar source files to C.

    INPUT_FILES are .cz sources. For each foo.cz the files foo.cz.h and
    foo.cz.c are written in the same directory.

    \b
    Examples:
        cz main.cz                   # Writes main.cz.h and main.cz.c
        cz src/*.cz                  # Translate a whole module
        cz -v main.cz                # Show what each pass does
    """
    setup_logging(verbose)
    diagnostics = DiagnosticCollector()
    unreadable = 0

    try:
        for input_file in input_files:
            logger.debug(f"Translating {input_file}")
            try:
                result = CzarTranspiler().translate_file(input_file)
            except TranslationError as e:
                diagnostics.add(e)
                click.echo(str(e), err=True)
                continue
            except OSError as e:
                unreadable += 1
                click.echo(f"Error: cannot read {input_file}: {e.strerror or e}", err=True)
                continue

            for warning in result.warnings:
                diagnostics.add_warning(warning)
                click.echo(str(warning))

            header_path, source_path = result.write(input_file.parent)
            click.echo(f"{header_path} {source_path}")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)

    if diagnostics.has_errors() or unreadable:
        sys.exit(ExitCode.BUILD_ERROR)


if __name__ == "__main__":
    main()
