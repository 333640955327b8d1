"""
Tests for cz - CZar Command-Line Translator
===========================================

These tests run the click command in an isolated directory and check
the files written, the diagnostics printed and the exit status.
"""

from pathlib import Path

import click
import pytest
from click.testing import CliRunner

from czar import TranslationError, __version__
from czar.cli.cz import main
from czar.cli.errors import ExitCode, handle_cli_exception


# =============================================================================
# Translation Runs
# =============================================================================

class TestCzCommand:
    """Tests for the cz command."""

    def test_translate_single_file(self):
        """Should write the header and source next to the input."""
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("main.cz").write_text("u8 x = 42;\n")

            result = runner.invoke(main, ["main.cz"])

            assert result.exit_code == 0, f"Translation failed: {result.output}"
            assert "main.cz.h main.cz.c" in result.output
            assert "uint8_t x = 42;" in Path("main.cz.h").read_text()
            assert Path("main.cz.c").read_text() == '#include "main.cz.h"\n\n'

    def test_warnings_printed(self):
        """Warnings are printed and do not fail the run."""
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("main.cz").write_text("u8 get() {\n    return 1;\n}\n")

            result = runner.invoke(main, ["main.cz"])

            assert result.exit_code == 0
            assert "[CZAR] WARNING at main.cz:1:" in result.output
            assert Path("main.cz.c").exists()

    def test_fatal_error(self):
        """A fatal diagnostic exits 1 and writes nothing."""
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("main.cz").write_text("u8 x;\n")

            result = runner.invoke(main, ["main.cz"])

            assert result.exit_code == ExitCode.BUILD_ERROR
            assert "[CZAR] ERROR at main.cz:1:" in result.output
            assert "> u8 x;" in result.output
            assert not Path("main.cz.h").exists()
            assert not Path("main.cz.c").exists()

    def test_failure_does_not_stop_other_files(self):
        """Each file is translated independently."""
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("bad.cz").write_text("u8 x;\n")
            Path("good.cz").write_text("u8 y = 1;\n")

            result = runner.invoke(main, ["bad.cz", "good.cz"])

            assert result.exit_code == ExitCode.BUILD_ERROR
            assert Path("good.cz.h").exists()
            assert Path("good.cz.c").exists()
            assert not Path("bad.cz.h").exists()

    def test_several_files(self):
        """Every input gets its own pair of outputs."""
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("a.cz").write_text("u8 a = 1;\n")
            Path("b.cz").write_text("u8 b = 2;\n")

            result = runner.invoke(main, ["a.cz", "b.cz"])

            assert result.exit_code == 0
            assert "a.cz.h a.cz.c" in result.output
            assert "b.cz.h b.cz.c" in result.output

    def test_verbose(self):
        """Verbose mode still translates."""
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("main.cz").write_text("u8 x = 1;\n")

            result = runner.invoke(main, ["-v", "main.cz"])

            assert result.exit_code == 0
            assert Path("main.cz.h").exists()


# =============================================================================
# Argument Handling
# =============================================================================

class TestCzArguments:
    """Tests for command-line validation."""

    def test_missing_file(self):
        """A nonexistent input fails like a translation error."""
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(main, ["absent.cz"])
            assert result.exit_code == ExitCode.BUILD_ERROR
            assert "Error: cannot read absent.cz" in result.output

    def test_missing_file_does_not_stop_others(self):
        """Readable inputs are still translated next to a missing one."""
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("good.cz").write_text("u8 y = 1;\n")

            result = runner.invoke(main, ["absent.cz", "good.cz"])

            assert result.exit_code == ExitCode.BUILD_ERROR
            assert Path("good.cz.h").exists()
            assert Path("good.cz.c").exists()

    def test_no_arguments(self):
        """At least one input is required."""
        result = CliRunner().invoke(main, [])
        assert result.exit_code == 2

    def test_version(self):
        """--version prints the package version."""
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert f"cz, version {__version__}" in result.output

    def test_help(self):
        """--help describes the command."""
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Translate CZar source files to C." in result.output


# =============================================================================
# Exception Handler
# =============================================================================

class TestHandleCliException:
    """Tests for handle_cli_exception()."""

    def test_translation_error(self):
        """Translator errors exit with BUILD_ERROR."""
        with pytest.raises(SystemExit) as info:
            handle_cli_exception(TranslationError("bad"))
        assert info.value.code == ExitCode.BUILD_ERROR

    @pytest.mark.parametrize("error", [
        FileNotFoundError("gone.cz"),
        PermissionError("locked.cz"),
        click.BadParameter("nope"),
    ])
    def test_invalid_arguments(self, error):
        """File and parameter problems exit with INVALID_ARGS."""
        with pytest.raises(SystemExit) as info:
            handle_cli_exception(error)
        assert info.value.code == ExitCode.INVALID_ARGS

    def test_internal_error(self):
        """Anything else is an internal error."""
        with pytest.raises(SystemExit) as info:
            handle_cli_exception(RuntimeError("boom"))
        assert info.value.code == ExitCode.INTERNAL_ERROR
