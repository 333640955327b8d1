# =============================================================================
# test_lexer.py - Lexer and Token Vector Unit Tests
# =============================================================================
# Tests for the CZar lexer and the flat translation-unit token vector.
#
# Test coverage includes:
#   - Number formats: decimal, hexadecimal, binary, fractions, suffixes
#   - Digit separators and the lex-time binary rewrite
#   - Strings, characters, comments and preprocessor lines
#   - Operator agglomeration and punctuation classification
#   - Source positions
#   - Token vector insertion and deletion
# =============================================================================

import pytest

from czar.lexer import CzarLexer, Token, TokenType, tokenize
from czar.parser import NodeKind, TranslationUnit, parse_source


# =============================================================================
# Helper Functions
# =============================================================================

def significant(source: str) -> list:
    """Tokenize and drop whitespace, comments and EOF."""
    return [
        t for t in tokenize(source)
        if t.type not in (TokenType.WHITESPACE, TokenType.COMMENT, TokenType.EOF)
    ]


def texts(source: str) -> list:
    return [t.text for t in significant(source)]


# =============================================================================
# Basic Token Recognition Tests
# =============================================================================

class TestBasicTokens:
    """Test basic token recognition for simple inputs."""

    def test_empty_source(self):
        """Empty source produces only EOF."""
        tokens = tokenize("")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_eof_is_last(self):
        """The final token is always EOF with empty text."""
        tokens = tokenize("u8 x = 1;")
        assert tokens[-1].type == TokenType.EOF
        assert tokens[-1].text == ""

    def test_whitespace_is_a_token(self):
        """Whitespace runs are kept as single tokens."""
        tokens = tokenize("a \t\n b")
        assert [t.type for t in tokens[:3]] == [
            TokenType.IDENTIFIER, TokenType.WHITESPACE, TokenType.IDENTIFIER,
        ]
        assert tokens[1].text == " \t\n "

    def test_keywords_are_identifiers(self):
        """The lexer never classifies keywords; passes decide from context."""
        for token in significant("if while struct u8 mut"):
            assert token.type == TokenType.IDENTIFIER

    def test_identifier_with_underscore_and_digits(self):
        """Identifiers may contain underscores and digits after the first character."""
        assert texts("_cz_unused_0 value2") == ["_cz_unused_0", "value2"]

    def test_round_trip(self):
        """Concatenating token text reproduces the source."""
        source = "struct Vec2 { f32 x; }; // point\n/* block */ u8 v = 'a';\n"
        assert "".join(t.text for t in tokenize(source)) == source


# =============================================================================
# Number Tests
# =============================================================================

class TestNumbers:
    """Test numeric literal scanning."""

    def test_decimal(self):
        """Plain decimal literal."""
        tokens = significant("42")
        assert tokens[0].type == TokenType.NUMBER
        assert tokens[0].text == "42"

    def test_hexadecimal(self):
        """0x and 0X prefixes are kept."""
        assert texts("0xFF 0X1a") == ["0xFF", "0X1a"]

    def test_digit_separators_stripped(self):
        """Underscore separators are removed from the token text."""
        assert texts("1_000_000") == ["1000000"]
        assert texts("0xFF_FF") == ["0xFFFF"]

    def test_binary_rewritten_to_decimal(self):
        """Binary literals become decimal at lex time."""
        assert texts("0b1010") == ["10"]
        assert texts("0B1111_0000") == ["240"]

    def test_binary_suffix_preserved(self):
        """A suffix on a binary literal is appended to the decimal form."""
        assert texts("0b11u") == ["3u"]
        assert texts("0b1ULL") == ["1ULL"]

    def test_binary_too_wide_kept(self):
        """Binary literals wider than 64 bits keep their original text."""
        literal = "0b" + "1" * 65
        assert texts(literal) == [literal]

    def test_binary_64_bits(self):
        """A full 64-bit binary literal converts without overflow."""
        assert texts("0b" + "1" * 64) == [str(2 ** 64 - 1)]

    def test_fraction_and_exponent(self):
        """Fractional parts and exponents belong to the number."""
        assert texts("2.5e-3f") == ["2.5e-3f"]
        assert texts("6.02E+23") == ["6.02E+23"]

    def test_leading_dot_fraction(self):
        """'.5' is a number."""
        tokens = significant(".5")
        assert tokens[0].type == TokenType.NUMBER
        assert tokens[0].text == ".5"

    def test_integer_suffixes(self):
        """Any mix of u/U/l/L/f/F is preserved."""
        assert texts("10u 10UL 10ll 1.0f") == ["10u", "10UL", "10ll", "1.0f"]

    def test_range_lexes_as_number_dot_number(self):
        """'0..9' lexes as '0', '.', '.9'."""
        tokens = significant("0..9")
        assert [t.text for t in tokens] == ["0", ".", ".9"]
        assert [t.type for t in tokens] == [TokenType.NUMBER, TokenType.OPERATOR, TokenType.NUMBER]

    def test_range_with_identifier_bound(self):
        """'1..n' lexes as '1', '.', '.', 'n'."""
        assert texts("1..n") == ["1", ".", ".", "n"]


# =============================================================================
# String, Character and Comment Tests
# =============================================================================

class TestLiterals:
    """Test quoted literals and comments."""

    def test_string(self):
        """Double-quoted string including quotes."""
        tokens = significant('"hello"')
        assert tokens[0].type == TokenType.STRING
        assert tokens[0].text == '"hello"'

    def test_string_escape(self):
        """Escaped quotes do not end the string."""
        tokens = significant(r'"a\"b" x')
        assert tokens[0].text == r'"a\"b"'
        assert tokens[1].text == "x"

    def test_unterminated_string_runs_to_end(self):
        """An unterminated string takes the rest of the input."""
        tokens = significant('"abc')
        assert tokens[0].type == TokenType.STRING
        assert tokens[0].text == '"abc'

    def test_char_literal(self):
        """Single-quoted literal with escape."""
        tokens = significant(r"'\n'")
        assert tokens[0].type == TokenType.CHAR
        assert tokens[0].text == r"'\n'"

    def test_line_comment(self):
        """Line comments stop before the newline."""
        tokens = tokenize("// note\nx")
        assert tokens[0].type == TokenType.COMMENT
        assert tokens[0].text == "// note"
        assert tokens[1].text == "\n"

    def test_block_comment_not_nested(self):
        """Block comments end at the first '*/'."""
        tokens = tokenize("/* a /* b */ c */")
        assert tokens[0].type == TokenType.COMMENT
        assert tokens[0].text == "/* a /* b */"


# =============================================================================
# Preprocessor Tests
# =============================================================================

class TestPreprocessor:
    """Test preprocessor line scanning."""

    def test_directive_includes_newline(self):
        """A directive runs through its terminating newline."""
        tokens = tokenize("#include <stdio.h>\nint x;")
        assert tokens[0].type == TokenType.PREPROCESSOR
        assert tokens[0].text == "#include <stdio.h>\n"
        assert tokens[1].text == "int"

    def test_continuation_lines(self):
        """Backslash-newline continues the directive."""
        tokens = tokenize("#define A \\\n  1\nx")
        assert tokens[0].text == "#define A \\\n  1\n"
        assert tokens[1].text == "x"

    def test_directive_after_code(self):
        """A '#' later on a line also starts a directive (used by #defer)."""
        tokens = significant("u8 x = 1 #defer { f(x); };\nnext")
        directive = [t for t in tokens if t.type == TokenType.PREPROCESSOR]
        assert len(directive) == 1
        assert directive[0].text == "#defer { f(x); };\n"

    def test_open_defer_block_spans_lines(self):
        """A #defer block left open runs through the line of its closing brace."""
        tokens = tokenize("f #defer {\n    g(\"}\");\n};\nnext")
        directive = [t for t in tokens if t.type == TokenType.PREPROCESSOR]
        assert directive[0].text == "#defer {\n    g(\"}\");\n};\n"
        assert tokens[-2].text == "next"
        assert tokens[-2].line == 4

    def test_open_brace_in_other_directive(self):
        """Only #defer continues past the newline."""
        tokens = tokenize("#define OPEN {\nx")
        assert tokens[0].text == "#define OPEN {\n"
        assert tokens[1].text == "x"

    def test_directive_at_end_of_input(self):
        """A directive without a trailing newline ends at end of input."""
        tokens = tokenize("#pragma once")
        assert tokens[0].text == "#pragma once"


# =============================================================================
# Operator Tests
# =============================================================================

class TestOperators:
    """Test operator and punctuation classification."""

    @pytest.mark.parametrize("text", [
        "++", "--", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=",
        "==", "!=", "<=", ">=", "&&", "||", "<<", ">>", "->",
    ])
    def test_two_char_operators(self, text):
        """Two-character operators are single tokens."""
        tokens = significant(f"a {text} b")
        assert tokens[1].type == TokenType.OPERATOR
        assert tokens[1].text == text

    def test_three_char_operators(self):
        """'<<=' and '>>=' are single tokens."""
        assert texts("a <<= 1; b >>= 2;")[1] == "<<="
        assert texts("b >>= 2;")[1] == ">>="

    def test_punctuation(self):
        """Brackets, braces, semicolon and comma are punctuation."""
        for token in significant("(){}[];,"):
            assert token.type == TokenType.PUNCTUATION

    def test_template_angle_brackets(self):
        """'cast<u8>(' keeps '<' and '>' separate from neighbours."""
        assert texts("cast<u8>(v)") == ["cast", "<", "u8", ">", "(", "v", ")"]

    def test_unknown_character(self):
        """Unclassifiable characters become single UNKNOWN tokens."""
        tokens = significant("@ $")
        assert [t.type for t in tokens] == [TokenType.UNKNOWN, TokenType.UNKNOWN]
        assert [t.text for t in tokens] == ["@", "$"]


# =============================================================================
# Position Tests
# =============================================================================

class TestPositions:
    """Test line and column tracking."""

    def test_first_token(self):
        """Positions are 1-based."""
        token = tokenize("x")[0]
        assert (token.line, token.column) == (1, 1)

    def test_after_newline(self):
        """A newline advances the line and resets the column."""
        tokens = significant("a\n  b")
        assert (tokens[1].line, tokens[1].column) == (2, 3)

    def test_lexer_keeps_filename(self):
        """The lexer remembers the file name for diagnostics."""
        assert CzarLexer("x", "main.cz").filename == "main.cz"


# =============================================================================
# Token Tests
# =============================================================================

class TestToken:
    """Test Token helpers."""

    def test_delete_empties_text(self):
        """delete() leaves an empty, trivia token."""
        token = Token(TokenType.IDENTIFIER, "mut", 1, 1)
        token.delete()
        assert token.text == ""
        assert token.is_deleted
        assert token.is_trivia()

    def test_eof_is_not_deleted(self):
        """EOF has empty text but is not a deleted token."""
        assert not Token(TokenType.EOF, "").is_deleted

    def test_predicates(self):
        """is_identifier, is_punct and is_op check type and text."""
        assert Token(TokenType.IDENTIFIER, "x").is_identifier()
        assert Token(TokenType.IDENTIFIER, "x").is_identifier("x")
        assert not Token(TokenType.IDENTIFIER, "x").is_identifier("y")
        assert Token(TokenType.PUNCTUATION, ";").is_punct(";")
        assert not Token(TokenType.OPERATOR, ";").is_punct(";")
        assert Token(TokenType.OPERATOR, "=").is_op("=")


# =============================================================================
# Token Vector Tests
# =============================================================================

class TestTranslationUnit:
    """Test the flat token vector."""

    def test_eof_not_stored(self):
        """parse_source stops at EOF without storing it."""
        unit = parse_source("u8 x;")
        assert len(unit) == 4
        assert unit[0].text == "u8"
        assert unit[-1].text == ";"

    def test_node_kinds(self):
        """The root is a translation unit holding token leaves."""
        unit = parse_source("x;")
        assert unit.kind == NodeKind.TRANSLATION_UNIT
        assert all(node.kind == NodeKind.TOKEN for node in unit.children)

    def test_nodes_are_distinct(self):
        """No node appears twice in the vector."""
        unit = parse_source("a b c d")
        assert len({id(node) for node in unit.children}) == len(unit)

    def test_delete_preserves_length(self):
        """Emptying a token keeps its slot."""
        unit = parse_source("mut u8 x = 1;")
        before = len(unit)
        unit[0].delete()
        unit[1].delete()
        assert len(unit) == before
        assert unit.text() == "u8 x = 1;"

    def test_insert_grows_by_count(self):
        """insert() returns and adds exactly the number of tokens."""
        unit = parse_source("u8 x = 1;")
        before = len(unit)
        count = unit.insert(0, [Token(TokenType.IDENTIFIER, "const"), Token(TokenType.WHITESPACE, " ")])
        assert count == 2
        assert len(unit) == before + 2
        assert unit.text() == "const u8 x = 1;"

    def test_text_range(self):
        """text(start, end) concatenates a half-open range."""
        unit = parse_source("a b c")
        assert unit.text(2, 5) == "b c"

    def test_filename(self):
        """The unit keeps the source name."""
        assert parse_source("x", "main.cz").filename == "main.cz"

    def test_empty_unit(self):
        """An empty source gives an empty vector."""
        unit = parse_source("")
        assert len(unit) == 0
        assert isinstance(unit, TranslationUnit)
        assert unit.text() == ""
