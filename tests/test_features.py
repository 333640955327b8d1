"""
Tests for the CZar Feature Passes
=================================

Each class drives one feature through the full pipeline and checks the
generated header/source text or the diagnostic raised.
"""

import pytest

from czar import translate_source
from czar.context import TranslationContext
from czar.errors import (
    CastError,
    DeferError,
    EnumError,
    MethodError,
    MutabilityError,
    NamedArgumentError,
    SwitchError,
    UninitializedVariableError,
)
from czar.features.lowering import lower_tokens, transform as lower_transform
from czar.parser import parse_source
from czar.scanner import fragment


# =============================================================================
# Helper Functions
# =============================================================================

def translate(source: str):
    """Translate source as 'test.cz'."""
    return translate_source(source, "test.cz")


def warning_messages(result) -> list:
    return [w.message for w in result.warnings]


# =============================================================================
# Initialization
# =============================================================================

class TestInitialization:
    """Every declaration needs an initializer."""

    def test_uninitialized_global(self):
        """A file-scope declaration without '=' is fatal."""
        with pytest.raises(UninitializedVariableError, match="must be explicitly initialized"):
            translate("u8 x;")

    def test_suggests_zero_initializer(self):
        """The message shows the zero-initialized form."""
        with pytest.raises(UninitializedVariableError) as info:
            translate("u8 x;")
        assert "CZar requires zero-initialization: u8 x = 0;" in str(info.value)

    def test_names_enclosing_function(self):
        """Inside a function the message names it."""
        source = "void run(void) {\n    u32 count;\n}\n"
        with pytest.raises(UninitializedVariableError, match=r"\[in run\(\)\]"):
            translate(source)

    def test_initialized_passes(self):
        """Initialized declarations are accepted."""
        result = translate("u8 x = 42;")
        assert "uint8_t x = 42;" in result.header

    def test_prototypes_and_struct_fields_exempt(self):
        """Prototypes, parameters and fields are not variables."""
        result = translate("struct Pair { u8 a; u8 b; };\nvoid f(u8 n);\n")
        assert "uint8_t a;" in result.header


# =============================================================================
# Casts
# =============================================================================

class TestCasts:
    """cast<T>(value[, fallback]) and the C-style cast ban."""

    def test_narrowing_with_fallback(self):
        """Narrowing casts become a range-checked conditional."""
        result = translate("u32 clamp(u64 y) {\n    return cast<u32>(y, 0);\n}\n")
        assert "((y) > 4294967295U ? (0) : (uint32_t)(y))" in result.source
        assert not result.warnings

    def test_missing_fallback_warns(self):
        """One-argument casts are allowed with a warning."""
        result = translate("u8 narrow(u32 v) {\n    return cast<u8>(v);\n}\n")
        assert any("without fallback" in m for m in warning_messages(result))
        assert "cast<" not in result.source

    def test_c_style_cast_rejected(self):
        """(T)value is fatal."""
        source = "u8 narrow(u32 v) {\n    return (u8)v;\n}\n"
        with pytest.raises(CastError, match=r"Unsafe C-style cast '\(u8\)'"):
            translate(source)

    def test_sizeof_type_not_a_cast(self):
        """sizeof(T) is not mistaken for a cast."""
        result = translate("usize n = sizeof(u32);")
        assert "size_t n = sizeof(uint32_t);" in result.header

    def test_cast_needs_template(self):
        """cast(v) without <T> is fatal."""
        source = "u8 f(u32 v) {\n    return cast(v);\n}\n"
        with pytest.raises(CastError, match="template syntax"):
            translate(source)

    def test_cast_argument_count(self):
        """More than two arguments is fatal."""
        source = "u8 f(u32 v) {\n    return cast<u8>(v, 0, 1);\n}\n"
        with pytest.raises(CastError, match="1 or 2 arguments"):
            translate(source)


# =============================================================================
# Enums
# =============================================================================

ENUM_SOURCE = "enum Color { RED, GREEN, BLUE };\n"


class TestEnums:
    """Enum naming, typedefs and scoped members."""

    def test_typedef_and_prefix(self):
        """Named enums get a typedef and prefixed members."""
        result = translate(ENUM_SOURCE + "Color c = RED;\n")
        assert "typedef enum Color_e { COLOR_RED, COLOR_GREEN, COLOR_BLUE } Color_t;" in result.header
        assert "Color_t c = COLOR_RED;" in result.header

    def test_scoped_member(self):
        """Color.RED is rewritten to COLOR_RED."""
        result = translate(ENUM_SOURCE + "Color c = Color.GREEN;\n")
        assert "Color_t c = COLOR_GREEN;" in result.header

    def test_lowercase_member_rejected(self):
        """Enum members must be ALL_UPPERCASE."""
        with pytest.raises(EnumError) as info:
            translate("enum Color { red, GREEN };\n")
        assert "Enum value 'red' in enum 'Color' must be ALL_UPPERCASE (e.g., RED)" in str(info.value)


# =============================================================================
# Switches
# =============================================================================

def enum_switch(cases: str) -> str:
    return (
        ENUM_SOURCE
        + "void paint(Color c) {\n"
        + "    switch (c) {\n"
        + cases
        + "    }\n"
        + "}\n"
    )


class TestEnumSwitches:
    """Exhaustiveness over enum subjects."""

    def test_missing_member(self):
        """Every member must have a case, even with a default."""
        source = enum_switch(
            "        case Color.RED: break;\n"
            "        case Color.GREEN: break;\n"
            "        default: break;\n"
        )
        with pytest.raises(SwitchError) as info:
            translate(source)
        assert "Non-exhaustive switch on enum 'Color': missing case for 'BLUE'" in str(info.value)

    def test_missing_default(self):
        """Enum switches also need a default."""
        source = enum_switch(
            "        case Color.RED: break;\n"
            "        case Color.GREEN: break;\n"
            "        case Color.BLUE: break;\n"
        )
        with pytest.raises(SwitchError, match="must have a default case"):
            translate(source)

    def test_scoped_cases_rewritten(self):
        """Scoped case labels are lowered to prefixed members."""
        source = enum_switch(
            "        case Color.RED: break;\n"
            "        case Color.GREEN: break;\n"
            "        case Color.BLUE: break;\n"
            "        default: break;\n"
        )
        result = translate(source)
        assert "case COLOR_RED:" in result.source
        assert "case COLOR_BLUE:" in result.source
        assert "Color." not in result.source


class TestSwitches:
    """Control flow inside case bodies and default insertion."""

    def test_default_inserted(self):
        """A switch without default gets an aborting default case."""
        source = (
            "void run(i32 x) {\n"
            "    switch (x) {\n"
            "        case 1: break;\n"
            "    }\n"
            "}\n"
        )
        result = translate(source)
        expected = (
            'default: { fprintf(stderr, "test.cz:4: run: '
            'Unreachable code reached: \\n"); abort(); }'
        )
        assert expected in result.source
        assert any("should have a default case" in m for m in warning_messages(result))

    def test_continue_is_fallthrough(self):
        """'continue' directly in a switch falls through."""
        source = (
            "void run(i32 x) {\n"
            "    switch (x) {\n"
            "        case 1:\n"
            "            continue;\n"
            "        case 2:\n"
            "            break;\n"
            "        default:\n"
            "            break;\n"
            "    }\n"
            "}\n"
        )
        result = translate(source)
        assert "__attribute__((fallthrough));" in result.source
        assert "continue" not in result.source

    def test_continue_in_loop_untouched(self):
        """'continue' belonging to a loop inside a case stays."""
        source = (
            "void run(i32 x) {\n"
            "    switch (x) {\n"
            "        case 1:\n"
            "            for (mut u8 i = 0; i < 3; i++) {\n"
            "                continue;\n"
            "            }\n"
            "            break;\n"
            "        default:\n"
            "            break;\n"
            "    }\n"
            "}\n"
        )
        result = translate(source)
        assert "continue;" in result.source
        assert "fallthrough" not in result.source

    def test_continue_in_switch_inside_loop(self):
        """A switch nested in a loop leaves 'continue' to the loop."""
        source = (
            "void run(void) {\n"
            "    for (mut u8 i = 0; i < 3; i++) {\n"
            "        switch (i) {\n"
            "            case 1:\n"
            "                continue;\n"
            "            default:\n"
            "                break;\n"
            "        }\n"
            "    }\n"
            "}\n"
        )
        result = translate(source)
        assert "continue;" in result.source
        assert "fallthrough" not in result.source

    def test_case_without_terminator(self):
        """A non-empty case must end with explicit control flow."""
        source = (
            "void run(i32 x) {\n"
            "    switch (x) {\n"
            "        case 1:\n"
            '            puts("one");\n'
            "        case 2:\n"
            "            break;\n"
            "        default:\n"
            "            break;\n"
            "    }\n"
            "}\n"
        )
        with pytest.raises(SwitchError, match="Switch case must have explicit control flow"):
            translate(source)

    def test_empty_case_allowed(self):
        """Stacked labels without a body are fine."""
        source = (
            "void run(i32 x) {\n"
            "    switch (x) {\n"
            "        case 1:\n"
            "        case 2:\n"
            "            break;\n"
            "        default:\n"
            "            break;\n"
            "    }\n"
            "}\n"
        )
        result = translate(source)
        assert "case 1:" in result.source


# =============================================================================
# UNREACHABLE / TODO / FIXME
# =============================================================================

class TestMarkers:
    """Runtime markers expand to aborting blocks."""

    def test_unreachable(self):
        """UNREACHABLE(msg) reports file, line and function."""
        source = 'void run(void) {\n    UNREACHABLE("bad state");\n}\n'
        result = translate(source)
        assert (
            '{ fprintf(stderr, "test.cz:2: run: Unreachable code reached: bad state\\n"); abort(); }'
            in result.source
        )

    def test_percent_doubled(self):
        """A '%' in the message cannot act as a printf conversion."""
        result = translate('void run(void) {\n    UNREACHABLE("100% done");\n}\n')
        assert "Unreachable code reached: 100%% done\\n" in result.source

    def test_todo(self):
        """TODO(msg) prefixes the message."""
        result = translate('void run(void) {\n    TODO("later");\n}\n')
        assert "Unreachable code reached: TODO: later" in result.source

    def test_fixme(self):
        """FIXME(msg) prefixes the message."""
        result = translate('void run(void) {\n    FIXME("broken");\n}\n')
        assert "Unreachable code reached: FIXME: broken" in result.source


# =============================================================================
# Mutability
# =============================================================================

class TestMutability:
    """Immutable by default with explicit 'mut'."""

    def test_mut_local(self):
        """Mutable locals can be assigned; 'mut' disappears."""
        result = translate("void count(void) {\n    mut u32 n = 0;\n    n = n + 1;\n}\n")
        assert "uint32_t n = 0;" in result.source
        assert "mut" not in result.source

    def test_mut_local_written_in_loop(self):
        """A 'mut' local stays mutable across nested blocks and loops."""
        source = (
            "void sum(void) {\n"
            "    mut u32 total = 0;\n"
            "    for (mut u8 i = 0; i < 3; i++) {\n"
            "        total += i;\n"
            "    }\n"
            "    total = total * 2;\n"
            "}\n"
        )
        result = translate(source)
        assert "uint32_t total = 0;" in result.source
        assert "for (uint8_t i = 0;" in result.source
        assert "total += i;" in result.source
        assert "const" not in result.source

    def test_immutable_assignment(self):
        """Assigning an immutable local is fatal."""
        with pytest.raises(MutabilityError) as info:
            translate("void count(void) {\n    u32 n = 0;\n    n = n + 1;\n}\n")
        assert (
            "Cannot assign to immutable variable 'n'. Add 'mut' qualifier "
            "to make it mutable: mut u32 n"
        ) in str(info.value)

    def test_immutable_increment(self):
        """++ on an immutable local is fatal."""
        with pytest.raises(MutabilityError, match="Cannot modify immutable variable 'n'"):
            translate("void count(void) {\n    u32 n = 0;\n    n++;\n}\n")

    def test_immutable_local_is_const(self):
        """Immutable locals are emitted const."""
        result = translate("void show(void) {\n    u8 n = 1;\n    use(n);\n}\n")
        assert "const uint8_t n = 1;" in result.source

    def test_const_keyword_rejected(self):
        """The C 'const' keyword is not allowed."""
        with pytest.raises(MutabilityError, match="Invalid 'const' keyword"):
            translate("const u8 x = 1;")

    def test_pointer_parameter_fully_const(self):
        """Immutable pointer parameters are const on both sides."""
        result = translate("void fill(u8 *buf);\n")
        assert "void fill(const uint8_t * const buf);" in result.header

    def test_mut_pointer_parameter(self):
        """'mut' pointer parameters stay writable."""
        result = translate("void fill(mut u8 *buf);\n")
        assert "void fill(uint8_t *buf);" in result.header

    def test_mut_value_parameter_rejected(self):
        """'mut' on a value parameter has no effect and is fatal."""
        with pytest.raises(MutabilityError, match="Mutable parameter must be a pointer"):
            translate("void bump(mut u8 n);\n")

    def test_mut_struct_field_rejected(self):
        """Struct fields cannot be 'mut'."""
        with pytest.raises(MutabilityError, match="Struct fields cannot have 'mut' qualifier"):
            translate("struct Box { mut u8 n; };\n")

    def test_for_counter_must_be_mut(self):
        """A loop counter that is incremented needs 'mut'."""
        source = "void loop(void) {\n    for (u8 i = 0; i < 3; i++) {\n    }\n}\n"
        with pytest.raises(MutabilityError) as info:
            translate(source)
        assert "For-loop counter 'i' must be mutable. Use: for (mut u8 i ...)" in str(info.value)

    def test_inner_scope_shadowing(self):
        """A mutable inner declaration shadows an immutable outer one."""
        source = (
            "void run(void) {\n"
            "    u8 n = 0;\n"
            "    {\n"
            "        mut u8 n = 1;\n"
            "        n = 2;\n"
            "    }\n"
            "}\n"
        )
        result = translate(source)
        assert "n = 2;" in result.source


# =============================================================================
# Named Arguments
# =============================================================================

MOVE = "void move(i32 from, i32 to);\n"


class TestNamedArguments:
    """Labelled call arguments."""

    def test_labels_stripped(self):
        """Labels in declaration order are removed."""
        result = translate(MOVE + "void run(void) {\n    move(from = 1, to = 2);\n}\n")
        assert "move(1, 2);" in result.source

    def test_labels_out_of_order(self):
        """Labels must follow parameter order."""
        source = MOVE + "void run(void) {\n    move(to = 1, from = 2);\n}\n"
        with pytest.raises(NamedArgumentError) as info:
            translate(source)
        assert (
            "Named argument 'to' at position 1 does not match expected parameter 'from'"
            in str(info.value)
        )

    def test_ambiguous_positional(self):
        """Consecutive same-type parameters need labels."""
        source = MOVE + "void run(void) {\n    move(1, 2);\n}\n"
        with pytest.raises(NamedArgumentError, match="Ambiguous function call"):
            translate(source)

    def test_unknown_function_labels_stripped(self):
        """Labels on calls to unknown functions are simply removed."""
        result = translate("void run(void) {\n    draw(x = 1, y = 2);\n}\n")
        assert "draw(1, 2);" in result.source


# =============================================================================
# Foreach
# =============================================================================

class TestForeach:
    """Range and array for loops."""

    def test_inclusive_range(self):
        """for (T i : a..b) iterates a through b inclusive."""
        result = translate("void run(void) {\n    for (u8 i : 0..9) {\n    }\n}\n")
        assert "for (uint8_t i = 0; i <= 9; i++)" in result.source

    def test_range_with_variable_bound(self):
        """Bounds may be expressions."""
        source = "void run(usize n) {\n    for (usize k : 1..n) {\n    }\n}\n"
        result = translate(source)
        assert "for (size_t k = 1; k <= n; k++)" in result.source

    def test_array_iteration(self):
        """for (i, T v : arr) indexes the array and binds v."""
        source = (
            "void run(void) {\n"
            "    u8 data[4] = {0};\n"
            "    for (i, u8 b : data) { use(b); }\n"
            "}\n"
        )
        result = translate(source)
        assert (
            "for (size_t i = 0; i < (sizeof(data) / sizeof((data)[0])); i++) "
            "{ const uint8_t b = data[i]; use(b); }"
        ) in result.source

    def test_discarded_index(self):
        """'_' as the index gets a generated name."""
        source = (
            "void run(void) {\n"
            "    u8 data[4] = {0};\n"
            "    for (_, u8 b : data) { use(b); }\n"
            "}\n"
        )
        result = translate(source)
        assert "size_t _cz_idx = 0" in result.source


# =============================================================================
# Defer
# =============================================================================

class TestDefer:
    """#defer cleanup blocks."""

    def test_declaration_form(self):
        """A block after a declaration becomes a cleanup function."""
        source = (
            "void run(void) {\n"
            '    FILE *f = fopen("a.txt", "r") #defer { fclose(f); };\n'
            "}\n"
        )
        result = translate(source)
        assert "static void _cz_cleanup_f(void ** f) { fclose((*f)); }\n" in result.source
        assert (
            '__attribute__((cleanup(_cz_cleanup_f))) const FILE * const f = fopen("a.txt", "r");'
            in result.source
        )

    def test_cleanup_precedes_definitions(self):
        """Cleanup functions come before the first definition."""
        source = (
            "void run(void) {\n"
            '    FILE *f = fopen("a.txt", "r") #defer { fclose(f); };\n'
            "}\n"
        )
        result = translate(source)
        assert result.source.index("_cz_cleanup_f(void") < result.source.index("void run(void)")

    def test_requires_initializer(self):
        """A declaration without '=' cannot be deferred."""
        source = "void run(void) {\n    mut FILE *f #defer { fclose(f); };\n}\n"
        with pytest.raises(DeferError, match="'#defer' requires an initialized declaration"):
            translate(source)

    def test_multiline_block(self):
        """A block spanning lines is absorbed into the cleanup function."""
        source = (
            "void run(void) {\n"
            '    FILE *f = fopen("a.txt", "r") #defer {\n'
            "        fclose(f);\n"
            "    };\n"
            "    use(f);\n"
            "}\n"
        )
        result = translate(source)
        assert "fclose((*f));" in result.source
        assert "use(f);" in result.source
        assert "#defer" not in result.source

    def test_checks_continue_after_multiline_block(self):
        """Code after a multi-line block is still inside the function."""
        source = (
            "void run(void) {\n"
            '    FILE *f = fopen("a.txt", "r") #defer {\n'
            "        fclose(f);\n"
            "    };\n"
            "    u8 n = 0;\n"
            "    n = 1;\n"
            "}\n"
        )
        with pytest.raises(MutabilityError, match="Cannot assign to immutable variable 'n'"):
            translate(source)

    def test_unterminated_block(self):
        """A block that never closes is fatal."""
        source = 'void run(void) {\n    FILE *f = fopen("a.txt", "r") #defer { fclose(f);\n'
        with pytest.raises(DeferError, match="Unterminated '#defer' block"):
            translate(source)

    def test_standalone_form(self):
        """A standalone block uses a GCC nested function."""
        source = 'void run(void) {\n    #defer { puts("bye"); };\n}\n'
        result = translate(source)
        assert "#if defined(__GNUC__) && !defined(__clang__)" in result.source
        assert "int _cz_defer_0_var __attribute__((cleanup(_cz_defer_0))) = 0;" in result.source
        assert "#error" in result.source


# =============================================================================
# Type and Constant Lowering
# =============================================================================

class TestLowering:
    """CZar type names and limits become stdint names."""

    def test_types(self):
        """Short type names map to stdint types."""
        result = translate("i64 a = 0;\nf32 b = 0;\nf64 c = 0;\nisize d = 0;\n")
        assert "int64_t a = 0;" in result.header
        assert "float b = 0;" in result.header
        assert "double c = 0;" in result.header
        assert "ptrdiff_t d = 0;" in result.header

    def test_constants(self):
        """Limit constants map to stdint limits."""
        result = translate("usize a = USIZE_MAX;\ni8 b = I8_MIN;\nu8 c = U8_MIN;\n")
        assert "size_t a = SIZE_MAX;" in result.header
        assert "int8_t b = INT8_MIN;" in result.header
        assert "uint8_t c = 0;" in result.header

    def test_member_names_untouched(self):
        """Type names after '.' are field names."""
        tokens = fragment("a.i32 + i32")
        lower_tokens(tokens)
        assert "".join(t.text for t in tokens) == "a.i32 + int32_t"

    def test_idempotent(self):
        """Lowering twice gives the same text as lowering once."""
        source = "u8 a = U8_MAX;\nusize b = 0;\n"
        unit = parse_source(source)
        ctx = TranslationContext(unit, source)
        lower_transform(ctx)
        once = unit.text()
        lower_transform(ctx)
        assert unit.text() == once

    def test_discard_variable(self):
        """'_' in a function gets a unique unused name."""
        result = translate("void run(void) {\n    u8 _ = compute();\n}\n")
        assert (
            "const uint8_t _cz_unused_0 __attribute__((unused)) = compute();"
            in result.source
        )


# =============================================================================
# Function Signatures
# =============================================================================

class TestFunctions:
    """Return attributes, main and parameter lists."""

    def test_main_returns_int(self):
        """main always returns int and gets no attributes."""
        result = translate("u32 main(void) {\n    return 0;\n}\n")
        assert "int main(void)" in result.source
        assert "warn_unused_result" not in result.source

    def test_empty_parameter_list(self):
        """() warns and becomes (void)."""
        result = translate("u8 get() {\n    return 1;\n}\n")
        assert any(
            "Function 'get' declared with an empty parameter list" in m
            for m in warning_messages(result)
        )
        assert (
            "__attribute__((warn_unused_result)) __attribute__((pure)) uint8_t get(void)"
            in result.source
        )

    def test_mut_parameter_not_pure(self):
        """Functions taking mutable pointers are not pure."""
        result = translate("u8 fill(mut u8 *buf) {\n    return 0;\n}\n")
        assert "__attribute__((warn_unused_result)) uint8_t fill(uint8_t *buf)" in result.source
        assert "pure" not in result.source

    def test_void_has_no_attributes(self):
        """void functions have no result to use."""
        result = translate("void run(void) {\n}\n")
        assert "void run(void) {" in result.source
        assert "__attribute__" not in result.source


class TestDeprecated:
    """#deprecated before a function."""

    def test_attribute_added(self):
        """The directive becomes a deprecated attribute."""
        result = translate("#deprecated\nvoid old(void) { }\n")
        assert "__attribute__((deprecated))\nvoid old(void);" in result.header

    def test_stray_directive_dropped(self):
        """A directive not followed by a function is removed."""
        result = translate("#deprecated\nu8 x = 1;\n")
        assert "deprecated" not in result.header
        assert "uint8_t x = 1;" in result.header


# =============================================================================
# Structs and Methods
# =============================================================================

VEC2 = "struct Vec2 { f32 x; f32 y; };\n"
COUNTER = "struct Counter { u32 value; };\nvoid Counter.reset() { self.value = 0; }\n"


class TestStructs:
    """Struct typedefs and initialisers."""

    def test_typedef(self):
        """struct Name becomes a Name_s/Name_t typedef."""
        result = translate(VEC2)
        assert "typedef struct Vec2_s { float x; float y; } Vec2_t;" in result.header

    def test_named_initializer(self):
        """'Vec2 { ... }' initialisers drop the type name."""
        result = translate(VEC2 + "Vec2 v = Vec2 { 1, 2 };\n")
        assert "Vec2_t v = { 1, 2 };" in result.header

    def test_empty_initializer(self):
        """'{}' becomes '{0}'."""
        result = translate(VEC2 + "Vec2 v = {};\n")
        assert "Vec2_t v = {0};" in result.header


class TestMethods:
    """Struct methods, calls and auto-dereference."""

    def test_explicit_receiver(self):
        """A method with a declared receiver keeps it."""
        result = translate(VEC2 + "f32 Vec2.length(Vec2 *v) {\n    return v.x;\n}\n")
        assert "float Vec2_length(Vec2_t *v);" in result.header
        assert "warn_unused_result" in result.header
        assert "v->x" in result.source
        assert "float Vec2_length(Vec2_t *v) {" in result.source
        assert "const Vec2_t" not in result.source

    def test_receiver_with_other_parameters(self):
        """Only the receiver escapes const; other parameters are qualified."""
        result = translate(VEC2 + "void Vec2.scale(Vec2 *v, f32 k) {\n    v.x = k;\n}\n")
        assert "void Vec2_scale(Vec2_t *v, const float k);" in result.header
        assert "v->x = k;" in result.source

    def test_implicit_self(self):
        """A method without parameters receives 'self'."""
        result = translate(COUNTER)
        assert "typedef struct Counter_s { uint32_t value; } Counter_t;" in result.header
        assert "void Counter_reset(Counter_t * self);" in result.header
        assert "self->value = 0;" in result.source

    def test_instance_call(self):
        """c.reset() passes the instance's address."""
        result = translate(COUNTER + "void run(void) {\n    mut Counter c = {};\n    c.reset();\n}\n")
        assert "Counter_t c = {0};" in result.source
        assert "Counter_reset(&c);" in result.source

    def test_static_call(self):
        """Counter.reset(&c) is a plain call."""
        result = translate(COUNTER + "void run(void) {\n    mut Counter c = {};\n    Counter.reset(&c);\n}\n")
        assert "Counter_reset(&c);" in result.source

    def test_ambiguous_instance_call(self):
        """The same method on two structs cannot be resolved from c.m()."""
        source = (
            "struct A { u8 n; };\n"
            "struct B { u8 n; };\n"
            "void A.touch() { }\n"
            "void B.touch() { }\n"
            "void run(void) {\n"
            "    mut A a = {};\n"
            "    a.touch();\n"
            "}\n"
        )
        with pytest.raises(MethodError, match="Ambiguous method call"):
            translate(source)

    def test_autoderef_scoped_to_function(self):
        """A pointer parameter only dereferences inside its own function."""
        source = (
            VEC2
            + "f32 Vec2.length(Vec2 *v) {\n    return v.x;\n}\n"
            + "f32 first(void) {\n    Vec2 v = {};\n    return v.x;\n}\n"
        )
        result = translate(source)
        assert "return v->x;" in result.source
        assert "return v.x;" in result.source


# =============================================================================
# Log
# =============================================================================

class TestLog:
    """The runtime logger."""

    def test_log_call(self):
        """Log.info(...) calls the runtime."""
        result = translate('void run(void) {\n    Log.info("hi");\n}\n')
        assert 'cz_log_info("hi");' in result.source
        assert '#include "cz.h"' in result.header
        assert "static int cz_log_debug_mode = 1;" in result.source

    def test_debug_pragma(self):
        """'#pragma czar debug false' switches debug records off."""
        source = '#pragma czar debug false\nvoid run(void) {\n    Log.debug("x");\n}\n'
        result = translate(source)
        assert "static int cz_log_debug_mode = 0;" in result.source

    def test_no_log_no_flag(self):
        """Units that never log get no flag and no runtime include."""
        result = translate("u8 x = 1;")
        assert "cz_log_debug_mode" not in result.source
        assert "cz.h" not in result.header
