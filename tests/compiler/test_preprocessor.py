"""Tests for the macro preprocessor."""

from textwrap import dedent

import pytest

from isf2wgsl.compiler.models import InputDecl
from isf2wgsl.compiler.preprocessor import (
    evaluate_condition,
    expand_macros,
    join_continuations,
    preprocess,
    process_directives,
    split_arguments,
    strip_comments,
)


def code_lines(text: str) -> list[str]:
    return [line.strip() for line in text.split("\n") if line.strip()]


class TestTextHelpers:
    def test_strip_comments_keeps_line_count(self):
        text = "a; // note\n/* one\ntwo */ b;"
        stripped = strip_comments(text)
        assert stripped.count("\n") == text.count("\n")
        assert "note" not in stripped
        assert "two" not in stripped
        assert "b;" in stripped

    def test_join_continuations_pads_lines(self):
        lines = join_continuations("#define F(x) \\\n    (x + 1.0)\nfloat y;")
        assert lines[0].split() == ["#define", "F(x)", "(x", "+", "1.0)"]
        assert lines[1] == ""
        assert lines[2] == "float y;"

    def test_split_arguments_respects_nesting(self):
        assert split_arguments("a, f(b, c), v[1]") == ["a", "f(b, c)", "v[1]"]
        assert split_arguments("") == []


class TestMacroExpansion:
    def test_object_macro(self, context):
        assert preprocess("#define PI 3.14159\nfloat x = PI;", context).strip() == "float x = 3.14159;"

    def test_multi_token_body_parenthesized(self, context):
        result = preprocess("#define HALF_PI 3.14159 / 2.0\nfloat x = 2.0 * HALF_PI;", context)
        assert "float x = 2.0 * (3.14159 / 2.0);" in result

    def test_function_macro_arguments_parenthesized(self, context):
        result = preprocess("#define SQ(x) x * x\nfloat y = SQ(a + 1.0);", context)
        assert "float y = ((a + 1.0) * (a + 1.0));" in result

    def test_nested_macros_expand(self, context):
        source = dedent(
            """
            #define SCALE 2.0
            #define TWICE(v) (v * SCALE)
            float y = TWICE(TWICE(1.0));
            """
        )
        result = preprocess(source, context)
        assert "SCALE" not in result
        assert "TWICE" not in result
        assert "2.0" in result

    def test_identifier_boundaries(self, context):
        result = preprocess("#define R 1.0\nfloat RR = R; float xR = R;", context)
        assert "float RR = 1.0; float xR = 1.0;" in result

    def test_arity_mismatch_left_unexpanded(self, context):
        result = preprocess("#define ADD(a, b) a + b\nfloat y = ADD(1.0);", context)
        assert "ADD(1.0)" in result
        assert 'Macro "ADD" expects 2 arguments, got 1; call left unexpanded' in context.warnings

    def test_token_pasting(self, context):
        result = preprocess("#define CAT(a, b) a ## b\nfloat CAT(my, Var) = 1.0;", context)
        assert "float myVar = 1.0;" in result

    def test_statement_body_not_wrapped(self, context):
        result = preprocess("#define SET(v) v = 1.0;\nSET(x)", context)
        assert "x = 1.0;" in result
        assert "(x = 1.0;)" not in result

    def test_non_converging_expansion_warns(self, context):
        result = preprocess("#define A B\n#define B A\nfloat x = A;", context)
        assert "float x =" in result
        assert "Macro expansion did not converge after 8 passes" in context.warnings

    def test_max_passes_option(self, context):
        process_directives("#define A B\n#define B A", context)
        expand_macros("A", context, max_passes=2)
        assert "Macro expansion did not converge after 2 passes" in context.warnings

    def test_expansion_is_idempotent(self, context):
        first = preprocess("#define K 2.0\n#define F(x) (x * K)\nfloat y = F(K);", context)
        assert expand_macros(first, context) == first

    def test_input_name_wins_over_macro(self, context):
        context.inputs["amount"] = InputDecl("amount", "float")
        result = preprocess("#define amount 0.5\nfloat y = amount;", context)
        assert "float y = amount;" in result
        assert 'Macro "amount" conflicts with declared input, using the input' in context.warnings


class TestDirectives:
    def test_line_count_preserved(self, context):
        source = "#version 100\n#define A 1.0\n#ifdef A\nfloat x = A;\n#endif\nfloat y;"
        result = preprocess(source, context)
        assert result.count("\n") == source.count("\n")
        assert result.split("\n")[3].strip() == "float x = 1.0;"
        assert "#" not in result

    def test_version_and_extension_silent(self, context):
        preprocess("#version 120\n#extension GL_OES_standard_derivatives : enable\n", context)
        assert context.warnings == []

    def test_pragma_warns(self, context):
        result = preprocess("#pragma optimize(on)\nfloat x;", context)
        assert "#pragma" not in result
        assert "Preprocessor directive removed: #pragma optimize(on)" in context.warnings

    def test_ifdef_false_branch_dropped(self, context):
        source = "#ifdef MISSING\nfloat a;\n#else\nfloat b;\n#endif"
        assert code_lines(preprocess(source, context)) == ["float b;"]
        assert "Preprocessor directive removed: #ifdef MISSING (evaluated false)" in context.warnings

    def test_ifndef(self, context):
        source = "#define X 1\n#ifndef X\nfloat a;\n#endif\nfloat b;"
        assert code_lines(preprocess(source, context)) == ["float b;"]

    def test_if_elif_else(self, context):
        source = dedent(
            """
            #define QUALITY 2
            #if QUALITY == 1
            float low;
            #elif QUALITY == 2
            float mid;
            #else
            float high;
            #endif
            """
        )
        assert code_lines(preprocess(source, context)) == ["float mid;"]

    def test_nested_conditionals(self, context):
        source = dedent(
            """
            #define OUTER 1
            #if OUTER
            #ifdef INNER
            float a;
            #else
            float b;
            #endif
            #else
            float c;
            #endif
            """
        )
        assert code_lines(preprocess(source, context)) == ["float b;"]

    def test_define_inside_false_branch_ignored(self, context):
        source = "#if 0\n#define K 1.0\n#endif\nfloat x = K;"
        assert "float x = K;" in preprocess(source, context)
        assert "K" not in context.object_macros

    def test_undef(self, context):
        source = "#define K 1.0\n#undef K\nfloat x = K;"
        assert "float x = K;" in preprocess(source, context)

    def test_unevaluable_condition_keeps_all_branches(self, context):
        source = "#define FOO(x) x\n#if FOO(1)\nfloat a;\n#else\nfloat b;\n#endif"
        assert code_lines(preprocess(source, context)) == ["float a;", "float b;"]
        assert "Preprocessor directive removed: #if FOO(1) (kept all branches)" in context.warnings

    def test_unterminated_if_warns(self, context):
        preprocess("#ifdef X\nfloat a;", context)
        assert "1 unterminated #if group(s) at end of shader" in context.warnings

    def test_stray_endif_warns(self, context):
        preprocess("#endif\nfloat a;", context)
        assert "Preprocessor directive removed: #endif (no matching #if)" in context.warnings


class TestConditions:
    @pytest.mark.parametrize(
        "expression,expected",
        [
            ("1", True),
            ("0", False),
            ("UNDEFINED_NAME", False),
            ("defined(K)", True),
            ("defined K && K > 1", True),
            ("!defined(NOPE)", True),
            ("(2 + 3) * 2 == 10", True),
            ("K % 2 == 1 || 0", True),
            ("0x10 >> 4", True),
            ("1 / 0", None),
            ("1.5 > 1", None),
        ],
    )
    def test_evaluate_condition(self, context, expression, expected):
        process_directives("#define K 3", context)
        assert evaluate_condition(expression, context) is expected
