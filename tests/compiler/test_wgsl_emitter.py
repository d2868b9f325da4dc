"""Tests for the WGSL emitter."""

import pytest

from isf2wgsl.compiler.emitter import emit, wgsl_type
from isf2wgsl.compiler.errors import CompilationError
from isf2wgsl.compiler.nodes import (
    Assign,
    Block,
    BreakIf,
    Call,
    ExprStmt,
    FunctionDef,
    Literal,
    Loop,
    Name,
    Param,
    Return,
    Switch,
    SwitchCase,
    TranslationUnit,
    TypeSpec,
    VarDecl,
)
from isf2wgsl.compiler.parser import parse, parse_expression


def one(value: str) -> Literal:
    return Literal(value, "int")


class TestWgslType:
    @pytest.mark.parametrize(
        "type_spec,expected",
        [
            (TypeSpec("float"), "f32"),
            (TypeSpec("ivec3"), "vec3<i32>"),
            (TypeSpec("bvec2"), "vec2<bool>"),
            (TypeSpec("mat3"), "mat3x3<f32>"),
            (TypeSpec("Light"), "Light"),
            (TypeSpec("float", [one("3")]), "array<f32, 3>"),
            (TypeSpec("vec2", [one("2"), one("3")]), "array<array<vec2<f32>, 3>, 2>"),
            (TypeSpec("float", [None]), "array<f32>"),
        ],
    )
    def test_mapping(self, type_spec, expected):
        assert wgsl_type(type_spec) == expected

    def test_plain_string(self):
        assert wgsl_type("vec4") == "vec4<f32>"


class TestExpressions:
    @pytest.mark.parametrize(
        "glsl,wgsl",
        [
            ("a + b * c", "a + b * c"),
            ("(a + b) * c", "(a + b) * c"),
            ("a - (b - c)", "a - (b - c)"),
            ("a / (b * c)", "a / (b * c)"),
            ("a & b == c", "a & (b == c)"),
            ("a & b & c", "a & b & c"),
            ("a && b || c", "(a && b) || c"),
            ("a << 1 + b", "a << (1 + b)"),
            ("a < b + 1.0", "a < b + 1.0"),
            ("-(a + b)", "-(a + b)"),
            ("-(-a)", "-(-a)"),
            ("(a + b).x", "(a + b).x"),
            ("v[i + 1]", "v[i + 1]"),
            ("vec3(1.0, 2.0, 3.0)", "vec3<f32>(1.0, 2.0, 3.0)"),
            ("float[](1.0, 2.0)", "array<f32, 2>(1.0, 2.0)"),
        ],
    )
    def test_emit(self, glsl, wgsl):
        assert emit(parse_expression(glsl)) == wgsl

    def test_ternary_rejected(self):
        with pytest.raises(CompilationError, match="Ternary expression left after lowering"):
            emit(parse_expression("a ? b : c"))


class TestStatements:
    def test_var_decl(self):
        decl = VarDecl("x", TypeSpec("float"), Literal("1.0", "float"))
        assert emit(decl) == "var x: f32 = 1.0;"
        assert emit(VarDecl("v", TypeSpec("vec2"))) == "var v: vec2<f32>;"

    def test_local_const(self):
        constant = VarDecl("k", TypeSpec("float"), Literal("2.0", "float"), ["const"])
        runtime = VarDecl("k", TypeSpec("float"), Name("t"), ["const"])
        assert emit(constant) == "const k: f32 = 2.0;"
        assert emit(runtime) == "let k: f32 = t;"

    def test_expression_statements(self):
        assert emit(ExprStmt(Call("f", []))) == "f();"
        assert emit(ExprStmt(Name("x"))) == "_ = x;"

    def test_if_else_chain(self):
        source = "void main() { if (a) { b = 1; } else if (c) { b = 2; } else { b = 3; } }"
        stmt = parse(source).items[0].body.body[0]
        assert emit(stmt).split("\n") == [
            "if (a) {",
            "    b = 1;",
            "} else if (c) {",
            "    b = 2;",
            "} else {",
            "    b = 3;",
            "}",
        ]

    def test_loop_with_continuing(self):
        loop = Loop(
            Block([Assign(Name("i"), "+=", one("1"))]),
            Block([BreakIf(parse_expression("!(i < 3)"))]),
        )
        assert emit(loop).split("\n") == [
            "loop {",
            "    i += 1;",
            "    continuing {",
            "        break if !(i < 3);",
            "    }",
            "}",
        ]

    def test_switch(self):
        switch = Switch(
            Name("m"),
            [
                SwitchCase([one("1"), one("2")], [Assign(Name("x"), "=", one("1"))]),
                SwitchCase([None], []),
            ],
            grouped=True,
        )
        assert emit(switch).split("\n") == [
            "switch (m) {",
            "    case 1, 2: {",
            "        x = 1;",
            "    }",
            "    default: {",
            "    }",
            "}",
        ]


class TestUnit:
    def test_functions_and_globals(self):
        unit = TranslationUnit(
            [
                VarDecl("K", TypeSpec("float"), Literal("2.0", "float"), ["const"]),
                VarDecl("center", TypeSpec("vec2")),
                FunctionDef(
                    "tint",
                    TypeSpec("void"),
                    [Param("c", TypeSpec("vec4"), "inout", pointer=True)],
                    Block([]),
                ),
                FunctionDef(
                    "main",
                    TypeSpec("vec4"),
                    [Param("input", TypeSpec("VertexOutput"))],
                    Block([Return(Call("vec4", [Name("K")]))]),
                    entry=True,
                ),
            ]
        )
        wgsl = emit(unit)

        assert "const K: f32 = 2.0;" in wgsl
        assert "var<private> center: vec2<f32>;" in wgsl
        assert "fn tint(c: ptr<function, vec4<f32>>) {" in wgsl
        assert "@fragment\nfn fs_main(input: VertexOutput) -> @location(0) vec4<f32> {" in wgsl
        assert "    return vec4<f32>(K);" in wgsl
