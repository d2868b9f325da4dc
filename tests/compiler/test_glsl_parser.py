"""Tests for the GLSL tokenizer and parser."""

import pytest

from isf2wgsl.compiler.errors import GLSLSyntaxError
from isf2wgsl.compiler.lexer import TokenKind, tokenize
from isf2wgsl.compiler.nodes import (
    Assign,
    Binary,
    Block,
    Call,
    Construct,
    Declaration,
    DoWhile,
    ExprStmt,
    For,
    FunctionDef,
    Index,
    Literal,
    Member,
    Name,
    StructDef,
    Switch,
    Ternary,
    Unary,
)
from isf2wgsl.compiler.parser import normalize_number, parse, parse_expression


def main_body(source: str):
    unit = parse(source)
    main = unit.find_function("main")
    assert main is not None and main.body is not None
    return main.body.body


class TestTokenizer:
    def test_token_kinds_and_positions(self):
        tokens = tokenize("float x = 1.5;\nx += 2;")
        assert [t.text for t in tokens] == ["float", "x", "=", "1.5", ";", "x", "+=", "2", ";", ""]
        assert tokens[0].kind == TokenKind.IDENT
        assert tokens[3].kind == TokenKind.NUMBER
        assert tokens[-1].kind == TokenKind.EOF
        assert (tokens[5].line, tokens[5].column) == (2, 1)

    def test_longest_operator_wins(self):
        assert [t.text for t in tokenize("a <<= b >> c")][:-1] == ["a", "<<=", "b", ">>", "c"]

    def test_numbers(self):
        texts = [t.text for t in tokenize("1.0 .5 2. 1e3 1.5e-2 0x1F 3u")][:-1]
        assert texts == ["1.0", ".5", "2.", "1e3", "1.5e-2", "0x1F", "3u"]

    def test_unexpected_character(self):
        with pytest.raises(GLSLSyntaxError) as exc_info:
            tokenize("float x;\nfloat y = @;")
        assert exc_info.value.line == 2
        assert exc_info.value.column == 11


class TestNormalizeNumber:
    @pytest.mark.parametrize(
        "text,value,literal_type",
        [
            ("1.0", "1.0", "float"),
            (".5", "0.5", "float"),
            ("1.", "1.0", "float"),
            ("2f", "2.0", "float"),
            ("1.5F", "1.5", "float"),
            ("1e3", "1.0e3", "float"),
            ("2.5e-2", "2.5e-2", "float"),
            ("42", "42", "int"),
            ("0", "0", "int"),
            ("010", "8", "int"),
            ("7u", "7u", "uint"),
            ("0xFF", "0xFF", "int"),
        ],
    )
    def test_normalize(self, text, value, literal_type):
        assert normalize_number(text) == Literal(value, literal_type)


class TestDeclarations:
    def test_function_and_prototype(self):
        unit = parse("float f(float x);\nfloat f(float x) { return x; }\nvoid main() {}")
        prototype, definition, main = unit.items
        assert isinstance(prototype, FunctionDef) and prototype.body is None
        assert isinstance(definition, FunctionDef) and definition.body is not None
        assert main.name == "main"
        assert definition.params[0].name == "x"

    def test_parameter_qualifiers(self):
        unit = parse("void f(in float a, out vec2 b, inout vec3 c, const float d) {}")
        params = unit.items[0].params
        assert [p.qualifier for p in params] == ["in", "out", "inout", ""]

    def test_void_parameter_list(self):
        unit = parse("float f(void) { return 1.0; }")
        assert unit.items[0].params == []

    def test_precision_and_qualifiers_dropped(self):
        unit = parse("precision highp float;\nuniform lowp float amount;\nvoid main() {}")
        declaration = unit.items[0]
        assert isinstance(declaration, Declaration)
        assert declaration.qualifiers == ["uniform"]
        assert declaration.type.name == "float"

    def test_multiple_declarators(self):
        unit = parse("const float a = 1.0, b[2];")
        declaration = unit.items[0]
        assert declaration.qualifiers == ["const"]
        assert [d.name for d in declaration.declarators] == ["a", "b"]
        assert declaration.declarators[1].array_dims == [Literal("2", "int")]

    def test_struct(self):
        unit = parse("struct Light { vec3 color; float a, b; };\nLight sun;")
        struct, declaration = unit.items
        assert isinstance(struct, StructDef)
        assert [f.name for f in struct.fields] == ["color", "a", "b"]
        assert declaration.type.name == "Light"

    def test_array_constructor(self):
        unit = parse("float w[] = float[](1.0, 2.0);")
        init = unit.items[0].declarators[0].init
        assert isinstance(init, Construct)
        assert init.type.array_dims == [None]
        assert len(init.args) == 2


class TestStatements:
    def test_chained_assignment_split(self):
        stmts = main_body("void main() { float a; float b; a = b = 1.0; }")
        assert stmts[2:] == [
            Assign(Name("b"), "=", Literal("1.0", "float")),
            Assign(Name("a"), "=", Name("b")),
        ]

    @pytest.mark.parametrize(
        "code,op",
        [("i++;", "+="), ("++i;", "+="), ("i--;", "-="), ("--i;", "-=")],
    )
    def test_increment_statement(self, code, op):
        stmts = main_body(f"void main() {{ int i = 0; {code} }}")
        assert stmts[1] == Assign(Name("i"), op, Literal("1", "int"))

    def test_nested_increment_rejected(self):
        with pytest.raises(GLSLSyntaxError, match="Increment or decrement inside an expression"):
            parse("void main() { int i = 0; int j = 0; j = i++ + 1; }")

    def test_expression_statement(self):
        stmts = main_body("void main() { f(1.0); }")
        assert stmts == [ExprStmt(Call("f", [Literal("1.0", "float")]))]

    def test_for_loop_parts(self):
        stmts = main_body("void main() { for (int i = 0, j = 1; i < j; i++, j--) {} }")
        loop = stmts[0]
        assert isinstance(loop, For)
        assert isinstance(loop.init, Declaration)
        assert len(loop.init.declarators) == 2
        assert isinstance(loop.cond, Binary)
        assert [s.op for s in loop.update] == ["+=", "-="]

    def test_do_while(self):
        stmts = main_body("void main() { int i = 0; do { i++; } while (i < 3); }")
        assert isinstance(stmts[1], DoWhile)
        assert isinstance(stmts[1].body, Block)

    def test_switch_cases(self):
        source = "void main() { int m = 0; switch (m) { case 0: case 1: break; default: m = 2; } }"
        switch = main_body(source)[1]
        assert isinstance(switch, Switch)
        assert [case.labels for case in switch.cases] == [
            [Literal("0", "int")],
            [Literal("1", "int")],
            [None],
        ]
        assert switch.cases[0].body == []

    def test_local_struct_rejected(self):
        with pytest.raises(GLSLSyntaxError, match="Local struct declarations"):
            parse("void main() { struct S { float a; }; }")


class TestExpressions:
    def test_precedence(self):
        expr = parse_expression("a + b * c")
        assert expr == Binary("+", Name("a"), Binary("*", Name("b"), Name("c")))

    def test_left_associative(self):
        expr = parse_expression("a - b - c")
        assert expr == Binary("-", Binary("-", Name("a"), Name("b")), Name("c"))

    def test_nested_ternary_right_associative(self):
        expr = parse_expression("a ? b : c ? d : e")
        assert isinstance(expr, Ternary)
        assert isinstance(expr.if_false, Ternary)

    def test_postfix_chain(self):
        expr = parse_expression("items[i].color.rgb")
        assert expr == Member(Member(Index(Name("items"), Name("i")), "color"), "rgb")

    def test_unary_plus_dropped(self):
        assert parse_expression("+x") == Name("x")
        assert parse_expression("-x") == Unary("-", Name("x"))

    def test_booleans(self):
        assert parse_expression("true") == Literal("true", "bool")


class TestSyntaxErrors:
    def test_error_reports_line(self):
        with pytest.raises(GLSLSyntaxError) as exc_info:
            parse("void main() {\n    float x = ;\n}")
        assert exc_info.value.line == 2
        assert "Unexpected ';' in expression" in str(exc_info.value)
        assert "at line 2" in str(exc_info.value)

    def test_missing_brace(self):
        with pytest.raises(GLSLSyntaxError, match="missing '}'"):
            parse("void main() {\n    float x = 1.0;\n")

    def test_assignment_inside_expression_rejected(self):
        with pytest.raises(GLSLSyntaxError, match="Assignments inside expressions"):
            parse("void main() { float a; if (a = 1.0) {} }")

    def test_comma_expression_rejected(self):
        with pytest.raises(GLSLSyntaxError, match="Comma expressions"):
            parse("void main() { float a; float b; if (a, b) {} }")
