"""Recursive-descent parser for the GLSL ES subset used by ISF shaders.

The parser accepts what real-world ISF shaders contain rather than the full
grammar: structs, functions and prototypes, qualified declarations, arrays,
the usual statements, and the complete expression precedence ladder.
Assignments and increments are statements only; chained assignments are
split into a sequence of statements.
"""

from loguru import logger

from isf2wgsl.compiler.constants import (
    GLSL_TO_WGSL_TYPES,
    PRECISION_QUALIFIERS,
    STORAGE_QUALIFIERS,
)
from isf2wgsl.compiler.errors import GLSLSyntaxError
from isf2wgsl.compiler.lexer import Token, TokenKind, tokenize
from isf2wgsl.compiler.nodes import (
    Assign,
    Binary,
    Block,
    Break,
    Call,
    Construct,
    Continue,
    Declaration,
    Declarator,
    Discard,
    DoWhile,
    Expr,
    ExprStmt,
    For,
    FunctionDef,
    If,
    Index,
    Literal,
    Member,
    Name,
    Node,
    Param,
    Return,
    Stmt,
    StructDef,
    StructField,
    Switch,
    SwitchCase,
    Ternary,
    TranslationUnit,
    TypeSpec,
    Unary,
    While,
    walk,
)

BINARY_PRECEDENCE: dict[str, int] = {
    "||": 1,
    "^^": 2,
    "&&": 3,
    "|": 4,
    "^": 5,
    "&": 6,
    "==": 7,
    "!=": 7,
    "<": 8,
    ">": 8,
    "<=": 8,
    ">=": 8,
    "<<": 9,
    ">>": 9,
    "+": 10,
    "-": 10,
    "*": 11,
    "/": 11,
    "%": 11,
}

ASSIGNMENT_OPERATORS = {
    "=", "+=", "-=", "*=", "/=", "%=", "<<=", ">>=", "&=", "|=", "^=",
}

INCREMENT_OPERATORS = {"++", "--"}

PARAM_QUALIFIERS = {"in", "out", "inout"}


def normalize_number(text: str) -> Literal:
    """Turn a GLSL number token into a literal with a WGSL-friendly spelling."""
    lowered = text.lower()
    if lowered.startswith("0x"):
        if lowered.endswith("u"):
            return Literal(text, "uint")
        return Literal(text, "int")

    is_float = "." in text or "e" in lowered or lowered.rstrip("lf") != lowered
    if is_float:
        value = text.rstrip("fFlL")
        if value.startswith("."):
            value = "0" + value
        mantissa, sep, exponent = value.lower().partition("e")
        if mantissa.endswith("."):
            mantissa += "0"
        elif "." not in mantissa:
            mantissa += ".0"
        return Literal(mantissa + (sep + exponent if sep else ""), "float")

    digits, suffix = (text[:-1], "u") if lowered.endswith("u") else (text, "")
    # WGSL has no octal literals
    if len(digits) > 1 and digits[0] == "0":
        digits = str(int(digits, 8))
    return Literal(digits + suffix, "uint" if suffix else "int")


class Parser:
    """Builds a TranslationUnit from a token list."""

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0
        self.struct_names: set[str] = set()

    # ====================
    # Token helpers
    # ====================

    def _peek(self, offset: int = 0) -> Token:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind != TokenKind.EOF:
            self.pos += 1
        return token

    def _check(self, text: str, offset: int = 0) -> bool:
        token = self._peek(offset)
        return token.kind in (TokenKind.OP, TokenKind.IDENT) and token.text == text

    def _accept(self, text: str) -> bool:
        if self._check(text):
            self._advance()
            return True
        return False

    def _expect(self, text: str) -> Token:
        token = self._peek()
        if not self._check(text):
            found = token.text or "end of input"
            raise self._error(f"Expected '{text}' but found '{found}'", token)
        return self._advance()

    def _expect_ident(self) -> str:
        token = self._peek()
        if token.kind != TokenKind.IDENT:
            found = token.text or "end of input"
            raise self._error(f"Expected identifier but found '{found}'", token)
        return self._advance().text

    def _error(self, message: str, token: Token | None = None) -> GLSLSyntaxError:
        token = token or self._peek()
        return GLSLSyntaxError(message, token.line, token.column)

    def _is_type_name(self, token: Token) -> bool:
        return token.kind == TokenKind.IDENT and (
            token.text in GLSL_TO_WGSL_TYPES
            or token.text == "void"
            or token.text in self.struct_names
        )

    def _is_qualifier(self, token: Token) -> bool:
        return token.kind == TokenKind.IDENT and (
            token.text in STORAGE_QUALIFIERS or token.text == "layout"
        )

    # ====================
    # Top level
    # ====================

    def parse_unit(self) -> TranslationUnit:
        unit = TranslationUnit()
        while self._peek().kind != TokenKind.EOF:
            unit.items.extend(self._external_declaration())
        logger.debug(f"Parsed {len(unit.items)} top-level items")
        return unit

    def _external_declaration(self) -> list[Node]:
        if self._accept(";"):
            return []
        if self._check("precision"):
            self._skip_precision()
            return []

        qualifiers = self._qualifiers()

        if self._check("struct"):
            struct, declaration = self._struct(qualifiers)
            return [struct] if declaration is None else [struct, declaration]

        type_spec = self._type()
        if self._peek().kind == TokenKind.IDENT and self._check("(", 1):
            return [self._function(type_spec)]
        if self._accept(";"):
            # Bare type with qualifiers, e.g. `precision`-like leftovers
            return []
        return [self._declaration_rest(type_spec, qualifiers)]

    def _skip_precision(self) -> None:
        self._expect("precision")
        while not self._check(";"):
            if self._peek().kind == TokenKind.EOF:
                raise self._error("Unterminated precision statement")
            self._advance()
        self._expect(";")

    def _qualifiers(self) -> list[str]:
        qualifiers: list[str] = []
        while self._is_qualifier(self._peek()):
            token = self._advance()
            if token.text == "layout":
                self._skip_parenthesized()
                continue
            if token.text not in PRECISION_QUALIFIERS:
                qualifiers.append(token.text)
        return qualifiers

    def _skip_parenthesized(self) -> None:
        self._expect("(")
        depth = 1
        while depth:
            token = self._advance()
            if token.kind == TokenKind.EOF:
                raise self._error("Unbalanced parentheses", token)
            if token.text == "(":
                depth += 1
            elif token.text == ")":
                depth -= 1

    def _type(self) -> TypeSpec:
        token = self._peek()
        if not self._is_type_name(token):
            found = token.text or "end of input"
            raise self._error(f"Expected type name but found '{found}'", token)
        self._advance()
        return TypeSpec(token.text, self._array_dims())

    def _array_dims(self) -> list[Expr | None]:
        dims: list[Expr | None] = []
        while self._accept("["):
            if self._accept("]"):
                dims.append(None)
                continue
            dims.append(self._conditional())
            self._expect("]")
        return dims

    def _struct(self, qualifiers: list[str]) -> tuple[StructDef, Declaration | None]:
        self._expect("struct")
        name = self._expect_ident()
        self.struct_names.add(name)
        struct = StructDef(name)
        self._expect("{")
        while not self._accept("}"):
            self._qualifiers()
            member_type = self._type()
            while True:
                member_name = self._expect_ident()
                dims = self._array_dims()
                struct.fields.append(
                    StructField(
                        member_name,
                        TypeSpec(member_type.name, member_type.array_dims + dims),
                    )
                )
                if not self._accept(","):
                    break
            self._expect(";")

        if self._accept(";"):
            return struct, None
        declaration = self._declaration_rest(TypeSpec(name), qualifiers)
        return struct, declaration

    def _function(self, return_type: TypeSpec) -> FunctionDef:
        name = self._expect_ident()
        self._expect("(")
        params: list[Param] = []
        if self._check("void") and self._check(")", 1):
            self._advance()
        while not self._check(")"):
            params.append(self._param())
            if not self._accept(","):
                break
        self._expect(")")

        function = FunctionDef(name, return_type, params)
        if self._accept(";"):
            return function
        function.body = self._block()
        return function

    def _param(self) -> Param:
        qualifier = ""
        for q in self._qualifiers():
            if q in PARAM_QUALIFIERS:
                qualifier = q
        param_type = self._type()
        name = ""
        if self._peek().kind == TokenKind.IDENT:
            name = self._advance().text
        dims = self._array_dims()
        return Param(name, TypeSpec(param_type.name, param_type.array_dims + dims), qualifier)

    def _declaration_rest(self, type_spec: TypeSpec, qualifiers: list[str]) -> Declaration:
        declarators: list[Declarator] = []
        while True:
            name = self._expect_ident()
            dims = self._array_dims()
            init = None
            if self._accept("="):
                init = self._conditional()
            declarators.append(Declarator(name, dims, init))
            if not self._accept(","):
                break
        self._expect(";")
        return Declaration(type_spec, declarators, qualifiers)

    # ====================
    # Statements
    # ====================

    def _block(self) -> Block:
        self._expect("{")
        block = Block()
        while not self._accept("}"):
            if self._peek().kind == TokenKind.EOF:
                raise self._error("Unexpected end of input, missing '}'")
            block.body.extend(self._statement())
        return block

    def _single_statement(self) -> Stmt:
        """Parse the body of a control statement as one statement."""
        stmts = self._statement()
        if len(stmts) == 1:
            return stmts[0]
        return Block(stmts)

    def _statement(self) -> list[Stmt]:
        token = self._peek()
        text = token.text if token.kind in (TokenKind.IDENT, TokenKind.OP) else ""

        match text:
            case "{":
                return [self._block()]
            case ";":
                self._advance()
                return []
            case "precision":
                self._skip_precision()
                return []
            case "if":
                return [self._if()]
            case "for":
                return [self._for()]
            case "while":
                self._advance()
                self._expect("(")
                cond = self._expression()
                self._expect(")")
                return [While(cond, self._single_statement())]
            case "do":
                self._advance()
                body = self._single_statement()
                self._expect("while")
                self._expect("(")
                cond = self._expression()
                self._expect(")")
                self._expect(";")
                return [DoWhile(body, cond)]
            case "switch":
                return [self._switch()]
            case "return":
                self._advance()
                value = None if self._check(";") else self._expression()
                self._expect(";")
                return [Return(value)]
            case "break":
                self._advance()
                self._expect(";")
                return [Break()]
            case "continue":
                self._advance()
                self._expect(";")
                return [Continue()]
            case "discard":
                self._advance()
                self._expect(";")
                return [Discard()]
            case "struct":
                raise self._error("Local struct declarations are not supported")

        if self._starts_declaration():
            qualifiers = self._qualifiers()
            type_spec = self._type()
            return [self._declaration_rest(type_spec, qualifiers)]

        stmts = self._simple_statements()
        self._expect(";")
        return stmts

    def _starts_declaration(self) -> bool:
        token = self._peek()
        if self._is_qualifier(token):
            return True
        if not self._is_type_name(token):
            return False
        after = self._peek(1)
        if after.kind == TokenKind.IDENT:
            return True
        if after.text == "[":
            # `float[3] a` is a declaration, `float[3](...)` a constructor
            depth = 0
            offset = 1
            while True:
                tok = self._peek(offset)
                if tok.kind == TokenKind.EOF:
                    return False
                if tok.text == "[":
                    depth += 1
                elif tok.text == "]":
                    depth -= 1
                    if depth == 0 and self._peek(offset + 1).text != "[":
                        return self._peek(offset + 1).kind == TokenKind.IDENT
                offset += 1
        return False

    def _if(self) -> If:
        self._expect("if")
        self._expect("(")
        cond = self._expression()
        self._expect(")")
        then = self._single_statement()
        otherwise = None
        if self._accept("else"):
            otherwise = self._single_statement()
        return If(cond, then, otherwise)

    def _for(self) -> For:
        self._expect("for")
        self._expect("(")

        init: Stmt | None = None
        if not self._check(";"):
            if self._starts_declaration():
                qualifiers = self._qualifiers()
                type_spec = self._type()
                init = self._declaration_rest(type_spec, qualifiers)
            else:
                stmts = self._simple_statements()
                self._expect(";")
                init = stmts[0] if len(stmts) == 1 else Block(stmts)
        else:
            self._expect(";")

        cond = None if self._check(";") else self._expression()
        self._expect(";")

        update: list[Stmt] = []
        if not self._check(")"):
            update = self._simple_statements()
        self._expect(")")

        return For(init, cond, update, self._single_statement())

    def _switch(self) -> Switch:
        self._expect("switch")
        self._expect("(")
        selector = self._expression()
        self._expect(")")
        self._expect("{")
        switch = Switch(selector)
        while not self._accept("}"):
            if self._accept("case"):
                label: Expr | None = self._conditional()
                self._expect(":")
                switch.cases.append(SwitchCase([label]))
            elif self._accept("default"):
                self._expect(":")
                switch.cases.append(SwitchCase([None]))
            else:
                if not switch.cases:
                    raise self._error("Statement before first case label")
                switch.cases[-1].body.extend(self._statement())
        return switch

    def _simple_statements(self) -> list[Stmt]:
        """Parse comma-separated assignments, increments or expressions."""
        stmts: list[Stmt] = []
        while True:
            pre, expr = self._assignment_item()
            if pre:
                stmts.extend(pre)
            elif expr is not None:
                stmts.append(ExprStmt(expr))
            if not self._accept(","):
                break
        return stmts

    def _assignment_item(self) -> tuple[list[Stmt], Expr | None]:
        """Parse one assignment or expression.

        Returns:
            The statements the item expands to, and the expression whose value
            the item yields (the assigned target for assignments).
        """
        token = self._peek()
        if token.text in INCREMENT_OPERATORS and token.kind == TokenKind.OP:
            self._advance()
            target = self._unary()
            return [_increment(target, token.text)], target

        start = self._peek()
        expr = self._conditional()

        if isinstance(expr, Unary) and expr.op in ("post++", "post--"):
            return [_increment(expr.operand, expr.op[4:])], expr.operand

        op_token = self._peek()
        if op_token.kind == TokenKind.OP and op_token.text in ASSIGNMENT_OPERATORS:
            self._advance()
            pre, value = self._assignment_item()
            if value is None:
                raise self._error("Missing value in assignment", op_token)
            return pre + [Assign(expr, op_token.text, value)], expr

        _reject_nested_increments(expr, start)
        return [], expr

    # ====================
    # Expressions
    # ====================

    def _expression(self) -> Expr:
        expr = self._conditional()
        if self._check(","):
            raise self._error("Comma expressions are only supported as statements")
        if self._peek().text in ASSIGNMENT_OPERATORS and self._peek().kind == TokenKind.OP:
            raise self._error("Assignments inside expressions are not supported")
        return expr

    def _conditional(self) -> Expr:
        cond = self._binary(1)
        if self._accept("?"):
            if_true = self._conditional()
            self._expect(":")
            if_false = self._conditional()
            return Ternary(cond, if_true, if_false)
        return cond

    def _binary(self, min_precedence: int) -> Expr:
        left = self._unary()
        while True:
            token = self._peek()
            precedence = BINARY_PRECEDENCE.get(token.text) if token.kind == TokenKind.OP else None
            if precedence is None or precedence < min_precedence:
                return left
            self._advance()
            right = self._binary(precedence + 1)
            left = Binary(token.text, left, right)

    def _unary(self) -> Expr:
        token = self._peek()
        if token.kind == TokenKind.OP and token.text in ("-", "+", "!", "~"):
            self._advance()
            operand = self._unary()
            if token.text == "+":
                return operand
            return Unary(token.text, operand)
        if token.kind == TokenKind.OP and token.text in INCREMENT_OPERATORS:
            self._advance()
            return Unary("pre" + token.text, self._unary())
        return self._postfix(self._primary())

    def _postfix(self, expr: Expr) -> Expr:
        while True:
            if self._accept("["):
                index = self._expression()
                self._expect("]")
                expr = Index(expr, index)
            elif self._accept("."):
                expr = Member(expr, self._expect_ident())
            elif self._peek().kind == TokenKind.OP and self._peek().text in INCREMENT_OPERATORS:
                expr = Unary("post" + self._advance().text, expr)
            else:
                return expr

    def _primary(self) -> Expr:
        token = self._peek()

        if token.kind == TokenKind.NUMBER:
            self._advance()
            return normalize_number(token.text)

        if token.kind == TokenKind.IDENT:
            if token.text in ("true", "false"):
                self._advance()
                return Literal(token.text, "bool")

            if self._is_type_name(token) and self._check("[", 1):
                self._advance()
                dims = self._array_dims()
                args = self._arguments()
                return Construct(TypeSpec(token.text, dims), args)

            self._advance()
            if self._check("("):
                return Call(token.text, self._arguments())
            return Name(token.text)

        if self._accept("("):
            expr = self._expression()
            self._expect(")")
            return expr

        found = token.text or "end of input"
        raise self._error(f"Unexpected '{found}' in expression", token)

    def _arguments(self) -> list[Expr]:
        self._expect("(")
        args: list[Expr] = []
        if self._check("void") and self._check(")", 1):
            self._advance()
        while not self._check(")"):
            args.append(self._conditional())
            if not self._accept(","):
                break
        self._expect(")")
        return args


def _increment(target: Expr, op: str) -> Assign:
    return Assign(target, "+=" if op == "++" else "-=", Literal("1", "int"))


def _reject_nested_increments(expr: Expr, token: Token) -> None:
    for node in walk(expr):
        if isinstance(node, Unary) and node.op in ("pre++", "pre--", "post++", "post--"):
            raise GLSLSyntaxError(
                "Increment or decrement inside an expression is not supported",
                token.line,
                token.column,
            )


def parse(source: str | list[Token]) -> TranslationUnit:
    """Parse preprocessed GLSL into a translation unit.

    Args:
        source: Source text or an already tokenized list

    Returns:
        The parsed translation unit

    Raises:
        GLSLSyntaxError: On any syntax the parser does not understand
    """
    tokens = tokenize(source) if isinstance(source, str) else source
    return Parser(tokens).parse_unit()


def parse_expression(text: str) -> Expr:
    """Parse a standalone expression, used for built-in replacement snippets."""
    parser = Parser(tokenize(text))
    expr = parser._expression()
    if parser._peek().kind != TokenKind.EOF:
        raise parser._error(f"Trailing input after expression: '{parser._peek().text}'")
    return expr
