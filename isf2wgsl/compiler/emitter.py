"""Code emitter that prints the rewritten tree as WGSL."""

from isf2wgsl.compiler.constants import ENTRY_POINT_NAME, GLSL_TO_WGSL_TYPES
from isf2wgsl.compiler.errors import CompilationError
from isf2wgsl.compiler.nodes import (
    Assign,
    Binary,
    Block,
    Break,
    BreakIf,
    Call,
    Construct,
    Continue,
    Discard,
    Expr,
    ExprStmt,
    For,
    FunctionDef,
    If,
    Index,
    Literal,
    Loop,
    Member,
    Name,
    Node,
    Param,
    Return,
    Stmt,
    StructDef,
    Switch,
    Ternary,
    TranslationUnit,
    TypeSpec,
    Unary,
    VarDecl,
    While,
)
from isf2wgsl.compiler.type_utils import is_constant_expression

INDENT = "    "

ADDITIVE = {"+", "-"}
MULTIPLICATIVE = {"*", "/", "%"}
SHIFT = {"<<", ">>"}
BITWISE = {"&", "|", "^"}
RELATIONAL = {"<", ">", "<=", ">=", "==", "!="}
LOGICAL = {"&&", "||"}


def wgsl_type(type_spec: TypeSpec | str) -> str:
    """Map a GLSL type (with array dimensions) to its WGSL spelling."""
    if isinstance(type_spec, str):
        type_spec = TypeSpec(type_spec)
    result = GLSL_TO_WGSL_TYPES.get(type_spec.name, type_spec.name)
    emitter = Emitter()
    for dim in reversed(type_spec.array_dims):
        if dim is None:
            result = f"array<{result}>"
        else:
            result = f"array<{result}, {emitter.emit_expr(dim)}>"
    return result


def _needs_parens(child: Expr, parent_op: str, is_right: bool) -> bool:
    """Whether a binary operand must be parenthesized.

    WGSL does not let shift, bitwise and logical operators mix freely with
    other operators, so grouping rules are stricter than precedence alone.
    """
    if isinstance(child, Ternary):
        return True
    if not isinstance(child, Binary):
        return False
    op = child.op

    if parent_op in SHIFT:
        return True
    if parent_op in BITWISE:
        return op != parent_op or is_right
    if parent_op in LOGICAL:
        if op in LOGICAL:
            return op != parent_op or is_right
        return op in BITWISE
    if parent_op in RELATIONAL:
        return op in RELATIONAL or op in LOGICAL or op in BITWISE
    if parent_op in ADDITIVE:
        if op in ADDITIVE:
            return is_right
        return op not in MULTIPLICATIVE
    if parent_op in MULTIPLICATIVE:
        return op not in MULTIPLICATIVE or is_right
    return True


class Emitter:
    """Prints nodes as WGSL text.

    Module constants are tracked while emitting so that local `const`
    declarations can be printed as `const` when their value allows it and
    as `let` otherwise.
    """

    def __init__(self) -> None:
        self.constants: set[str] = set()
        self.user_functions: set[str] = set()

    def emit(self, unit: TranslationUnit) -> str:
        """Emit a whole translation unit."""
        self.user_functions = {f.name for f in unit.functions()}
        chunks: list[str] = []
        for item in unit.items:
            match item:
                case StructDef():
                    chunks.append("\n".join(self._emit_struct(item)))
                case VarDecl():
                    chunks.append(self._emit_global(item))
                case FunctionDef():
                    chunks.append("\n".join(self._emit_function(item)))
                case _:
                    raise CompilationError(
                        f"Cannot emit top-level {type(item).__name__} as WGSL"
                    )
        return "\n\n".join(chunks) + "\n" if chunks else ""

    # ====================
    # Declarations
    # ====================

    def _emit_struct(self, struct: StructDef) -> list[str]:
        lines = [f"struct {struct.name} {{"]
        for struct_field in struct.fields:
            lines.append(f"{INDENT}{struct_field.name}: {wgsl_type(struct_field.type)},")
        lines.append("}")
        return lines

    def _emit_global(self, decl: VarDecl) -> str:
        type_text = wgsl_type(decl.type)
        if decl.is_const and decl.init is not None:
            self.constants.add(decl.name)
            return f"const {decl.name}: {type_text} = {self.emit_expr(decl.init)};"
        if decl.init is not None:
            return f"var<private> {decl.name}: {type_text} = {self.emit_expr(decl.init)};"
        return f"var<private> {decl.name}: {type_text};"

    def _emit_param(self, param: Param) -> str:
        type_text = wgsl_type(param.type)
        if param.pointer:
            type_text = f"ptr<function, {type_text}>"
        return f"{param.name}: {type_text}"

    def _emit_function(self, function: FunctionDef) -> list[str]:
        params = ", ".join(self._emit_param(p) for p in function.params)
        lines: list[str] = []
        if function.entry:
            lines.append("@fragment")
            signature = f"fn {ENTRY_POINT_NAME}({params}) -> @location(0) vec4<f32>"
        elif function.return_type.name == "void":
            signature = f"fn {function.name}({params})"
        else:
            signature = f"fn {function.name}({params}) -> {wgsl_type(function.return_type)}"
        lines.append(f"{signature} {{")
        body = function.body.body if function.body is not None else []
        for stmt in body:
            lines.extend(self.emit_stmt(stmt, 1))
        lines.append("}")
        return lines

    def _local_decl(self, decl: VarDecl) -> str:
        type_text = wgsl_type(decl.type)
        if decl.is_const and decl.init is not None:
            keyword = (
                "const"
                if is_constant_expression(decl.init, self.constants, self.user_functions)
                else "let"
            )
            return f"{keyword} {decl.name}: {type_text} = {self.emit_expr(decl.init)}"
        if decl.init is not None:
            return f"var {decl.name}: {type_text} = {self.emit_expr(decl.init)}"
        return f"var {decl.name}: {type_text}"

    # ====================
    # Statements
    # ====================

    def _emit_body(self, stmts: list[Stmt], indent: int) -> list[str]:
        lines: list[str] = []
        for stmt in stmts:
            lines.extend(self.emit_stmt(stmt, indent))
        return lines

    def _simple(self, stmt: Stmt) -> str:
        """Statement text without indentation or semicolon."""
        match stmt:
            case VarDecl():
                return self._local_decl(stmt)
            case Assign(target, op, value):
                return f"{self.emit_expr(target)} {op} {self.emit_expr(value)}"
            case ExprStmt(Call() as call):
                return self.emit_expr(call)
            case ExprStmt(expr):
                return f"_ = {self.emit_expr(expr)}"
        raise CompilationError(f"Cannot emit {type(stmt).__name__} in a for header")

    def emit_stmt(self, stmt: Stmt, indent: int = 0) -> list[str]:
        prefix = INDENT * indent

        match stmt:
            case VarDecl() | Assign() | ExprStmt():
                return [f"{prefix}{self._simple(stmt)};"]

            case Block(body):
                return [f"{prefix}{{", *self._emit_body(body, indent + 1), f"{prefix}}}"]

            case If():
                return self._emit_if(stmt, indent)

            case For(init, cond, update, body):
                init_text = self._simple(init) if init is not None else ""
                cond_text = self.emit_expr(cond) if cond is not None else ""
                update_text = ", ".join(self._simple(s) for s in update)
                lines = [f"{prefix}for ({init_text}; {cond_text}; {update_text}) {{"]
                lines.extend(self._emit_body(_statements(body), indent + 1))
                lines.append(f"{prefix}}}")
                return lines

            case While(cond, body):
                lines = [f"{prefix}while ({self.emit_expr(cond)}) {{"]
                lines.extend(self._emit_body(_statements(body), indent + 1))
                lines.append(f"{prefix}}}")
                return lines

            case Loop(body, continuing):
                lines = [f"{prefix}loop {{"]
                lines.extend(self._emit_body(body.body, indent + 1))
                if continuing is not None and continuing.body:
                    inner = INDENT * (indent + 1)
                    lines.append(f"{inner}continuing {{")
                    lines.extend(self._emit_body(continuing.body, indent + 2))
                    lines.append(f"{inner}}}")
                lines.append(f"{prefix}}}")
                return lines

            case BreakIf(cond):
                return [f"{prefix}break if {self.emit_expr(cond)};"]

            case Switch(selector, cases):
                lines = [f"{prefix}switch ({self.emit_expr(selector)}) {{"]
                inner = INDENT * (indent + 1)
                for case in cases:
                    labels = ", ".join(
                        "default" if label is None else self.emit_expr(label)
                        for label in case.labels
                    )
                    keyword = "default" if labels == "default" else f"case {labels}"
                    lines.append(f"{inner}{keyword}: {{")
                    for case_stmt in case.body:
                        lines.extend(self._emit_body(_statements(case_stmt), indent + 2))
                    lines.append(f"{inner}}}")
                lines.append(f"{prefix}}}")
                return lines

            case Return(value):
                if value is None:
                    return [f"{prefix}return;"]
                return [f"{prefix}return {self.emit_expr(value)};"]

            case Break():
                return [f"{prefix}break;"]

            case Continue():
                return [f"{prefix}continue;"]

            case Discard():
                return [f"{prefix}discard;"]

        raise CompilationError(f"Cannot emit {type(stmt).__name__} as WGSL")

    def _emit_if(self, stmt: If, indent: int, chained: bool = False) -> list[str]:
        prefix = INDENT * indent
        opener = "} else if" if chained else "if"
        lines = [f"{prefix}{opener} ({self.emit_expr(stmt.cond)}) {{"]
        lines.extend(self._emit_body(_statements(stmt.then), indent + 1))
        otherwise = stmt.otherwise
        if isinstance(otherwise, If):
            lines.extend(self._emit_if(otherwise, indent, chained=True))
            return lines
        if otherwise is not None:
            lines.append(f"{prefix}}} else {{")
            lines.extend(self._emit_body(_statements(otherwise), indent + 1))
        lines.append(f"{prefix}}}")
        return lines

    # ====================
    # Expressions
    # ====================

    def emit_expr(self, expr: Expr) -> str:
        match expr:
            case Literal(value, _):
                return value

            case Name(name):
                return name

            case Call(func, args):
                args_text = ", ".join(self.emit_expr(a) for a in args)
                return f"{wgsl_type(func)}({args_text})"

            case Construct(type_spec, args):
                if type_spec.array_dims and type_spec.array_dims[0] is None:
                    type_spec = TypeSpec(
                        type_spec.name,
                        [Literal(str(len(args)), "int")] + type_spec.array_dims[1:],
                    )
                args_text = ", ".join(self.emit_expr(a) for a in args)
                return f"{wgsl_type(type_spec)}({args_text})"

            case Member(base, name):
                return f"{self._emit_operand(base)}.{name}"

            case Index(base, index):
                return f"{self._emit_operand(base)}[{self.emit_expr(index)}]"

            case Unary("*", operand):
                return f"(*{self._emit_operand(operand)})"

            case Unary(op, operand):
                text = self._emit_operand(operand)
                if op == "-" and text.startswith("-"):
                    text = f"({text})"
                return f"{op}{text}"

            case Binary(op, left, right):
                left_text = self.emit_expr(left)
                right_text = self.emit_expr(right)
                if _needs_parens(left, op, is_right=False):
                    left_text = f"({left_text})"
                if _needs_parens(right, op, is_right=True):
                    right_text = f"({right_text})"
                return f"{left_text} {op} {right_text}"

            case Ternary():
                raise CompilationError("Ternary expression left after lowering")

        raise CompilationError(f"Cannot emit {type(expr).__name__} as WGSL")

    def _emit_operand(self, expr: Expr) -> str:
        """Emit the operand of a unary or postfix operator."""
        text = self.emit_expr(expr)
        if isinstance(expr, (Binary, Ternary)):
            return f"({text})"
        return text


def _statements(stmt: Stmt) -> list[Stmt]:
    if isinstance(stmt, Block):
        return stmt.body
    return [stmt]


def emit(node: Node) -> str:
    """Emit a translation unit, statement or expression."""
    emitter = Emitter()
    if isinstance(node, TranslationUnit):
        return emitter.emit(node)
    if isinstance(node, Stmt):
        return "\n".join(emitter.emit_stmt(node))
    if isinstance(node, Expr):
        return emitter.emit_expr(node)
    raise CompilationError(f"Cannot emit {type(node).__name__} as WGSL")

