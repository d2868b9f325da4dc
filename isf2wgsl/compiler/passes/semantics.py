"""Integer, boolean and matrix semantics.

GLSL converts between scalar types implicitly in places where WGSL demands
explicit conversions, and spells several builtins differently. This pass
makes those conversions explicit and renames the builtins.
"""

from typing import Any

from isf2wgsl.compiler.constants import (
    BUILTIN_FUNCTION_RENAMES,
    COMPARISON_FUNCTIONS,
)
from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.nodes import (
    Assign,
    Binary,
    Call,
    Expr,
    Index,
    Literal,
    Return,
    TranslationUnit,
    Unary,
    VarDecl,
)
from isf2wgsl.compiler.type_utils import (
    coerce_to_float,
    is_float_based,
    is_int_based,
    is_matrix,
    is_scalar,
    is_type_name,
    matrix_shape,
    scalar_of,
    type_str,
)
from isf2wgsl.compiler.visitor import Transformer

ARITHMETIC_OPERATORS = {"+", "-", "*", "/", "%", "<", ">", "<=", ">=", "==", "!="}
SHIFT_OPERATORS = {"<<", ">>"}
BITWISE_OPERATORS = {"&", "|", "^"}


def _to_int(expr: Expr) -> Expr:
    return Call("int", [expr])


def _to_uint(expr: Expr) -> Expr:
    if isinstance(expr, Literal) and expr.type == "int":
        return Literal(f"{expr.value}u", "uint")
    return Call("uint", [expr])


def _zero(scalar: str) -> Literal:
    return {
        "float": Literal("0.0", "float"),
        "uint": Literal("0u", "uint"),
    }.get(scalar, Literal("0", "int"))


def glsl_mod(x: Expr, y: Expr) -> Expr:
    """GLSL mod(x, y) as `x - y * floor(x / y)`."""
    return Binary("-", x, Binary("*", y, Call("floor", [Binary("/", x, y)])))


def diagonal_matrix(func: str, value: Expr) -> Call:
    """Expand `matN(s)` to the explicit diagonal constructor."""
    shape = matrix_shape(func)
    assert shape is not None
    columns, rows = shape
    args: list[Expr] = []
    for column in range(columns):
        for row in range(rows):
            args.append(value if column == row else Literal("0.0", "float"))
    return Call(func, args)


class SemanticsLowering(Transformer):
    def _coerce(self, expr: Expr, target: str | None) -> Expr:
        """Convert `expr` to float when `target` is float-based and it is int-based."""
        if not is_float_based(target):
            return expr
        source = self.type_of(expr)
        if not is_int_based(source):
            return expr
        return coerce_to_float(expr, source)

    # ====================
    # Calls
    # ====================

    def visit_Call(self, node: Call) -> Any:
        self.generic_visit(node)
        func, args = node.func, node.args

        if func == "bool" and len(args) == 1:
            source = self.type_of(args[0])
            if source == "bool" or not is_scalar(source):
                return node
            return Binary("!=", args[0], _zero(source))

        if func == "mod" and len(args) == 2 and func not in self.functions:
            return glsl_mod(args[0], args[1])

        if func in COMPARISON_FUNCTIONS and len(args) == 2 and func not in self.functions:
            return Binary(COMPARISON_FUNCTIONS[func], args[0], args[1])

        if func == "dot" and len(args) == 2 and func not in self.functions:
            # WGSL dot() only takes vectors
            if all(is_scalar(self.type_of(arg)) for arg in args):
                return Binary("*", args[0], args[1])
            return node

        if func == "not" and len(args) == 1 and func not in self.functions:
            return Unary("!", args[0])

        if func == "atan" and len(args) == 2 and func not in self.functions:
            node.func = "atan2"
            return node

        if func in BUILTIN_FUNCTION_RENAMES and func not in self.functions:
            node.func = BUILTIN_FUNCTION_RENAMES[func]
            return node

        if is_matrix(func) and len(args) == 1 and is_scalar(self.type_of(args[0])):
            return diagonal_matrix(func, self._coerce(args[0], "float"))

        if is_type_name(func) and is_float_based(func) and func != "float":
            node.args = [self._coerce(arg, scalar_of(func)) for arg in args]
            return node

        overloads = self.functions.get(func)
        if overloads and len(overloads[0].params) == len(args):
            node.args = [
                self._coerce(arg, type_str(param.type))
                for arg, param in zip(args, overloads[0].params)
            ]
        return node

    # ====================
    # Operators
    # ====================

    def visit_Binary(self, node: Binary) -> Any:
        self.generic_visit(node)
        op = node.op
        left_type = self.type_of(node.left)
        right_type = self.type_of(node.right)

        if op == "^^":
            return Binary("!=", node.left, node.right)

        if op in SHIFT_OPERATORS:
            if is_float_based(left_type):
                node.left = _to_int(node.left)
            if right_type != "uint":
                node.right = _to_uint(node.right)
            return node

        if op in BITWISE_OPERATORS:
            if is_float_based(left_type):
                node.left = _to_int(node.left)
            if is_float_based(right_type):
                node.right = _to_int(node.right)
            return node

        if op in ARITHMETIC_OPERATORS:
            if is_float_based(left_type) and is_int_based(right_type):
                node.right = coerce_to_float(node.right, right_type)
            elif is_int_based(left_type) and is_float_based(right_type):
                node.left = coerce_to_float(node.left, left_type)

        if op == "/" and is_matrix(left_type) and is_scalar(right_type):
            return Binary("*", node.left, Binary("/", Literal("1.0", "float"), node.right))
        return node

    def visit_Unary(self, node: Unary) -> Any:
        self.generic_visit(node)
        if node.op == "-" and is_matrix(self.type_of(node.operand)):
            return Binary("*", node.operand, Unary("-", Literal("1.0", "float")))
        return node

    def visit_Index(self, node: Index) -> Any:
        self.generic_visit(node)
        if is_float_based(self.type_of(node.index)):
            node.index = _to_int(node.index)
        return node

    # ====================
    # Statements
    # ====================

    def visit_VarDecl(self, node: VarDecl) -> Any:
        node = super().visit_VarDecl(node)
        if node.init is not None and not node.type.is_array:
            node.init = self._coerce(node.init, node.type.name)
        return node

    def visit_Assign(self, node: Assign) -> Any:
        self.generic_visit(node)
        if node.op in ("=", "+=", "-=", "*=", "/="):
            node.value = self._coerce(node.value, self.type_of(node.target))
        return node

    def visit_Return(self, node: Return) -> Any:
        self.generic_visit(node)
        if node.value is not None and self.function is not None:
            node.value = self._coerce(node.value, type_str(self.function.return_type))
        return node


def lower_semantics(unit: TranslationUnit, context: CompilationContext) -> TranslationUnit:
    return SemanticsLowering(context).transform(unit)
