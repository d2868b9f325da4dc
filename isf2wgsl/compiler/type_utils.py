"""Type utility functions for the rewrite passes.

Types are plain GLSL type strings ("float", "vec3", "mat4", struct names).
Arrays append one "[]" per dimension, e.g. "vec2[]". Inference is best
effort: None means unknown, and callers leave such expressions untouched.
"""

import re

from isf2wgsl.compiler.constants import (
    FIXED_RESULT_FUNCTIONS,
    GLSL_TO_WGSL_TYPES,
    LAST_ARG_TYPE_FUNCTIONS,
    SAME_TYPE_FUNCTIONS,
    SCALAR_TO_VECTOR_PREFIX,
    SCALAR_TYPES,
    SWIZZLE_SETS,
    VECTOR_ELEMENT_TYPE,
)
from isf2wgsl.compiler.nodes import (
    Binary,
    Call,
    Construct,
    Expr,
    FunctionDef,
    Index,
    Literal,
    Member,
    Name,
    Ternary,
    TypeSpec,
    Unary,
)

_VECTOR_RE = re.compile(r"^(vec|ivec|uvec|bvec)([234])$")
_MATRIX_RE = re.compile(r"^mat([234])(?:x([234]))?$")

COMPARISON_OPERATORS = {"<", ">", "<=", ">=", "==", "!="}
LOGICAL_OPERATORS = {"&&", "||", "^^"}


def type_str(type_spec: TypeSpec) -> str:
    """Render a TypeSpec as a type string."""
    return type_spec.name + "[]" * len(type_spec.array_dims)


def is_array(t: str | None) -> bool:
    return t is not None and t.endswith("[]")


def element_type(t: str) -> str:
    """Strip one array dimension."""
    return t[:-2]


def is_scalar(t: str | None) -> bool:
    return t in SCALAR_TYPES


def vector_size(t: str | None) -> int | None:
    """Return the component count of a vector type, None for non-vectors."""
    if t is None:
        return None
    match = _VECTOR_RE.match(t)
    return int(match.group(2)) if match else None


def is_vector(t: str | None) -> bool:
    return vector_size(t) is not None


def matrix_shape(t: str | None) -> tuple[int, int] | None:
    """Return (columns, rows) of a matrix type."""
    if t is None:
        return None
    match = _MATRIX_RE.match(t)
    if not match:
        return None
    columns = int(match.group(1))
    rows = int(match.group(2)) if match.group(2) else columns
    return columns, rows


def is_matrix(t: str | None) -> bool:
    return matrix_shape(t) is not None


def scalar_of(t: str | None) -> str | None:
    """Component type of a scalar, vector or matrix type."""
    if t is None:
        return None
    if t in SCALAR_TYPES:
        return t
    match = _VECTOR_RE.match(t)
    if match:
        return VECTOR_ELEMENT_TYPE[match.group(1)]
    if is_matrix(t):
        return "float"
    return None


def is_float_based(t: str | None) -> bool:
    return scalar_of(t) == "float"


def is_int_based(t: str | None) -> bool:
    return scalar_of(t) in ("int", "uint")


def vector_type(scalar: str, size: int) -> str:
    """Build a vector type name, collapsing size 1 to the scalar."""
    if size == 1:
        return scalar
    return f"{SCALAR_TO_VECTOR_PREFIX[scalar]}{size}"


def with_scalar(t: str, scalar: str) -> str:
    """Same shape as `t` with a different component type."""
    size = vector_size(t)
    if size is None:
        return scalar
    return vector_type(scalar, size)


def is_type_name(name: str) -> bool:
    return name in GLSL_TO_WGSL_TYPES


def swizzle_set(components: str) -> str | None:
    """Return the swizzle letter set `components` belongs to, if any."""
    if not 1 <= len(components) <= 4:
        return None
    for letters in SWIZZLE_SETS:
        if all(c in letters for c in components):
            return letters
    return None


def swizzle_indices(components: str) -> list[int]:
    letters = swizzle_set(components) or "xyzw"
    return [letters.index(c) for c in components]


def is_simple_lvalue(expr: Expr) -> bool:
    """True for names, derefs, field and index chains."""
    match expr:
        case Name():
            return True
        case Unary("*", operand):
            return is_simple_lvalue(operand)
        case Member(base, _) | Index(base, _):
            return is_simple_lvalue(base)
        case _:
            return False


class TypeEnvironment:
    """Symbol information consulted by `infer_type`.

    The passes' Transformer extends this with scope tracking; tests use it
    directly with fixed tables.
    """

    def __init__(
        self,
        symbols: dict[str, str] | None = None,
        structs: dict[str, dict[str, str]] | None = None,
        functions: dict[str, list[FunctionDef]] | None = None,
    ):
        self.symbols = dict(symbols or {})
        self.structs = dict(structs or {})
        self.functions: dict[str, list[FunctionDef]] = dict(functions or {})

    def lookup(self, name: str) -> str | None:
        return self.symbols.get(name)

    def struct_fields(self, name: str) -> dict[str, str] | None:
        return self.structs.get(name)

    def function_return(self, name: str, arg_types: list[str | None]) -> str | None:
        candidates = [
            f for f in self.functions.get(name, []) if len(f.params) == len(arg_types)
        ]
        for function in candidates:
            param_types = [type_str(p.type) for p in function.params]
            if all(a is None or a == p for a, p in zip(arg_types, param_types)):
                return type_str(function.return_type)
        if candidates:
            return type_str(candidates[0].return_type)
        return None


def infer_type(expr: Expr, env: TypeEnvironment) -> str | None:
    """Infer the GLSL type of an expression, or None when unknown."""
    match expr:
        case Literal(_, literal_type):
            return literal_type
        case Name(name):
            return env.lookup(name)
        case Construct(type_spec, _):
            return type_str(type_spec)
        case Call(func, args):
            return _infer_call(func, args, env)
        case Member(base, name):
            return _infer_member(infer_type(base, env), name, env)
        case Index(base, _):
            return _infer_index(infer_type(base, env))
        case Unary(op, operand):
            operand_type = infer_type(operand, env)
            if op == "!":
                return operand_type or "bool"
            return operand_type
        case Binary(op, left, right):
            return _infer_binary(op, infer_type(left, env), infer_type(right, env))
        case Ternary(_, if_true, if_false):
            return infer_type(if_true, env) or infer_type(if_false, env)
        case _:
            return None


def _infer_call(func: str, args: list[Expr], env: TypeEnvironment) -> str | None:
    if is_type_name(func):
        return func
    if env.struct_fields(func) is not None:
        return func

    arg_types = [infer_type(arg, env) for arg in args]
    user_result = env.function_return(func, arg_types)
    if user_result is not None:
        return user_result

    if func in FIXED_RESULT_FUNCTIONS:
        return FIXED_RESULT_FUNCTIONS[func]
    if func in ("lessThan", "lessThanEqual", "greaterThan", "greaterThanEqual", "equal", "notEqual"):
        first = arg_types[0] if arg_types else None
        return with_scalar(first, "bool") if first else None
    if func in LAST_ARG_TYPE_FUNCTIONS and arg_types:
        return arg_types[-1]
    if func in SAME_TYPE_FUNCTIONS and arg_types:
        # min/max/clamp/mix with a scalar first argument and vector others
        known = [t for t in arg_types if t is not None]
        vectors = [t for t in known if is_vector(t)]
        if func in ("min", "max", "clamp", "mix") and vectors:
            return vectors[0]
        return arg_types[0]
    return None


def _infer_member(base_type: str | None, name: str, env: TypeEnvironment) -> str | None:
    if base_type is None:
        return None
    struct = env.struct_fields(base_type)
    if struct is not None:
        return struct.get(name)
    scalar = scalar_of(base_type)
    if scalar is not None and swizzle_set(name) is not None:
        return vector_type(scalar, len(name))
    return None


def _infer_index(base_type: str | None) -> str | None:
    if base_type is None:
        return None
    if is_array(base_type):
        return element_type(base_type)
    shape = matrix_shape(base_type)
    if shape is not None:
        return vector_type("float", shape[1])
    if is_vector(base_type):
        return scalar_of(base_type)
    return None


def _infer_binary(op: str, left: str | None, right: str | None) -> str | None:
    if op in COMPARISON_OPERATORS or op in LOGICAL_OPERATORS:
        return "bool"
    if left is None or right is None:
        known = left or right
        return known if is_vector(known) else None

    left_shape = matrix_shape(left)
    right_shape = matrix_shape(right)
    if op == "*":
        if left_shape and is_vector(right):
            return vector_type("float", left_shape[1])
        if is_vector(left) and right_shape:
            return vector_type("float", right_shape[0])
        if left_shape and right_shape:
            return f"mat{right_shape[0]}x{left_shape[1]}" if right_shape[0] != left_shape[1] else f"mat{right_shape[0]}"

    if left_shape or is_vector(left):
        return left
    if right_shape or is_vector(right):
        return right
    if "float" in (left, right):
        return "float"
    return left


# ====================
# Expression helpers
# ====================


def float_literal(literal: Literal) -> Literal:
    """Respell an integer literal as a float literal."""
    digits = literal.value.rstrip("uU")
    if digits.lower().startswith("0x"):
        digits = str(int(digits, 16))
    return Literal(f"{digits}.0", "float")


def coerce_to_float(expr: Expr, t: str | None) -> Expr:
    """Convert an int-based expression of type `t` to the float equivalent."""
    if isinstance(expr, Literal) and expr.type in ("int", "uint"):
        return float_literal(expr)
    if isinstance(expr, Unary) and expr.op == "-" and isinstance(expr.operand, Literal):
        return Unary("-", coerce_to_float(expr.operand, t))
    target = with_scalar(t, "float") if t is not None else "float"
    return Call(target, [expr])


def root_name(expr: Expr) -> str | None:
    """Variable an lvalue expression writes to."""
    match expr:
        case Name(name):
            return name
        case Unary("*", operand):
            return root_name(operand)
        case Member(base, _) | Index(base, _):
            return root_name(base)
        case _:
            return None


NON_CONSTANT_BUILTINS = {
    "dpdx", "dpdy", "fwidth", "dFdx", "dFdy", "textureSample", "textureSampleLevel",
    "textureLoad", "textureDimensions", "textureSize", "texture2D", "texture",
}


def is_constant_expression(
    expr: Expr, constants: set[str], user_functions: set[str] | None = None
) -> bool:
    """True when `expr` only combines literals, builtins and known constants.

    Calls to user functions never are; `user_functions` names them.
    """
    user_functions = user_functions or set()

    def constant(e: Expr) -> bool:
        return is_constant_expression(e, constants, user_functions)

    match expr:
        case Literal():
            return True
        case Name(name):
            return name in constants
        case Construct(_, args):
            return all(constant(a) for a in args)
        case Call(func, args):
            if func in user_functions or func in NON_CONSTANT_BUILTINS:
                return False
            return all(constant(a) for a in args)
        case Unary(op, operand):
            return op in ("-", "!", "~") and constant(operand)
        case Binary(_, left, right):
            return constant(left) and constant(right)
        case Member(base, _):
            return constant(base)
        case Index(base, index):
            return constant(base) and constant(index)
        case _:
            return False
