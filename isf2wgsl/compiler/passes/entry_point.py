"""Entry-point normalization.

`void main()` becomes the `fs_main` fragment entry point returning the
accumulated fragment color. A Shadertoy-style `mainImage` gets a generated
`fs_main` wrapper instead. Helper functions that read the interpolated
`input` receive it as an extra parameter, threaded through every caller.
"""

from typing import Any

from loguru import logger

from isf2wgsl.compiler.constants import (
    ENTRY_POINT_NAME,
    FRAG_COLOR_NAME,
    INPUT_VAR,
    UNIFORMS_VAR,
    VERTEX_OUTPUT_STRUCT,
)
from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.nodes import (
    Binary,
    Block,
    Call,
    Construct,
    Expr,
    ExprStmt,
    FunctionDef,
    If,
    Literal,
    Member,
    Name,
    Param,
    Return,
    Stmt,
    Switch,
    TranslationUnit,
    TypeSpec,
    Unary,
    VarDecl,
    walk,
)
from isf2wgsl.compiler.visitor import Transformer


def functions_reading_input(unit: TranslationUnit) -> set[str]:
    """Names of functions that read `input`, directly or through a callee."""
    reads: set[str] = set()
    calls: dict[str, set[str]] = {}
    for function in unit.functions():
        if function.body is None:
            continue
        callees: set[str] = set()
        for node in walk(function.body):
            if isinstance(node, Name) and node.name == INPUT_VAR:
                reads.add(function.name)
            elif isinstance(node, Call):
                callees.add(node.func)
        calls[function.name] = callees

    changed = True
    while changed:
        changed = False
        for name, callees in calls.items():
            if name not in reads and callees & reads:
                reads.add(name)
                changed = True
    return reads


def always_returns(stmt: Stmt | None) -> bool:
    """True when every path through `stmt` ends in a return."""
    match stmt:
        case Return():
            return True
        case Block(body):
            return bool(body) and always_returns(body[-1])
        case If(_, then, otherwise):
            return always_returns(then) and always_returns(otherwise)
        case Switch(_, cases):
            return any(None in case.labels for case in cases) and all(
                case.body and always_returns(case.body[-1]) for case in cases
            )
        case _:
            return False


def zero_value(type_spec: TypeSpec) -> Expr:
    if type_spec.array_dims:
        return Construct(TypeSpec(type_spec.name, list(type_spec.array_dims)), [])
    return Call(type_spec.name, [])


def add_missing_returns(unit: TranslationUnit, context: CompilationContext) -> None:
    """Close non-void helpers that can run off their end with a zero return."""
    for function in unit.functions():
        if function.entry or function.body is None or function.return_type.name == "void":
            continue
        if always_returns(function.body):
            continue
        context.warn(
            f'Function "{function.name}" can end without returning a value, '
            "returning a zero value there"
        )
        function.body.body.append(Return(zero_value(function.return_type)))


def _input_param() -> Param:
    return Param(INPUT_VAR, TypeSpec(VERTEX_OUTPUT_STRUCT))


def _frag_color_decl() -> VarDecl:
    return VarDecl(FRAG_COLOR_NAME, TypeSpec("vec4"), Call("vec4", [Literal("0.0", "float")]))


class InputThreading(Transformer):
    """Add the `input` parameter to helpers and forward it at call sites."""

    def __init__(self, context: CompilationContext, needs_input: set[str]):
        super().__init__(context)
        self.needs_input = needs_input
        self.arity: dict[str, int] = {}

    def visit_TranslationUnit(self, node: TranslationUnit) -> TranslationUnit:
        for function in node.functions():
            if function.name not in self.needs_input or function.entry:
                continue
            if not any(p.name == INPUT_VAR for p in function.params):
                function.params.append(_input_param())
            self.arity[function.name] = len(function.params)
        return super().visit_TranslationUnit(node)

    def visit_Call(self, node: Call) -> Any:
        self.generic_visit(node)
        arity = self.arity.get(node.func)
        if arity is not None and len(node.args) == arity - 1:
            node.args.append(Name(INPUT_VAR))
        return node


class ReturnRewriter(Transformer):
    """Make bare returns of the entry point return the fragment color."""

    def visit_Return(self, node: Return) -> Any:
        if node.value is None:
            node.value = Name(FRAG_COLOR_NAME)
        return node


def _make_entry(function: FunctionDef) -> None:
    function.name = ENTRY_POINT_NAME
    function.entry = True
    function.return_type = TypeSpec("vec4")
    function.params = [_input_param()]
    body = function.body if function.body is not None else Block()
    body.body.insert(0, _frag_color_decl())
    if not body.body or not isinstance(body.body[-1], Return):
        body.body.append(Return(Name(FRAG_COLOR_NAME)))
    function.body = body


def _main_image_wrapper(main_image: FunctionDef, context: CompilationContext) -> FunctionDef:
    frag_coord = Binary("*", Member(Name(INPUT_VAR), "uv"), Member(Name(UNIFORMS_VAR), "renderSize"))
    args = [Unary("&", Name(FRAG_COLOR_NAME)), frag_coord]
    user_params = [p for p in main_image.params if p.name != INPUT_VAR]
    if len(user_params) != 2 or not user_params[0].pointer:
        context.warn(
            f"Unexpected mainImage signature with {len(user_params)} parameters; "
            "expected (out vec4 fragColor, in vec2 fragCoord)"
        )
        args = args[: len(user_params)]
    return FunctionDef(
        name=ENTRY_POINT_NAME,
        return_type=TypeSpec("vec4"),
        params=[_input_param()],
        body=Block([
            _frag_color_decl(),
            ExprStmt(Call(main_image.name, args)),
            Return(Name(FRAG_COLOR_NAME)),
        ]),
        entry=True,
    )


def normalize_entry_point(unit: TranslationUnit, context: CompilationContext) -> TranslationUnit:
    """Create `fs_main` and thread `input` through the helpers that need it."""
    if unit.find_function(ENTRY_POINT_NAME) is None:
        main = unit.find_function("main")
        main_image = unit.find_function("mainImage")
        if main is not None and main.body is not None:
            _make_entry(main)
            ReturnRewriter(context).visit(main)
            logger.debug("Converted main() to fs_main")
        elif main_image is not None:
            unit.items.append(_main_image_wrapper(main_image, context))
            logger.debug("Generated fs_main wrapper around mainImage")
        else:
            context.warn("No main or mainImage function found, no fragment entry point emitted")

    add_missing_returns(unit, context)
    needs_input = functions_reading_input(unit)
    needs_input.discard(ENTRY_POINT_NAME)
    return InputThreading(context, needs_input).transform(unit)
