"""Mutable-parameter lowering.

WGSL parameters are immutable values. `out`/`inout` parameters become
`ptr<function, T>`: uses read through `(*p)` and callers pass `&arg`.
By-value parameters the body assigns to get a local copy,
`var _local_p: T = p;`, that the body uses instead.
"""

from typing import Any

from loguru import logger

from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.models import MutableParam
from isf2wgsl.compiler.nodes import (
    Assign,
    Call,
    Expr,
    FunctionDef,
    Name,
    TranslationUnit,
    TypeSpec,
    Unary,
    VarDecl,
    walk,
)
from isf2wgsl.compiler.type_utils import root_name, type_str
from isf2wgsl.compiler.visitor import Transformer

LOCAL_PREFIX = "_local_"


def assigned_names(function: FunctionDef) -> set[str]:
    """Names the function body writes to."""
    if function.body is None:
        return set()
    names: set[str] = set()
    for node in walk(function.body):
        if isinstance(node, Assign):
            name = root_name(node.target)
            if name is not None:
                names.add(name)
    return names


class ParameterLowering(Transformer):
    def __init__(self, context: CompilationContext):
        super().__init__(context)
        # function name -> indices of pointer parameters
        self.pointer_params: dict[str, list[int]] = {}
        # parameter name -> replacement expression inside the current function
        self.replacements: dict[str, str] = {}
        # parameters of the current function that already are pointers
        self.pointers: set[str] = set()

    def visit_TranslationUnit(self, node: TranslationUnit) -> TranslationUnit:
        for function in node.functions():
            indices = [
                i for i, p in enumerate(function.params)
                if p.qualifier in ("out", "inout") or p.pointer
            ]
            if indices:
                self.pointer_params[function.name] = indices
        return super().visit_TranslationUnit(node)

    def visit_FunctionDef(self, node: FunctionDef) -> Any:
        self.replacements = {}
        self.pointers = {param.name for param in node.params if param.pointer}
        shadows: list[VarDecl] = []
        written = assigned_names(node)

        for param in node.params:
            if param.pointer:
                continue
            if param.qualifier in ("out", "inout"):
                param.pointer = True
                self.replacements[param.name] = "*"
                self.context.mutable_params.append(
                    MutableParam(node.name, param.name, type_str(param.type), param.qualifier)
                )
            elif param.name in written:
                local = f"{LOCAL_PREFIX}{param.name}"
                self.replacements[param.name] = local
                shadows.append(
                    VarDecl(local, TypeSpec(param.type.name, list(param.type.array_dims)), Name(param.name))
                )
                self.context.mutable_params.append(
                    MutableParam(node.name, param.name, type_str(param.type), "in")
                )

        super().visit_FunctionDef(node)
        if shadows and node.body is not None:
            node.body.body = shadows + node.body.body
            logger.debug(f"{node.name}: copied parameters {[s.name for s in shadows]}")
        self.replacements = {}
        self.pointers = set()
        return node

    def _is_parameter(self, name: str) -> bool:
        """True when `name` resolves to a parameter, not a local shadowing it."""
        for depth in range(len(self.scopes) - 1, -1, -1):
            if name in self.scopes[depth]:
                return depth == 0
        return False

    def visit_Name(self, node: Name) -> Any:
        replacement = self.replacements.get(node.name)
        if replacement is None or not self._is_parameter(node.name):
            return node
        if replacement == "*":
            return Unary("*", node)
        return Name(replacement)

    def _is_pointer(self, arg: Expr) -> bool:
        if isinstance(arg, Unary) and arg.op == "&":
            return True
        return (
            isinstance(arg, Name) and arg.name in self.pointers and self._is_parameter(arg.name)
        )

    def visit_Call(self, node: Call) -> Any:
        self.generic_visit(node)
        indices = self.pointer_params.get(node.func)
        if not indices:
            return node
        args: list[Expr] = []
        for i, arg in enumerate(node.args):
            if i in indices and not self._is_pointer(arg):
                if isinstance(arg, Unary) and arg.op == "*":
                    # already a pointer
                    args.append(arg.operand)
                else:
                    args.append(Unary("&", arg))
            else:
                args.append(arg)
        node.args = args
        return node


def lower_parameters(unit: TranslationUnit, context: CompilationContext) -> TranslationUnit:
    return ParameterLowering(context).transform(unit)
