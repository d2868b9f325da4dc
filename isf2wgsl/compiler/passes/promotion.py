"""Scalar to vector promotion for builtins WGSL requires to be homogeneous."""

from typing import Any

from isf2wgsl.compiler.constants import PROMOTABLE_FUNCTIONS
from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.nodes import Call, Expr, Literal, TranslationUnit
from isf2wgsl.compiler.type_utils import (
    float_literal,
    is_int_based,
    is_scalar,
    is_vector,
    scalar_of,
)
from isf2wgsl.compiler.visitor import Transformer


class TypePromoter(Transformer):
    """Wrap the scalar arguments of mixed clamp/min/max/step/smoothstep calls.

    Only calls whose argument types are all known are rewritten.
    """

    def _promote(self, arg: Expr, vector: str) -> Expr:
        if isinstance(arg, Literal) and is_int_based(arg.type) and scalar_of(vector) == "float":
            arg = float_literal(arg)
        return Call(vector, [arg])

    def visit_Call(self, node: Call) -> Any:
        self.generic_visit(node)
        if node.func not in PROMOTABLE_FUNCTIONS or node.func in self.functions:
            return node

        arg_types = [self.type_of(arg) for arg in node.args]
        if any(t is None for t in arg_types):
            return node

        vectors = [t for t in arg_types if is_vector(t)]
        if not vectors or len(vectors) == len(arg_types):
            return node

        vector = vectors[0]
        node.args = [
            self._promote(arg, vector) if is_scalar(t) else arg
            for arg, t in zip(node.args, arg_types)
        ]
        return node


def promote_types(unit: TranslationUnit, context: CompilationContext) -> TranslationUnit:
    return TypePromoter(context).transform(unit)
