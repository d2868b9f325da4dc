"""Ternary lowering: `c ? a : b` becomes `select(b, a, c)`."""

from typing import Any

from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.nodes import Call, Ternary, TranslationUnit
from isf2wgsl.compiler.visitor import Transformer


class TernaryLowering(Transformer):
    def visit_Ternary(self, node: Ternary) -> Any:
        self.generic_visit(node)
        return Call("select", [node.if_false, node.if_true, node.cond])


def lower_ternaries(unit: TranslationUnit, context: CompilationContext) -> TranslationUnit:
    return TernaryLowering(context).transform(unit)
