"""Rewrite `stpq` swizzles to `xyzw`, which WGSL accepts alongside `rgba`."""

from typing import Any

from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.nodes import Member, TranslationUnit
from isf2wgsl.compiler.type_utils import is_vector, swizzle_set
from isf2wgsl.compiler.visitor import Transformer

_STPQ_TO_XYZW = str.maketrans("stpq", "xyzw")


class SwizzleAliasRewriter(Transformer):
    def _is_struct_field(self, name: str) -> bool:
        return any(name in fields for fields in self.context.structs.values())

    def visit_Member(self, node: Member) -> Any:
        self.generic_visit(node)
        if swizzle_set(node.name) != "stpq":
            return node

        base_type = self.type_of(node.base)
        if is_vector(base_type) or (base_type is None and not self._is_struct_field(node.name)):
            node.name = node.name.translate(_STPQ_TO_XYZW)
        return node


def expand_swizzle_aliases(unit: TranslationUnit, context: CompilationContext) -> TranslationUnit:
    return SwizzleAliasRewriter(context).transform(unit)
