"""Function overload disambiguation.

WGSL has no overloading, so every function name defined more than once gets
a suffix built from its GLSL parameter types, and each call is pointed at the
variant that matches its arguments best.
"""

from typing import Any

from loguru import logger

from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.nodes import Call, FunctionDef, TranslationUnit
from isf2wgsl.compiler.type_utils import type_str
from isf2wgsl.compiler.visitor import Transformer


def mangle(function: FunctionDef) -> str:
    """Name of one overload: `name_<param types>` or `name_void`."""
    if not function.params:
        return f"{function.name}_void"
    parts = [type_str(p.type).replace("[]", "_arr") for p in function.params]
    return "_".join([function.name] + parts)


class OverloadResolver(Transformer):
    def __init__(self, context: CompilationContext):
        super().__init__(context)
        # original name -> overloads in declaration order
        self.overloads: dict[str, list[FunctionDef]] = {}

    def visit_TranslationUnit(self, node: TranslationUnit) -> TranslationUnit:
        by_name: dict[str, list[FunctionDef]] = {}
        for function in node.functions():
            by_name.setdefault(function.name, []).append(function)

        for name, group in by_name.items():
            if len(group) < 2:
                continue
            self.overloads[name] = group
            for function in group:
                function.name = mangle(function)
            logger.debug(f"Split overloaded {name} into {[f.name for f in group]}")

        return super().visit_TranslationUnit(node)

    def _resolve(self, node: Call) -> FunctionDef | None:
        candidates = [f for f in self.overloads[node.func] if len(f.params) == len(node.args)]
        if not candidates:
            return None

        arg_types = [self.type_of(arg) for arg in node.args]

        def score(function: FunctionDef) -> int:
            return sum(
                1 for arg_type, param in zip(arg_types, function.params)
                if arg_type == type_str(param.type)
            )

        # max() keeps the first of equal scores, i.e. declaration order
        return max(candidates, key=score)

    def visit_Call(self, node: Call) -> Any:
        self.generic_visit(node)
        if node.func not in self.overloads:
            return node

        target = self._resolve(node)
        if target is None:
            self.context.warn(
                f'No overload of "{node.func}" takes {len(node.args)} arguments'
            )
            return node
        node.func = target.name
        return node


def resolve_overloads(unit: TranslationUnit, context: CompilationContext) -> TranslationUnit:
    return OverloadResolver(context).transform(unit)
