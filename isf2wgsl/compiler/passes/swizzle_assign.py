"""Swizzle-assignment lowering.

WGSL cannot assign to a multi-component swizzle. `v.xy = e;` becomes

    let _isf_sw0 = e;
    v = vec4(_isf_sw0.x, _isf_sw0.y, v.z, v.w);

so the components the swizzle does not name keep their old value.
"""

import copy
from typing import Any

from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.nodes import (
    Assign,
    Binary,
    Call,
    Expr,
    Member,
    Name,
    TranslationUnit,
    TypeSpec,
    VarDecl,
)
from isf2wgsl.compiler.type_utils import (
    is_scalar,
    is_simple_lvalue,
    scalar_of,
    swizzle_indices,
    swizzle_set,
    vector_size,
    vector_type,
)
from isf2wgsl.compiler.visitor import Transformer

COMPONENTS = "xyzw"
TEMP_PREFIX = "_isf_sw"


class SwizzleAssignLowering(Transformer):
    def visit_Assign(self, node: Assign) -> Any:
        self.generic_visit(node)
        target = node.target
        if not isinstance(target, Member) or len(target.name) < 2:
            return node
        if swizzle_set(target.name) is None or not is_simple_lvalue(target.base):
            return node

        base_type = self.type_of(target.base)
        size = vector_size(base_type)
        if size is None:
            if base_type is None:
                self.context.warn(
                    f'Cannot lower assignment to swizzle ".{target.name}" '
                    "of a value with unknown type"
                )
            return node

        scalar = scalar_of(base_type)
        assert scalar is not None
        indices = swizzle_indices(target.name)
        if len(set(indices)) != len(indices) or max(indices) >= size:
            self.context.warn(f'Invalid swizzle assignment target ".{target.name}"')
            return node

        value: Expr = node.value
        if node.op != "=":
            value = Binary(node.op[:-1], copy.deepcopy(target), value)

        value_type = self.type_of(value)
        temp_type = value_type if value_type is not None else vector_type(scalar, len(indices))
        temp = self.context.fresh_name(TEMP_PREFIX)
        self.declare(temp, temp_type)

        components: list[Expr] = []
        for i in range(size):
            if i in indices:
                written = indices.index(i)
                if is_scalar(temp_type):
                    components.append(Name(temp))
                else:
                    components.append(Member(Name(temp), COMPONENTS[written]))
            else:
                components.append(Member(copy.deepcopy(target.base), COMPONENTS[i]))

        return [
            VarDecl(temp, TypeSpec(temp_type), value, ["const"]),
            Assign(target.base, "=", Call(vector_type(scalar, size), components)),
        ]


def lower_swizzle_assignments(unit: TranslationUnit, context: CompilationContext) -> TranslationUnit:
    return SwizzleAssignLowering(context).transform(unit)
