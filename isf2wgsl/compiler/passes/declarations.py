"""Declaration normalization.

Splits multi-variable declarations into one VarDecl per variable, moves
C-style array declarators into the type, records const types, drops
function prototypes and removes interface globals WGSL has no place for.
"""

from typing import Any

from isf2wgsl.compiler.constants import INTERFACE_QUALIFIERS
from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.nodes import (
    Block,
    Construct,
    Declaration,
    Expr,
    For,
    FunctionDef,
    Literal,
    TranslationUnit,
    TypeSpec,
    VarDecl,
)
from isf2wgsl.compiler.type_utils import type_str
from isf2wgsl.compiler.visitor import Transformer


def _sized_dims(dims: list[Expr | None], init: Expr | None) -> list[Expr | None]:
    """Fill an unsized outer dimension from an array constructor initializer."""
    if dims and dims[0] is None and isinstance(init, Construct):
        return [Literal(str(len(init.args)), "int")] + dims[1:]
    return dims


class DeclarationNormalizer(Transformer):
    def visit_FunctionDef(self, node: FunctionDef) -> Any:
        if node.body is None:
            return None
        return super().visit_FunctionDef(node)

    def visit_Declaration(self, node: Declaration) -> Any:
        if self.function is None:
            interface = [q for q in node.qualifiers if q in INTERFACE_QUALIFIERS]
            if interface:
                names = ", ".join(d.name for d in node.declarators)
                self.context.warn(
                    f'Removed "{interface[0]}" declaration of {names}: '
                    "ISF inputs replace shader interface variables"
                )
                return None

        decls: list[VarDecl] = []
        for declarator in node.declarators:
            dims = declarator.array_dims + node.type.array_dims
            dims = _sized_dims(dims, declarator.init)
            decl = VarDecl(
                name=declarator.name,
                type=TypeSpec(node.type.name, dims),
                init=declarator.init,
                qualifiers=list(node.qualifiers),
            )
            decls.append(self.visit_VarDecl(decl))
        return decls

    def visit_VarDecl(self, node: VarDecl) -> Any:
        node.type.array_dims = _sized_dims(node.type.array_dims, node.init)
        node = super().visit_VarDecl(node)
        if node.is_const:
            self.context.const_types[node.name] = type_str(node.type)
        return node

    def visit_For(self, node: For) -> Any:
        init = node.init
        if isinstance(init, Declaration) and len(init.declarators) > 1:
            # Hoisted in order, so later initializers may read earlier ones
            self.push_scope()
            decls = self.visit_Declaration(init)
            node.init = None
            if node.cond is not None:
                node.cond = self.visit(node.cond)
            node.update = self.visit_list(node.update)
            node.body = self.visit_body(node.body)
            self.pop_scope()
            return Block(decls + [node])
        return super().visit_For(node)


def normalize_declarations(unit: TranslationUnit, context: CompilationContext) -> TranslationUnit:
    return DeclarationNormalizer(context).transform(unit)
