"""Built-in identifier substitution.

Replaces ISF, GLSL and Shadertoy built-in variables and declared inputs with
reads of the uniform buffer or the vertex output. Only identifiers the
shader never declares are touched, so a local `float time` shadows TIME.
"""

import copy
from typing import Any

from isf2wgsl.compiler.constants import BUILTIN_IDENTIFIERS, UNIFORMS_VAR
from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.layout import STANDARD_UNIFORM_NAMES
from isf2wgsl.compiler.models import InputKind
from isf2wgsl.compiler.nodes import Binary, Call, Expr, Literal, Member, Name, TranslationUnit
from isf2wgsl.compiler.parser import parse_expression
from isf2wgsl.compiler.visitor import Transformer

_REPLACEMENTS: dict[str, Expr] = {}


def builtin_replacement(name: str) -> Expr:
    """Parsed replacement for a built-in identifier, as a fresh tree."""
    if name not in _REPLACEMENTS:
        _REPLACEMENTS[name] = parse_expression(BUILTIN_IDENTIFIERS[name])
    return copy.deepcopy(_REPLACEMENTS[name])


class BuiltinSubstituter(Transformer):
    def _input_read(self, name: str) -> Expr | None:
        decl = self.context.inputs.get(name)
        if decl is None or decl.is_image:
            return None

        member = self.context.uniform_members.get(name)
        if member is None:
            if name in STANDARD_UNIFORM_NAMES:
                # dropped in favour of the standard field of the same name
                return Member(Name(UNIFORMS_VAR), name)
            return None

        read = Member(Name(UNIFORMS_VAR), member)
        match decl.kind:
            case InputKind.INT:
                return Call("int", [read])
            case InputKind.BOOL | InputKind.EVENT:
                return Binary("!=", read, Literal("0.0", "float"))
            case _:
                return read

    def visit_Name(self, node: Name) -> Any:
        if self.is_declared(node.name):
            return node
        replacement = self._input_read(node.name)
        if replacement is not None:
            return replacement
        if node.name in BUILTIN_IDENTIFIERS:
            return builtin_replacement(node.name)
        return node


def substitute_builtins(unit: TranslationUnit, context: CompilationContext) -> TranslationUnit:
    return BuiltinSubstituter(context).transform(unit)
