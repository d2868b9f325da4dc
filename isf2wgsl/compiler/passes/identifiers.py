"""Reserved-word renaming.

User identifiers that collide with WGSL keywords, reserved words or names
the compiler generates become `_<name>_`; identifiers starting with `__`,
which WGSL forbids, lose the extra underscores. Only identifiers the shader
declares are renamed, so generated references such as `uniforms` stay.
"""

from typing import Any

from isf2wgsl.compiler.constants import (
    RESERVED_PREFIX,
    RESERVED_SUFFIX,
    WGSL_RESERVED_WORDS,
)
from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.models import RenamedIdentifier
from isf2wgsl.compiler.nodes import (
    Call,
    FunctionDef,
    Member,
    Name,
    Param,
    StructDef,
    TranslationUnit,
    TypeSpec,
    VarDecl,
    walk,
)
from isf2wgsl.compiler.type_utils import is_vector
from isf2wgsl.compiler.visitor import Transformer


def safe_identifier(name: str) -> str:
    """WGSL-legal spelling of a user identifier."""
    if name.startswith("__"):
        stripped = name.lstrip("_")
        return f"_{stripped}" if stripped else name
    if name in WGSL_RESERVED_WORDS:
        return f"{RESERVED_PREFIX}{name}{RESERVED_SUFFIX}"
    return name


class IdentifierRenamer(Transformer):
    def __init__(self, context: CompilationContext):
        super().__init__(context)
        self.renames: dict[str, str] = {}
        self.type_renames: dict[str, str] = {}
        self.field_renames: dict[str, str] = {}

    def _record(self, table: dict[str, str], name: str) -> None:
        renamed = safe_identifier(name)
        if renamed == name or name in table:
            return
        table[name] = renamed
        if all(r.original != name for r in self.context.renamed):
            self.context.renamed.append(RenamedIdentifier(name, renamed))

    def visit_TranslationUnit(self, node: TranslationUnit) -> TranslationUnit:
        for item in walk(node):
            match item:
                case VarDecl(name=name) | Param(name=name) | FunctionDef(name=name):
                    if name:
                        self._record(self.renames, name)
                case StructDef(name=name, fields=fields):
                    self._record(self.type_renames, name)
                    for struct_field in fields:
                        self._record(self.field_renames, struct_field.name)
        return super().visit_TranslationUnit(node)

    def visit_StructDef(self, node: StructDef) -> Any:
        self.generic_visit(node)
        node.name = self.type_renames.get(node.name, node.name)
        for struct_field in node.fields:
            struct_field.name = self.field_renames.get(struct_field.name, struct_field.name)
        return node

    def visit_TypeSpec(self, node: TypeSpec) -> TypeSpec:
        super().visit_TypeSpec(node)
        node.name = self.type_renames.get(node.name, node.name)
        return node

    def visit_FunctionDef(self, node: FunctionDef) -> Any:
        super().visit_FunctionDef(node)
        node.name = self.renames.get(node.name, node.name)
        return node

    def visit_Param(self, node: Param) -> Any:
        super().visit_Param(node)
        node.name = self.renames.get(node.name, node.name)
        return node

    def visit_VarDecl(self, node: VarDecl) -> Any:
        super().visit_VarDecl(node)
        node.name = self.renames.get(node.name, node.name)
        return node

    def visit_Name(self, node: Name) -> Any:
        if self.is_declared(node.name):
            node.name = self.renames.get(node.name, node.name)
        return node

    def visit_Call(self, node: Call) -> Any:
        self.generic_visit(node)
        if node.func in self.functions:
            node.func = self.renames.get(node.func, node.func)
        else:
            node.func = self.type_renames.get(node.func, node.func)
        return node

    def visit_Member(self, node: Member) -> Any:
        base_type = self.type_of(node.base)
        self.generic_visit(node)
        if node.name in self.field_renames and not is_vector(base_type):
            node.name = self.field_renames[node.name]
        return node


def rename_identifiers(unit: TranslationUnit, context: CompilationContext) -> TranslationUnit:
    return IdentifierRenamer(context).transform(unit)
