"""Scope-tracking tree rewriter shared by all rewrite passes.

Subclasses override `visit_<NodeClass>` methods. A statement visitor may
return a single statement, a list of statements to splice in its place, or
None to delete it. Expression visitors return the replacement expression.
"""

from dataclasses import fields
from typing import Any

from isf2wgsl.compiler.constants import (
    BUILTIN_IDENTIFIER_TYPES,
    FRAG_COLOR_NAME,
    INPUT_VAR,
    UNIFORMS_STRUCT,
    UNIFORMS_VAR,
    VERTEX_OUTPUT_STRUCT,
)
from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.models import InputKind
from isf2wgsl.compiler.nodes import (
    Block,
    Declaration,
    Expr,
    For,
    FunctionDef,
    Node,
    Param,
    Stmt,
    StructDef,
    Switch,
    TranslationUnit,
    TypeSpec,
    VarDecl,
)
from isf2wgsl.compiler.type_utils import TypeEnvironment, infer_type, type_str

INPUT_KIND_TYPES: dict[InputKind, str] = {
    InputKind.FLOAT: "float",
    InputKind.INT: "int",
    InputKind.BOOL: "bool",
    InputKind.EVENT: "bool",
    InputKind.POINT2D: "vec2",
    InputKind.COLOR: "vec4",
    InputKind.UNKNOWN: "float",
}


class Transformer(TypeEnvironment):
    """Walks a translation unit in place while tracking declared symbols."""

    def __init__(self, context: CompilationContext):
        super().__init__()
        self.context = context
        self.structs = context.structs
        self.global_symbols: dict[str, str] = {}
        self.scopes: list[dict[str, str]] = []
        self.function: FunctionDef | None = None

    # ====================
    # Symbols
    # ====================

    def push_scope(self) -> None:
        self.scopes.append({})

    def pop_scope(self) -> None:
        self.scopes.pop()

    def declare(self, name: str, type_name: str) -> None:
        if self.scopes:
            self.scopes[-1][name] = type_name
        else:
            self.global_symbols[name] = type_name

    def is_local(self, name: str) -> bool:
        return any(name in scope for scope in self.scopes)

    def is_declared(self, name: str) -> bool:
        return self.is_local(name) or name in self.global_symbols

    def lookup(self, name: str) -> str | None:
        for scope in reversed(self.scopes):
            if name in scope:
                return scope[name]
        if name in self.global_symbols:
            return self.global_symbols[name]
        if name == UNIFORMS_VAR:
            return UNIFORMS_STRUCT
        if name == INPUT_VAR:
            return VERTEX_OUTPUT_STRUCT
        if name == FRAG_COLOR_NAME:
            return "vec4"
        if name in self.context.const_types:
            return self.context.const_types[name]
        return self.input_type(name)

    def input_type(self, name: str) -> str | None:
        """Type of an undeclared ISF input or built-in, before substitution."""
        decl = self.context.inputs.get(name)
        if decl is not None:
            return INPUT_KIND_TYPES.get(decl.kind)
        return BUILTIN_IDENTIFIER_TYPES.get(name)

    def type_of(self, expr: Expr) -> str | None:
        return infer_type(expr, self)

    # ====================
    # Traversal
    # ====================

    def transform(self, unit: TranslationUnit) -> TranslationUnit:
        result = self.visit(unit)
        assert isinstance(result, TranslationUnit)
        return result

    def visit(self, node: Node) -> Any:
        method = getattr(self, "visit_" + node.__class__.__name__, self.generic_visit)
        return method(node)

    def generic_visit(self, node: Node) -> Any:
        """Rewrite every child of a node in field order."""
        for f in fields(node):
            value = getattr(node, f.name)
            if isinstance(value, Stmt):
                setattr(node, f.name, self.visit_body(value))
            elif isinstance(value, Node):
                setattr(node, f.name, self.visit(value))
            elif isinstance(value, list):
                setattr(node, f.name, self.visit_list(value))
        return node

    def visit_list(self, items: list[Any]) -> list[Any]:
        result: list[Any] = []
        for item in items:
            if not isinstance(item, Node):
                result.append(item)
                continue
            new = self.visit(item)
            if isinstance(new, list):
                result.extend(new)
            elif new is not None:
                result.append(new)
        return result

    def visit_body(self, stmt: Stmt) -> Stmt:
        """Visit a statement that must stay a single statement."""
        new = self.visit(stmt)
        if isinstance(new, list):
            return new[0] if len(new) == 1 else Block(new)
        if new is None:
            return Block()
        return new

    # ====================
    # Scope-bearing nodes
    # ====================

    def visit_TranslationUnit(self, node: TranslationUnit) -> TranslationUnit:
        self.functions = {}
        for item in node.items:
            if isinstance(item, FunctionDef):
                self.functions.setdefault(item.name, []).append(item)
            elif isinstance(item, StructDef):
                self.context.structs[item.name] = {
                    f.name: type_str(f.type) for f in item.fields
                }
            elif isinstance(item, VarDecl):
                self.global_symbols[item.name] = type_str(item.type)
            elif isinstance(item, Declaration):
                for d in item.declarators:
                    self.global_symbols[d.name] = type_str(item.type) + "[]" * len(d.array_dims)

        node.items = self.visit_list(node.items)
        return node

    def visit_FunctionDef(self, node: FunctionDef) -> Any:
        self.function = node
        self.push_scope()
        node.return_type = self.visit(node.return_type)
        node.params = self.visit_list(node.params)
        if node.body is not None:
            node.body = self.visit_body(node.body)
        self.pop_scope()
        self.function = None
        return node

    def visit_Param(self, node: Param) -> Any:
        node.type = self.visit(node.type)
        if node.name:
            self.declare(node.name, type_str(node.type))
        return node

    def visit_TypeSpec(self, node: TypeSpec) -> TypeSpec:
        node.array_dims = [
            self.visit(dim) if dim is not None else None for dim in node.array_dims
        ]
        return node

    def visit_Block(self, node: Block) -> Any:
        self.push_scope()
        node.body = self.visit_list(node.body)
        self.pop_scope()
        return node

    def visit_VarDecl(self, node: VarDecl) -> Any:
        node.type = self.visit(node.type)
        if node.init is not None:
            node.init = self.visit(node.init)
        self.declare(node.name, type_str(node.type))
        return node

    def visit_Declaration(self, node: Declaration) -> Any:
        node.type = self.visit(node.type)
        for declarator in node.declarators:
            declarator.array_dims = [
                self.visit(dim) if dim is not None else None
                for dim in declarator.array_dims
            ]
            if declarator.init is not None:
                declarator.init = self.visit(declarator.init)
            dims = len(node.type.array_dims) + len(declarator.array_dims)
            self.declare(declarator.name, node.type.name + "[]" * dims)
        return node

    def visit_For(self, node: For) -> Any:
        self.push_scope()
        self.generic_visit(node)
        self.pop_scope()
        return node

    def visit_Switch(self, node: Switch) -> Any:
        self.push_scope()
        self.generic_visit(node)
        self.pop_scope()
        return node
