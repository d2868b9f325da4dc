"""GLSL syntax tree produced by the parser and rewritten by the passes.

Types are kept as GLSL type names all the way through the pipeline; the
emitter maps them to WGSL when printing.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field, fields


@dataclass
class Node:
    """Base AST node"""


@dataclass
class Expr(Node):
    """Base expression node"""


@dataclass
class Stmt(Node):
    """Base statement node"""


@dataclass
class TypeSpec(Node):
    """A GLSL type with optional array dimensions.

    Attributes:
        name: GLSL type name or struct name
        array_dims: Sizes of array dimensions, outermost first. None marks an
            unsized dimension (`float[]`).
    """

    name: str
    array_dims: list["Expr | None"] = field(default_factory=list)

    @property
    def is_array(self) -> bool:
        return bool(self.array_dims)

    def element(self) -> "TypeSpec":
        return TypeSpec(self.name, self.array_dims[1:])


# ====================
# Expressions
# ====================


@dataclass
class Literal(Expr):
    """Number or boolean literal, kept as source text."""

    value: str
    type: str  # "float", "int", "uint" or "bool"


@dataclass
class Name(Expr):
    name: str


@dataclass
class Call(Expr):
    """Function call or scalar/vector/matrix/struct constructor."""

    func: str
    args: list[Expr] = field(default_factory=list)


@dataclass
class Construct(Expr):
    """Array constructor such as `float[3](a, b, c)`."""

    type: TypeSpec
    args: list[Expr] = field(default_factory=list)


@dataclass
class Member(Expr):
    """Field access or swizzle."""

    base: Expr
    name: str


@dataclass
class Index(Expr):
    base: Expr
    index: Expr


@dataclass
class Unary(Expr):
    """Prefix operator. `*` and `&` only appear after pointer lowering."""

    op: str
    operand: Expr


@dataclass
class Binary(Expr):
    op: str
    left: Expr
    right: Expr


@dataclass
class Ternary(Expr):
    cond: Expr
    if_true: Expr
    if_false: Expr


# ====================
# Statements
# ====================


@dataclass
class Block(Stmt):
    body: list[Stmt] = field(default_factory=list)


@dataclass
class Declarator(Node):
    """One variable of a (possibly multi-variable) declaration."""

    name: str
    array_dims: list[Expr | None] = field(default_factory=list)
    init: Expr | None = None


@dataclass
class Declaration(Stmt):
    """Declaration as written: `const float a = 1.0, b[2];`"""

    type: TypeSpec
    declarators: list[Declarator]
    qualifiers: list[str] = field(default_factory=list)


@dataclass
class VarDecl(Stmt):
    """Single normalized variable declaration."""

    name: str
    type: TypeSpec
    init: Expr | None = None
    qualifiers: list[str] = field(default_factory=list)

    @property
    def is_const(self) -> bool:
        return "const" in self.qualifiers


@dataclass
class Assign(Stmt):
    """Plain or compound assignment statement."""

    target: Expr
    op: str
    value: Expr


@dataclass
class ExprStmt(Stmt):
    expr: Expr


@dataclass
class If(Stmt):
    cond: Expr
    then: Stmt
    otherwise: Stmt | None = None


@dataclass
class For(Stmt):
    init: Stmt | None
    cond: Expr | None
    update: list[Stmt]
    body: Stmt


@dataclass
class While(Stmt):
    cond: Expr
    body: Stmt


@dataclass
class DoWhile(Stmt):
    body: Stmt
    cond: Expr


@dataclass
class Loop(Stmt):
    """WGSL `loop` with an optional `continuing` block."""

    body: Block
    continuing: Block | None = None


@dataclass
class BreakIf(Stmt):
    """WGSL `break if` (only valid as the last statement of `continuing`)."""

    cond: Expr


@dataclass
class SwitchCase(Node):
    """Case clause. A None label stands for `default`."""

    labels: list[Expr | None]
    body: list[Stmt] = field(default_factory=list)


@dataclass
class Switch(Stmt):
    """Switch statement. `grouped` is set once cases follow WGSL rules."""

    selector: Expr
    cases: list[SwitchCase] = field(default_factory=list)
    grouped: bool = False


@dataclass
class Return(Stmt):
    value: Expr | None = None


@dataclass
class Break(Stmt):
    pass


@dataclass
class Continue(Stmt):
    pass


@dataclass
class Discard(Stmt):
    pass


# ====================
# Top level
# ====================


@dataclass
class Param(Node):
    """Function parameter.

    Attributes:
        name: Parameter name
        type: GLSL type
        qualifier: "", "in", "out" or "inout"
        pointer: True once lowered to `ptr<function, T>`
    """

    name: str
    type: TypeSpec
    qualifier: str = ""
    pointer: bool = False


@dataclass
class FunctionDef(Node):
    """Function definition, or prototype when body is None."""

    name: str
    return_type: TypeSpec
    params: list[Param] = field(default_factory=list)
    body: Block | None = None
    entry: bool = False


@dataclass
class StructField(Node):
    name: str
    type: TypeSpec


@dataclass
class StructDef(Node):
    name: str
    fields: list[StructField] = field(default_factory=list)


@dataclass
class TranslationUnit(Node):
    items: list[Node] = field(default_factory=list)

    def functions(self) -> list[FunctionDef]:
        return [item for item in self.items if isinstance(item, FunctionDef)]

    def find_function(self, name: str) -> FunctionDef | None:
        for item in self.items:
            if isinstance(item, FunctionDef) and item.name == name:
                return item
        return None


def iter_child_nodes(node: Node) -> Iterator[Node]:
    """Yield the direct children of a node in field order."""
    for f in fields(node):
        value = getattr(node, f.name)
        if isinstance(value, Node):
            yield value
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, Node):
                    yield item


def walk(node: Node) -> Iterator[Node]:
    """Yield a node and all of its descendants, depth first."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(list(iter_child_nodes(current))))
