"""
Data models for the ISF to WGSL compiler.

This module contains the dataclass definitions shared by the compiler stages:
the parsed ISF declarations, the derived uniform layout and binding tables,
and the final compiler output.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


class InputKind(Enum):
    """Kinds of declared ISF inputs."""

    FLOAT = auto()
    INT = auto()
    BOOL = auto()
    EVENT = auto()
    POINT2D = auto()
    COLOR = auto()
    IMAGE = auto()
    UNKNOWN = auto()


ISF_TYPE_KINDS: dict[str, InputKind] = {
    "float": InputKind.FLOAT,
    "int": InputKind.INT,
    "long": InputKind.INT,
    "bool": InputKind.BOOL,
    "event": InputKind.EVENT,
    "point2d": InputKind.POINT2D,
    "color": InputKind.COLOR,
    "image": InputKind.IMAGE,
}


@dataclass
class InputDecl:
    """One declared shader input.

    Attributes:
        name: Input name as written in the ISF header
        type: Raw ISF TYPE string
        default: Optional default value
        minimum: Optional minimum value
        maximum: Optional maximum value
        label: Optional human-readable label
        labels: Optional labels of an enumerated long input
        values: Optional values of an enumerated long input
    """

    name: str
    type: str
    default: Any = None
    minimum: Any = None
    maximum: Any = None
    label: str | None = None
    labels: list[str] | None = None
    values: list[Any] | None = None

    @property
    def kind(self) -> InputKind:
        return ISF_TYPE_KINDS.get(self.type.lower(), InputKind.UNKNOWN)

    @property
    def is_image(self) -> bool:
        return self.kind == InputKind.IMAGE


@dataclass
class PassDecl:
    """One render pass entry.

    Attributes:
        target: Name of the buffer the pass renders into, if any
        width: Width expression, e.g. "$WIDTH/2"
        height: Height expression
        float: Whether the buffer stores floating point texels
        persistent: Whether the buffer survives across frames
        implicit: True for the single pass assumed when PASSES is absent
    """

    target: str | None = None
    width: str = "$WIDTH"
    height: str = "$HEIGHT"
    float: bool = False
    persistent: bool = False
    implicit: bool = False


@dataclass
class ISFMetadata:
    """Declarations parsed from the ISF JSON header."""

    description: str = ""
    credit: str = ""
    isf_version: str | None = None
    categories: list[str] = field(default_factory=list)
    inputs: list[InputDecl] = field(default_factory=list)
    passes: list[PassDecl] = field(default_factory=lambda: [PassDecl(implicit=True)])
    imported: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def image_inputs(self) -> list[InputDecl]:
        return [inp for inp in self.inputs if inp.is_image]

    @property
    def shader_type(self) -> str:
        """Classify the shader the way ISF hosts do.

        Returns:
            "transition" when the shader has startImage, endImage and a float
            progress input, "filter" when it has an inputImage, otherwise
            "generator"
        """
        names = {inp.name: inp for inp in self.inputs}
        progress = names.get("progress")
        if (
            "startImage" in names
            and "endImage" in names
            and progress is not None
            and progress.kind == InputKind.FLOAT
        ):
            return "transition"
        if "inputImage" in names:
            return "filter"
        return "generator"


@dataclass
class UniformField:
    """One member of the packed uniform buffer.

    Attributes:
        name: Input name (or built-in name) the field stores
        kind: Source ISF type, "standard" for built-ins or "padding"
        wgsl_type: Member type in the WGSL struct
        offset: Byte offset inside the buffer
        size: Byte size of the value
        padding: True for alignment filler entries
        member: Struct member name, differs from name when renamed
    """

    name: str
    kind: str
    wgsl_type: str
    offset: int
    size: int
    padding: bool = False
    member: str = ""

    def __post_init__(self) -> None:
        if not self.member:
            self.member = self.name


@dataclass
class TextureBinding:
    """A texture and sampler pair bound in group 1."""

    name: str
    texture_binding: int
    sampler_binding: int


@dataclass
class PassBinding(TextureBinding):
    """Binding of a pass buffer that the shader body samples."""

    pass_index: int = 0


@dataclass
class UniformLayout:
    """Frozen layout record consumed by the render graph."""

    uniforms: list[UniformField]
    buffer_size: int
    textures: list[TextureBinding]
    passes: list[PassBinding]


@dataclass
class MacroDef:
    """A preprocessor macro.

    Attributes:
        name: Macro name
        body: Replacement text
        params: Parameter names for function-like macros, None otherwise
    """

    name: str
    body: str
    params: list[str] | None = None

    @property
    def is_function_like(self) -> bool:
        return self.params is not None


@dataclass
class MutableParam:
    """A function parameter the shader writes to."""

    function: str
    name: str
    type: str
    qualifier: str  # "out", "inout" or "in" for shadowed by-value parameters


@dataclass
class RenamedIdentifier:
    """A user identifier renamed away from a WGSL reserved word."""

    original: str
    renamed: str


@dataclass
class ValidationResult:
    """Outcome of the post-hoc scan of generated WGSL."""

    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class CompilerOptions:
    """Knobs of a compiler instance.

    Attributes:
        max_macro_passes: Cap on macro expansion iterations
        inject_speed_input: Add the synthetic speed input when missing
        include_helpers: Append the fixed helper library to the module
        header_comment: Prefix the module with a generator comment
    """

    max_macro_passes: int = 8
    inject_speed_input: bool = True
    include_helpers: bool = True
    header_comment: bool = True


@dataclass
class CompilerOutput:
    """Result of compiling one ISF source unit."""

    wgsl: str
    vertex_shader: str
    layout: UniformLayout
    metadata: ISFMetadata
    warnings: list[str] = field(default_factory=list)
    validation: ValidationResult = field(
        default_factory=lambda: ValidationResult(valid=True)
    )
