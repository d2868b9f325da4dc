"""Per-compilation state threaded through every compiler stage.

A fresh CompilationContext is created for each compile call and dropped at
the end, so compiler instances hold no state between source units.
"""

from dataclasses import dataclass, field

from loguru import logger

from isf2wgsl.compiler.constants import (
    VERTEX_OUTPUT_FIELDS,
    VERTEX_OUTPUT_STRUCT,
)
from isf2wgsl.compiler.models import (
    CompilerOptions,
    InputDecl,
    ISFMetadata,
    MacroDef,
    MutableParam,
    RenamedIdentifier,
)


@dataclass
class CompilationContext:
    """Mutable state of one compilation.

    Attributes:
        options: Options of the compiler instance
        metadata: Parsed ISF header
        warnings: Non-fatal findings, in the order they were raised
        object_macros: Registered object-like macros
        function_macros: Registered function-like macros
        inputs: Declared inputs by name
        uniform_members: Non-image input name -> Uniforms struct member
        image_names: Image input names in binding order
        pass_names: Declared pass buffer names in pass order
        referenced_images: Image names the texture pass resolved
        referenced_passes: Pass buffer names the texture pass resolved
        const_types: Type of every const declaration seen so far
        structs: Struct name -> field types, including generated structs
        mutable_params: Parameters lowered to pointers or shadow copies
        renamed: Identifiers renamed away from WGSL reserved words
    """

    options: CompilerOptions = field(default_factory=CompilerOptions)
    metadata: ISFMetadata = field(default_factory=ISFMetadata)
    warnings: list[str] = field(default_factory=list)
    object_macros: dict[str, MacroDef] = field(default_factory=dict)
    function_macros: dict[str, MacroDef] = field(default_factory=dict)
    inputs: dict[str, InputDecl] = field(default_factory=dict)
    uniform_members: dict[str, str] = field(default_factory=dict)
    image_names: list[str] = field(default_factory=list)
    pass_names: list[str] = field(default_factory=list)
    referenced_images: set[str] = field(default_factory=set)
    referenced_passes: set[str] = field(default_factory=set)
    const_types: dict[str, str] = field(default_factory=dict)
    structs: dict[str, dict[str, str]] = field(
        default_factory=lambda: {VERTEX_OUTPUT_STRUCT: dict(VERTEX_OUTPUT_FIELDS)}
    )
    mutable_params: list[MutableParam] = field(default_factory=list)
    renamed: list[RenamedIdentifier] = field(default_factory=list)
    _counter: int = 0

    def warn(self, message: str) -> None:
        """Record a non-fatal issue and log it."""
        if message in self.warnings:
            return
        self.warnings.append(message)
        logger.warning(message)

    def fresh_name(self, prefix: str) -> str:
        """Return a new compiler-generated identifier."""
        name = f"{prefix}{self._counter}"
        self._counter += 1
        return name

    def texture_names(self) -> set[str]:
        """Names that IMG_* macros may refer to."""
        return set(self.image_names) | set(self.pass_names)
