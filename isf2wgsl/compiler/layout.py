"""Uniform buffer layout and texture binding allocation.

The uniform buffer starts with a fixed prefix of standard fields shared by
every shader, followed by one field per non-image input. Offsets follow the
WGSL uniform address space alignment rules so that the emitted struct needs
no explicit padding members.
"""

from loguru import logger

from isf2wgsl.compiler.constants import (
    ISF_TYPE_LAYOUT,
    STANDARD_UNIFORMS,
    UNIFORM_BUFFER_ALIGNMENT,
    UNIFORM_RESERVED_PREFIX,
    UNIFORMS_STRUCT,
    WGSL_RESERVED_WORDS,
    WGSL_TO_GLSL_TYPES,
    WGSL_TYPE_LAYOUT,
)
from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.models import (
    InputDecl,
    PassBinding,
    PassDecl,
    TextureBinding,
    UniformField,
    UniformLayout,
)

STANDARD_UNIFORM_NAMES = {name for name, _ in STANDARD_UNIFORMS}


def align_to(offset: int, alignment: int) -> int:
    """Round `offset` up to the next multiple of `alignment`."""
    return (offset + alignment - 1) // alignment * alignment


def pass_name(pass_decl: PassDecl, index: int) -> str:
    """Name a pass is referred to by: its target or `pass<N>` (1-based)."""
    return pass_decl.target or f"pass{index + 1}"


def safe_member_name(name: str) -> str:
    """Uniform member name that does not collide with a WGSL reserved word."""
    if name in WGSL_RESERVED_WORDS:
        return f"{UNIFORM_RESERVED_PREFIX}{name}"
    return name


class LayoutBuilder:
    """Accumulates the uniform fields and bindings of one compilation."""

    def __init__(self, context: CompilationContext):
        self.context = context
        self.fields: list[UniformField] = []
        self.textures: list[TextureBinding] = []
        self.passes: list[PassBinding] = []
        self.offset = 0
        self.next_binding = 0

    def _add_field(self, name: str, kind: str, wgsl_type: str, member: str = "") -> UniformField:
        size, alignment = WGSL_TYPE_LAYOUT[wgsl_type]
        aligned = align_to(self.offset, alignment)
        if aligned != self.offset:
            self.fields.append(
                UniformField(
                    name=f"_pad{len(self.fields)}",
                    kind="padding",
                    wgsl_type="f32",
                    offset=self.offset,
                    size=aligned - self.offset,
                    padding=True,
                )
            )
        field = UniformField(name, kind, wgsl_type, aligned, size, member=member)
        self.fields.append(field)
        self.offset = aligned + size
        return field

    def add_standard_fields(self) -> None:
        for name, wgsl_type in STANDARD_UNIFORMS:
            self._add_field(name, "standard", wgsl_type)

    def add_input(self, decl: InputDecl) -> None:
        if decl.name in STANDARD_UNIFORM_NAMES:
            self.context.warn(
                f'Input "{decl.name}" conflicts with standard ISF uniform, '
                "using standard uniform instead"
            )
            return

        if decl.is_image:
            self.textures.append(
                TextureBinding(decl.name, self.next_binding, self.next_binding + 1)
            )
            self.next_binding += 2
            self.context.image_names.append(decl.name)
            return

        type_key = decl.type.lower()
        if type_key not in ISF_TYPE_LAYOUT:
            self.context.warn(
                f'Unknown ISF type "{decl.type}" for input "{decl.name}", treating as f32'
            )
            type_key = "float"

        wgsl_type = ISF_TYPE_LAYOUT[type_key][0]
        member = safe_member_name(decl.name)
        self._add_field(decl.name, decl.type, wgsl_type, member=member)
        self.context.uniform_members[decl.name] = member

    def register_passes(self, passes: list[PassDecl]) -> None:
        """Make declared pass buffers known to the texture pass."""
        for index, pass_decl in enumerate(passes):
            if pass_decl.implicit:
                continue
            self.context.pass_names.append(pass_name(pass_decl, index))

    def allocate_pass_bindings(self, passes: list[PassDecl], referenced: set[str]) -> None:
        """Give a binding pair to each pass buffer the shader body samples.

        Args:
            passes: Pass declarations in order
            referenced: Names the texture pass resolved to pass buffers
        """
        self.passes = []
        binding = self.next_binding
        for index, pass_decl in enumerate(passes):
            if pass_decl.implicit:
                continue
            name = pass_name(pass_decl, index)
            if name not in referenced:
                logger.debug(f"Pass buffer {name} is never sampled, no binding")
                continue
            self.passes.append(PassBinding(name, binding, binding + 1, pass_index=index))
            binding += 2

    @property
    def buffer_size(self) -> int:
        return align_to(self.offset, UNIFORM_BUFFER_ALIGNMENT)

    def struct_fields(self) -> dict[str, str]:
        """Uniforms struct member -> GLSL type, for type inference."""
        return {
            f.member: WGSL_TO_GLSL_TYPES[f.wgsl_type]
            for f in self.fields
            if not f.padding
        }

    def to_layout(self) -> UniformLayout:
        return UniformLayout(
            uniforms=[f for f in self.fields if not f.padding],
            buffer_size=self.buffer_size,
            textures=list(self.textures),
            passes=list(self.passes),
        )


def build_layout(inputs: list[InputDecl], context: CompilationContext) -> LayoutBuilder:
    """Lay out the uniform buffer and image bindings for the declared inputs.

    Args:
        inputs: Declared inputs in order
        context: Compilation context, receives warnings and the name tables

    Returns:
        The builder, still open for pass binding allocation
    """
    builder = LayoutBuilder(context)
    builder.add_standard_fields()
    for decl in inputs:
        if decl.name in context.inputs:
            context.warn(f'Duplicate input "{decl.name}" ignored')
            continue
        context.inputs[decl.name] = decl
        builder.add_input(decl)

    builder.register_passes(context.metadata.passes)
    context.structs[UNIFORMS_STRUCT] = builder.struct_fields()

    logger.debug(
        f"Uniform layout: {len(builder.fields)} fields, {builder.buffer_size} bytes, "
        f"{len(builder.textures)} textures"
    )
    return builder
