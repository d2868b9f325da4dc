"""Final WGSL module assembly.

Puts together the fragment module: header comment, vertex output struct,
uniform struct and binding, texture bindings, helper library and the
emitted shader body.
"""

from loguru import logger

from isf2wgsl.compiler.constants import (
    HELPER_FUNCTIONS,
    SAMPLER_PREFIX,
    TEXTURE_PREFIX,
    UNIFORMS_STRUCT,
    UNIFORMS_VAR,
    VERTEX_OUTPUT_DECL,
    VERTEX_SHADER,
)
from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.emitter import Emitter
from isf2wgsl.compiler.layout import LayoutBuilder
from isf2wgsl.compiler.models import ISFMetadata, TextureBinding, UniformField
from isf2wgsl.compiler.nodes import TranslationUnit


def header_comment(metadata: ISFMetadata) -> str:
    description = metadata.description or "ISF Shader"
    credit = metadata.credit or "Unknown"
    lines = ["// Generated by isf2wgsl"]
    lines.extend(f"// Original: {line}" for line in description.splitlines() or [description])
    lines.extend(f"// Credit: {line}" for line in credit.splitlines() or [credit])
    return "\n".join(lines)


def uniform_struct(fields: list[UniformField]) -> str:
    lines = [f"struct {UNIFORMS_STRUCT} {{"]
    for f in fields:
        lines.append(f"    {f.member}: {f.wgsl_type},")
    lines.append("}")
    return "\n".join(lines)


def texture_bindings(bindings: list[TextureBinding]) -> str:
    lines: list[str] = []
    for binding in bindings:
        lines.append(
            f"@group(1) @binding({binding.texture_binding}) "
            f"var {TEXTURE_PREFIX}{binding.name}: texture_2d<f32>;"
        )
        lines.append(
            f"@group(1) @binding({binding.sampler_binding}) "
            f"var {SAMPLER_PREFIX}{binding.name}: sampler;"
        )
    return "\n".join(lines)


def assemble(
    unit: TranslationUnit,
    builder: LayoutBuilder,
    metadata: ISFMetadata,
    context: CompilationContext,
) -> str:
    """Build the complete fragment module.

    Args:
        unit: Rewritten translation unit
        builder: Layout with pass bindings already allocated
        metadata: Parsed ISF header
        context: Compilation context holding the options

    Returns:
        WGSL source of the fragment module
    """
    layout = builder.to_layout()
    sections: list[str] = []

    if context.options.header_comment:
        sections.append(header_comment(metadata))
    sections.append(VERTEX_OUTPUT_DECL.rstrip("\n"))
    sections.append(uniform_struct(layout.uniforms))
    sections.append(f"@group(0) @binding(0) var<uniform> {UNIFORMS_VAR}: {UNIFORMS_STRUCT};")

    bindings = texture_bindings(layout.textures + layout.passes)
    if bindings:
        sections.append(bindings)

    if context.options.include_helpers:
        sections.append(HELPER_FUNCTIONS.rstrip("\n"))

    body = Emitter().emit(unit).rstrip("\n")
    if body:
        sections.append(body)

    wgsl = "\n\n".join(sections) + "\n"
    logger.debug(f"Assembled WGSL module: {len(wgsl.splitlines())} lines")
    return wgsl


__all__ = ["VERTEX_SHADER", "assemble", "header_comment"]
