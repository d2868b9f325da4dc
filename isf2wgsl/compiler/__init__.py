"""
ISF to WGSL compilation.

This module provides the top-level interface: `ISFCompiler` runs the stages
in order on a fresh CompilationContext and returns a CompilerOutput.

Stages:
    metadata -> layout -> preprocessor -> parser -> rewrite passes
    -> assembler -> validator
"""

from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger

from isf2wgsl.compiler.assembler import VERTEX_SHADER, assemble
from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.errors import CompilationError, GLSLSyntaxError
from isf2wgsl.compiler.layout import build_layout
from isf2wgsl.compiler.metadata import extract_metadata
from isf2wgsl.compiler.models import CompilerOptions, CompilerOutput
from isf2wgsl.compiler.parser import parse
from isf2wgsl.compiler.passes import run_pipeline
from isf2wgsl.compiler.preprocessor import preprocess
from isf2wgsl.compiler.validator import validate

T = TypeVar("T")


def _run_stage(stage: str, func: Callable[..., T], *args: Any) -> T:
    """Run one stage, wrapping unexpected exceptions.

    Raises:
        CompilationError: Re-raised as is, or wrapping any other exception
    """
    logger.debug(f"Stage: {stage}")
    try:
        return func(*args)
    except CompilationError:
        raise
    except Exception as e:
        raise CompilationError(f"Internal error during {stage}: {e}") from e


class ISFCompiler:
    """Compiles ISF fragment shaders to WGSL.

    Instances keep only their options; every call to `compile` starts from a
    fresh context, so one compiler can be reused for any number of sources.

    Examples:
        >>> output = ISFCompiler().compile(source)
        >>> output.wgsl.startswith("// Generated by isf2wgsl")
        True
    """

    def __init__(self, options: CompilerOptions | None = None):
        self.options = options or CompilerOptions()

    def compile(self, source: str) -> CompilerOutput:
        """Compile one ISF source unit.

        Args:
            source: Complete ISF file contents (JSON header comment + GLSL)

        Returns:
            WGSL fragment module, vertex module, layout, metadata, warnings
            and validation findings

        Raises:
            CompilationError: On an unparsable header, a syntax error or an
                internal failure. No partial output is returned.
        """
        context = CompilationContext(options=self.options)

        metadata, body = _run_stage("metadata extraction", extract_metadata, source, context)
        context.metadata = metadata
        builder = _run_stage("layout", build_layout, metadata.inputs, context)
        code = _run_stage("preprocessing", preprocess, body, context)
        unit = _run_stage("parsing", parse, code)
        unit = run_pipeline(unit, context)
        _run_stage(
            "pass binding allocation",
            builder.allocate_pass_bindings,
            metadata.passes,
            context.referenced_passes,
        )
        wgsl = _run_stage("assembly", assemble, unit, builder, metadata, context)

        validation = validate(wgsl)
        if not validation.valid:
            logger.warning(f"Generated WGSL has {len(validation.errors)} validation findings")

        logger.debug(f"Compiled {metadata.shader_type} shader with {len(context.warnings)} warnings")
        return CompilerOutput(
            wgsl=wgsl,
            vertex_shader=VERTEX_SHADER,
            layout=builder.to_layout(),
            metadata=metadata,
            warnings=list(context.warnings),
            validation=validation,
        )


def compile_isf(source: str, options: CompilerOptions | None = None) -> CompilerOutput:
    """Compile an ISF source unit with a throwaway compiler."""
    return ISFCompiler(options).compile(source)


__all__ = [
    "CompilationError",
    "CompilerOptions",
    "CompilerOutput",
    "GLSLSyntaxError",
    "ISFCompiler",
    "VERTEX_SHADER",
    "compile_isf",
]
