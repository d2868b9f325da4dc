"""
Pytest configuration and shared fixtures for compiler stage tests.

These fixtures run the front half of the compiler (metadata, layout,
preprocessor, parser) so that single passes can be tested on real trees.
"""

from collections.abc import Callable
from typing import Any

import pytest

from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.layout import LayoutBuilder, build_layout
from isf2wgsl.compiler.metadata import extract_metadata
from isf2wgsl.compiler.models import CompilerOptions
from isf2wgsl.compiler.nodes import TranslationUnit
from isf2wgsl.compiler.parser import parse
from isf2wgsl.compiler.passes import PIPELINE
from isf2wgsl.compiler.preprocessor import preprocess


@pytest.fixture
def context() -> CompilationContext:
    """Fixture providing a fresh compilation context."""
    return CompilationContext(options=CompilerOptions())


@pytest.fixture
def front_end(
    make_isf: Callable[..., str],
) -> Callable[..., tuple[TranslationUnit, CompilationContext, LayoutBuilder]]:
    """Fixture running metadata extraction, layout, preprocessing and parsing."""

    def run(
        glsl: str, inputs: list[dict[str, Any]] | None = None, **header: Any
    ) -> tuple[TranslationUnit, CompilationContext, LayoutBuilder]:
        context = CompilationContext(options=CompilerOptions())
        metadata, body = extract_metadata(make_isf(glsl, inputs, **header), context)
        context.metadata = metadata
        builder = build_layout(metadata.inputs, context)
        unit = parse(preprocess(body, context))
        return unit, context, builder

    return run


@pytest.fixture
def run_passes(front_end):
    """Fixture running the rewrite pipeline up to and including a named pass."""

    def run(
        glsl: str, last: str, inputs: list[dict[str, Any]] | None = None
    ) -> tuple[TranslationUnit, CompilationContext]:
        unit, context, _ = front_end(glsl, inputs)
        for name, rewrite in PIPELINE:
            unit = rewrite(unit, context)
            if name == last:
                break
        return unit, context

    return run
