"""Ordered rewrite passes turning the GLSL tree into WGSL-shaped form.

Each pass is a function `(unit, context) -> unit`. The order matters: later
passes rely on the shapes earlier ones produce, e.g. parameter lowering
expects swizzle assignments to be gone already.
"""

from collections.abc import Callable

from loguru import logger

from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.errors import CompilationError
from isf2wgsl.compiler.nodes import TranslationUnit
from isf2wgsl.compiler.passes.builtins import substitute_builtins
from isf2wgsl.compiler.passes.control_flow import lower_control_flow
from isf2wgsl.compiler.passes.declarations import normalize_declarations
from isf2wgsl.compiler.passes.entry_point import normalize_entry_point
from isf2wgsl.compiler.passes.identifiers import rename_identifiers
from isf2wgsl.compiler.passes.module_scope import restrict_module_scope
from isf2wgsl.compiler.passes.overloads import resolve_overloads
from isf2wgsl.compiler.passes.parameters import lower_parameters
from isf2wgsl.compiler.passes.promotion import promote_types
from isf2wgsl.compiler.passes.semantics import lower_semantics
from isf2wgsl.compiler.passes.swizzle_assign import lower_swizzle_assignments
from isf2wgsl.compiler.passes.swizzles import expand_swizzle_aliases
from isf2wgsl.compiler.passes.ternary import lower_ternaries
from isf2wgsl.compiler.passes.textures import lower_textures

Pass = Callable[[TranslationUnit, CompilationContext], TranslationUnit]

PIPELINE: list[tuple[str, Pass]] = [
    ("declarations", normalize_declarations),
    ("swizzles", expand_swizzle_aliases),
    ("overloads", resolve_overloads),
    ("builtins", substitute_builtins),
    ("textures", lower_textures),
    ("semantics", lower_semantics),
    ("promotion", promote_types),
    ("ternary", lower_ternaries),
    ("control_flow", lower_control_flow),
    ("swizzle_assign", lower_swizzle_assignments),
    ("parameters", lower_parameters),
    ("identifiers", rename_identifiers),
    ("entry_point", normalize_entry_point),
    ("module_scope", restrict_module_scope),
]


def run_pipeline(unit: TranslationUnit, context: CompilationContext) -> TranslationUnit:
    """Run every pass in order.

    Raises:
        CompilationError: If a pass fails; unexpected exceptions are wrapped
            with the name of the pass
    """
    for name, rewrite in PIPELINE:
        logger.debug(f"Running pass: {name}")
        try:
            unit = rewrite(unit, context)
        except CompilationError:
            raise
        except Exception as e:
            raise CompilationError(f"Internal error during {name} pass: {e}") from e
    return unit


__all__ = ["PIPELINE", "run_pipeline"]
