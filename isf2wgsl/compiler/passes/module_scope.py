"""Module-scope restriction.

WGSL module-scope initializers must be constant expressions. A global whose
initializer reads uniforms, the vertex input, textures, other private
variables or user functions is declared without an initializer, and the
assignment runs at the start of `fs_main` instead.
"""

from loguru import logger

from isf2wgsl.compiler.constants import ENTRY_POINT_NAME
from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.nodes import Assign, Name, Stmt, TranslationUnit, VarDecl
from isf2wgsl.compiler.type_utils import is_constant_expression


def module_constants(unit: TranslationUnit, user_functions: set[str]) -> set[str]:
    """Names of const globals whose value is a constant expression."""
    constants: set[str] = set()
    for item in unit.items:
        if (
            isinstance(item, VarDecl)
            and item.is_const
            and item.init is not None
            and is_constant_expression(item.init, constants, user_functions)
        ):
            constants.add(item.name)
    return constants


def restrict_module_scope(unit: TranslationUnit, context: CompilationContext) -> TranslationUnit:
    user_functions = {f.name for f in unit.functions()}
    constants = module_constants(unit, user_functions)
    deferred: list[Stmt] = []

    for item in unit.items:
        if not isinstance(item, VarDecl) or item.init is None:
            continue
        if is_constant_expression(item.init, constants, user_functions):
            continue
        deferred.append(Assign(Name(item.name), "=", item.init))
        item.init = None
        item.qualifiers = [q for q in item.qualifiers if q != "const"]

    if not deferred:
        return unit

    entry = unit.find_function(ENTRY_POINT_NAME)
    if entry is None or entry.body is None:
        context.warn("Globals with runtime initializers found but no fs_main to initialize them in")
        return unit

    entry.body.body = deferred + entry.body.body
    logger.debug(f"Moved {len(deferred)} global initializers into {ENTRY_POINT_NAME}")
    return unit
