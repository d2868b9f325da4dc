"""Post-hoc scan of generated WGSL for GLSL leftovers.

This is not a WGSL validator: it only catches constructs the rewrite passes
should have removed. It never raises.
"""

import re

from loguru import logger

from isf2wgsl.compiler.models import ValidationResult

_COMMENT_RE = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)

LEFTOVER_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\btexture2D\s*\("), "GLSL texture2D() call remains"),
    (re.compile(r"\btextureSize\s*\("), "GLSL textureSize() call remains"),
    (re.compile(r"\bIMG_\w+\s*\("), "ISF IMG_* macro remains"),
    (re.compile(r"(?<!<)\buniform\b(?!>)"), "GLSL 'uniform' keyword remains"),
    (re.compile(r"\bvarying\b"), "GLSL 'varying' keyword remains"),
    (re.compile(r"\battribute\b"), "GLSL 'attribute' keyword remains"),
    (re.compile(r"\bprecision\b"), "GLSL 'precision' statement remains"),
    (re.compile(r"\bsampler2D\b"), "GLSL sampler2D type remains"),
    (re.compile(r"\b(?:vec[234]|mat[234](?:x[234])?)\s*\("), "GLSL-style constructor without type parameter"),
    (re.compile(r"\?"), "Ternary operator remains"),
]


def strip_comments(wgsl: str) -> str:
    return _COMMENT_RE.sub(" ", wgsl)


def validate(wgsl: str) -> ValidationResult:
    """Scan WGSL output for constructs WGSL does not accept.

    Args:
        wgsl: Generated fragment module

    Returns:
        The findings; `valid` is False when there are any
    """
    code = strip_comments(wgsl)
    errors: list[str] = []

    for pattern, message in LEFTOVER_PATTERNS:
        if pattern.search(code):
            errors.append(message)

    opened = code.count("{")
    closed = code.count("}")
    if opened != closed:
        errors.append(f"Unbalanced braces: {opened} open, {closed} close")

    if not re.search(r"\bfn\s+fs_main\b", code):
        errors.append("Missing fragment entry point fn fs_main")

    for error in errors:
        logger.debug(f"Validation: {error}")
    return ValidationResult(valid=not errors, errors=errors)
