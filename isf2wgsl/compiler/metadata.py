"""ISF header extraction.

Splits a source unit into its JSON header and its GLSL body, and turns the
header into typed declarations.
"""

import copy
import json
import re
from typing import Any

from loguru import logger

from isf2wgsl.compiler.constants import SPEED_INPUT
from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.errors import CompilationError
from isf2wgsl.compiler.models import InputDecl, ISFMetadata, PassDecl

_BLOCK_COMMENT_RE = re.compile(r"/\*(.*?)\*/", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def find_header(source: str) -> tuple[str | None, str]:
    """Locate the leading JSON header comment.

    Args:
        source: Complete ISF source text

    Returns:
        The header text (without comment markers) or None, and the body with
        the header comment removed
    """
    for match in _BLOCK_COMMENT_RE.finditer(source):
        content = match.group(1).strip()
        if content.startswith("{"):
            body = source[: match.start()] + source[match.end() :]
            return content, body
    return None, source


def parse_header(text: str) -> dict[str, Any]:
    """Parse the header JSON, retrying once with common mistakes repaired.

    Raises:
        CompilationError: If the header is not valid JSON even after repair
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        repaired = _TRAILING_COMMA_RE.sub(r"\1", text).replace("'", '"')
        try:
            data = json.loads(repaired)
        except json.JSONDecodeError as e:
            raise CompilationError(f"Failed to parse ISF JSON: {e}") from e
        logger.debug("ISF JSON parsed after repairing trailing commas or quotes")

    if not isinstance(data, dict):
        raise CompilationError("Failed to parse ISF JSON: header is not an object")
    return data


def _parse_input(entry: dict[str, Any]) -> InputDecl:
    return InputDecl(
        name=str(entry["NAME"]),
        type=str(entry.get("TYPE", "float")),
        default=entry.get("DEFAULT"),
        minimum=entry.get("MIN"),
        maximum=entry.get("MAX"),
        label=entry.get("LABEL"),
        labels=entry.get("LABELS"),
        values=entry.get("VALUES"),
    )


def _parse_passes(entries: list[Any]) -> list[PassDecl]:
    passes: list[PassDecl] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        passes.append(
            PassDecl(
                target=entry.get("TARGET") or None,
                width=str(entry.get("WIDTH", "$WIDTH")),
                height=str(entry.get("HEIGHT", "$HEIGHT")),
                float=bool(entry.get("FLOAT", False)),
                persistent=bool(entry.get("PERSISTENT", False)),
            )
        )
    return passes or [PassDecl(implicit=True)]


def _imported_names(imported: Any) -> list[str]:
    """IMPORTED is a name -> {PATH} object in ISF 2 and a list in ISF 1."""
    if isinstance(imported, dict):
        return list(imported.keys())
    if isinstance(imported, list):
        return [str(item["NAME"]) for item in imported if isinstance(item, dict) and "NAME" in item]
    return []


def build_metadata(data: dict[str, Any], context: CompilationContext) -> ISFMetadata:
    """Turn parsed header JSON into an ISFMetadata with synthetic inputs added."""
    metadata = ISFMetadata(
        description=str(data.get("DESCRIPTION", "")),
        credit=str(data.get("CREDIT", "")),
        isf_version=data.get("ISFVSN"),
        categories=list(data.get("CATEGORIES", [])),
        raw=copy.deepcopy(data),
    )

    for entry in data.get("INPUTS", []):
        if not isinstance(entry, dict) or "NAME" not in entry:
            context.warn(f"Skipping malformed input declaration: {entry!r}")
            continue
        metadata.inputs.append(_parse_input(entry))

    names = {inp.name for inp in metadata.inputs}
    if context.options.inject_speed_input and SPEED_INPUT["NAME"] not in names:
        metadata.inputs.append(_parse_input(SPEED_INPUT))
        names.add(str(SPEED_INPUT["NAME"]))

    imported = data.get("IMPORTED", {})
    metadata.imported = (
        imported if isinstance(imported, dict) else {name: {} for name in _imported_names(imported)}
    )
    for name in _imported_names(imported):
        if name not in names:
            metadata.inputs.append(InputDecl(name=name, type="image"))
            names.add(name)

    metadata.passes = _parse_passes(data.get("PASSES", []))
    return metadata


def extract_metadata(source: str, context: CompilationContext) -> tuple[ISFMetadata, str]:
    """Split an ISF source unit into metadata and GLSL body.

    A missing header is not fatal: the shader compiles with default metadata
    and a warning.

    Args:
        source: Complete ISF source text
        context: Compilation context receiving warnings

    Returns:
        Parsed metadata and the code body

    Raises:
        CompilationError: If a header exists but cannot be parsed
    """
    header, body = find_header(source)
    if header is None:
        context.warn("No ISF JSON metadata found, using defaults")
        data: dict[str, Any] = {}
    else:
        data = parse_header(header)

    metadata = build_metadata(data, context)
    logger.debug(
        f"Extracted metadata: {len(metadata.inputs)} inputs, "
        f"{len(metadata.passes)} passes"
    )
    return metadata, body
