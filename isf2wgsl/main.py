"""Command line interface for isf2wgsl.

This module provides a command-line interface for compiling ISF shaders to
WGSL, inspecting their uniform layout, validating single files or a whole
corpus, and recompiling a shader whenever it changes.
"""

import dataclasses
import json
import os
import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar, cast

import arrow
import typer
import watchdog.events
import watchdog.observers
from loguru import logger
from watchdog.events import FileSystemEventHandler

from isf2wgsl import __version__
from isf2wgsl.compiler import CompilationError, ISFCompiler
from isf2wgsl.compiler.models import CompilerOptions, CompilerOutput

F = TypeVar("F", bound=Callable[..., Any])


def typed_command(app_command: Any) -> Callable[[F], F]:
    """Wrap typer command with proper typing for mypy."""

    def decorator(func: F) -> F:
        return cast(F, app_command(func))

    return decorator


app = typer.Typer(
    name="isf2wgsl",
    help=(
        "Compile ISF shaders (JSON header + GLSL) to WGSL. "
        "Commands: compile, layout, validate, corpus, watch."
    ),
    add_completion=False,
)


@app.callback()
def configure_logging(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Compile ISF shaders to WGSL."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def _read_source(shader_file: str) -> str:
    try:
        return Path(shader_file).read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to read shader file: {e}")
        raise typer.Exit(1) from e


def _compile_file(shader_file: str, options: CompilerOptions) -> CompilerOutput:
    """Compile a shader file, turning failures into a CLI exit.

    Args:
        shader_file: Path to the ISF source
        options: Compiler options assembled from the command line

    Returns:
        Compiler output
    """
    source = _read_source(shader_file)
    try:
        output = ISFCompiler(options).compile(source)
    except CompilationError as e:
        logger.error(f"Compilation failed for {shader_file}: {e}")
        raise typer.Exit(1) from e

    for warning in output.warnings:
        logger.info(f"{shader_file}: warning: {warning}")
    return output


def _add_header_comments(code: str, source_file: str) -> str:
    """Add a generation header to the code.

    Args:
        code: Generated WGSL
        source_file: Source ISF file

    Returns:
        Code with header comments
    """
    timestamp = arrow.utcnow().format("YYYY-MM-DD HH:mm:ss UTC")
    header = f"// Generated by isf2wgsl v{__version__}\n"
    header += f"// Generation time: {timestamp}\n"
    header += f"// Source file: {os.path.basename(source_file)}\n"
    return header + "\n" + code


def _format_wgsl(code: str, format_type: str, source_file: str) -> str:
    if format_type == "commented":
        return _add_header_comments(code, source_file)
    if format_type != "plain":
        logger.warning(f"Unknown format '{format_type}', using plain")
    return code


def _options(
    helpers: bool = True,
    header: bool = True,
    speed_input: bool = True,
    max_macro_passes: int = 8,
) -> CompilerOptions:
    return CompilerOptions(
        max_macro_passes=max_macro_passes,
        inject_speed_input=speed_input,
        include_helpers=helpers,
        header_comment=header,
    )


OUTPUT_ARG = typer.Argument(None, help="Output WGSL file path (stdout when omitted)")


@typed_command(app.command("compile"))
def compile_shader(
    shader_file: str = typer.Argument(..., help="ISF fragment shader (.fs)"),
    output: Path | None = OUTPUT_ARG,
    vertex: Path | None = typer.Option(
        None, "--vertex", help="Also write the vertex shader to this path"
    ),
    format: str = typer.Option(
        "plain", "--format", "-f", help="Code format (plain, commented)"
    ),
    helpers: bool = typer.Option(
        True, "--helpers/--no-helpers", help="Append the helper function library"
    ),
    header: bool = typer.Option(
        True, "--header/--no-header", help="Prefix the module with a description comment"
    ),
    speed_input: bool = typer.Option(
        True, "--speed-input/--no-speed-input", help="Add the BUILTIN_SPEED input"
    ),
    max_macro_passes: int = typer.Option(
        8, "--max-macro-passes", help="Cap on macro expansion passes"
    ),
) -> None:
    """Compile an ISF shader to a WGSL fragment module.

    Example: isf2wgsl compile shaders/plasma.fs plasma.wgsl --vertex vertex.wgsl
    """
    options = _options(helpers, header, speed_input, max_macro_passes)
    result = _compile_file(shader_file, options)
    code = _format_wgsl(result.wgsl, format, shader_file)

    if not result.validation.valid:
        for error in result.validation.errors:
            logger.warning(f"{shader_file}: validation: {error}")

    if output is None:
        typer.echo(code, nl=False)
    else:
        output.write_text(code, encoding="utf-8")
        logger.info(f"WGSL written to {output}")

    if vertex is not None:
        vertex.write_text(result.vertex_shader, encoding="utf-8")
        logger.info(f"Vertex shader written to {vertex}")


@typed_command(app.command("layout"))
def show_layout(
    shader_file: str = typer.Argument(..., help="ISF fragment shader (.fs)"),
    speed_input: bool = typer.Option(
        True, "--speed-input/--no-speed-input", help="Add the BUILTIN_SPEED input"
    ),
) -> None:
    """Print the uniform layout and bindings of a shader as JSON.

    Example: isf2wgsl layout shaders/plasma.fs
    """
    result = _compile_file(shader_file, _options(speed_input=speed_input))
    data = {
        "shaderType": result.metadata.shader_type,
        "layout": dataclasses.asdict(result.layout),
        "inputs": [dataclasses.asdict(inp) for inp in result.metadata.inputs],
    }
    typer.echo(json.dumps(data, indent=2, default=str))


@typed_command(app.command("validate"))
def validate_shaders(
    shader_files: list[str] = typer.Argument(..., help="ISF shaders to check"),
) -> None:
    """Compile shaders and report warnings and validation findings.

    Exits with status 1 when any shader fails to compile or validate.

    Example: isf2wgsl validate shaders/*.fs
    """
    failed = 0
    for shader_file in shader_files:
        try:
            result = ISFCompiler().compile(_read_source(shader_file))
        except CompilationError as e:
            typer.echo(f"FAIL {shader_file}: {e}")
            failed += 1
            continue

        status = "OK" if result.validation.valid else "INVALID"
        typer.echo(f"{status} {shader_file}")
        for warning in result.warnings:
            typer.echo(f"  warning: {warning}")
        for error in result.validation.errors:
            typer.echo(f"  error: {error}")
        if not result.validation.valid:
            failed += 1

    if failed:
        logger.error(f"{failed} of {len(shader_files)} shaders failed")
        raise typer.Exit(1)


@typed_command(app.command("corpus"))
def compile_corpus(
    directory: Path = typer.Argument(..., help="Directory searched recursively for *.fs"),
    fail_fast: bool = typer.Option(
        False, "--fail-fast", help="Stop at the first shader that fails"
    ),
) -> None:
    """Batch-compile every ISF shader below a directory and summarize.

    Example: isf2wgsl corpus ~/ISF --fail-fast
    """
    if not directory.is_dir():
        logger.error(f"Not a directory: {directory}")
        raise typer.Exit(1)

    files = sorted(directory.rglob("*.fs"))
    compiled = invalid = failed = 0
    warnings = 0
    for path in files:
        try:
            result = ISFCompiler().compile(path.read_text(encoding="utf-8", errors="replace"))
        except CompilationError as e:
            failed += 1
            typer.echo(f"FAIL {path}: {e}")
            if fail_fast:
                break
            continue

        compiled += 1
        warnings += len(result.warnings)
        if not result.validation.valid:
            invalid += 1
            typer.echo(f"INVALID {path}: {'; '.join(result.validation.errors)}")
            if fail_fast:
                break

    typer.echo(
        f"{len(files)} shaders: {compiled} compiled, {invalid} with findings, "
        f"{failed} failed, {warnings} warnings"
    )
    if failed or invalid:
        raise typer.Exit(1)


class ShaderChangeHandler(FileSystemEventHandler):  # type: ignore
    """Event handler recompiling a shader when its file changes."""

    def __init__(self, shader_file: str, output: Path, options: CompilerOptions):
        """Initialize shader change handler.

        Args:
            shader_file: Absolute path to the shader file
            output: Path the WGSL is written to
            options: Compiler options
        """
        self.shader_file = shader_file
        self.output = output
        self.options = options

    def on_modified(self, event: watchdog.events.FileSystemEvent) -> None:
        """Handle file modified event.

        Args:
            event: File system event
        """
        if event.src_path == os.path.abspath(self.shader_file):
            logger.info(f"Detected changes in {self.shader_file}")
            self.recompile()

    def recompile(self) -> bool:
        """Compile the shader and write the output, logging any failure."""
        try:
            source = Path(self.shader_file).read_text(encoding="utf-8")
            result = ISFCompiler(self.options).compile(source)
        except (OSError, CompilationError) as e:
            logger.error(f"Error compiling shader: {e}")
            return False

        self.output.write_text(result.wgsl, encoding="utf-8")
        logger.info(f"WGSL written to {self.output} ({len(result.warnings)} warnings)")
        return True


@typed_command(app.command("watch"))
def watch_shader(
    shader_file: str = typer.Argument(..., help="ISF fragment shader (.fs)"),
    output: Path = typer.Argument(..., help="Output WGSL file path"),
    helpers: bool = typer.Option(
        True, "--helpers/--no-helpers", help="Append the helper function library"
    ),
) -> None:
    """Watch a shader file and recompile it on every change.

    Example: isf2wgsl watch shaders/plasma.fs plasma.wgsl
    """
    observer = watchdog.observers.Observer()
    abs_shader_file = os.path.abspath(shader_file)
    handler = ShaderChangeHandler(abs_shader_file, output, _options(helpers=helpers))
    handler.recompile()

    # Watch the file's directory, not the file itself
    directory = os.path.dirname(abs_shader_file)
    observer.schedule(handler, path=directory, recursive=False)
    observer.start()
    logger.info(f"Watching {shader_file} (Ctrl+C to stop)")

    try:
        while True:
            time.sleep(0.5)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, stopping...")
    finally:
        observer.stop()
        observer.join()


if __name__ == "__main__":
    app()
