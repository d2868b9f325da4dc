"""Tests for the isf2wgsl command-line interface."""

import json
import sys
from pathlib import Path

import pytest
from loguru import logger
from typer.testing import CliRunner
from watchdog.events import FileModifiedEvent

from isf2wgsl.compiler.models import CompilerOptions
from isf2wgsl.main import ShaderChangeHandler, app

runner = CliRunner()

pytestmark = pytest.mark.cli


@pytest.fixture(autouse=True)
def reset_logger():
    """Point loguru back at the real stderr after each command run."""
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def gradient_file(shader_dir) -> Path:
    return shader_dir / "gradient.fs"


@pytest.fixture
def broken_file(tmp_path) -> Path:
    path = tmp_path / "broken.fs"
    path.write_text('/*{"INPUTS": [ }*/\nvoid main() {}\n')
    return path


def test_help():
    """Test that the CLI help lists the commands."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("compile", "layout", "validate", "corpus", "watch"):
        assert command in result.stdout


def test_compile_help():
    result = runner.invoke(app, ["compile", "--help"])
    assert result.exit_code == 0
    assert "--vertex" in result.stdout


def test_compile_to_stdout(gradient_file):
    """Test compiling to stdout (no output file)."""
    result = runner.invoke(app, ["compile", str(gradient_file)])
    assert result.exit_code == 0
    assert "fn fs_main(input: VertexOutput)" in result.stdout
    assert "struct Uniforms {" in result.stdout


def test_compile_to_file(gradient_file, tmp_path):
    """Test compiling to a file with the vertex shader alongside."""
    output_file = tmp_path / "gradient.wgsl"
    vertex_file = tmp_path / "vertex.wgsl"
    result = runner.invoke(
        app, ["compile", str(gradient_file), str(output_file), "--vertex", str(vertex_file)]
    )

    assert result.exit_code == 0
    assert "fn fs_main(" in output_file.read_text()
    assert "fn vs_main(" in vertex_file.read_text()


def test_compile_commented_format(gradient_file):
    result = runner.invoke(app, ["compile", str(gradient_file), "--format", "commented"])
    assert result.exit_code == 0
    assert "// Generated by isf2wgsl v0.1.0" in result.stdout
    assert "// Generation time:" in result.stdout
    assert "// Source file: gradient.fs" in result.stdout


def test_compile_without_helpers(gradient_file):
    result = runner.invoke(app, ["compile", str(gradient_file), "--no-helpers", "--no-header"])
    assert result.exit_code == 0
    assert "fn fract_f32" not in result.stdout
    assert "// Original:" not in result.stdout


def test_compile_missing_file(tmp_path):
    result = runner.invoke(app, ["compile", str(tmp_path / "missing.fs")])
    assert result.exit_code == 1


def test_compile_failure(broken_file):
    result = runner.invoke(app, ["compile", str(broken_file)])
    assert result.exit_code == 1


def test_layout_json(gradient_file):
    """Test that the layout command prints parseable JSON."""
    result = runner.invoke(app, ["layout", str(gradient_file)])
    assert result.exit_code == 0

    data = json.loads(result.stdout[result.stdout.index("{") :])
    assert data["shaderType"] == "generator"
    assert data["layout"]["buffer_size"] == 96
    uniforms = {u["name"]: u["offset"] for u in data["layout"]["uniforms"]}
    assert uniforms["level"] == 48
    assert [inp["name"] for inp in data["inputs"]] == ["level", "tint", "invert", "BUILTIN_SPEED"]


def test_validate_ok(gradient_file):
    result = runner.invoke(app, ["validate", str(gradient_file)])
    assert result.exit_code == 0
    assert f"OK {gradient_file}" in result.stdout


def test_validate_failure(gradient_file, broken_file):
    result = runner.invoke(app, ["validate", str(gradient_file), str(broken_file)])
    assert result.exit_code == 1
    assert f"OK {gradient_file}" in result.stdout
    assert f"FAIL {broken_file}" in result.stdout


@pytest.mark.corpus
def test_corpus_summary(shader_dir):
    """Test batch compilation of the sample shaders."""
    result = runner.invoke(app, ["corpus", str(shader_dir)])
    assert result.exit_code == 0
    assert "4 shaders: 4 compiled, 0 with findings, 0 failed" in result.stdout


@pytest.mark.corpus
def test_corpus_counts_failures(tmp_path, broken_file, gradient_file):
    (tmp_path / "gradient.fs").write_text(gradient_file.read_text())
    result = runner.invoke(app, ["corpus", str(tmp_path)])
    assert result.exit_code == 1
    assert "2 shaders: 1 compiled, 0 with findings, 1 failed" in result.stdout


def test_corpus_requires_directory(gradient_file):
    result = runner.invoke(app, ["corpus", str(gradient_file)])
    assert result.exit_code == 1


class TestShaderChangeHandler:
    def test_recompile_writes_output(self, gradient_file, tmp_path):
        output = tmp_path / "out.wgsl"
        handler = ShaderChangeHandler(str(gradient_file), output, CompilerOptions())

        assert handler.recompile()
        assert "fn fs_main(" in output.read_text()

    def test_recompile_failure_keeps_running(self, broken_file, tmp_path):
        output = tmp_path / "out.wgsl"
        handler = ShaderChangeHandler(str(broken_file), output, CompilerOptions())

        assert not handler.recompile()
        assert not output.exists()

    def test_on_modified_filters_path(self, tmp_path, gradient_file):
        shader = tmp_path / "shader.fs"
        shader.write_text(gradient_file.read_text())
        output = tmp_path / "out.wgsl"
        handler = ShaderChangeHandler(str(shader), output, CompilerOptions())

        handler.on_modified(FileModifiedEvent(str(tmp_path / "other.fs")))
        assert not output.exists()

        handler.on_modified(FileModifiedEvent(str(shader)))
        assert output.exists()
