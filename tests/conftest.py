"""Fixtures and configuration for pytest."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

SHADER_DIR = Path(__file__).parent / "data" / "shaders"


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "corpus: mark test as compiling sample shader files")
    config.addinivalue_line("markers", "cli: mark test as a command line test")


def build_isf(glsl: str, inputs: list[dict[str, Any]] | None = None, **header: Any) -> str:
    """Wrap a GLSL body in an ISF JSON header comment."""
    data: dict[str, Any] = {key.upper(): value for key, value in header.items()}
    data["INPUTS"] = inputs or []
    return f"/*{json.dumps(data, indent=4)}*/\n{glsl}"


@pytest.fixture
def make_isf() -> Callable[..., str]:
    """Fixture returning the ISF source builder."""
    return build_isf


@pytest.fixture
def shader_dir() -> Path:
    """Directory holding the sample ISF shaders."""
    return SHADER_DIR


@pytest.fixture
def gradient_source() -> str:
    """Generator shader with float, color and bool inputs."""
    return (SHADER_DIR / "gradient.fs").read_text()


@pytest.fixture
def filter_source() -> str:
    """Filter shader sampling inputImage."""
    return (SHADER_DIR / "blur_filter.fs").read_text()


@pytest.fixture
def multipass_source() -> str:
    """Shader with three passes, only one of them sampled."""
    return (SHADER_DIR / "nested" / "feedback.fs").read_text()


@pytest.fixture
def shadertoy_source() -> str:
    """Shadertoy-style shader defining mainImage."""
    return (SHADER_DIR / "nested" / "shadertoy.fs").read_text()
