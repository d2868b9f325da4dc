"""Tests for ISF header extraction."""

import pytest

from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.errors import CompilationError
from isf2wgsl.compiler.metadata import extract_metadata, find_header, parse_header
from isf2wgsl.compiler.models import CompilerOptions, InputKind


def names(metadata):
    return [inp.name for inp in metadata.inputs]


class TestFindHeader:
    def test_header_removed_from_body(self):
        header, body = find_header('/*{"INPUTS": []}*/\nvoid main() {}')
        assert header == '{"INPUTS": []}'
        assert body.strip() == "void main() {}"

    def test_leading_license_comment_skipped(self):
        source = '/* Copyright */\n/*\n{"DESCRIPTION": "x"}\n*/\nvoid main() {}'
        header, body = find_header(source)
        assert header == '{"DESCRIPTION": "x"}'
        assert "/* Copyright */" in body

    def test_no_header(self):
        header, body = find_header("void main() {}")
        assert header is None
        assert body == "void main() {}"


class TestParseHeader:
    def test_valid_json(self):
        assert parse_header('{"ISFVSN": "2"}') == {"ISFVSN": "2"}

    def test_trailing_commas_repaired(self):
        data = parse_header('{"INPUTS": [{"NAME": "a", "TYPE": "float",},],}')
        assert data["INPUTS"] == [{"NAME": "a", "TYPE": "float"}]

    def test_single_quotes_repaired(self):
        assert parse_header("{'CREDIT': 'someone'}") == {"CREDIT": "someone"}

    def test_unrepairable_header_is_fatal(self):
        with pytest.raises(CompilationError, match="Failed to parse ISF JSON"):
            parse_header('{"INPUTS": [ }')

    def test_non_object_header_is_fatal(self):
        with pytest.raises(CompilationError, match="not an object"):
            parse_header("[1, 2]")


class TestExtractMetadata:
    def test_inputs_in_declaration_order(self, make_isf, context):
        source = make_isf(
            "void main() {}",
            [
                {"NAME": "amount", "TYPE": "float", "DEFAULT": 0.5, "MIN": 0.0, "MAX": 1.0},
                {"NAME": "tint", "TYPE": "color"},
                {"NAME": "inputImage", "TYPE": "image"},
            ],
        )
        metadata, _ = extract_metadata(source, context)

        assert names(metadata) == ["amount", "tint", "inputImage", "BUILTIN_SPEED"]
        amount = metadata.inputs[0]
        assert amount.kind == InputKind.FLOAT
        assert (amount.default, amount.minimum, amount.maximum) == (0.5, 0.0, 1.0)
        assert metadata.inputs[1].kind == InputKind.COLOR
        assert [inp.name for inp in metadata.image_inputs] == ["inputImage"]

    def test_description_and_categories(self, make_isf, context):
        source = make_isf(
            "void main() {}",
            description="Test shader",
            credit="me",
            categories=["Generator"],
            isfvsn="2",
        )
        metadata, _ = extract_metadata(source, context)

        assert metadata.description == "Test shader"
        assert metadata.credit == "me"
        assert metadata.categories == ["Generator"]
        assert metadata.isf_version == "2"
        assert metadata.raw["DESCRIPTION"] == "Test shader"

    def test_missing_header_warns(self, context):
        metadata, body = extract_metadata("void main() {}", context)

        assert body == "void main() {}"
        assert "No ISF JSON metadata found, using defaults" in context.warnings
        assert names(metadata) == ["BUILTIN_SPEED"]
        assert metadata.passes[0].implicit

    def test_speed_input_not_injected_when_disabled(self, make_isf):
        context = CompilationContext(options=CompilerOptions(inject_speed_input=False))
        metadata, _ = extract_metadata(make_isf("void main() {}"), context)
        assert names(metadata) == []

    def test_speed_input_not_duplicated(self, make_isf, context):
        source = make_isf("void main() {}", [{"NAME": "BUILTIN_SPEED", "TYPE": "float"}])
        metadata, _ = extract_metadata(source, context)
        assert names(metadata) == ["BUILTIN_SPEED"]

    def test_speed_input_declaration(self, make_isf, context):
        metadata, _ = extract_metadata(make_isf("void main() {}"), context)
        speed = metadata.inputs[-1]
        assert speed.type == "float"
        assert (speed.default, speed.minimum, speed.maximum) == (1.0, 0.0, 5.0)
        assert speed.label == "Speed"

    def test_malformed_input_skipped(self, make_isf, context):
        source = make_isf("void main() {}", [{"TYPE": "float"}, {"NAME": "ok"}])
        metadata, _ = extract_metadata(source, context)

        assert names(metadata) == ["ok", "BUILTIN_SPEED"]
        assert metadata.inputs[0].type == "float"
        assert any("Skipping malformed input" in w for w in context.warnings)

    def test_imported_object_becomes_image_input(self, make_isf, context):
        source = make_isf("void main() {}", imported={"noise": {"PATH": "noise.png"}})
        metadata, _ = extract_metadata(source, context)

        assert "noise" in names(metadata)
        assert metadata.imported == {"noise": {"PATH": "noise.png"}}
        assert [inp.name for inp in metadata.image_inputs] == ["noise"]

    def test_imported_list_form(self, make_isf, context):
        source = make_isf("void main() {}", imported=[{"NAME": "lut", "PATH": "lut.png"}])
        metadata, _ = extract_metadata(source, context)
        assert [inp.name for inp in metadata.image_inputs] == ["lut"]

    def test_passes(self, make_isf, context):
        source = make_isf(
            "void main() {}",
            passes=[
                {"TARGET": "trail", "PERSISTENT": True, "FLOAT": True, "WIDTH": "$WIDTH/2"},
                {},
            ],
        )
        metadata, _ = extract_metadata(source, context)

        first, second = metadata.passes
        assert first.target == "trail"
        assert first.persistent and first.float
        assert first.width == "$WIDTH/2"
        assert first.height == "$HEIGHT"
        assert second.target is None
        assert not second.implicit

    def test_no_passes_gives_implicit_pass(self, make_isf, context):
        metadata, _ = extract_metadata(make_isf("void main() {}"), context)
        assert len(metadata.passes) == 1
        assert metadata.passes[0].implicit


class TestShaderType:
    @pytest.mark.parametrize(
        "inputs,expected",
        [
            ([], "generator"),
            ([{"NAME": "inputImage", "TYPE": "image"}], "filter"),
            (
                [
                    {"NAME": "startImage", "TYPE": "image"},
                    {"NAME": "endImage", "TYPE": "image"},
                    {"NAME": "progress", "TYPE": "float"},
                ],
                "transition",
            ),
            (
                [
                    {"NAME": "startImage", "TYPE": "image"},
                    {"NAME": "endImage", "TYPE": "image"},
                    {"NAME": "progress", "TYPE": "bool"},
                ],
                "generator",
            ),
        ],
    )
    def test_classification(self, make_isf, context, inputs, expected):
        metadata, _ = extract_metadata(make_isf("void main() {}", inputs), context)
        assert metadata.shader_type == expected
