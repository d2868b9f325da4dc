"""Tests for individual rewrite passes and the records they leave behind."""

import pytest

from isf2wgsl.compiler.emitter import emit
from isf2wgsl.compiler.nodes import Block, DoWhile, Switch, Ternary, While, walk
from isf2wgsl.compiler.passes import PIPELINE
from isf2wgsl.compiler.passes.identifiers import safe_identifier
from isf2wgsl.compiler.passes.parameters import lower_parameters
from isf2wgsl.compiler.passes.swizzles import expand_swizzle_aliases
from isf2wgsl.compiler.passes.ternary import lower_ternaries

IMAGE_INPUT = [{"NAME": "inputImage", "TYPE": "image"}]


def test_pipeline_order():
    assert [name for name, _ in PIPELINE] == [
        "declarations",
        "swizzles",
        "overloads",
        "builtins",
        "textures",
        "semantics",
        "promotion",
        "ternary",
        "control_flow",
        "swizzle_assign",
        "parameters",
        "identifiers",
        "entry_point",
        "module_scope",
    ]


@pytest.mark.parametrize(
    "name,expected",
    [
        ("color", "color"),
        ("target", "_target_"),
        ("filter", "_filter_"),
        ("__x", "_x"),
        ("__", "__"),
        ("size", "size"),
        ("location", "location"),
        ("vertex", "vertex"),
    ],
)
def test_safe_identifier(name, expected):
    assert safe_identifier(name) == expected


class TestTernary:
    def test_no_ternary_left(self, run_passes):
        unit, _ = run_passes(
            "void main() { float a = 1.0; float v = a > 0.5 ? (a > 0.7 ? 1.0 : 0.7) : 0.0; }",
            "ternary",
        )
        assert not any(isinstance(node, Ternary) for node in walk(unit))

    def test_lowering_is_idempotent(self, run_passes):
        unit, context = run_passes("void main() { float v = true ? 1.0 : 0.0; }", "ternary")
        once = emit(unit)
        assert emit(lower_ternaries(unit, context)) == once


class TestSwizzleAliases:
    def test_stpq_rewritten(self, run_passes):
        unit, _ = run_passes("void main() { vec4 c = vec4(1.0); vec2 t = c.st; }", "swizzles")
        assert "c.xy" in emit(unit)

    def test_struct_field_named_like_swizzle_kept(self, run_passes):
        unit, _ = run_passes(
            "struct P { float s; };\nvoid main() { P p = P(1.0); float v = p.s; }",
            "swizzles",
        )
        assert "p.s" in emit(unit)

    def test_rewrite_is_idempotent(self, run_passes):
        unit, context = run_passes("void main() { vec4 c = vec4(1.0); float q = c.q; }", "swizzles")
        once = emit(unit)
        assert emit(expand_swizzle_aliases(unit, context)) == once


class TestTextures:
    def test_referenced_images_recorded(self, run_passes):
        _, context = run_passes(
            "void main() { vec4 c = IMG_THIS_PIXEL(inputImage); }", "textures", IMAGE_INPUT
        )
        assert context.referenced_images == {"inputImage"}
        assert context.referenced_passes == set()

    def test_unknown_image_warns(self, run_passes):
        unit, context = run_passes("void main() { vec4 c = IMG_THIS_PIXEL(nothing); }", "textures")
        assert 'Unknown image "nothing" in IMG_THIS_PIXEL' in context.warnings
        assert "IMG_THIS_PIXEL(nothing)" in emit(unit)

    def test_wrong_arity_warns(self, run_passes):
        _, context = run_passes(
            "void main() { vec4 c = IMG_NORM_PIXEL(inputImage); }", "textures", IMAGE_INPUT
        )
        assert "IMG_NORM_PIXEL expects 2 arguments, got 1" in context.warnings


class TestControlFlow:
    def test_do_while_becomes_loop(self, run_passes):
        unit, _ = run_passes(
            "void main() { int i = 0; do { i += 1; } while (i < 3); }", "control_flow"
        )
        assert not any(isinstance(node, DoWhile) for node in walk(unit))

    def test_while_kept(self, run_passes):
        unit, _ = run_passes("void main() { int i = 0; while (i < 3) { i += 1; } }", "control_flow")
        assert any(isinstance(node, While) for node in walk(unit))


class TestParameters:
    def test_mutable_params_recorded(self, run_passes):
        _, context = run_passes(
            "void f(out float a, inout vec2 b, float c) { a = 1.0; b *= 2.0; c = 3.0; }\n"
            "void main() { float a; vec2 b = vec2(0.0); f(a, b, 1.0); }",
            "parameters",
        )
        recorded = {(p.function, p.name, p.qualifier) for p in context.mutable_params}
        assert recorded == {("f", "a", "out"), ("f", "b", "inout"), ("f", "c", "in")}

    def test_pointer_forwarding_is_idempotent(self, run_passes):
        unit, context = run_passes(
            "void inner(out float o) { o = 1.0; }\n"
            "void outer(out float o) { inner(o); }\n"
            "void main() { float x; outer(x); }",
            "parameters",
        )
        once = emit(unit)
        assert "inner(o);" in once
        assert "outer(&x);" in once
        assert emit(lower_parameters(unit, context)) == once


class TestIdentifiers:
    def test_renames_recorded(self, run_passes):
        _, context = run_passes(
            "float filter(float x) { return x; }\nvoid main() { float target = filter(1.0); }",
            "identifiers",
        )
        renamed = {(r.original, r.renamed) for r in context.renamed}
        assert ("filter", "_filter_") in renamed
        assert ("target", "_target_") in renamed


class TestEntryPoint:
    def test_bare_return_returns_frag_color(self, run_passes):
        unit, _ = run_passes(
            "void main() { gl_FragColor = vec4(1.0); if (true) { return; } }", "entry_point"
        )
        wgsl = emit(unit)
        assert "return _isf_fragColor;" in wgsl
        assert "return;" not in wgsl

    def test_helper_without_final_return_gets_zero_value(self, run_passes):
        unit, context = run_passes(
            "float pick(float x) { if (x > 0.5) { return 1.0; } }\n"
            "void main() { gl_FragColor = vec4(pick(0.3)); }",
            "entry_point",
        )
        assert (
            'Function "pick" can end without returning a value, returning a zero value there'
            in context.warnings
        )
        assert "return f32();" in emit(unit)

    def test_helper_returning_on_every_path_untouched(self, run_passes):
        unit, context = run_passes(
            "float pick(float x) { if (x > 0.5) { return 1.0; } else { return 0.0; } }\n"
            "void main() { gl_FragColor = vec4(pick(0.3)); }",
            "entry_point",
        )
        assert context.warnings == []
        assert "f32()" not in emit(unit)

    def test_missing_entry_point_warns(self, run_passes):
        _, context = run_passes("float f() { return 1.0; }", "entry_point")
        assert (
            "No main or mainImage function found, no fragment entry point emitted"
            in context.warnings
        )


class TestTextureSize:
    def test_texture_size_lowered(self, run_passes):
        unit, context = run_passes(
            "void main() { ivec2 s = textureSize(inputImage, 0); }", "textures", IMAGE_INPUT
        )
        assert "vec2<i32>(textureDimensions(tex_inputImage))" in emit(unit)
        assert context.referenced_images == {"inputImage"}


class TestSemantics:
    def test_scalar_dot_becomes_product(self, run_passes):
        unit, _ = run_passes(
            "void main() { float a = 2.0; float d = dot(a, 3.0); vec2 v = vec2(1.0); float e = dot(v, v); }",
            "semantics",
        )
        wgsl = emit(unit)
        assert "var d: f32 = a * 3.0;" in wgsl
        assert "var e: f32 = dot(v, v);" in wgsl


class TestSwitchLowering:
    SOURCE = (
        "void main() { int m = 1; float c = 0.0; "
        "switch (m) { case 0: c = 0.25; break; default: c = 1.0; } }"
    )

    def test_case_bodies_are_blocks(self, run_passes):
        unit, _ = run_passes(self.SOURCE, "control_flow")
        switch = next(node for node in walk(unit) if isinstance(node, Switch))
        assert all(isinstance(stmt, Block) for case in switch.cases for stmt in case.body)

    def test_switch_emits(self, run_passes):
        unit, _ = run_passes(self.SOURCE, "control_flow")
        wgsl = emit(unit)
        assert "case 0: {" in wgsl
        assert "c = 0.25;" in wgsl
        assert "default: {" in wgsl
        assert "break;" not in wgsl
