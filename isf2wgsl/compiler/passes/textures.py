"""Texture-sampling lowering.

ISF image macros and GLSL texture functions become WGSL texture builtins on
the `tex_<name>`/`samp_<name>` pair bound for each image or pass buffer.
`sampler2D` parameters of helper functions become such a pair as well.
"""

from typing import Any

from loguru import logger

from isf2wgsl.compiler.constants import (
    IMAGE_MACROS,
    INPUT_VAR,
    SAMPLER_PREFIX,
    TEXTURE_PREFIX,
)
from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.nodes import (
    Call,
    Expr,
    FunctionDef,
    Literal,
    Member,
    Name,
    Param,
    TranslationUnit,
    TypeSpec,
)
from isf2wgsl.compiler.visitor import Transformer

SAMPLER_TYPES = {"sampler2D", "sampler2DRect"}
TEXTURE_TYPE = "texture_2d<f32>"
SAMPLER_TYPE = "sampler"


def texture_pair(name: str) -> tuple[Name, Name]:
    return Name(f"{TEXTURE_PREFIX}{name}"), Name(f"{SAMPLER_PREFIX}{name}")


def _sample(name: str, uv: Expr) -> Call:
    texture, sampler = texture_pair(name)
    return Call("textureSampleLevel", [texture, sampler, uv, Literal("0.0", "float")])


def _load(name: str, coord: Expr) -> Call:
    texture, _ = texture_pair(name)
    return Call("textureLoad", [texture, Call("ivec2", [coord]), Literal("0", "int")])


def _size(name: str) -> Call:
    texture, _ = texture_pair(name)
    return Call("vec2", [Call("textureDimensions", [texture])])


def _texel_size(name: str) -> Call:
    texture, _ = texture_pair(name)
    return Call("ivec2", [Call("textureDimensions", [texture])])


class TextureLowering(Transformer):
    def __init__(self, context: CompilationContext):
        super().__init__(context)
        # function name -> (indices of its sampler parameters, original arity)
        self.sampler_params: dict[str, tuple[list[int], int]] = {}
        self.local_samplers: set[str] = set()

    def visit_TranslationUnit(self, node: TranslationUnit) -> TranslationUnit:
        for function in node.functions():
            indices = [
                i for i, p in enumerate(function.params)
                if p.type.name in SAMPLER_TYPES and not p.type.is_array
            ]
            if indices:
                self.sampler_params[function.name] = (indices, len(function.params))
        return super().visit_TranslationUnit(node)

    def visit_FunctionDef(self, node: FunctionDef) -> Any:
        if node.name in self.sampler_params:
            params: list[Param] = []
            for param in node.params:
                if param.type.name in SAMPLER_TYPES and not param.type.is_array:
                    texture, sampler = texture_pair(param.name)
                    params.append(Param(texture.name, TypeSpec(TEXTURE_TYPE)))
                    params.append(Param(sampler.name, TypeSpec(SAMPLER_TYPE)))
                    self.local_samplers.add(param.name)
                else:
                    params.append(param)
            node.params = params
            super().visit_FunctionDef(node)
            self.local_samplers = set()
            return node
        return super().visit_FunctionDef(node)

    def _image_name(self, expr: Expr) -> str | None:
        """Resolve the image argument of a sampling call."""
        if not isinstance(expr, Name):
            return None
        name = expr.name
        if name in self.local_samplers and not self.is_declared(name):
            return name
        if name in self.context.pass_names:
            self.context.referenced_passes.add(name)
            return name
        if name in self.context.image_names:
            self.context.referenced_images.add(name)
            return name
        return None

    def _lower_image_call(self, node: Call) -> Expr:
        low, high = IMAGE_MACROS[node.func]
        if not low <= len(node.args) <= high:
            self.context.warn(
                f"{node.func} expects {low}-{high} arguments, got {len(node.args)}"
                if low != high
                else f"{node.func} expects {low} arguments, got {len(node.args)}"
            )
            return node

        name = self._image_name(node.args[0])
        if name is None:
            shown = node.args[0].name if isinstance(node.args[0], Name) else "expression"
            self.context.warn(f'Unknown image "{shown}" in {node.func}')
            return node

        match node.func:
            case "IMG_NORM_PIXEL" | "texture2D" | "texture":
                # the optional bias argument has no counterpart at a fixed level
                return _sample(name, node.args[1])
            case "IMG_THIS_PIXEL" | "IMG_THIS_NORM_PIXEL":
                return _sample(name, Member(Name(INPUT_VAR), "uv"))
            case "IMG_PIXEL" | "texture2DRect":
                return _load(name, node.args[1])
            case "textureSize":
                # ISF images have a single mip level
                return _texel_size(name)
            case _:
                return _size(name)

    def _expand_sampler_args(self, node: Call) -> None:
        indices, arity = self.sampler_params[node.func]
        if len(node.args) != arity:
            return
        args: list[Expr] = []
        for i, arg in enumerate(node.args):
            if i in indices:
                name = self._image_name(arg)
                if name is None:
                    self.context.warn(f'Unknown image argument to "{node.func}"')
                    return
                args.extend(texture_pair(name))
            else:
                args.append(arg)
        node.args = args

    def visit_Call(self, node: Call) -> Any:
        self.generic_visit(node)
        if node.func in IMAGE_MACROS:
            return self._lower_image_call(node)
        if node.func in self.sampler_params:
            self._expand_sampler_args(node)
        return node


def lower_textures(unit: TranslationUnit, context: CompilationContext) -> TranslationUnit:
    unit = TextureLowering(context).transform(unit)
    logger.debug(
        f"Sampled images: {sorted(context.referenced_images)}, "
        f"passes: {sorted(context.referenced_passes)}"
    )
    return unit
