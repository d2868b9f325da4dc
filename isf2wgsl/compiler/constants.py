"""
Constants and lookup tables for the ISF to WGSL compiler.

This module holds the type mappings, the uniform layout tables, the built-in
identifier substitutions and the WGSL reserved word list used throughout the
compiler.
"""

# GLSL type name -> WGSL type name
GLSL_TO_WGSL_TYPES: dict[str, str] = {
    "float": "f32",
    "int": "i32",
    "uint": "u32",
    "bool": "bool",
    "vec2": "vec2<f32>",
    "vec3": "vec3<f32>",
    "vec4": "vec4<f32>",
    "ivec2": "vec2<i32>",
    "ivec3": "vec3<i32>",
    "ivec4": "vec4<i32>",
    "uvec2": "vec2<u32>",
    "uvec3": "vec3<u32>",
    "uvec4": "vec4<u32>",
    "bvec2": "vec2<bool>",
    "bvec3": "vec3<bool>",
    "bvec4": "vec4<bool>",
    "mat2": "mat2x2<f32>",
    "mat3": "mat3x3<f32>",
    "mat4": "mat4x4<f32>",
    "mat2x2": "mat2x2<f32>",
    "mat2x3": "mat2x3<f32>",
    "mat2x4": "mat2x4<f32>",
    "mat3x2": "mat3x2<f32>",
    "mat3x3": "mat3x3<f32>",
    "mat3x4": "mat3x4<f32>",
    "mat4x2": "mat4x2<f32>",
    "mat4x3": "mat4x3<f32>",
    "mat4x4": "mat4x4<f32>",
    "sampler2D": "texture_2d<f32>",
    "sampler2DRect": "texture_2d<f32>",
    "samplerCube": "texture_cube<f32>",
}

SCALAR_TYPES = {"float", "int", "uint", "bool"}

# Vector prefix -> scalar component type
VECTOR_ELEMENT_TYPE: dict[str, str] = {
    "vec": "float",
    "ivec": "int",
    "uvec": "uint",
    "bvec": "bool",
}

# Scalar component type -> vector prefix
SCALAR_TO_VECTOR_PREFIX: dict[str, str] = {
    scalar: prefix for prefix, scalar in VECTOR_ELEMENT_TYPE.items()
}

# Qualifiers that may precede a declaration
STORAGE_QUALIFIERS = {
    "const",
    "uniform",
    "varying",
    "attribute",
    "in",
    "out",
    "inout",
    "flat",
    "smooth",
    "noperspective",
    "centroid",
    "invariant",
    "highp",
    "mediump",
    "lowp",
}

PRECISION_QUALIFIERS = {"highp", "mediump", "lowp"}

# Global qualifiers that have no WGSL module-scope counterpart
INTERFACE_QUALIFIERS = {"uniform", "varying", "attribute", "in", "out"}

SWIZZLE_SETS = ("xyzw", "rgba", "stpq")
MAX_SWIZZLE_LENGTH = 4

# ISF input TYPE (lowercased) -> (WGSL type, size, alignment)
ISF_TYPE_LAYOUT: dict[str, tuple[str, int, int]] = {
    "float": ("f32", 4, 4),
    "int": ("f32", 4, 4),
    "long": ("f32", 4, 4),
    "bool": ("f32", 4, 4),
    "event": ("f32", 4, 4),
    "point2d": ("vec2<f32>", 8, 8),
    "color": ("vec4<f32>", 16, 16),
}

# WGSL type -> (size, alignment) in the uniform address space
WGSL_TYPE_LAYOUT: dict[str, tuple[int, int]] = {
    "f32": (4, 4),
    "vec2<f32>": (8, 8),
    "vec3<f32>": (12, 16),
    "vec4<f32>": (16, 16),
}

# WGSL uniform member type -> GLSL type seen by the rewrite passes
WGSL_TO_GLSL_TYPES: dict[str, str] = {
    "f32": "float",
    "vec2<f32>": "vec2",
    "vec3<f32>": "vec3",
    "vec4<f32>": "vec4",
}

# Fixed prefix of the uniform buffer, always present at the same offsets
STANDARD_UNIFORMS: list[tuple[str, str]] = [
    ("time", "f32"),
    ("timeDelta", "f32"),
    ("renderSize", "vec2<f32>"),
    ("passIndex", "f32"),
    ("frameIndex", "f32"),
    ("layerOpacity", "f32"),
    ("speed", "f32"),
    ("date", "vec4<f32>"),
]

UNIFORM_BUFFER_ALIGNMENT = 16

# Host-side playback speed control added to every shader that lacks one
SPEED_INPUT: dict[str, object] = {
    "NAME": "BUILTIN_SPEED",
    "TYPE": "float",
    "DEFAULT": 1.0,
    "MIN": 0.0,
    "MAX": 5.0,
    "LABEL": "Speed",
}

# Source built-ins -> replacement expression, written in the GLSL subset the
# parser understands. Only applied to identifiers the shader never declares.
BUILTIN_IDENTIFIERS: dict[str, str] = {
    "TIME": "uniforms.time",
    "TIMEDELTA": "uniforms.timeDelta",
    "RENDERSIZE": "uniforms.renderSize",
    "PASSINDEX": "int(uniforms.passIndex)",
    "FRAMEINDEX": "int(uniforms.frameIndex)",
    "DATE": "uniforms.date",
    "isf_FragNormCoord": "input.uv",
    "vv_FragNormCoord": "input.uv",
    "isf_FragCoord": "(input.uv * uniforms.renderSize)",
    "vv_FragCoord": "(input.uv * uniforms.renderSize)",
    "gl_FragCoord": "vec4(input.uv * uniforms.renderSize, 0.0, 1.0)",
    "gl_FragColor": "_isf_fragColor",
    "fragColor": "_isf_fragColor",
    "fragCoord": "(input.uv * uniforms.renderSize)",
    "texCoord": "input.uv",
    "texcoord": "input.uv",
    "vUv": "input.uv",
    "v_uv": "input.uv",
    "iTime": "uniforms.time",
    "iTimeDelta": "uniforms.timeDelta",
    "iResolution": "vec3(uniforms.renderSize, 1.0)",
    "iFrame": "int(uniforms.frameIndex)",
    "iDate": "uniforms.date",
    "time": "uniforms.time",
    "resolution": "uniforms.renderSize",
}

# GLSL type of each built-in identifier, for inference before substitution
BUILTIN_IDENTIFIER_TYPES: dict[str, str] = {
    "TIME": "float",
    "TIMEDELTA": "float",
    "RENDERSIZE": "vec2",
    "PASSINDEX": "int",
    "FRAMEINDEX": "int",
    "DATE": "vec4",
    "isf_FragNormCoord": "vec2",
    "vv_FragNormCoord": "vec2",
    "isf_FragCoord": "vec2",
    "vv_FragCoord": "vec2",
    "gl_FragCoord": "vec4",
    "gl_FragColor": "vec4",
    "fragColor": "vec4",
    "fragCoord": "vec2",
    "texCoord": "vec2",
    "texcoord": "vec2",
    "vUv": "vec2",
    "v_uv": "vec2",
    "iTime": "float",
    "iTimeDelta": "float",
    "iResolution": "vec3",
    "iFrame": "int",
    "iDate": "vec4",
    "time": "float",
    "resolution": "vec2",
}

FRAG_COLOR_NAME = "_isf_fragColor"
ENTRY_POINT_NAME = "fs_main"
VERTEX_OUTPUT_STRUCT = "VertexOutput"
UNIFORMS_STRUCT = "Uniforms"
UNIFORMS_VAR = "uniforms"
INPUT_VAR = "input"
TEXTURE_PREFIX = "tex_"
SAMPLER_PREFIX = "samp_"

# Struct fields exposed to type inference for generated names
VERTEX_OUTPUT_FIELDS: dict[str, str] = {"position": "vec4", "uv": "vec2"}

# ISF texture macros -> (minimum args, maximum args)
IMAGE_MACROS: dict[str, tuple[int, int]] = {
    "IMG_NORM_PIXEL": (2, 2),
    "IMG_PIXEL": (2, 2),
    "IMG_THIS_PIXEL": (1, 1),
    "IMG_THIS_NORM_PIXEL": (1, 1),
    "IMG_SIZE": (1, 1),
    "texture2D": (2, 3),
    "texture": (2, 3),
    "texture2DRect": (2, 2),
    "textureSize": (1, 2),
}

# GLSL built-in function -> WGSL name (arity-independent renames)
BUILTIN_FUNCTION_RENAMES: dict[str, str] = {
    "inversesqrt": "inverseSqrt",
    "dFdx": "dpdx",
    "dFdy": "dpdy",
    "faceforward": "faceForward",
    "roundEven": "round",
}

# Component-wise comparison functions -> binary operator
COMPARISON_FUNCTIONS: dict[str, str] = {
    "lessThan": "<",
    "lessThanEqual": "<=",
    "greaterThan": ">",
    "greaterThanEqual": ">=",
    "equal": "==",
    "notEqual": "!=",
}

# Functions whose scalar arguments must match the vector arity in WGSL
PROMOTABLE_FUNCTIONS = {"clamp", "min", "max", "smoothstep", "step"}

# Built-in functions whose result has the type of their first argument
SAME_TYPE_FUNCTIONS = {
    "abs", "sign", "floor", "ceil", "fract", "trunc", "round", "roundEven",
    "sin", "cos", "tan", "asin", "acos", "atan", "atan2", "sinh", "cosh",
    "tanh", "asinh", "acosh", "atanh", "radians", "degrees", "exp", "exp2",
    "log", "log2", "sqrt", "inversesqrt", "inverseSqrt", "normalize", "mod",
    "min", "max", "clamp", "mix", "pow", "reflect", "refract", "faceforward",
    "faceForward", "dFdx", "dFdy", "fwidth", "dpdx", "dpdy", "saturate",
    "transpose", "inverse", "not", "select", "glsl_mod", "matrixCompMult",
}

# Built-in functions whose result has the type of their last argument
LAST_ARG_TYPE_FUNCTIONS = {"step", "smoothstep"}

FIXED_RESULT_FUNCTIONS: dict[str, str] = {
    "length": "float",
    "distance": "float",
    "dot": "float",
    "determinant": "float",
    "cross": "vec3",
    "any": "bool",
    "all": "bool",
    "texture2D": "vec4",
    "texture": "vec4",
    "texture2DRect": "vec4",
    "textureSample": "vec4",
    "textureSampleLevel": "vec4",
    "textureLoad": "vec4",
    "IMG_NORM_PIXEL": "vec4",
    "IMG_PIXEL": "vec4",
    "IMG_THIS_PIXEL": "vec4",
    "IMG_THIS_NORM_PIXEL": "vec4",
    "IMG_SIZE": "vec2",
    "textureSize": "ivec2",
    "textureDimensions": "uvec2",
}

# Directives dropped without a warning
SILENT_DIRECTIVES = {"version", "extension"}

# Directives evaluated by the preprocessor
CONDITIONAL_DIRECTIVES = {"if", "ifdef", "ifndef", "elif", "else", "endif"}

MAX_MACRO_PASSES = 8

RESERVED_PREFIX = "_"
RESERVED_SUFFIX = "_"
UNIFORM_RESERVED_PREFIX = "isf_"

# WGSL keywords, reserved words, builtins the compiler emits, and generated
# names. Declared user identifiers in this set are renamed.
WGSL_RESERVED_WORDS = frozenset(
    {
        # keywords
        "alias", "break", "case", "const", "const_assert", "continue",
        "continuing", "default", "diagnostic", "discard", "else", "enable",
        "false", "fn", "for", "if", "let", "loop", "override", "requires",
        "return", "struct", "switch", "true", "var", "while",
        # types
        "array", "atomic", "bool", "f16", "f32", "i32", "u32", "ptr",
        "sampler", "sampler_comparison", "texture", "texture_1d",
        "texture_2d", "texture_2d_array", "texture_3d", "texture_cube",
        "texture_cube_array", "texture_multisampled_2d",
        "texture_storage_2d", "texture_depth_2d",
        "vec2", "vec3", "vec4", "vec2f", "vec3f", "vec4f", "vec2i", "vec3i",
        "vec4i", "vec2u", "vec3u", "vec4u",
        "mat2x2", "mat2x3", "mat2x4", "mat3x2", "mat3x3", "mat3x4", "mat4x2",
        "mat4x3", "mat4x4",
        # address spaces
        "function", "private", "workgroup", "uniform", "storage",
        "push_constant",
        # reserved words
        "NULL", "Self", "abstract", "active", "alignas", "alignof", "as",
        "asm", "async", "attribute", "auto", "await", "become", "cast",
        "catch", "class", "co_await", "co_return", "co_yield", "coherent",
        "column_major", "common", "compile", "concept", "const_cast",
        "consteval", "constexpr", "constinit", "crate", "debugger",
        "decltype", "delete", "demote", "do", "dynamic_cast", "enum",
        "explicit", "export", "extends", "extern", "external", "fallthrough",
        "filter", "final", "finally", "friend", "from", "fxgroup", "get",
        "goto", "groupshared", "highp", "impl", "implements", "import",
        "inline", "instanceof", "interface", "layout", "lowp", "macro",
        "match", "mediump", "meta", "mod", "module", "move", "mut",
        "mutable", "namespace", "new", "nil", "noexcept", "noinline",
        "nointerpolation", "noperspective", "null", "nullptr", "of",
        "operator", "package", "packoffset", "partition", "pass", "patch",
        "pixelfragment", "precise", "precision", "premerge", "priv",
        "protected", "pub", "public", "readonly", "ref", "regardless",
        "register", "reinterpret_cast", "require", "resource", "restrict",
        "self", "set", "shared", "sizeof", "smooth", "snorm", "static",
        "static_assert", "static_cast", "std", "subroutine", "super",
        "target", "template", "this", "thread_local", "throw", "trait",
        "try", "type", "typedef", "typeid", "typename", "typeof", "union",
        "unless", "unorm", "unsafe", "unsized", "use", "using", "varying",
        "virtual", "volatile", "wgsl", "where", "with", "writeonly", "yield",
        "sample", "bitcast",
        # builtins emitted by the compiler
        "select", "atan2", "inverseSqrt", "dpdx", "dpdy", "faceForward",
        "textureSample", "textureSampleLevel", "textureLoad",
        "textureDimensions",
        # generated names
        "input", "uniforms", "Uniforms", "VertexOutput", "fs_main", "vs_main",
        "glsl_mod", "fract_f32", "fract_vec2", "fract_vec3", "fract_vec4",
    }
)

# Helper library appended to every fragment module
HELPER_FUNCTIONS = """\
fn fract_f32(x: f32) -> f32 {
    return x - floor(x);
}

fn fract_vec2(x: vec2<f32>) -> vec2<f32> {
    return x - floor(x);
}

fn fract_vec3(x: vec3<f32>) -> vec3<f32> {
    return x - floor(x);
}

fn fract_vec4(x: vec4<f32>) -> vec4<f32> {
    return x - floor(x);
}

fn glsl_mod(x: f32, y: f32) -> f32 {
    return x - y * floor(x / y);
}

fn glsl_mod_vec2(x: vec2<f32>, y: vec2<f32>) -> vec2<f32> {
    return x - y * floor(x / y);
}

fn glsl_mod_vec3(x: vec3<f32>, y: vec3<f32>) -> vec3<f32> {
    return x - y * floor(x / y);
}

fn glsl_mod_vec4(x: vec4<f32>, y: vec4<f32>) -> vec4<f32> {
    return x - y * floor(x / y);
}

fn lessThan_vec2(a: vec2<f32>, b: vec2<f32>) -> vec2<bool> {
    return a < b;
}

fn lessThan_vec3(a: vec3<f32>, b: vec3<f32>) -> vec3<bool> {
    return a < b;
}

fn greaterThan_vec2(a: vec2<f32>, b: vec2<f32>) -> vec2<bool> {
    return a > b;
}

fn greaterThan_vec3(a: vec3<f32>, b: vec3<f32>) -> vec3<bool> {
    return a > b;
}
"""

VERTEX_OUTPUT_DECL = """\
struct VertexOutput {
    @builtin(position) position: vec4<f32>,
    @location(0) uv: vec2<f32>,
}
"""

VERTEX_SHADER = VERTEX_OUTPUT_DECL + """
@vertex
fn vs_main(@builtin(vertex_index) vertex_index: u32) -> VertexOutput {
    var positions = array<vec2<f32>, 3>(
        vec2<f32>(-1.0, -1.0),
        vec2<f32>(3.0, -1.0),
        vec2<f32>(-1.0, 3.0),
    );
    var uvs = array<vec2<f32>, 3>(
        vec2<f32>(0.0, 1.0),
        vec2<f32>(2.0, 1.0),
        vec2<f32>(0.0, -1.0),
    );
    var output: VertexOutput;
    output.position = vec4<f32>(positions[vertex_index], 0.0, 1.0);
    output.uv = uvs[vertex_index];
    return output;
}
"""
