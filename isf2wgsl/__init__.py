from isf2wgsl.compiler import (
    VERTEX_SHADER,
    CompilationError,
    CompilerOptions,
    CompilerOutput,
    GLSLSyntaxError,
    ISFCompiler,
    compile_isf,
)

__version__ = "0.1.0"


__all__ = [
    "VERTEX_SHADER",
    "CompilationError",
    "CompilerOptions",
    "CompilerOutput",
    "GLSLSyntaxError",
    "ISFCompiler",
    "compile_isf",
]
