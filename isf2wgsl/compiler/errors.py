"""
Exceptions raised during ISF to WGSL compilation.

Only fatal conditions are exceptions. Everything recoverable is recorded as a
warning on the compilation context instead.
"""


class CompilationError(Exception):
    """Fatal error that aborts a compilation.

    The compiler never returns partial output: once this is raised, the caller
    gets the single descriptive message and nothing else.

    Examples:
        >>> raise CompilationError("Failed to parse ISF JSON: Expecting value")
        CompilationError: Failed to parse ISF JSON: Expecting value
    """

    def __init__(
        self, message: str, line: int | None = None, column: int | None = None
    ):
        """Initialize the exception with a message and optional source position.

        Args:
            message: The error message
            line: 1-based line in the preprocessed shader body, if known
            column: 1-based column, if known
        """
        self.message = message
        self.line = line
        self.column = column

        location_info = ""
        if line is not None:
            location_info = f" at line {line}"
            if column is not None:
                location_info += f", column {column}"

        super().__init__(f"{message}{location_info}")


class GLSLSyntaxError(CompilationError):
    """The shader body could not be tokenized or parsed."""
