"""Macro preprocessor.

WGSL has no preprocessor, so every directive is consumed here: macros are
registered and expanded to a fixed point, simple conditionals are evaluated,
and everything else is deleted with a warning.
"""

import re

from loguru import logger

from isf2wgsl.compiler.constants import (
    GLSL_TO_WGSL_TYPES,
    MAX_MACRO_PASSES,
    SILENT_DIRECTIVES,
    STORAGE_QUALIFIERS,
)
from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.models import MacroDef

_COMMENT_RE = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)
_DIRECTIVE_RE = re.compile(r"^\s*#\s*(\w*)(.*)$")
_DEFINE_RE = re.compile(r"^(\w+)(\(([^)]*)\))?(?:\s+(.*?))?\s*$")
_IDENT_RE = re.compile(r"[A-Za-z_]\w*")
_TOKEN_RE = re.compile(r"\d+\.?\d*|\.\d+|[A-Za-z_]\w*|\S")
_ASSIGNMENT_RE = re.compile(r"(?<![=!<>])=(?!=)")
_PASTE_RE = re.compile(r"\s*##\s*")

STATEMENT_WORDS = {
    "if", "else", "for", "while", "do", "return", "switch", "case",
    "default", "break", "continue", "discard", "struct", "void",
} | STORAGE_QUALIFIERS | set(GLSL_TO_WGSL_TYPES)


def strip_comments(text: str) -> str:
    """Blank out comments, keeping the line structure intact."""

    def blank(match: re.Match[str]) -> str:
        return " " + "\n" * match.group().count("\n")

    return _COMMENT_RE.sub(blank, text)


def join_continuations(text: str) -> list[str]:
    """Join backslash-continued lines, padding with blanks to keep line numbers."""
    lines = text.split("\n")
    result: list[str] = []
    pending = ""
    pending_count = 0
    for line in lines:
        if line.rstrip().endswith("\\"):
            pending += line.rstrip()[:-1] + " "
            pending_count += 1
            continue
        result.append(pending + line)
        result.extend([""] * pending_count)
        pending = ""
        pending_count = 0
    if pending:
        result.append(pending)
        result.extend([""] * (pending_count - 1))
    return result


def _is_single_token(text: str) -> bool:
    return len(_TOKEN_RE.findall(text)) <= 1


def _is_expression_shaped(body: str) -> bool:
    if re.search(r"[;{}]", body) or _ASSIGNMENT_RE.search(body):
        return False
    first = _IDENT_RE.match(body.strip())
    return not (first and first.group() in STATEMENT_WORDS)


def _wrap(text: str) -> str:
    """Parenthesize multi-token expression text so operators cannot regroup."""
    text = text.strip()
    if not text or _is_single_token(text) or not _is_expression_shaped(text):
        return text
    return f"({text})"


def _find_closing_paren(text: str, start: int) -> int:
    """Index of the parenthesis closing the one at `start`, or -1."""
    depth = 0
    for i in range(start, len(text)):
        char = text[i]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return i
    return -1


def split_arguments(text: str) -> list[str]:
    """Split a call's argument text at top-level commas."""
    args: list[str] = []
    depth = 0
    current: list[str] = []
    for char in text:
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        if char == "," and depth == 0:
            args.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    args.append("".join(current).strip())
    if args == [""]:
        return []
    return args


def _substitute_params(macro: MacroDef, args: list[str]) -> str:
    assert macro.params is not None
    values = dict(zip(macro.params, args))

    def replace(match: re.Match[str]) -> str:
        word = match.group()
        if word in values:
            return _wrap(values[word])
        return word

    body = _IDENT_RE.sub(replace, macro.body)
    return _PASTE_RE.sub("", body)


def _expand_once(text: str, context: CompilationContext) -> str:
    """Run one expansion sweep over the text."""
    out: list[str] = []
    pos = 0
    for match in _IDENT_RE.finditer(text):
        if match.start() < pos:
            continue
        name = match.group()
        start, end = match.span()
        if start > 0 and (text[start - 1].isalnum() or text[start - 1] == "_"):
            continue

        function_macro = context.function_macros.get(name)
        if function_macro is not None:
            rest = text[end:]
            stripped = rest.lstrip()
            if stripped.startswith("("):
                open_index = end + (len(rest) - len(stripped))
                close_index = _find_closing_paren(text, open_index)
                if close_index < 0:
                    context.warn(f'Unterminated call to macro "{name}" left unexpanded')
                    continue
                args = split_arguments(text[open_index + 1 : close_index])
                params = function_macro.params or []
                if len(args) != len(params):
                    context.warn(
                        f'Macro "{name}" expects {len(params)} arguments, got '
                        f"{len(args)}; call left unexpanded"
                    )
                    continue
                replacement = _wrap(_substitute_params(function_macro, args))
                out.append(text[pos:start])
                out.append(replacement)
                pos = close_index + 1
                continue

        object_macro = context.object_macros.get(name)
        if object_macro is not None:
            out.append(text[pos:start])
            out.append(_wrap(object_macro.body))
            pos = end

    out.append(text[pos:])
    return "".join(out)


def expand_macros(text: str, context: CompilationContext, max_passes: int = MAX_MACRO_PASSES) -> str:
    """Expand registered macros until the text stops changing.

    Never raises: malformed calls are left in place with a warning.
    """
    if not context.object_macros and not context.function_macros:
        return text
    for iteration in range(max_passes):
        expanded = _expand_once(text, context)
        if expanded == text:
            logger.debug(f"Macro expansion converged after {iteration} passes")
            return text
        text = expanded
    context.warn(f"Macro expansion did not converge after {max_passes} passes")
    return text


# ====================
# Conditional directives
# ====================

_CONDITION_TOKEN_RE = re.compile(r"\s*(0[xX][0-9a-fA-F]+|\d+|&&|\|\||==|!=|<=|>=|<<|>>|[A-Za-z_]\w*|[-+*/%<>!~()&|^])")

_CONDITION_PRECEDENCE = {
    "||": 1, "&&": 2, "|": 3, "^": 4, "&": 5, "==": 6, "!=": 6,
    "<": 7, ">": 7, "<=": 7, ">=": 7, "<<": 8, ">>": 8,
    "+": 9, "-": 9, "*": 10, "/": 10, "%": 10,
}


class _ConditionEvaluator:
    """Integer expression evaluator for #if conditions."""

    def __init__(self, tokens: list[str]):
        self.tokens = tokens
        self.pos = 0

    def _peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _take(self) -> str:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def evaluate(self) -> int:
        value = self._binary(1)
        if self._peek() is not None:
            raise ValueError(f"unexpected token {self._peek()!r}")
        return value

    def _binary(self, min_precedence: int) -> int:
        left = self._unary()
        while True:
            op = self._peek()
            precedence = _CONDITION_PRECEDENCE.get(op or "")
            if precedence is None or precedence < min_precedence:
                return left
            self._take()
            right = self._binary(precedence + 1)
            left = _apply(op, left, right)

    def _unary(self) -> int:
        token = self._peek()
        if token in ("!", "-", "+", "~"):
            self._take()
            value = self._unary()
            return {"!": int(not value), "-": -value, "+": value, "~": ~value}[token]
        if token == "(":
            self._take()
            value = self._binary(1)
            if self._take() != ")":
                raise ValueError("missing ')'")
            return value
        if token is None:
            raise ValueError("unexpected end of condition")
        self._take()
        return int(token, 0)


def _apply(op: str, left: int, right: int) -> int:
    match op:
        case "||":
            return int(bool(left) or bool(right))
        case "&&":
            return int(bool(left) and bool(right))
        case "|":
            return left | right
        case "^":
            return left ^ right
        case "&":
            return left & right
        case "==":
            return int(left == right)
        case "!=":
            return int(left != right)
        case "<":
            return int(left < right)
        case ">":
            return int(left > right)
        case "<=":
            return int(left <= right)
        case ">=":
            return int(left >= right)
        case "<<":
            return left << right
        case ">>":
            return left >> right
        case "+":
            return left + right
        case "-":
            return left - right
        case "*":
            return left * right
        case "/":
            return int(left / right)
        case _:
            return left % right


def evaluate_condition(expression: str, context: CompilationContext) -> bool | None:
    """Evaluate an #if/#elif condition.

    Undefined identifiers count as 0, as in C. Returns None when the
    condition uses something that is not an integer expression.
    """
    text = re.sub(
        r"defined\s*\(\s*(\w+)\s*\)|defined\s+(\w+)",
        lambda m: "1" if _is_defined(m.group(1) or m.group(2), context) else "0",
        expression,
    )

    for _ in range(MAX_MACRO_PASSES):
        def replace(match: re.Match[str]) -> str:
            macro = context.object_macros.get(match.group())
            return f"({macro.body})" if macro is not None and macro.body else match.group()

        substituted = _IDENT_RE.sub(replace, text)
        if substituted == text:
            break
        text = substituted

    tokens: list[str] = []
    pos = 0
    text = text.strip()
    while pos < len(text):
        match = _CONDITION_TOKEN_RE.match(text, pos)
        if match is None:
            return None
        tokens.append(match.group(1))
        pos = match.end()
        while pos < len(text) and text[pos].isspace():
            pos += 1

    if any(t in context.function_macros for t in tokens):
        return None
    tokens = ["0" if _IDENT_RE.fullmatch(t) else t for t in tokens]
    try:
        return bool(_ConditionEvaluator(tokens).evaluate())
    except (ValueError, ZeroDivisionError, IndexError):
        return None


def _is_defined(name: str, context: CompilationContext) -> bool:
    return name in context.object_macros or name in context.function_macros


class _Conditional:
    """State of one open #if group."""

    def __init__(self, parent_active: bool, condition: bool | None):
        self.parent_active = parent_active
        self.evaluable = condition is not None
        self.taken = condition is True
        self.active = condition is not False

    def branch(self, condition: bool | None) -> None:
        """Enter an #elif (condition given) or #else (condition True)."""
        if not self.evaluable:
            self.active = True
            return
        if self.taken:
            self.active = False
            return
        if condition is None:
            self.evaluable = False
            self.active = True
            return
        self.active = condition
        self.taken = condition


# ====================
# Driver
# ====================


def register_define(text: str, context: CompilationContext) -> None:
    """Register the macro of a `#define` directive (text after `define`)."""
    match = _DEFINE_RE.match(text.strip())
    if match is None:
        context.warn(f"Malformed #define ignored: #define {text.strip()}")
        return

    name, params_group, params_text, body = match.groups()
    body = (body or "").strip()

    if params_group is not None:
        params = [p.strip() for p in params_text.split(",") if p.strip()]
        context.function_macros[name] = MacroDef(name, body, params)
        context.object_macros.pop(name, None)
        return

    declared = context.inputs.get(name)
    if declared is not None and not declared.is_image:
        context.warn(f'Macro "{name}" conflicts with declared input, using the input')
        return
    context.object_macros[name] = MacroDef(name, body)
    context.function_macros.pop(name, None)


def process_directives(text: str, context: CompilationContext) -> str:
    """Consume every directive line, returning the remaining code.

    Deleted lines are replaced by blank lines so that line numbers of the
    remaining code match the original body.
    """
    output: list[str] = []
    stack: list[_Conditional] = []

    def active() -> bool:
        return all(frame.active and frame.parent_active for frame in stack)

    for line in join_continuations(text):
        match = _DIRECTIVE_RE.match(line)
        if match is None:
            output.append(line if active() else "")
            continue

        output.append("")
        directive, rest = match.group(1), match.group(2).strip()
        shown = line.strip()

        match directive:
            case "if" | "ifdef" | "ifndef":
                if not active():
                    stack.append(_Conditional(False, False))
                    continue
                if directive == "ifdef":
                    condition: bool | None = _is_defined(rest.split()[0], context) if rest else None
                elif directive == "ifndef":
                    condition = not _is_defined(rest.split()[0], context) if rest else None
                else:
                    condition = evaluate_condition(rest, context)
                stack.append(_Conditional(True, condition))
                _warn_conditional(shown, condition, context)
            case "elif" | "else":
                if not stack:
                    context.warn(f"Preprocessor directive removed: {shown} (no matching #if)")
                    continue
                frame = stack[-1]
                if not frame.parent_active:
                    continue
                condition = evaluate_condition(rest, context) if directive == "elif" else True
                frame.branch(condition)
                _warn_conditional(shown, condition if directive == "elif" else None, context)
            case "endif":
                if not stack:
                    context.warn(f"Preprocessor directive removed: {shown} (no matching #if)")
                    continue
                frame = stack.pop()
                if frame.parent_active:
                    context.warn(f"Preprocessor directive removed: {shown}")
            case _ if not active():
                continue
            case "define":
                register_define(rest, context)
            case "undef":
                name = rest.split()[0] if rest else ""
                context.object_macros.pop(name, None)
                context.function_macros.pop(name, None)
            case _ if directive in SILENT_DIRECTIVES:
                logger.debug(f"Dropped directive: {shown}")
            case _:
                context.warn(f"Preprocessor directive removed: {shown}")

    if stack:
        context.warn(f"{len(stack)} unterminated #if group(s) at end of shader")
    return "\n".join(output)


def _warn_conditional(shown: str, condition: bool | None, context: CompilationContext) -> None:
    if condition is None:
        context.warn(f"Preprocessor directive removed: {shown} (kept all branches)")
    else:
        context.warn(f"Preprocessor directive removed: {shown} (evaluated {str(condition).lower()})")


def preprocess(body: str, context: CompilationContext) -> str:
    """Run the macro preprocessor over a shader body.

    Args:
        body: GLSL code without the ISF header
        context: Compilation context holding the declared inputs

    Returns:
        Code with no directives and all macros expanded
    """
    text = strip_comments(body)
    text = process_directives(text, context)
    text = expand_macros(text, context, context.options.max_macro_passes)
    logger.debug(
        f"Preprocessed body: {len(context.object_macros)} object-like and "
        f"{len(context.function_macros)} function-like macros"
    )
    return text
