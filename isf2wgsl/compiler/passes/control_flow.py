"""Control-flow lowering.

WGSL requires braces around every body, has no fall-through between switch
cases and no `do`/`while` loop. This pass:

- wraps single-statement bodies in blocks
- groups switch cases and drops their trailing `break`
- turns `do { } while (c)` into `loop { } continuing { break if !c; }`
- turns `for` loops whose header WGSL cannot express into `loop`
"""

from typing import Any

from isf2wgsl.compiler.context import CompilationContext
from isf2wgsl.compiler.nodes import (
    Assign,
    Block,
    Break,
    BreakIf,
    Continue,
    Discard,
    DoWhile,
    Expr,
    ExprStmt,
    For,
    If,
    Loop,
    Return,
    Stmt,
    Switch,
    SwitchCase,
    TranslationUnit,
    Unary,
    While,
)
from isf2wgsl.compiler.visitor import Transformer

TERMINATORS = (Break, Return, Continue, Discard)


def as_block(stmt: Stmt | None) -> Block:
    if stmt is None:
        return Block()
    if isinstance(stmt, Block):
        return stmt
    return Block([stmt])


def negate(cond: Expr) -> Expr:
    if isinstance(cond, Unary) and cond.op == "!":
        return cond.operand
    return Unary("!", cond)


class ControlFlowLowering(Transformer):
    def visit_If(self, node: If) -> Any:
        self.generic_visit(node)
        node.then = as_block(node.then)
        if node.otherwise is not None and not isinstance(node.otherwise, If):
            node.otherwise = as_block(node.otherwise)
        return node

    def visit_While(self, node: While) -> Any:
        self.generic_visit(node)
        node.body = as_block(node.body)
        return node

    def visit_DoWhile(self, node: DoWhile) -> Any:
        self.generic_visit(node)
        return Loop(as_block(node.body), Block([BreakIf(negate(node.cond))]))

    def visit_For(self, node: For) -> Any:
        super().visit_For(node)
        node.body = as_block(node.body)

        hoisted: list[Stmt] = []
        if isinstance(node.init, Block):
            hoisted = node.init.body
            node.init = None

        update_ok = len(node.update) <= 1 and all(
            isinstance(s, (Assign, ExprStmt)) for s in node.update
        )
        if update_ok:
            if hoisted:
                return Block(hoisted + [node])
            return node

        # WGSL allows one update statement; the rest move to `continuing`
        body = list(node.body.body)
        if node.cond is not None:
            body.insert(0, If(negate(node.cond), Block([Break()])))
        loop = Loop(Block(body), Block(list(node.update)))
        init = [node.init] if node.init is not None else []
        return Block(hoisted + init + [loop])

    def visit_Switch(self, node: Switch) -> Any:
        super().visit_Switch(node)
        if node.grouped:
            return node

        cases: list[SwitchCase] = []
        pending: list[Expr | None] = []
        for case in node.cases:
            pending.extend(case.labels)
            if not case.body:
                continue
            cases.append(SwitchCase(pending, case.body))
            pending = []
        if pending:
            cases.append(SwitchCase(pending, []))

        for index, case in enumerate(cases):
            body = case.body
            if len(body) == 1 and isinstance(body[0], Block):
                body = body[0].body
            if body and isinstance(body[-1], Break):
                body = body[:-1]
            elif body and not isinstance(body[-1], TERMINATORS) and index < len(cases) - 1:
                self.context.warn(
                    "Switch case falls through to the next case; WGSL cases do not "
                    "fall through, the next case's code no longer runs"
                )
            case.body = [Block(body)] if body else []

        if not any(None in case.labels for case in cases):
            cases.append(SwitchCase([None], []))
        node.cases = cases
        node.grouped = True
        return node


def lower_control_flow(unit: TranslationUnit, context: CompilationContext) -> TranslationUnit:
    return ControlFlowLowering(context).transform(unit)
