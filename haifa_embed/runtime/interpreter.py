from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence, Tuple

from .ast import (
    Assignment,
    BinaryOp,
    Block,
    BooleanLiteral,
    BreakStmt,
    CallExpr,
    DoStmt,
    Expr,
    ExprStmt,
    ForGenericStmt,
    ForNumericStmt,
    FunctionExpr,
    FunctionStmt,
    Identifier,
    IfStmt,
    IndexExpr,
    LocalFunctionStmt,
    LocalStmt,
    MethodCallExpr,
    NilLiteral,
    NumberLiteral,
    ParenExpr,
    RepeatStmt,
    ReturnStmt,
    Stmt,
    StringLiteral,
    TableConstructor,
    UnaryOp,
    VarargExpr,
    WhileStmt,
)
from .errors import LuaError, OperandError
from .objects import CallInfo, LuaClosure, Scope, is_truthy, type_name
from .parser import LuaParser
from .table import LuaTable

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .state import LuaState

ENV_NAME = "_ENV"

BREAK = object()


class _Return:
    __slots__ = ("values",)

    def __init__(self, values: List[Any]) -> None:
        self.values = values


_COMPARISONS = {"==", "~=", "<", "<=", ">", ">="}


class Interpreter:
    """Evaluates parsed chunks directly on the AST.

    Locals live in chained :class:`Scope` objects, globals go through the
    ``_ENV`` upvalue of the chunk, and ``break``/``return`` travel back up the
    statement loop as signals.
    """

    def __init__(self, state: "LuaState") -> None:
        self.state = state
        self._statements: Dict[type, Callable[[Any, Scope, CallInfo], Any]] = {
            Assignment: self._exec_assignment,
            ExprStmt: self._exec_expr_stmt,
            IfStmt: self._exec_if,
            WhileStmt: self._exec_while,
            RepeatStmt: self._exec_repeat,
            DoStmt: self._exec_do,
            BreakStmt: self._exec_break,
            ForNumericStmt: self._exec_numeric_for,
            ForGenericStmt: self._exec_generic_for,
            ReturnStmt: self._exec_return,
            FunctionStmt: self._exec_function_stmt,
        }
        self._expressions: Dict[type, Callable[[Any, Scope, CallInfo], Any]] = {
            NumberLiteral: lambda expr, scope, frame: expr.value,
            StringLiteral: lambda expr, scope, frame: expr.value,
            BooleanLiteral: lambda expr, scope, frame: expr.value,
            NilLiteral: lambda expr, scope, frame: None,
            VarargExpr: self._eval_vararg,
            Identifier: self._eval_identifier,
            ParenExpr: lambda expr, scope, frame: self._eval(expr.inner, scope, frame),
            BinaryOp: self._eval_binary,
            UnaryOp: self._eval_unary,
            IndexExpr: self._eval_index,
            CallExpr: self._eval_call_single,
            MethodCallExpr: self._eval_call_single,
            TableConstructor: self._eval_table,
            FunctionExpr: self._eval_function,
        }

    # ------------------------------------------------------------ entry points
    def load(self, source: str, chunkname: str, env: Any) -> LuaClosure:  # noqa: ANN401 - _ENV value
        chunk = LuaParser.parse(source, chunkname)
        root = Scope()
        root.vars[ENV_NAME] = env
        return LuaClosure([], True, chunk.body, root, name="main chunk", source=chunkname, line=0)

    def call(self, closure: LuaClosure, args: Sequence[Any]) -> List[Any]:
        state = self.state
        params = closure.params
        scope = Scope(closure.scope, varargs=list(args[len(params):]) if closure.is_vararg else [])
        for position, name in enumerate(params):
            scope.vars[name] = args[position] if position < len(args) else None
        frame = CallInfo(closure.name, closure.source, closure.line, scope)
        state.frames.append(frame)
        try:
            signal, _ = self._run(closure.body, scope, frame)
        finally:
            state.frames.pop()
        if isinstance(signal, _Return):
            return signal.values
        return []

    # ------------------------------------------------------------ statements
    def _run(self, block: Block, scope: Scope, frame: CallInfo) -> Tuple[Any, Scope]:
        """Execute ``block`` in ``scope``; returns the signal and the innermost scope."""
        for stmt in block.statements:
            frame.line = stmt.line
            kind = type(stmt)
            if kind is LocalStmt:
                scope = self._exec_local(stmt, scope, frame)
                continue
            if kind is LocalFunctionStmt:
                scope = self._exec_local_function(stmt, scope, frame)
                continue
            signal = self._statements[kind](stmt, scope, frame)
            if signal is not None:
                return signal, scope
        return None, scope

    def _run_nested(self, block: Block, scope: Scope, frame: CallInfo) -> Any:  # noqa: ANN401 - signal
        inner = Scope(scope)
        frame.scope = inner
        try:
            signal, _ = self._run(block, inner, frame)
        finally:
            frame.scope = scope
        return signal

    @staticmethod
    def _declare(scope: Scope, frame: CallInfo) -> Scope:
        # closures created earlier in the block must not see later locals
        scope = Scope(scope)
        frame.scope = scope
        return scope

    def _exec_local(self, stmt: LocalStmt, scope: Scope, frame: CallInfo) -> Scope:
        values = self._eval_list(stmt.values, scope, frame)
        scope = self._declare(scope, frame)
        for position, name in enumerate(stmt.names):
            scope.vars[name] = values[position] if position < len(values) else None
        return scope

    def _exec_local_function(self, stmt: LocalFunctionStmt, scope: Scope, frame: CallInfo) -> Scope:
        scope = self._declare(scope, frame)
        scope.vars[stmt.name] = None
        scope.vars[stmt.name] = self._eval_function(stmt.func, scope, frame)
        return scope

    def _exec_assignment(self, stmt: Assignment, scope: Scope, frame: CallInfo) -> None:
        places = []
        hidden = frame.hidden
        mark = len(hidden)
        try:
            for target in stmt.targets:
                if isinstance(target, IndexExpr):
                    obj = self._eval(target.table, scope, frame)
                    hidden.append(obj)
                    key = self._eval(target.index, scope, frame)
                    hidden.append(key)
                    places.append((target, obj, key))
                else:
                    places.append((target, None, None))
            values = self._eval_list(stmt.values, scope, frame)
            hidden.extend(values)
            for position, (target, obj, key) in enumerate(places):
                value = values[position] if position < len(values) else None
                if isinstance(target, IndexExpr):
                    self._store_index(target, obj, key, value, scope, frame)
                else:
                    self._store_name(target.name, value, scope)
        finally:
            del hidden[mark:]

    def _store_name(self, name: str, value: Any, scope: Scope) -> None:  # noqa: ANN401
        owner = scope.resolve(name)
        if owner is not None:
            owner.vars[name] = value
            return
        self.state.set_index(self._env(scope), name, value)

    def _store_index(self, target: IndexExpr, obj: Any, key: Any, value: Any, scope: Scope, frame: CallInfo) -> None:  # noqa: ANN401
        if not isinstance(obj, LuaTable) and self.state.metafield(obj, "__newindex") is None:
            raise self._error(f"attempt to index a {type_name(obj)} value{self._describe(target.table, scope)}")
        self.state.set_index(obj, key, value)

    def _exec_expr_stmt(self, stmt: ExprStmt, scope: Scope, frame: CallInfo) -> None:
        self._eval_call(stmt.expr, scope, frame)

    def _exec_if(self, stmt: IfStmt, scope: Scope, frame: CallInfo) -> Any:  # noqa: ANN401 - signal
        if is_truthy(self._eval(stmt.condition, scope, frame)):
            return self._run_nested(stmt.then_branch, scope, frame)
        for clause in stmt.elseif_branches:
            if is_truthy(self._eval(clause.condition, scope, frame)):
                return self._run_nested(clause.body, scope, frame)
        if stmt.else_branch is not None:
            return self._run_nested(stmt.else_branch, scope, frame)
        return None

    def _exec_while(self, stmt: WhileStmt, scope: Scope, frame: CallInfo) -> Any:  # noqa: ANN401
        while is_truthy(self._eval(stmt.condition, scope, frame)):
            signal = self._run_nested(stmt.body, scope, frame)
            if signal is BREAK:
                break
            if signal is not None:
                return signal
        return None

    def _exec_repeat(self, stmt: RepeatStmt, scope: Scope, frame: CallInfo) -> Any:  # noqa: ANN401
        while True:
            inner = Scope(scope)
            frame.scope = inner
            try:
                signal, inner = self._run(stmt.body, inner, frame)
                if signal is BREAK:
                    return None
                if signal is not None:
                    return signal
                # the condition sees the body's locals
                if is_truthy(self._eval(stmt.condition, inner, frame)):
                    return None
            finally:
                frame.scope = scope

    def _exec_do(self, stmt: DoStmt, scope: Scope, frame: CallInfo) -> Any:  # noqa: ANN401
        return self._run_nested(stmt.body, scope, frame)

    @staticmethod
    def _exec_break(stmt: BreakStmt, scope: Scope, frame: CallInfo) -> Any:  # noqa: ANN401
        return BREAK

    def _exec_numeric_for(self, stmt: ForNumericStmt, scope: Scope, frame: CallInfo) -> Any:  # noqa: ANN401
        start = self._for_number(stmt.start, "initial", scope, frame)
        limit = self._for_number(stmt.limit, "limit", scope, frame)
        step = 1 if stmt.step is None else self._for_number(stmt.step, "step", scope, frame)
        if step == 0:
            raise self._error("'for' step is zero")
        if isinstance(start, int) and isinstance(step, int):
            if isinstance(limit, float):
                if math.isnan(limit):
                    return None
                if math.isinf(limit):
                    limit = (1 << 63) - 1 if limit > 0 else -(1 << 63)
                else:
                    limit = math.floor(limit) if step > 0 else math.ceil(limit)
            values = range(start, limit + (1 if step > 0 else -1), step)
        else:
            values = self._float_range(float(start), float(limit), float(step))
        for value in values:
            body_scope = Scope(scope)
            body_scope.vars[stmt.var] = value
            frame.scope = body_scope
            try:
                signal, _ = self._run(stmt.body, body_scope, frame)
            finally:
                frame.scope = scope
            if signal is BREAK:
                break
            if signal is not None:
                return signal
        return None

    @staticmethod
    def _float_range(start: float, limit: float, step: float):
        value = start
        while (step > 0 and value <= limit) or (step < 0 and value >= limit):
            yield value
            value += step

    def _for_number(self, expr: Expr, what: str, scope: Scope, frame: CallInfo) -> Any:  # noqa: ANN401
        value = self._eval(expr, scope, frame)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise self._error(f"'for' {what} value must be a number")
        return value

    def _exec_generic_for(self, stmt: ForGenericStmt, scope: Scope, frame: CallInfo) -> Any:  # noqa: ANN401
        values = self._eval_list(stmt.iter_exprs, scope, frame)
        values.extend([None] * (3 - len(values)))
        generator, invariant, control = values[:3]
        # hidden loop state lives in its own scope so the collector sees it
        loop_scope = Scope(scope)
        loop_scope.vars["(for generator)"] = generator
        loop_scope.vars["(for state)"] = invariant
        loop_scope.vars["(for control)"] = control
        frame.scope = loop_scope
        try:
            while True:
                if not self.state.is_callable(generator):
                    raise self._error(f"attempt to call a {type_name(generator)} value")
                frame.line = stmt.line
                results = self.state.call_value(generator, [invariant, control])
                if not results or results[0] is None:
                    return None
                control = results[0]
                loop_scope.vars["(for control)"] = control
                body_scope = Scope(loop_scope)
                for position, name in enumerate(stmt.names):
                    body_scope.vars[name] = results[position] if position < len(results) else None
                frame.scope = body_scope
                signal, _ = self._run(stmt.body, body_scope, frame)
                frame.scope = loop_scope
                if signal is BREAK:
                    return None
                if signal is not None:
                    return signal
        finally:
            frame.scope = scope

    def _exec_return(self, stmt: ReturnStmt, scope: Scope, frame: CallInfo) -> _Return:
        return _Return(self._eval_list(stmt.values, scope, frame))

    def _exec_function_stmt(self, stmt: FunctionStmt, scope: Scope, frame: CallInfo) -> None:
        closure = self._eval_function(stmt.func, scope, frame)
        target = stmt.target
        if isinstance(target, Identifier):
            self._store_name(target.name, closure, scope)
            return
        hidden = frame.hidden
        mark = len(hidden)
        try:
            obj = self._eval(target.table, scope, frame)
            hidden.append(obj)
            key = self._eval(target.index, scope, frame)
            hidden.append(key)
            self._store_index(target, obj, key, closure, scope, frame)
        finally:
            del hidden[mark:]

    # ----------------------------------------------------------- expressions
    def _eval(self, expr: Expr, scope: Scope, frame: CallInfo) -> Any:  # noqa: ANN401
        return self._expressions[type(expr)](expr, scope, frame)

    def _eval_multi(self, expr: Expr, scope: Scope, frame: CallInfo) -> List[Any]:
        if isinstance(expr, (CallExpr, MethodCallExpr)):
            return self._eval_call(expr, scope, frame)
        if isinstance(expr, VarargExpr):
            return list(scope.varargs or [])
        return [self._eval(expr, scope, frame)]

    def _eval_list(self, exprs: Sequence[Expr], scope: Scope, frame: CallInfo) -> List[Any]:
        if not exprs:
            return []
        # values evaluated so far stay reachable while the rest run
        hidden = frame.hidden
        mark = len(hidden)
        try:
            for expr in exprs[:-1]:
                hidden.append(self._eval(expr, scope, frame))
            hidden.extend(self._eval_multi(exprs[-1], scope, frame))
            return hidden[mark:]
        finally:
            del hidden[mark:]

    def _env(self, scope: Scope) -> Any:  # noqa: ANN401
        owner = scope.resolve(ENV_NAME)
        return owner.vars[ENV_NAME] if owner is not None else self.state.globals

    def _eval_vararg(self, expr: VarargExpr, scope: Scope, frame: CallInfo) -> Any:  # noqa: ANN401
        varargs = scope.varargs
        return varargs[0] if varargs else None

    def _eval_identifier(self, expr: Identifier, scope: Scope, frame: CallInfo) -> Any:  # noqa: ANN401
        owner = scope.resolve(expr.name)
        if owner is not None:
            return owner.vars[expr.name]
        return self.state.index(self._env(scope), expr.name)

    def _eval_index(self, expr: IndexExpr, scope: Scope, frame: CallInfo) -> Any:  # noqa: ANN401
        obj = self._eval(expr.table, scope, frame)
        hidden = frame.hidden
        hidden.append(obj)
        try:
            key = self._eval(expr.index, scope, frame)
        finally:
            hidden.pop()
        return self._index(obj, key, expr.table, scope)

    def _index(self, obj: Any, key: Any, node: Expr, scope: Scope) -> Any:  # noqa: ANN401
        if not isinstance(obj, LuaTable) and self.state.metafield(obj, "__index") is None:
            raise self._error(f"attempt to index a {type_name(obj)} value{self._describe(node, scope)}")
        return self.state.index(obj, key)

    def _eval_binary(self, expr: BinaryOp, scope: Scope, frame: CallInfo) -> Any:  # noqa: ANN401
        op = expr.op
        if op == "and":
            left = self._eval(expr.left, scope, frame)
            return self._eval(expr.right, scope, frame) if is_truthy(left) else left
        if op == "or":
            left = self._eval(expr.left, scope, frame)
            return left if is_truthy(left) else self._eval(expr.right, scope, frame)
        left = self._eval(expr.left, scope, frame)
        hidden = frame.hidden
        hidden.append(left)
        try:
            right = self._eval(expr.right, scope, frame)
        finally:
            hidden.pop()
        state = self.state
        if op in _COMPARISONS:
            if op == "==":
                return state.equals(left, right)
            if op == "~=":
                return not state.equals(left, right)
            if op == "<":
                return state.less_than(left, right)
            if op == "<=":
                return state.less_equal(left, right)
            if op == ">":
                return state.less_than(right, left)
            return state.less_equal(right, left)
        try:
            if op == "..":
                return state.concat_values(left, right)
            return state.arith(op, left, right)
        except LuaError as exc:
            raise self._operand_error(exc, (expr.left, expr.right), scope) from None

    def _eval_unary(self, expr: UnaryOp, scope: Scope, frame: CallInfo) -> Any:  # noqa: ANN401
        operand = self._eval(expr.operand, scope, frame)
        op = expr.op
        if op == "not":
            return not is_truthy(operand)
        try:
            if op == "#":
                return self.state.length(operand)
            return self.state.arith("unm" if op == "-" else "bnot", operand, operand)
        except LuaError as exc:
            raise self._operand_error(exc, (expr.operand, expr.operand), scope) from None

    def _operand_error(self, exc: LuaError, operands: Tuple[Expr, Expr], scope: Scope) -> LuaError:
        if not isinstance(exc, OperandError):
            return exc
        return self._error(f"{exc.value}{self._describe(operands[exc.index], scope)}")

    def _eval_call_single(self, expr: Expr, scope: Scope, frame: CallInfo) -> Any:  # noqa: ANN401
        results = self._eval_call(expr, scope, frame)
        return results[0] if results else None

    def _eval_call(self, expr: Expr, scope: Scope, frame: CallInfo) -> List[Any]:
        state = self.state
        hidden = frame.hidden
        mark = len(hidden)
        try:
            if isinstance(expr, MethodCallExpr):
                receiver = self._eval(expr.receiver, scope, frame)
                hidden.append(receiver)
                func = self._index(receiver, expr.method, expr.receiver, scope)
                hidden.append(func)
                args = [receiver, *self._eval_list(expr.args, scope, frame)]
                description = f" (method '{expr.method}')"
            else:
                func = self._eval(expr.callee, scope, frame)
                hidden.append(func)
                args = self._eval_list(expr.args, scope, frame)
                description = self._describe(expr.callee, scope)
            hidden.extend(args)
            frame.line = expr.line
            if not state.is_callable(func):
                raise self._error(f"attempt to call a {type_name(func)} value{description}")
            return state.call_value(func, args)
        finally:
            del hidden[mark:]

    def _eval_table(self, expr: TableConstructor, scope: Scope, frame: CallInfo) -> LuaTable:
        table = LuaTable()
        fields = expr.fields
        position = 1
        hidden = frame.hidden
        hidden.append(table)
        try:
            for number, field in enumerate(fields):
                if field.key is not None:
                    key = self._eval(field.key, scope, frame)
                    if key is None:
                        raise self._error("table index is nil")
                    hidden.append(key)
                    try:
                        table.raw_set(key, self._eval(field.value, scope, frame))
                    finally:
                        hidden.pop()
                    continue
                if number == len(fields) - 1:
                    values = self._eval_multi(field.value, scope, frame)
                else:
                    values = [self._eval(field.value, scope, frame)]
                for value in values:
                    table.raw_set(position, value)
                    position += 1
        finally:
            hidden.pop()
        return table

    def _eval_function(self, expr: FunctionExpr, scope: Scope, frame: CallInfo) -> LuaClosure:
        return LuaClosure(
            expr.params,
            expr.vararg,
            expr.body,
            scope,
            name=expr.name,
            source=frame.source,
            line=expr.line,
        )

    # ---------------------------------------------------------------- errors
    def _error(self, message: str) -> LuaError:
        return self.state.runtime_error(message)

    @staticmethod
    def _describe(node: Expr, scope: Scope) -> str:
        if isinstance(node, Identifier):
            if scope.resolve(node.name) is not None:
                return f" (local '{node.name}')"
            return f" (global '{node.name}')"
        if isinstance(node, IndexExpr) and isinstance(node.index, StringLiteral):
            return f" (field '{node.index.value}')"
        if isinstance(node, StringLiteral):
            return f" (constant '{node.value}')"
        return ""


__all__ = ["Interpreter", "ENV_NAME"]
