"""Syntax tree produced by :class:`~haifa_embed.runtime.parser.LuaParser`.

Nodes compare by identity (``eq=False``) so they can key caches and be put in
sets. Every node records the source line and column of its first token; the
interpreter copies the line into the running frame for error positions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

node = dataclass(eq=False)


@node
class Node:
    line: int
    column: int


class Expr(Node):
    pass


class Stmt(Node):
    pass


# -------------------------------------------------------------- expressions
@node
class Literal(Expr):
    value: Any


class NumberLiteral(Literal):
    value: Union[int, float]


class StringLiteral(Literal):
    value: str


class BooleanLiteral(Literal):
    value: bool


class NilLiteral(Expr):
    pass


class VarargExpr(Expr):
    """``...``: every extra argument in call position, the first one elsewhere."""


@node
class Identifier(Expr):
    name: str


@node
class BinaryOp(Expr):
    left: Expr
    op: str
    right: Expr


@node
class UnaryOp(Expr):
    op: str
    operand: Expr


@node
class ParenExpr(Expr):
    """Parenthesised expression; truncates multiple results to one."""

    inner: Expr


@node
class CallExpr(Expr):
    callee: Expr
    args: List[Expr]


@node
class MethodCallExpr(Expr):
    receiver: Expr
    method: str
    args: List[Expr]


@node
class IndexExpr(Expr):
    table: Expr
    index: Expr


@dataclass(eq=False)
class TableField:
    """``[key] = value``, ``name = value`` (key is a string literal) or a positional ``value``."""

    value: Expr
    key: Optional[Expr] = None


@node
class TableConstructor(Expr):
    fields: List[TableField]


@node
class FunctionExpr(Expr):
    params: List[str]
    vararg: bool
    body: "Block"
    name: str = "anonymous"


# --------------------------------------------------------------- statements
@node
class LocalStmt(Stmt):
    names: List[str]
    values: List[Expr]


@node
class LocalFunctionStmt(Stmt):
    name: str
    func: FunctionExpr


@node
class Assignment(Stmt):
    targets: List[Expr]
    values: List[Expr]


@dataclass(eq=False)
class ElseIfClause:
    condition: Expr
    body: "Block"


@node
class IfStmt(Stmt):
    condition: Expr
    then_branch: "Block"
    elseif_branches: List[ElseIfClause] = field(default_factory=list)
    else_branch: Optional["Block"] = None


@node
class WhileStmt(Stmt):
    condition: Expr
    body: "Block"


@node
class RepeatStmt(Stmt):
    """``repeat body until condition``; the condition sees the body's locals."""

    body: "Block"
    condition: Expr


@node
class DoStmt(Stmt):
    body: "Block"


class BreakStmt(Stmt):
    pass


@node
class ForNumericStmt(Stmt):
    var: str
    start: Expr
    limit: Expr
    step: Optional[Expr]
    body: "Block"


@node
class ForGenericStmt(Stmt):
    names: List[str]
    iter_exprs: List[Expr]
    body: "Block"


@node
class ReturnStmt(Stmt):
    values: List[Expr]


@node
class FunctionStmt(Stmt):
    """``function a.b.c:m() end``: ``target`` is the assignable path."""

    target: Expr
    func: FunctionExpr
    is_method: bool = False


@node
class ExprStmt(Stmt):
    expr: Expr


@dataclass(eq=False)
class Block:
    statements: List[Stmt] = field(default_factory=list)


@dataclass(eq=False)
class Chunk:
    body: Block
    name: str = "?"


__all__ = [
    "Assignment",
    "BinaryOp",
    "Block",
    "BooleanLiteral",
    "BreakStmt",
    "CallExpr",
    "Chunk",
    "DoStmt",
    "ElseIfClause",
    "Expr",
    "ExprStmt",
    "ForGenericStmt",
    "ForNumericStmt",
    "FunctionExpr",
    "FunctionStmt",
    "Identifier",
    "IfStmt",
    "IndexExpr",
    "Literal",
    "LocalFunctionStmt",
    "LocalStmt",
    "MethodCallExpr",
    "NilLiteral",
    "Node",
    "NumberLiteral",
    "ParenExpr",
    "RepeatStmt",
    "ReturnStmt",
    "Stmt",
    "StringLiteral",
    "TableConstructor",
    "TableField",
    "UnaryOp",
    "VarargExpr",
    "WhileStmt",
]
