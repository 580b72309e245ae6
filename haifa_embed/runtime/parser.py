from __future__ import annotations

from typing import List, Optional, Tuple

from .ast import (
    Assignment,
    BinaryOp,
    Block,
    BooleanLiteral,
    BreakStmt,
    CallExpr,
    Chunk,
    DoStmt,
    ElseIfClause,
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
    TableField,
    UnaryOp,
    VarargExpr,
    WhileStmt,
)
from .errors import LuaSyntaxError
from .lexer import LuaLexer, Token
from .objects import str_to_number

# (left, right) binding power, as in the reference grammar
BINARY_PRIORITY = {
    "or": (1, 1),
    "and": (2, 2),
    "<": (3, 3),
    ">": (3, 3),
    "<=": (3, 3),
    ">=": (3, 3),
    "~=": (3, 3),
    "==": (3, 3),
    "|": (4, 4),
    "~": (5, 5),
    "&": (6, 6),
    "<<": (7, 7),
    ">>": (7, 7),
    "..": (9, 8),
    "+": (10, 10),
    "-": (10, 10),
    "*": (11, 11),
    "/": (11, 11),
    "//": (11, 11),
    "%": (11, 11),
    "^": (14, 13),
}
UNARY_PRIORITY = 12

BLOCK_END = {"return", "end", "else", "elseif", "until", "EOF"}


class ParserError(LuaSyntaxError):
    pass


class LuaParser:
    def __init__(self, tokens: List[Token], chunkname: str = "?"):
        self.tokens = tokens
        self.chunkname = chunkname
        self.pos = 0
        self._loop_depth = 0

    @classmethod
    def parse(cls, source: str, chunkname: str = "?") -> Chunk:
        lexer = LuaLexer(source, chunkname)
        tokens = lexer.tokenize()
        parser = cls(tokens, chunkname)
        return parser._parse_chunk()

    # ------------------------------------------------------------------
    def _current(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        token = self._current()
        if token.kind != "EOF":
            self.pos += 1
        return token

    def _peek_kind(self, offset: int = 1) -> str:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return "EOF"
        return self.tokens[idx].kind

    def _check_op(self, symbol: str) -> bool:
        token = self._current()
        return token.kind == "OP" and token.value == symbol

    def _match(self, *kinds: str) -> Optional[Token]:
        if self._current().kind in kinds:
            return self._advance()
        return None

    def _error(self, message: str, token: Optional[Token] = None) -> ParserError:
        token = token or self._current()
        return ParserError(f"{self.chunkname}:{token.line}: {message} near '{token.value}'")

    def _expect(self, kind: str, opener: Optional[Token] = None) -> Token:
        token = self._current()
        if token.kind != kind:
            if opener is not None and opener.line != token.line:
                raise self._error(f"'{kind}' expected (to close '{opener.value}' at line {opener.line})")
            raise self._error(f"'{kind}' expected")
        return self._advance()

    def _expect_op(self, symbol: str) -> Token:
        if not self._check_op(symbol):
            raise self._error(f"'{symbol}' expected")
        return self._advance()

    def _expect_name(self) -> str:
        token = self._current()
        if token.kind != "IDENT":
            raise self._error("<name> expected")
        return self._advance().value

    # ------------------------------------------------------------ statements
    def _parse_chunk(self) -> Chunk:
        body = self._parse_block()
        if self._current().kind != "EOF":
            raise self._error("'<eof>' expected")
        return Chunk(body, self.chunkname)

    def _parse_block(self) -> Block:
        statements: List[Stmt] = []
        while self._current().kind not in BLOCK_END:
            if self._match(";"):
                continue
            statements.append(self._parse_statement())
        if self._current().kind == "return":
            statements.append(self._parse_return())
        return Block(statements)

    def _parse_statement(self) -> Stmt:
        token = self._current()
        kind = token.kind
        if kind == "if":
            return self._parse_if()
        if kind == "while":
            return self._parse_while()
        if kind == "do":
            self._advance()
            body = self._parse_block()
            self._expect("end", token)
            return DoStmt(token.line, token.column, body)
        if kind == "for":
            return self._parse_for()
        if kind == "repeat":
            return self._parse_repeat()
        if kind == "function":
            return self._parse_function_stmt()
        if kind == "local":
            if self._peek_kind(1) == "function":
                return self._parse_local_function()
            return self._parse_local()
        if kind == "break":
            self._advance()
            if self._loop_depth == 0:
                raise self._error("break outside a loop", token)
            return BreakStmt(token.line, token.column)
        if kind == "goto" or (kind == "OP" and token.value == "::"):
            raise self._error("goto statements are not supported", token)
        return self._parse_assignment_or_call()

    def _parse_if(self) -> IfStmt:
        if_tok = self._expect("if")
        condition = self._parse_expression()
        self._expect("then")
        then_block = self._parse_block()
        branches: List[ElseIfClause] = []
        else_block = None
        while self._current().kind == "elseif":
            self._advance()
            branch_condition = self._parse_expression()
            self._expect("then")
            branches.append(ElseIfClause(branch_condition, self._parse_block()))
        if self._match("else"):
            else_block = self._parse_block()
        self._expect("end", if_tok)
        return IfStmt(if_tok.line, if_tok.column, condition, then_block, branches, else_block)

    def _parse_loop_body(self) -> Block:
        self._loop_depth += 1
        try:
            return self._parse_block()
        finally:
            self._loop_depth -= 1

    def _parse_while(self) -> WhileStmt:
        tok = self._expect("while")
        condition = self._parse_expression()
        self._expect("do")
        body = self._parse_loop_body()
        self._expect("end", tok)
        return WhileStmt(tok.line, tok.column, condition, body)

    def _parse_repeat(self) -> RepeatStmt:
        tok = self._expect("repeat")
        body = self._parse_loop_body()
        self._expect("until", tok)
        condition = self._parse_expression()
        return RepeatStmt(tok.line, tok.column, body, condition)

    def _parse_for(self) -> Stmt:
        tok = self._expect("for")
        first = self._expect_name()
        if self._check_op("="):
            self._advance()
            start = self._parse_expression()
            self._expect(",")
            limit = self._parse_expression()
            step = None
            if self._match(","):
                step = self._parse_expression()
            self._expect("do")
            body = self._parse_loop_body()
            self._expect("end", tok)
            return ForNumericStmt(tok.line, tok.column, first, start, limit, step, body)
        names = [first]
        while self._match(","):
            names.append(self._expect_name())
        self._expect("in")
        iter_exprs = self._parse_expression_list()
        self._expect("do")
        body = self._parse_loop_body()
        self._expect("end", tok)
        return ForGenericStmt(tok.line, tok.column, names, iter_exprs, body)

    def _parse_return(self) -> ReturnStmt:
        tok = self._expect("return")
        values: List[Expr] = []
        if self._current().kind not in BLOCK_END and self._current().kind != ";":
            values = self._parse_expression_list()
        self._match(";")
        if self._current().kind not in BLOCK_END - {"return"}:
            raise self._error("'<eof>' expected")
        return ReturnStmt(tok.line, tok.column, values)

    def _parse_function_stmt(self) -> FunctionStmt:
        tok = self._expect("function")
        name_tok = self._current()
        full_name = self._expect_name()
        target: Expr = Identifier(name_tok.line, name_tok.column, full_name)
        is_method = False
        while self._check_op(".") or self._current().kind == ":":
            is_method = self._advance().kind == ":"
            key_tok = self._current()
            key = self._expect_name()
            target = IndexExpr(key_tok.line, key_tok.column, target, StringLiteral(key_tok.line, key_tok.column, key))
            full_name += (":" if is_method else ".") + key
            if is_method:
                break
        func = self._parse_function_body(tok, full_name, is_method)
        return FunctionStmt(tok.line, tok.column, target, func, is_method)

    def _parse_local_function(self) -> LocalFunctionStmt:
        local_tok = self._expect("local")
        tok = self._expect("function")
        name = self._expect_name()
        func = self._parse_function_body(tok, name)
        return LocalFunctionStmt(local_tok.line, local_tok.column, name, func)

    def _parse_local(self) -> LocalStmt:
        tok = self._expect("local")
        names: List[str] = []
        while True:
            names.append(self._expect_name())
            if self._check_op("<"):
                # attributes: only <const> is accepted and treated as a plain local
                self._advance()
                attrib = self._expect_name()
                if attrib != "const":
                    raise self._error(f"unknown attribute '{attrib}'")
                self._expect_op(">")
            if not self._match(","):
                break
        values: List[Expr] = []
        if self._check_op("="):
            self._advance()
            values = self._parse_expression_list()
        return LocalStmt(tok.line, tok.column, names, values)

    def _parse_assignment_or_call(self) -> Stmt:
        expr = self._parse_suffixed_expression()
        if self._check_op("=") or self._current().kind == ",":
            targets: List[Expr] = [expr]
            while self._match(","):
                targets.append(self._parse_suffixed_expression())
            for target in targets:
                if not isinstance(target, (Identifier, IndexExpr)):
                    raise self._error("syntax error")
            self._expect_op("=")
            values = self._parse_expression_list()
            return Assignment(expr.line, expr.column, targets, values)
        if not isinstance(expr, (CallExpr, MethodCallExpr)):
            raise self._error("syntax error")
        return ExprStmt(expr.line, expr.column, expr)

    def _parse_expression_list(self) -> List[Expr]:
        values: List[Expr] = [self._parse_expression()]
        while self._match(","):
            values.append(self._parse_expression())
        return values

    # ------------------------ expression parsing ------------------------- #
    def _parse_expression(self, limit: int = 0) -> Expr:
        token = self._current()
        if token.kind == "not" or (token.kind == "OP" and token.value in {"-", "#", "~"}):
            self._advance()
            operand = self._parse_expression(UNARY_PRIORITY)
            expr = self._fold_unary(token, operand)
        else:
            expr = self._parse_simple_expression()
        while True:
            token = self._current()
            op = token.value if token.kind in {"OP", "and", "or"} else None
            priority = BINARY_PRIORITY.get(op) if op else None
            if priority is None or priority[0] <= limit:
                break
            self._advance()
            right = self._parse_expression(priority[1])
            expr = BinaryOp(token.line, token.column, expr, op, right)
        return expr

    @staticmethod
    def _fold_unary(token: Token, operand: Expr) -> Expr:
        op = token.value
        if op == "-" and isinstance(operand, NumberLiteral):
            return NumberLiteral(token.line, token.column, -operand.value)
        return UnaryOp(token.line, token.column, op, operand)

    def _parse_simple_expression(self) -> Expr:
        token = self._current()
        kind = token.kind
        if kind == "NUMBER":
            self._advance()
            value = str_to_number(token.value)
            if value is None:
                raise self._error("malformed number", token)
            return NumberLiteral(token.line, token.column, value)
        if kind == "STRING":
            self._advance()
            return StringLiteral(token.line, token.column, token.value)
        if kind == "nil":
            self._advance()
            return NilLiteral(token.line, token.column)
        if kind == "true":
            self._advance()
            return BooleanLiteral(token.line, token.column, True)
        if kind == "false":
            self._advance()
            return BooleanLiteral(token.line, token.column, False)
        if kind == "VARARG":
            self._advance()
            return VarargExpr(token.line, token.column)
        if kind == "{":
            return self._parse_table_constructor()
        if kind == "function":
            self._advance()
            return self._parse_function_body(token, "anonymous")
        return self._parse_suffixed_expression()

    def _parse_primary_expression(self) -> Expr:
        token = self._current()
        if token.kind == "IDENT":
            self._advance()
            return Identifier(token.line, token.column, token.value)
        if token.kind == "(":
            self._advance()
            inner = self._parse_expression()
            self._expect(")", token)
            return ParenExpr(token.line, token.column, inner)
        raise self._error("unexpected symbol")

    def _parse_suffixed_expression(self) -> Expr:
        expr = self._parse_primary_expression()
        while True:
            token = self._current()
            if token.kind == "OP" and token.value == ".":
                self._advance()
                name_tok = self._current()
                name = self._expect_name()
                key = StringLiteral(name_tok.line, name_tok.column, name)
                expr = IndexExpr(name_tok.line, name_tok.column, expr, key)
                continue
            if token.kind == "[":
                self._advance()
                index_expr = self._parse_expression()
                self._expect("]")
                expr = IndexExpr(token.line, token.column, expr, index_expr)
                continue
            if token.kind == ":":
                self._advance()
                method = self._expect_name()
                args = self._parse_call_arguments()
                expr = MethodCallExpr(token.line, token.column, expr, method, args)
                continue
            if token.kind in {"(", "STRING", "{"}:
                args = self._parse_call_arguments()
                expr = CallExpr(token.line, token.column, expr, args)
                continue
            break
        return expr

    def _parse_call_arguments(self) -> List[Expr]:
        token = self._current()
        if token.kind == "STRING":
            self._advance()
            return [StringLiteral(token.line, token.column, token.value)]
        if token.kind == "{":
            return [self._parse_table_constructor()]
        self._expect("(")
        args: List[Expr] = []
        if self._current().kind != ")":
            args = self._parse_expression_list()
        self._expect(")", token)
        return args

    def _parse_param_list(self) -> Tuple[List[str], bool]:
        params: List[str] = []
        vararg = False
        opener = self._expect("(")
        if self._current().kind != ")":
            while True:
                if self._match("VARARG"):
                    vararg = True
                    break
                params.append(self._expect_name())
                if not self._match(","):
                    break
        self._expect(")", opener)
        return params, vararg

    def _parse_function_body(self, tok: Token, name: str, is_method: bool = False) -> FunctionExpr:
        params, vararg = self._parse_param_list()
        if is_method:
            params.insert(0, "self")
        saved_depth, self._loop_depth = self._loop_depth, 0
        try:
            body = self._parse_block()
        finally:
            self._loop_depth = saved_depth
        self._expect("end", tok)
        return FunctionExpr(tok.line, tok.column, params, vararg, body, name)

    def _parse_table_constructor(self) -> TableConstructor:
        start = self._expect("{")
        fields: List[TableField] = []
        while self._current().kind != "}":
            if self._current().kind == "[":
                self._advance()
                key_expr = self._parse_expression()
                self._expect("]")
                self._expect_op("=")
                fields.append(TableField(self._parse_expression(), key=key_expr))
            elif self._current().kind == "IDENT" and self._peek_kind(1) == "OP" and self.tokens[self.pos + 1].value == "=":
                name_tok = self._advance()
                self._expect_op("=")
                key = StringLiteral(name_tok.line, name_tok.column, name_tok.value)
                fields.append(TableField(self._parse_expression(), key=key))
            else:
                fields.append(TableField(self._parse_expression()))
            if not self._match(",") and not self._match(";"):
                break
        self._expect("}", start)
        return TableConstructor(start.line, start.column, fields)


__all__ = ["LuaParser", "ParserError"]
