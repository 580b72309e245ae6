import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from haifa_embed.runtime.ast import FunctionExpr, LocalFunctionStmt, LocalStmt, ReturnStmt
from haifa_embed.runtime.errors import LuaSyntaxError
from haifa_embed.runtime.lexer import LuaLexer
from haifa_embed.runtime.parser import LuaParser


def test_lexer_token_kinds():
    tokens = LuaLexer("local answer = 42 -- comment\nreturn answer .. 'x'").tokenize()
    kinds = [token.kind for token in tokens]
    assert kinds == ["local", "IDENT", "OP", "NUMBER", "return", "IDENT", "OP", "STRING", "EOF"]
    assert tokens[4].line == 2


def test_lexer_string_escapes_and_long_brackets():
    tokens = LuaLexer(r'"a\tb\65\x41\u{48}" [==[raw ]] text]==]').tokenize()
    assert tokens[0].value == "a\tbAAH"
    assert tokens[1].value == "raw ]] text"


def test_lexer_reports_unfinished_string():
    with pytest.raises(LuaSyntaxError) as excinfo:
        LuaLexer('x = "open', "=input").tokenize()
    assert str(excinfo.value) == "=input:1: unfinished string"


def test_lexer_rejects_malformed_number():
    with pytest.raises(LuaSyntaxError, match="malformed number near '3x'"):
        LuaLexer("return 3x").tokenize()


def test_parser_builds_statements():
    src = """
    local a, b = 1, 2
    local function add(x, y) return x + y end
    return add(a, b)
    """
    chunk = LuaParser.parse(src, "test")
    kinds = [type(stmt) for stmt in chunk.body.statements]
    assert kinds == [LocalStmt, LocalFunctionStmt, ReturnStmt]
    function = chunk.body.statements[1].func
    assert isinstance(function, FunctionExpr)


def test_parser_error_names_the_offending_token():
    with pytest.raises(LuaSyntaxError) as excinfo:
        LuaParser.parse("x = ", "chunk")
    assert str(excinfo.value) == "chunk:1: unexpected symbol near '<eof>'"


def test_parser_reports_unclosed_block():
    with pytest.raises(LuaSyntaxError, match="'end' expected"):
        LuaParser.parse("if true then\n  x = 1\n", "chunk")


def test_break_outside_loop_is_rejected():
    with pytest.raises(LuaSyntaxError, match="break outside a loop"):
        LuaParser.parse("break", "chunk")
