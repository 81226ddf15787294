import pytest

from stacklang.errors import ArithmeticTypeError, UnbalancedBlockError, UnknownNameError
from stacklang.interpreter import Program
from stacklang.reader.lexer import Source
from stacklang.reader.parser import parse_source
from stacklang.types.expr import Expr

I = Expr.integer


def test_stack_persists_across_evaluations(program):
    program.eval_string("1")
    assert program.eval_string("2 +") == [I(3)]


def test_bindings_persist_across_evaluations(program):
    program.eval_string("(fn dupe *) 'square def")
    assert program.eval_string("5 square") == [I(25)]


def test_reset_clears_stack_and_bindings(program):
    program.eval_string("1 2 'x def")
    program.reset()
    assert program.stack == []
    with pytest.raises(UnknownNameError):
        program.eval_string("x")


def test_parse_failure_runs_nothing(program):
    program.eval_string("1")
    with pytest.raises(UnbalancedBlockError):
        program.eval_string("2 (3")
    assert program.stack == [I(1)]


def test_vm_failure_keeps_last_good_stack(program):
    program.eval_string("1 2")
    with pytest.raises(ArithmeticTypeError):
        program.eval_string("3 'a +")
    assert program.stack == [I(1), I(2), I(3), Expr.symbol("a")]


def test_failed_block_does_not_leak_lets(program):
    with pytest.raises(ArithmeticTypeError):
        program.eval_string("(1 'a let 2 'x +) call")
    with pytest.raises(UnknownNameError):
        program.eval_string("a")


def test_eval_parsed_expressions(program):
    assert program.eval(parse_source("[1 2] len")) == [I(2)]


def test_sources_are_recorded(program, tmp_path):
    path = tmp_path / "prog.stack"
    path.write_text("40 2 +", encoding="utf-8")
    assert program.eval_source(Source.from_path(path)) == [I(42)]
    program.eval_string("drop", origin="<repl>")
    assert [s.name for s in program.context.sources()] == [str(path), "<repl>"]


def test_disassembly_toggle(program, monkeypatch, capsys):
    monkeypatch.setenv("STACK_DISASM", "1")
    program.eval_string("1 dupe")
    assert capsys.readouterr().err == "0000: PUSH 1\n0001: INTRINSIC dupe\n0002: END\n"


def test_output_streams(tmp_path):
    import io

    out, err = io.StringIO(), io.StringIO()
    program = Program(out=out, err=err)
    program.eval_string('"a" print "b" debug')
    assert out.getvalue() == "a\n"
    assert err.getvalue() == '"b"\n'
