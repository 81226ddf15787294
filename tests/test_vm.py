import pytest
from hypothesis import given, strategies as st

from stacklang.compiler import VM, Op, RunSignal, Val, compile_module
from stacklang.errors import (
    ArithmeticTypeError,
    IPBoundsError,
    StackUnderflowError,
    UnknownNameError,
    VMError,
)
from stacklang.reader.parser import parse_source
from stacklang.types.expr import Expr

I = Expr.integer


def _vm(source):
    vm = VM()
    vm.compile(parse_source(source))
    return vm


def test_stepping_two_plus_two():
    vm = _vm("2 2 +")
    assert vm.step() is RunSignal.NORMAL
    assert vm.step() is RunSignal.NORMAL
    assert vm.stack == [I(2), I(2)]
    assert vm.step() is RunSignal.NORMAL
    assert vm.step() is RunSignal.HALT
    assert vm.stack == [I(4)]
    assert vm.step() is RunSignal.HALT
    assert vm.stack == [I(4)]


def test_ip_saturates_at_stream_length():
    vm = _vm("1")
    vm.run()
    assert vm.ip == len(vm.ops) == 2
    assert vm.halted


def test_running_off_the_end_is_a_bounds_failure():
    vm = VM()
    vm.load([Op.push(Val.integer(1))])
    assert vm.step() is RunSignal.NORMAL
    with pytest.raises(IPBoundsError) as info:
        vm.step()
    assert (info.value.ip, info.value.length) == (1, 1)


def test_underflow_restores_last_good_stack():
    vm = _vm("1 +")
    with pytest.raises(StackUnderflowError):
        vm.run()
    assert vm.stack == [I(1)]


def test_arithmetic_type_failure_carries_operands():
    vm = _vm('1 "a" +')
    with pytest.raises(ArithmeticTypeError) as info:
        vm.run()
    assert info.value.lhs == I(1)
    assert info.value.rhs == Expr.string("a")
    assert vm.stack == [I(1), Expr.string("a")]


def test_halt_is_not_an_error():
    assert _vm("1 halt 2").run() == [I(1)]


def test_halt_inside_nested_block_unwinds():
    vm = _vm("(1 halt 2) call 3")
    assert vm.run() == [I(1)]
    assert vm.registers == []


def test_unknown_name():
    vm = _vm("1 nope")
    with pytest.raises(UnknownNameError) as info:
        vm.run()
    assert info.value.name == "nope"
    assert str(info.value.span) == "<input>:1:3"


def test_lists_are_reduced_eagerly():
    assert _vm("[1 2 + [3 dupe]]").run() == [Expr.list([I(3), Expr.list([I(3), I(3)])])]


def test_list_elements_cannot_consume_outer_stack():
    vm = _vm("1 [drop]")
    with pytest.raises(StackUnderflowError):
        vm.run()
    assert vm.stack == [I(1)]


def test_blocks_are_pushed_not_run():
    assert _vm("(1 2 +)").run() == [Expr.block([I(1), I(2), Expr.call("+")])]


def test_block_frames_return_to_caller():
    vm = _vm("(1 2 +) call 10 *")
    assert vm.run() == [I(30)]
    assert vm.registers == []


def test_failure_in_nested_frame_unwinds_context():
    vm = _vm("(1 'a let 'x +) call")
    with pytest.raises(VMError):
        vm.run()
    assert vm.registers == []
    assert vm.context.let_get("a") is None


def test_recur_loops_until_condition_fails():
    assert _vm("3 (dupe 0 > (1 - recur) if) call").run() == [I(0)]


def test_recur_in_function_by_name():
    source = "(fn dupe 10 < (1 + recur) if) 'count-up def 7 count-up"
    assert _vm(source).run() == [I(10)]


def test_deep_tail_recursion_does_not_grow_registers():
    source = "(fn dupe 0 > (1 - countdown) if) 'countdown def 2000 countdown"
    vm = _vm(source)
    depth = 0
    while vm.step() is not RunSignal.HALT:
        depth = max(depth, len(vm.registers))
    assert vm.stack == [I(0)]
    assert depth < 10


def test_journal_records_snapshots():
    vm = _vm("1 2 +")
    vm.context.with_journal(10)
    vm.run()
    assert vm.context.journal.entries() == [(I(1),), (I(1), I(2)), (I(3),)]


@given(st.lists(st.integers(min_value=-100, max_value=100), max_size=30))
def test_compiled_streams_halt_within_their_length(values):
    ops = compile_module(parse_source(" ".join(map(str, values))))
    vm = VM()
    vm.load(ops)
    signals = [vm.step() for _ in range(len(ops))]
    assert signals[-1] is RunSignal.HALT
    assert RunSignal.HALT not in signals[:-1]
    assert vm.stack == [I(v) for v in values]
