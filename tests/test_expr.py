import math

import pytest
from hypothesis import given, strategies as st

from stacklang.types.context import Scope
from stacklang.types.expr import NIL, Expr, ExprKind
from stacklang.types.symbol import Symbol

i64 = st.integers(min_value=-(1 << 63), max_value=(1 << 63) - 1)


@given(i64, st.floats())
def test_integer_float_equality_is_numeric(i, f):
    assert (Expr.integer(i) == Expr.float(f)) == (float(i) == f)
    assert (Expr.float(f) == Expr.integer(i)) == (float(i) == f)


@given(i64, st.booleans())
def test_integer_boolean_equality_by_zero(i, b):
    assert (Expr.integer(i) == Expr.boolean(b)) == ((i != 0) == b)
    assert (Expr.boolean(b) == Expr.integer(i)) == ((i != 0) == b)


@pytest.mark.parametrize(
    "lhs,rhs",
    [
        (Expr.string("1"), Expr.integer(1)),
        (Expr.symbol("a"), Expr.call("a")),
        (Expr.block([]), Expr.list([])),
        (Expr.nil(), Expr.boolean(False)),
        (Expr.float(1.0), Expr.boolean(True)),
        (Expr.string("nil"), NIL),
        (Expr.underscore(), NIL),
    ],
)
def test_other_cross_variant_pairs_are_unequal(lhs, rhs):
    assert lhs != rhs
    assert not lhs == rhs


def test_composite_equality_coerces_elements():
    assert Expr.list([Expr.integer(1)]) == Expr.list([Expr.float(1.0)])
    assert Expr.record({"a": Expr.integer(1)}) == Expr.record({"a": Expr.integer(1)})
    assert Expr.record({"a": Expr.integer(1)}) != Expr.record({"b": Expr.integer(1)})


def test_functions_compare_scope_by_identity():
    scope = Scope()
    body = [Expr.integer(1)]
    assert Expr.function(scope, body) == Expr.function(scope, body)
    assert Expr.function(scope, body) != Expr.function(Scope(), body)


def test_span_does_not_affect_equality():
    assert Expr.integer(1, span="a") == Expr.integer(1, span="b")


def test_exprs_are_unhashable():
    with pytest.raises(TypeError):
        hash(Expr.integer(1))


@pytest.mark.parametrize(
    "expr,truthy",
    [
        (Expr.nil(), False),
        (Expr.boolean(False), False),
        (Expr.boolean(True), True),
        (Expr.integer(0), False),
        (Expr.integer(-3), True),
        (Expr.float(0.0), False),
        (Expr.float(0.5), True),
        (Expr.string(""), True),
        (Expr.list([]), True),
        (Expr.symbol("x"), True),
    ],
)
def test_truthiness(expr, truthy):
    assert expr.is_truthy() is truthy


@pytest.mark.parametrize(
    "expr,display,quoted",
    [
        (Expr.string("hi"), "hi", '"hi"'),
        (Expr.string('a"b\n'), 'a"b\n', '"a\\"b\\n"'),
        (Expr.symbol("x"), "x", "'x"),
        (Expr.call("dupe"), "dupe", "dupe"),
        (Expr.nil(), "nil", "nil"),
        (Expr.boolean(True), "true", "true"),
        (Expr.float(2.5), "2.5", "2.5"),
        (Expr.block([Expr.integer(1), Expr.string("a")]), "(1 a)", '(1 "a")'),
        (Expr.list([Expr.integer(1), Expr.list([])]), "[1 []]", "[1 []]"),
        (Expr.record({"a": Expr.integer(1), "b": Expr.string("x")}), "{a: 1, b: x}", '{a: 1, b: "x"}'),
        (Expr.function(None, [Expr.integer(2), Expr.call("*")]), "(fn 2 *)", "(fn 2 *)"),
        (Expr.sexpr("+", [Expr.integer(1)]), "(+ 1)", "(+ 1)"),
        (Expr.underscore(), "_", "_"),
    ],
)
def test_rendering(expr, display, quoted):
    assert str(expr) == display
    assert format(expr, "#") == quoted


def test_repr():
    assert repr(Expr.integer(2)) == "Integer(2)"
    assert repr(Expr.block([Expr.integer(1)])) == "Block([Integer(1)])"
    assert repr(Expr.call("x")) == "Call('x')"
    assert repr(NIL) == "Nil"


def test_type_names():
    assert [k.value for k in ExprKind] == [
        "nil", "boolean", "integer", "float", "string", "symbol", "call",
        "block", "list", "record", "function", "sexpr", "underscore",
    ]
    assert Expr.float(math.inf).type_name() == "float"


@pytest.mark.parametrize(
    "text,qualified,module,name",
    [
        ("dupe", False, "dupe", None),
        ("scope:where", True, "scope", "where"),
        ("m:a:b", True, "m", "a:b"),
        ("m:", True, "m", ""),
    ],
)
def test_symbol_module_parts(text, qualified, module, name):
    symbol = Symbol(text)
    assert symbol.is_qualified is qualified
    assert symbol.module == module
    assert symbol.name == name


def test_symbols_compare_by_name():
    assert Symbol("a") == Symbol("a")
    assert Symbol("a") != Symbol("b")
    assert len({Symbol("a"), Symbol("a")}) == 1
