import pytest
from hypothesis import given, strategies as st

from stacklang.errors import LexError, MismatchedBracketError, StackSyntaxError, UnbalancedBlockError
from stacklang.reader.lexer import Lexer
from stacklang.reader.parser import parse, parse_source
from stacklang.types.expr import Expr, ExprKind

I = Expr.integer


def test_block_literal():
    assert parse_source("(1 2 3)") == [Expr.block([I(1), I(2), I(3)])]


def test_list_literal():
    assert parse_source("[1 2 3]") == [Expr.list([I(1), I(2), I(3)])]


def test_block_and_list_are_distinct():
    (block,) = parse_source("(1 2 3)")
    (lst,) = parse_source("[1 2 3]")
    assert block.kind is ExprKind.BLOCK
    assert lst.kind is ExprKind.LIST
    assert block != lst
    assert block.value == lst.value


def test_mismatched_closer_fails():
    with pytest.raises(MismatchedBracketError):
        parse_source("(1 2 3]")


@pytest.mark.parametrize("source", [")", "1 ]", "[1 (2])"])
def test_stray_or_wrong_closer(source):
    with pytest.raises(MismatchedBracketError):
        parse_source(source)


@pytest.mark.parametrize("source", ["(", "(1 (2", "[1 [2]"])
def test_unclosed_opener(source):
    with pytest.raises(UnbalancedBlockError):
        parse_source(source)


def test_error_carries_location():
    with pytest.raises(StackSyntaxError) as info:
        parse_source("1\n(2 3]", origin="file.stack")
    assert str(info.value.span) == "file.stack:2:5"
    assert str(info.value).startswith("file.stack:2:5: ")


def test_lex_diagnostics_surface_from_parse():
    with pytest.raises(LexError):
        parse(Lexer('1 "unterminated'))
    with pytest.raises(LexError, match="malformed float"):
        parse_source("1.2.3")


@pytest.mark.parametrize(
    "source,expected",
    [
        ("true", Expr.boolean(True)),
        ("false", Expr.boolean(False)),
        ("_", Expr.underscore()),
        ("nil", Expr.nil()),
        ("'x", Expr.symbol("x")),
        ("x", Expr.call("x")),
        ('"s"', Expr.string("s")),
        ("1.5", Expr.float(1.5)),
    ],
)
def test_atoms(source, expected):
    (expr,) = parse_source(source)
    assert expr.kind is expected.kind
    assert expr == expected


def test_nesting():
    assert parse_source("(1 [2 (3)]) 4") == [
        Expr.block([I(1), Expr.list([I(2), Expr.block([I(3)])])]),
        I(4),
    ]


def test_empty_source():
    assert parse_source("  ; only a comment") == []


# Random nested structures rendered to source
trees = st.recursive(
    st.integers(min_value=-1000, max_value=1000),
    lambda children: st.tuples(st.sampled_from(["block", "list"]), st.lists(children, max_size=4)),
    max_leaves=20,
)


def _render(tree) -> str:
    if isinstance(tree, int):
        return str(tree)
    kind, items = tree
    inner = " ".join(_render(t) for t in items)
    return f"({inner})" if kind == "block" else f"[{inner}]"


def _expected(tree) -> Expr:
    if isinstance(tree, int):
        return I(tree)
    kind, items = tree
    children = [_expected(t) for t in items]
    return Expr.block(children) if kind == "block" else Expr.list(children)


@given(st.lists(trees, max_size=5))
def test_balanced_sources_parse_one_expr_per_item(forest):
    source = " ".join(_render(t) for t in forest)
    assert parse_source(source) == [_expected(t) for t in forest]


@given(st.lists(trees, max_size=5), st.sampled_from(["(", "["]))
def test_unmatched_opener_never_parses(forest, opener):
    source = " ".join(_render(t) for t in forest) + " " + opener
    with pytest.raises(UnbalancedBlockError):
        parse_source(source)


@given(st.lists(trees, max_size=5), st.sampled_from([")", "]"]))
def test_unmatched_closer_never_parses(forest, closer):
    source = " ".join(_render(t) for t in forest) + " " + closer
    with pytest.raises(MismatchedBracketError):
        parse_source(source)
