import pytest

from stacklang.interpreter import Program
from stacklang.types.expr import Expr


@pytest.fixture
def program():
    return Program()


@pytest.fixture
def run(program):
    """Evaluate source on a fresh program and return its stack."""

    def _run(code: str) -> list[Expr]:
        return program.eval_string(code)

    return _run


@pytest.fixture
def modules_dir(tmp_path, monkeypatch):
    """A temporary STACK_MODULES_PATH root."""
    monkeypatch.setenv("STACK_MODULES_PATH", str(tmp_path))
    return tmp_path
