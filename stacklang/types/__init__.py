from stacklang.types.expr import Expr, ExprKind, FnValue, SExprValue, NIL
from stacklang.types.symbol import Symbol

__all__ = ["Expr", "ExprKind", "FnValue", "SExprValue", "NIL", "Symbol"]
