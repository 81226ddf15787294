from __future__ import annotations

from stacklang.types.expr import Expr, ExprKind

DEFAULT_WIDTH = 80
INDENT = "  "

BRACKETS = {
    ExprKind.BLOCK: ("(", ")"),
    ExprKind.LIST: ("[", "]"),
    ExprKind.FUNCTION: ("(fn", ")"),
    ExprKind.RECORD: ("{", "}"),
}


def _children(expr: Expr) -> list | None:
    match expr.kind:
        case ExprKind.BLOCK | ExprKind.LIST:
            return list(expr.value)
        case ExprKind.FUNCTION:
            return list(expr.value.body)
        case ExprKind.RECORD:
            return list(expr.value.items())
        case _:
            return None


# ----------------- Pretty printer -----------------
def pretty(expr: Expr, width: int = DEFAULT_WIDTH, indent: int = 0) -> str:
    """Render `expr` on one line if it fits in `width`, otherwise one child per line."""
    single_line = format(expr, "#")
    children = _children(expr)
    if children is None or not children or len(single_line) + len(INDENT) * indent <= width:
        return single_line

    open_, close = BRACKETS[expr.kind]
    pad = INDENT * (indent + 1)
    lines = [open_]
    for child in children:
        if expr.kind is ExprKind.RECORD:
            key, value = child
            lines.append(f"{pad}{key}: {pretty(value, width, indent + 1)}")
        else:
            lines.append(pad + pretty(child, width, indent + 1))
    lines.append(INDENT * indent + close)
    return "\n".join(lines)
