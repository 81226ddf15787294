# Core entry points for the stack language.
# Source text flows reader -> compiler -> VM; the same Expr type represents
# both parsed code and runtime values, so there is no separate AST.
#
# Naming guidance:
# - Expr:  the tagged union shared by the parser, the compiler and the VM.
# - Val:   the narrower numeric value carried by compiled Push instructions.

import logging

from stacklang.types.expr import Expr, ExprKind

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = ["Expr", "ExprKind", "__version__"]
