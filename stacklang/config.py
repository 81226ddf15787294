from __future__ import annotations
import os
from pathlib import Path
from typing import Iterable, List

DEFAULT_JOURNAL_LENGTH = 20

# Defaults
_DEFAULT_MODULES_DIRS = [Path.cwd]


def paths_from_env(var: str, defaults: Iterable[Path]) -> List[Path]:
    raw = os.environ.get(var)
    if not raw:
        return [Path(p) for p in defaults]
    return [Path(p.strip()) for p in raw.split(os.pathsep) if p.strip()]


def get_modules_roots() -> List[Path]:
    return paths_from_env('STACK_MODULES_PATH', [d() for d in _DEFAULT_MODULES_DIRS])


def get_journal_length() -> int:
    raw = os.environ.get('STACK_JOURNAL_LENGTH')
    if not raw:
        return DEFAULT_JOURNAL_LENGTH
    try:
        return max(0, int(raw))
    except ValueError:
        return DEFAULT_JOURNAL_LENGTH


def disasm_enabled() -> bool:
    return bool(os.environ.get('STACK_DISASM'))
