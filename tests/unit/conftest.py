"""
Pytest configuration and fixtures for regiondecomp tests.
"""
import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from regiondecomp.ir import Sort, parse_function  # noqa: E402
from regiondecomp.solver import Z3Oracle  # noqa: E402
from regiondecomp.translator import TranslationContext  # noqa: E402


@pytest.fixture
def oracle_for():
    """Build a Z3 oracle over the parameters of a function."""
    def make(function, definitions=None, **modes):
        fn = parse_function(function) if isinstance(function, str) else function
        defs = dict(definitions or {})
        defs.setdefault(fn.name, fn)
        ctx = TranslationContext(scope=fn.scope, definitions=defs, **modes)
        return Z3Oracle(ctx, timeout_ms=5000)
    return make


@pytest.fixture
def xy_oracle():
    """Oracle over two integer variables x and y."""
    return Z3Oracle(TranslationContext(scope={"x": Sort.INT, "y": Sort.INT}), timeout_ms=5000)
