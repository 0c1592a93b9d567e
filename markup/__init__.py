"""
FLO markup compiler shared by the producer (engine) and consumer (runtime).

Both sides MUST import the compiler from here. Any second implementation
of the rewrite rules would allow verified content to render differently
than the signer intended.
"""

from .bindings import ContextBindings
from .compiler import (
    AnomalyKind,
    CompiledFragment,
    CompilerAnomaly,
    compile_flo,
    compile_fragment,
    interpolate,
)
from .rules import DEFAULT_RULES, RuleTable, StructuralRule

__all__ = [
    "AnomalyKind",
    "CompiledFragment",
    "CompilerAnomaly",
    "ContextBindings",
    "DEFAULT_RULES",
    "RuleTable",
    "StructuralRule",
    "compile_flo",
    "compile_fragment",
    "interpolate",
]
