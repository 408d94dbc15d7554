"""Pattern literal dialects and compilation."""

from stepbind.core.parsing.literals import (
    LiteralDialect,
    detect_dialect,
    escape_literal,
    unescape_literal,
)
from stepbind.core.parsing.pattern_compiler import (
    compile_pattern,
    compile_unescaped,
    count_capture_groups,
    is_pattern_anchored,
)

__all__ = [
    "LiteralDialect",
    "compile_pattern",
    "compile_unescaped",
    "count_capture_groups",
    "detect_dialect",
    "escape_literal",
    "is_pattern_anchored",
    "unescape_literal",
]
