__version__ = "0.1.0"

from .markdown_functional import (
    apply_rules,
    extract_boundary_quotes,
    extract_partial_quotes,
    extract_punctuation,
    finalize_markdown,
    fix_markdown,
    normalize_quotes,
    strip_incomplete_images,
    unbreak,
    validate_markdown,
)

__all__ = [
    "apply_rules",
    "extract_boundary_quotes",
    "extract_partial_quotes",
    "extract_punctuation",
    "finalize_markdown",
    "fix_markdown",
    "normalize_quotes",
    "strip_incomplete_images",
    "unbreak",
    "validate_markdown",
]
