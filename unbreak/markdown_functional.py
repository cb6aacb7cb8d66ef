from typing import Callable, Iterable, Optional, Sequence, Tuple

from .rules import (
    BOUNDARY_QUOTE_RULES,
    INCOMPLETE_IMAGE_RULES,
    ITALIC_PARTIAL_QUOTE_RULES,
    ITALIC_PUNCTUATION_RULES,
    PARTIAL_QUOTE_RULES,
    PUNCTUATION_RULES,
    QUOTE_TRANSLATION,
    Rule,
)


def apply_rules(text: str, rules: Iterable[Rule]) -> str:
    """
    Runs each rule over the whole text, in order, and repeats the table until
    the text stops changing.

    One rule can uncover a match for another one earlier in the table (e.g. the
    percent rule turns **x (y)%** into **x (y)**%, which the parenthetical rule
    then has to pick up), so a single pass is not always a fixed point.
    """
    return _until_stable(text, [rule.apply for rule in rules])


def _until_stable(text: str, steps: Sequence[Callable[[str], str]]) -> str:
    # Every step only moves emphasis markers or drops a dangling tail, so the
    # text settles. The seen set stops a (theoretical) cycle.
    seen = set()
    while text not in seen:
        seen.add(text)
        for step in steps:
            text = step(text)
    return text


def normalize_quotes(text: str) -> str:
    return text.translate(QUOTE_TRANSLATION)


def extract_boundary_quotes(text: str) -> str:
    """**"text"** -> "**text**" and *'text'* -> '*text*'."""
    return apply_rules(text, BOUNDARY_QUOTE_RULES)


def extract_partial_quotes(text: str) -> str:
    # Bold before italic in every pass: the italic guards assume bold spans are settled.
    return apply_rules(text, PARTIAL_QUOTE_RULES + ITALIC_PARTIAL_QUOTE_RULES)


def extract_punctuation(text: str) -> str:
    """Moves links, parentheticals, percent and question marks out of emphasis."""
    return apply_rules(text, PUNCTUATION_RULES + ITALIC_PUNCTUATION_RULES)


def strip_incomplete_images(text: str) -> str:
    return apply_rules(text, INCOMPLETE_IMAGE_RULES)


# Quote handling has to finish before the punctuation stage, otherwise the
# quote-agnostic parenthetical rules grab spans the quote rules needed.
PIPELINE: Tuple[Callable[[str], str], ...] = (
    normalize_quotes,
    extract_boundary_quotes,
    extract_partial_quotes,
    extract_punctuation,
    strip_incomplete_images,
)


def unbreak(markdown: Optional[str]) -> Optional[str]:
    """
    Fixes broken markdown so it renders cleanly, even mid-stream.

    Punctuation that ended up inside bold/italic markers (quotes, parentheses,
    percent and question marks, link brackets) is moved outside of them, and
    image markup that was cut off at the end of the text is dropped.

    This is a pure function: the same input always gives the same output. The
    stages are repeated until the text settles, so a later stage can hand a
    span back to an earlier one (**"Quoted" (note)** only becomes a boundary
    quote once the parenthetical is out) and running it on its own output
    changes nothing.

    Args:
        markdown: The (possibly partial) markdown text.

    Returns:
        The repaired text. Empty or missing input is returned as is.
    """
    if not markdown:
        return markdown

    return _until_stable(markdown, PIPELINE)


def finalize_markdown(unstable_buffer: str, stable_text: str) -> str:
    """
    Combines the final stable and unstable text buffers into a single,
    repaired document once the stream has ended.

    Nothing is cut off at this point, so trailing image markup and a closing
    '!' are real content and are kept; only emphasis punctuation is fixed.

    Args:
        unstable_buffer: The final remaining unstable text.
        stable_text: The body of the stable text.

    Returns:
        The complete document text.
    """
    result = stable_text + unstable_buffer
    if not result:
        return result
    return _until_stable(result, PIPELINE[:-1])


validate_markdown = unbreak
fix_markdown = unbreak
