import re
from dataclasses import dataclass
from typing import Dict, Tuple

BOLD = "bold"
ITALIC = "italic"
ANY = "any"

QUOTE = "quote"
PARTIAL_QUOTE = "partial-quote"
LINK = "link"
PARENTHETICAL = "parenthetical"
PERCENT = "percent"
QUESTION = "question"
IMAGE_CLEANUP = "image-cleanup"


@dataclass(frozen=True)
class Rule:
    """A single pattern/replacement pair.

    Replacement templates reference capture groups positionally (\\1, \\2, ...).
    """

    name: str
    scope: str
    category: str
    pattern: re.Pattern
    replacement: str = ""

    def apply(self, text: str) -> str:
        # Global, non-overlapping, leftmost-first
        return self.pattern.sub(self.replacement, text)


def _rule(name: str, scope: str, category: str, pattern: str, replacement: str = "") -> Rule:
    return Rule(name, scope, category, re.compile(pattern), replacement)


# Curly quotes collapse to their ASCII counterparts before anything else runs.
QUOTE_TRANSLATION: Dict[int, str] = str.maketrans({
    "\u2018": "'",
    "\u2019": "'",
    "\u201c": '"',
    "\u201d": '"',
})

# Fully quoted emphasis: **"text"** -> "**text**".
# The bold variants only fire after whitespace or at the start of the input so
# that an already processed "**text**" is never quoted twice.
BOUNDARY_QUOTE_RULES: Tuple[Rule, ...] = (
    _rule("bold-double-quote", BOLD, QUOTE, r'(^|\s)\*\*"([^"]+)"\*\*', r'\1"**\2**"'),
    _rule("bold-single-quote", BOLD, QUOTE, r"(^|\s)\*\*'([^']+)'\*\*", r"\1'**\2**'"),
    _rule("italic-double-quote", ITALIC, QUOTE, r'(?<!\*)\*"([^"]+)"\*(?!\*)', r'"*\1*"'),
    _rule("italic-single-quote", ITALIC, QUOTE, r"(?<!\*)\*'([^']+)'\*(?!\*)", r"'*\1*'"),
)

# Emphasis covering leading text plus a quoted phrase:
#   **text 'quote'** -> text '**quote**'
# Most specific first. Reordering changes results.
PARTIAL_QUOTE_RULES: Tuple[Rule, ...] = (
    # **solution 'MailMaster (MailMaster)'** -> solution '**MailMaster** (MailMaster)'
    _rule(
        "bold-nested-single-quote-spaced-paren", BOLD, PARTIAL_QUOTE,
        r"\*\*([^*']+?)'([^'(]+?)\s+\(([^)]+?)\)'\*\*",
        r"\1'**\2** (\3)'",
    ),
    # **text "quote (description)"** -> text "**quote** (description)"
    _rule(
        "bold-double-quote-spaced-paren", BOLD, PARTIAL_QUOTE,
        r'\*\*([^*]+?)\s+"([^"]+?)\s+\(([^)]+?)\)"\*\*',
        r'\1 "**\2** (\3)"',
    ),
    # **'quote(description)'** -> '**quote**(description)'
    _rule(
        "bold-single-quote-attached-paren", BOLD, PARTIAL_QUOTE,
        r"\*\*'([^']+?)\(([^)]+?)\)'\*\*",
        r"'**\1**(\2)'",
    ),
    # **text 'quote(description)'** -> text '**quote**(description)'
    _rule(
        "bold-leading-single-quote-attached-paren", BOLD, PARTIAL_QUOTE,
        r"\*\*([^*]+?)\s+'([^']+?)\(([^)]+?)\)'\*\*",
        r"\1 '**\2**(\3)'",
    ),
    # **text "quote(description)"** -> text "**quote**(description)"
    _rule(
        "bold-leading-double-quote-attached-paren", BOLD, PARTIAL_QUOTE,
        r'\*\*([^*]+?)\s+"([^"]+?)\(([^)]+?)\)"\*\*',
        r'\1 "**\2**(\3)"',
    ),
    _rule(
        "bold-leading-single-quote", BOLD, PARTIAL_QUOTE,
        r"\*\*([^*]+?)\s+'([^']+?)'\*\*",
        r"\1 '**\2**'",
    ),
    _rule(
        "bold-leading-double-quote", BOLD, PARTIAL_QUOTE,
        r'\*\*([^*]+?)\s+"([^"]+?)"\*\*',
        r'\1 "**\2**"',
    ),
)

ITALIC_PARTIAL_QUOTE_RULES: Tuple[Rule, ...] = (
    _rule(
        "italic-nested-single-quote-spaced-paren", ITALIC, PARTIAL_QUOTE,
        r"(?<!\*)\*([^*']+?)'([^'(]+?)\s+\(([^)]+?)\)'\*(?!\*)",
        r"\1'*\2* (\3)'",
    ),
    _rule(
        "italic-double-quote-spaced-paren", ITALIC, PARTIAL_QUOTE,
        r'(?<!\*)\*([^*]+?)\s+"([^"]+?)\s+\(([^)]+?)\)"\*(?!\*)',
        r'\1 "*\2* (\3)"',
    ),
    _rule(
        "italic-single-quote-attached-paren", ITALIC, PARTIAL_QUOTE,
        r"(?<!\*)\*'([^']+?)\(([^)]+?)\)'\*(?!\*)",
        r"'*\1*(\2)'",
    ),
    _rule(
        "italic-leading-single-quote-attached-paren", ITALIC, PARTIAL_QUOTE,
        r"(?<!\*)\*([^*]+?)\s+'([^']+?)\(([^)]+?)\)'\*(?!\*)",
        r"\1 '*\2*(\3)'",
    ),
    _rule(
        "italic-leading-double-quote-attached-paren", ITALIC, PARTIAL_QUOTE,
        r'(?<!\*)\*([^*]+?)\s+"([^"]+?)\(([^)]+?)\)"\*(?!\*)',
        r'\1 "*\2*(\3)"',
    ),
    _rule(
        "italic-leading-single-quote", ITALIC, PARTIAL_QUOTE,
        r"(?<!\*)\*([^*]+?)\s+'([^']+?)'\*(?!\*)",
        r"\1 '*\2*'",
    ),
    _rule(
        "italic-leading-double-quote", ITALIC, PARTIAL_QUOTE,
        r'(?<!\*)\*([^*]+?)\s+"([^"]+?)"\*(?!\*)',
        r'\1 "*\2*"',
    ),
)

# Punctuation that belongs after the closing marker. None of these patterns
# mention a quote character: quoted spans are settled by the tables above.
PUNCTUATION_RULES: Tuple[Rule, ...] = (
    # **[text](url)** -> [**text**](url)
    _rule("bold-link", BOLD, LINK, r"\*\*\[([^\]]+)\]\(([^)]+)\)\*\*", r"[**\1**](\2)"),
    # A trailing question mark goes first so that the percent and parenthetical
    # rules see the span it closed: **20%?** -> **20%**? -> **20**%?
    _rule("bold-question", BOLD, QUESTION, r"\*\*([^?]+?)\?\*\*", r"**\1**?"),
    # **text (description)** -> **text** (description)
    _rule(
        "bold-spaced-paren", BOLD, PARENTHETICAL,
        r"\*\*([^*\n]+?)\s+(\([^*\n]+?\))\*\*",
        r"**\1** \2",
    ),
    # **text(description)** -> **text**(description)
    _rule(
        "bold-attached-paren", BOLD, PARENTHETICAL,
        r"\*\*([^*\n]+?)(\([^*\n]+?\))\*\*",
        r"**\1**\2",
    ),
    # **text (description)**suffix -> **text** (description)suffix
    _rule(
        "bold-spaced-paren-suffix", BOLD, PARENTHETICAL,
        r"\*\*([^*]+?)\s+(\([^*]+?\))\*\*([^\s*]+)",
        r"**\1** \2\3",
    ),
    _rule(
        "bold-attached-paren-suffix", BOLD, PARENTHETICAL,
        r"\*\*([^*]+?)(\([^*]+?\))\*\*([^\s*]+)",
        r"**\1**\2\3",
    ),
    # **21%** -> **21**%, but **%** stays as is
    _rule("bold-percent", BOLD, PERCENT, r"\*\*([^%]+?)%\*\*", r"**\1**%"),
)

ITALIC_PUNCTUATION_RULES: Tuple[Rule, ...] = (
    _rule("italic-link", ITALIC, LINK, r"(?<!\*)\*\[([^\]]+)\]\(([^)]+)\)\*(?!\*)", r"[*\1*](\2)"),
    _rule(
        "italic-spaced-paren", ITALIC, PARENTHETICAL,
        r"(?<!\*)\*([^*\n]+?)\s+(\([^*\n]+?\))\*(?!\*)",
        r"*\1* \2",
    ),
    _rule(
        "italic-attached-paren", ITALIC, PARENTHETICAL,
        r"(?<!\*)\*([^*\n]+?)(\([^*\n]+?\))\*(?!\*)",
        r"*\1*\2",
    ),
    _rule(
        "italic-spaced-paren-suffix", ITALIC, PARENTHETICAL,
        r"(?<!\*)\*([^*]+?)\s+(\([^*]+?\))\*([^\s*]+)",
        r"*\1* \2\3",
    ),
    _rule(
        "italic-attached-paren-suffix", ITALIC, PARENTHETICAL,
        r"(?<!\*)\*([^*]+?)(\([^*]+?\))\*([^\s*]+)",
        r"*\1*\2\3",
    ),
    _rule("italic-percent", ITALIC, PERCENT, r"(?<!\*)\*([^%]+?)%\*(?!\*)", r"*\1*%"),
)

# Image markup cut off mid-stream. Anchored with \Z so a trailing newline
# never counts as the end of the fragment.
INCOMPLETE_IMAGE_RULES: Tuple[Rule, ...] = (
    _rule("image-unterminated-url", ANY, IMAGE_CLEANUP, r"!\[[^\]]*\]\([^)]*\Z"),
    _rule("image-unterminated-alt", ANY, IMAGE_CLEANUP, r"!\[[^\]]*\Z"),
    _rule("image-opener", ANY, IMAGE_CLEANUP, r"!\[\Z"),
    _rule("trailing-bang", ANY, IMAGE_CLEANUP, r"!+\Z"),
)

# Every table in the order the pipeline runs them.
ALL_RULES: Tuple[Rule, ...] = (
    BOUNDARY_QUOTE_RULES
    + PARTIAL_QUOTE_RULES
    + ITALIC_PARTIAL_QUOTE_RULES
    + PUNCTUATION_RULES
    + ITALIC_PUNCTUATION_RULES
    + INCOMPLETE_IMAGE_RULES
)
