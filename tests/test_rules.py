import pytest

from unbreak import (
    apply_rules,
    extract_boundary_quotes,
    extract_partial_quotes,
    extract_punctuation,
    normalize_quotes,
    strip_incomplete_images,
)
from unbreak.rules import (
    ALL_RULES,
    BOLD,
    BOUNDARY_QUOTE_RULES,
    INCOMPLETE_IMAGE_RULES,
    ITALIC,
    ITALIC_PARTIAL_QUOTE_RULES,
    ITALIC_PUNCTUATION_RULES,
    PARTIAL_QUOTE_RULES,
    PUNCTUATION_RULES,
)


def test_rule_names_are_unique():
    names = [rule.name for rule in ALL_RULES]
    assert len(names) == len(set(names))


def test_punctuation_tables_never_mention_quotes():
    for rule in PUNCTUATION_RULES + ITALIC_PUNCTUATION_RULES:
        assert '"' not in rule.pattern.pattern, rule.name
        assert "'" not in rule.pattern.pattern, rule.name


def test_tables_are_scoped_to_one_emphasis_kind():
    assert all(rule.scope == BOLD for rule in PARTIAL_QUOTE_RULES + PUNCTUATION_RULES)
    assert all(rule.scope == ITALIC for rule in ITALIC_PARTIAL_QUOTE_RULES + ITALIC_PUNCTUATION_RULES)
    assert len(PARTIAL_QUOTE_RULES) == len(ITALIC_PARTIAL_QUOTE_RULES) == 7


def test_partial_quote_rules_run_most_specific_first():
    names = [rule.name for rule in PARTIAL_QUOTE_RULES]
    assert names.index("bold-leading-single-quote-attached-paren") < names.index("bold-leading-single-quote")
    assert names.index("bold-leading-double-quote-attached-paren") < names.index("bold-leading-double-quote")
    assert names[0] == "bold-nested-single-quote-spaced-paren"


def test_question_mark_rule_is_bold_only():
    assert any(rule.category == "question" for rule in PUNCTUATION_RULES)
    assert not any(rule.category == "question" for rule in ITALIC_PUNCTUATION_RULES)


def test_question_mark_rule_runs_before_percent_and_parentheticals():
    names = [rule.name for rule in PUNCTUATION_RULES]
    assert names.index("bold-question") < names.index("bold-spaced-paren")
    assert names.index("bold-question") < names.index("bold-percent")


def test_rule_apply_replaces_every_match():
    percent = next(rule for rule in PUNCTUATION_RULES if rule.name == "bold-percent")
    assert percent.apply("**1%** **2%**") == "**1**% **2**%"


def test_apply_rules_runs_in_order():
    assert apply_rules("**50%**", []) == "**50%**"
    assert apply_rules("![cut", INCOMPLETE_IMAGE_RULES) == ""


def test_apply_rules_repeats_until_stable():
    # The percent rule uncovers a parenthetical match earlier in the table
    assert apply_rules("**x (y)%**", PUNCTUATION_RULES) == "**x** (y)%"
    assert PUNCTUATION_RULES[-1].apply("**x (y)%**") == "**x (y)**%"


def test_normalize_quotes():
    assert normalize_quotes("‘a’ “b”") == "'a' \"b\""
    assert normalize_quotes("already 'ascii' \"quotes\"") == "already 'ascii' \"quotes\""


def test_boundary_quotes_need_whitespace_before_bold():
    assert extract_boundary_quotes('say **"hi"**') == 'say "**hi**"'
    # Already inside quotes: left for the partial quote stage
    assert extract_boundary_quotes('x**"hi"**') == 'x**"hi"**'
    assert extract_boundary_quotes(BOUNDARY_QUOTE_RULES[0].apply('**"hi"**')) == '"**hi**"'


def test_partial_quotes_demote_leading_text():
    assert extract_partial_quotes("**text 'quote'**") == "text '**quote**'"
    assert extract_partial_quotes('**text "quote (desc)"**') == 'text "**quote** (desc)"'
    assert extract_partial_quotes("*text 'quote'*") == "text '*quote*'"


def test_partial_quotes_leave_plain_emphasis_alone():
    assert extract_partial_quotes("**plain** and *plain*") == "**plain** and *plain*"


def test_punctuation_stage():
    assert extract_punctuation("**T (P)**") == "**T** (P)"
    assert extract_punctuation("**T(P)**") == "**T**(P)"
    assert extract_punctuation("**why?**") == "**why**?"
    assert extract_punctuation("*[t](u)*") == "[*t*](u)"


def test_parentheticals_do_not_cross_lines():
    text = "**first\nline (second)**"
    assert extract_punctuation(text) == text


def test_strip_incomplete_images_only_touches_the_end():
    assert strip_incomplete_images("![a](b) text") == "![a](b) text"
    assert strip_incomplete_images("text ![a](b") == "text "
    assert strip_incomplete_images("text\n![a") == "text\n"


def test_punctuation_stage_settles_mixed_marks():
    assert extract_punctuation("**20%?**") == "**20**%?"
    assert extract_punctuation("**what (now)?**") == "**what** (now)?"
    assert extract_punctuation("*x (y)%*") == "*x* (y)%"


MIXED_SPANS = [
    "**20%?**",
    "**what (now)?**",
    "**x (y)%**",
    "*x (y)%*",
    '**"Quoted" (note)**',
    "**'Quoted' (note)?**",
    '*"q" (p)*',
    "**text 'quote'** and **[link](u)?**",
    "**a (b) 5%?**suffix",
    '**lead "q (d)"** and *lead \'q\'*',
    "tail ![a](b) ![c](d",
    "Wow!![",
]


@pytest.mark.parametrize(
    "stage",
    [extract_boundary_quotes, extract_partial_quotes, extract_punctuation, strip_incomplete_images],
)
@pytest.mark.parametrize("text", MIXED_SPANS)
def test_each_stage_is_idempotent(stage, text):
    once = stage(text)
    assert stage(once) == once
