import pytest

from rulecraft.knowledge.sanitize import make_excerpt, sanitize_fts_query


def test_sanitize_joins_tokens_with_or():
    assert sanitize_fts_query("attack action") == "attack OR action"
    assert sanitize_fts_query("AC (armor class)") == "AC OR armor OR class"


@pytest.mark.parametrize("query", ["", "   ", "?!", "(*) -- ''", '"'])
def test_sanitize_without_tokens_is_empty(query):
    assert sanitize_fts_query(query) == ""


def test_sanitize_strips_punctuation_inside_words():
    assert sanitize_fts_query("two-weapon fighting's rules") == "twoweapon OR fightings OR rules"


def test_sanitize_quotes_fts_operators():
    assert sanitize_fts_query("grapple AND shove") == 'grapple OR "AND" OR shove'
    assert sanitize_fts_query("NEAR") == '"NEAR"'
    # Lowercase words are plain terms to FTS5.
    assert sanitize_fts_query("cats and dogs") == "cats OR and OR dogs"


def test_excerpt_collapses_whitespace_and_truncates():
    assert make_excerpt("  a\n\n b   c ") == "a b c"
    long = "word " * 100
    excerpt = make_excerpt(long, max_len=20)
    assert len(excerpt) == 20
    assert excerpt.endswith("...")
