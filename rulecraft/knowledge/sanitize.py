from __future__ import annotations

import re

# Bare words FTS5 parses as query syntax rather than terms.
FTS_OPERATORS = frozenset({"AND", "OR", "NOT", "NEAR"})


def sanitize_fts_query(query: str) -> str:
    """
    Turn free text into an FTS5 OR-query.
    Drops every character that is neither alphanumeric nor whitespace, then joins
    the remaining tokens with OR. Returns "" when nothing survives.
    """
    kept = "".join(c for c in query if c.isalnum() or c.isspace())
    tokens = [f'"{tok}"' if tok in FTS_OPERATORS else tok for tok in kept.split()]
    return " OR ".join(tokens)


def make_excerpt(text: str, max_len: int = 160) -> str:
    """Collapse whitespace and truncate."""
    txt = re.sub(r"\s+", " ", text).strip()
    if len(txt) > max_len:
        txt = txt[: max_len - 3] + "..."
    return txt
