from __future__ import annotations

from collections.abc import Iterable

import structlog

from rulecraft.memory.store import RuleStore

from .models import Rule, RuleSuggestion
from .sanitize import make_excerpt, sanitize_fts_query

log = structlog.get_logger(__name__)

FULL_TEXT_LIMIT = 20

# Fuzzy ranking tiers, best first.
TIER_TITLE_PREFIX = 0
TIER_TITLE_CONTAINS = 1
TIER_CATEGORY = 2
TIER_OTHER = 3


def fuzzy_tier(rule: Rule, needle: str) -> int | None:
    """Return the ranking tier of a rule for a case-folded needle, or None if it does not match."""
    title = rule.title.casefold()
    if title.startswith(needle):
        return TIER_TITLE_PREFIX
    if needle in title:
        return TIER_TITLE_CONTAINS
    if needle in rule.category.casefold():
        return TIER_CATEGORY
    if needle in rule.content.casefold():
        return TIER_OTHER
    return None


def rank_fuzzy(rules: Iterable[Rule], query: str, limit: int) -> list[Rule]:
    """
    Substring match over title, category and content.
    Ordered by tier, then alphabetically by title. A blank query matches nothing.
    """
    if limit < 1:
        raise ValueError(f"limit must be positive, got {limit}")
    needle = query.strip().casefold()
    if not needle:
        return []

    candidates: list[tuple[int, str, str, Rule]] = []
    for rule in rules:
        tier = fuzzy_tier(rule, needle)
        if tier is not None:
            candidates.append((tier, rule.title.casefold(), rule.id, rule))

    candidates.sort(key=lambda c: c[:3])
    return [rule for *_, rule in candidates[:limit]]


class RuleRetriever:
    """Keyword and fuzzy search over the rule store."""

    def __init__(self, store: RuleStore) -> None:
        self.store = store

    def search_full_text(self, query: str) -> list[Rule]:
        """
        Token-OR search against the FTS index, best match first.
        Returns [] when the query has no searchable tokens.
        Raises StoreError if the index cannot be queried.
        """
        match = sanitize_fts_query(query)
        if not match:
            return []
        hits = self.store.search_fts(match, FULL_TEXT_LIMIT)
        log.debug("search.full_text", match=match, hits=len(hits))
        return hits

    def fuzzy_search(self, query: str, limit: int = 8) -> list[Rule]:
        """Type-ahead search: title prefix, then title, category and content substrings."""
        needle = query.strip()
        if not needle:
            # rank_fuzzy still validates limit.
            return rank_fuzzy([], query, limit)
        # The store narrows to substring matches; tiering and ordering stay here.
        return rank_fuzzy(self.store.match_rules(needle), query, limit)

    def suggest(self, query: str, limit: int = 8) -> list[RuleSuggestion]:
        return [
            RuleSuggestion(
                id=rule.id,
                title=rule.title,
                category=rule.category,
                excerpt=make_excerpt(rule.content),
            )
            for rule in self.fuzzy_search(query, limit)
        ]
