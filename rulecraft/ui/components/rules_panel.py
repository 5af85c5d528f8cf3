from __future__ import annotations

from itertools import groupby

from rulecraft.knowledge.models import Rule
from rulecraft.ui.layout import esc, page


def render_bookmark_button(rule: Rule) -> str:
    """Toggle handled client-side by bookmarks.js; state lives in the browser."""
    return (
        f'<button type="button" class="bookmark-btn" data-rule-id="{esc(rule.id)}"'
        f' data-rule-title="{esc(rule.title)}" aria-pressed="false">'
        '<span class="bookmark-icon">&#9734;</span> <span class="bookmark-label">Bookmark</span>'
        "</button>"
    )


def render_rule_card(rule: Rule, full: bool = False) -> str:
    """A single rule as a card; `full` shows the whole text instead of a link."""
    meta = esc(rule.category)
    if rule.subcategory:
        meta += f" / {esc(rule.subcategory)}"
    citation = f"{esc(rule.source)}, Page {esc(rule.page_label)}"
    body = f'<div class="rule-content">{esc(rule.content)}</div>' if full else ""
    return f"""<div class="rule-card">
  {render_bookmark_button(rule)}
  <h3><a href="/rules/{esc(rule.id)}">{esc(rule.title)}</a></h3>
  <div class="rule-meta">{meta} &middot; {citation}</div>
  {body}
</div>"""


def render_rules_list(rules: list[Rule]) -> str:
    """Rules grouped under their category, in store order."""
    if not rules:
        return page("Rules", "<h1>Rules</h1><p>No rules imported yet.</p>")
    sections = []
    for category, group in groupby(rules, key=lambda r: r.category):
        cards = "\n".join(render_rule_card(r) for r in group)
        sections.append(f"<section><h2>{esc(category)}</h2>\n{cards}</section>")
    return page("Rules", "<h1>Rules</h1>\n" + "\n".join(sections))


def render_rule_detail(rule: Rule) -> str:
    return page(rule.title, render_rule_card(rule, full=True))


def render_rule_not_found(rule_id: str) -> str:
    return page("Not found", f"<h1>Rule not found</h1><p>No rule with id {esc(rule_id)}.</p>")
