from __future__ import annotations

from rulecraft.knowledge.models import Rule
from rulecraft.ui.components.rules_panel import render_rule_card
from rulecraft.ui.layout import APP_NAME, esc, page, search_form


def render_index(rule_count: int) -> str:
    body = f"""<h1>{APP_NAME}</h1>
<p>D&amp;D 2024 rules reference with {rule_count} rules on file.</p>
{search_form()}
<p><a href="/scenario">Ask a rules question</a> to get a ruling with citations.</p>"""
    return page("D&D 2024 Rules", body)


def render_search_results(query: str, results: list[Rule]) -> str:
    if not query:
        listing = ""
    elif not results:
        listing = f"<p>No rules matched <strong>{esc(query)}</strong>.</p>"
    else:
        cards = "\n".join(render_rule_card(r) for r in results)
        listing = f"<p>{len(results)} result(s)</p>\n{cards}"
    title = f"Search: {query}" if query else "Search"
    return page(title, f"<h1>Search</h1>\n{search_form(query)}\n{listing}")
