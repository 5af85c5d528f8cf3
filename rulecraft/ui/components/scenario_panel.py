from __future__ import annotations

from rulecraft.orchestrator.models import RulingResult
from rulecraft.ui.components.rules_panel import render_rule_card
from rulecraft.ui.layout import esc, page

NOT_CONFIGURED_MESSAGE = (
    "Ruling service API key not configured. Please set the GROQ_API_KEY environment variable."
)


def ruling_error_message(error: Exception) -> str:
    return f"Error getting ruling: {error}"


def render_scenario_form(question: str = "") -> str:
    body = f"""<h1>Ask a Scenario Question</h1>
<form action="/scenario/ask" method="post">
  <textarea name="question" rows="5" required
            placeholder="Can a grappled creature still cast a spell with a somatic component?"
  >{esc(question)}</textarea>
  <p><button type="submit">Get ruling</button></p>
</form>"""
    return page("Ask a Scenario Question", body)


def render_ruling(result: RulingResult) -> str:
    if result.cited_rules:
        cited = "\n".join(render_rule_card(r) for r in result.cited_rules)
    else:
        cited = "<p>No matching rules were found for context.</p>"
    body = f"""<h1>Ruling</h1>
<p><strong>Question:</strong> {esc(result.question)}</p>
<div class="ruling">{esc(result.answer)}</div>
<h2>Rules consulted</h2>
{cited}
<p><a href="/scenario">Ask another question</a></p>"""
    return page("Ruling", body)
