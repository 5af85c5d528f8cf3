import json
from pathlib import Path

import httpx
import pytest

from rulecraft.infra.config import AppSettings
from rulecraft.knowledge.ingest import import_rules
from rulecraft.knowledge.retriever import RuleRetriever
from rulecraft.llm.groq_adapter import RulingStatusError
from rulecraft.memory.store import RuleStore
from rulecraft.orchestrator.ruling import RulingPipeline
from tests.util.factories import RULES_DIR, completion_json, mock_groq_adapter


def make_retriever(tmp_path: Path) -> RuleRetriever:
    store = RuleStore(sqlite_path=str(tmp_path / "flow.db"))
    import_rules(RULES_DIR, store=store)
    return RuleRetriever(store)


def test_ask_grounds_ruling_in_search_results(tmp_path: Path):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        return httpx.Response(200, json=completion_json("You need a free hand. (PHB p. 238)"))

    retriever = make_retriever(tmp_path)
    pipeline = RulingPipeline(AppSettings(_env_file=None), mock_groq_adapter(handler))
    result = pipeline.ask("somatic components while grappled", retriever)

    assert result.answer == "You need a free hand. (PHB p. 238)"
    cited = [r.id for r in result.cited_rules]
    assert "somatic-components" in cited
    assert cited == [r.id for r in retriever.search_full_text(result.question)]

    [body] = requests
    system, user = body["messages"]
    assert user == {"role": "user", "content": "somatic components while grappled"}
    assert "## Somatic Components" in system["content"]
    assert "(Source: Player's Handbook (2024), Page 238)" in system["content"]
    # Context blocks follow the search order.
    titles = [r.title for r in result.cited_rules]
    positions = [system["content"].index(f"## {t}\n") for t in titles]
    assert positions == sorted(positions)


def test_ask_propagates_service_failure(tmp_path: Path):
    adapter = mock_groq_adapter(lambda request: httpx.Response(401, json={"error": "bad key"}))
    pipeline = RulingPipeline(AppSettings(_env_file=None), adapter)
    with pytest.raises(RulingStatusError) as exc:
        pipeline.ask("grapple", make_retriever(tmp_path))
    assert exc.value.status_code == 401
    assert "bad key" in exc.value.body
