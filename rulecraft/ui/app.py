"""FastAPI application: HTML pages, the type-ahead API and the rule create API."""

from __future__ import annotations

import uuid
from pathlib import Path

import structlog
import uvicorn
from fastapi import FastAPI, Form, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ValidationError

from rulecraft.infra.config import AppSettings
from rulecraft.knowledge.models import Rule, RuleSuggestion
from rulecraft.knowledge.retriever import RuleRetriever
from rulecraft.llm.groq_adapter import GroqAdapter, RulingError
from rulecraft.memory.store import DuplicateRuleError, RuleStore, StoreError
from rulecraft.orchestrator.models import RulingResult
from rulecraft.orchestrator.ruling import RulingPipeline, build_adapter
from rulecraft.services.telemetry import configure_logging
from rulecraft.ui.components.rules_panel import (
    render_rule_detail,
    render_rule_not_found,
    render_rules_list,
)
from rulecraft.ui.components.scenario_panel import (
    NOT_CONFIGURED_MESSAGE,
    render_ruling,
    render_scenario_form,
    ruling_error_message,
)
from rulecraft.ui.components.search_panel import render_index, render_search_results

log = structlog.get_logger(__name__)

STATIC_DIR = Path(__file__).parent / "static"


class CreateRuleRequest(BaseModel):
    id: str | None = None
    title: str
    category: str
    subcategory: str | None = None
    content: str
    source: str
    page: int | None = None


def _full_text_or_empty(retriever: RuleRetriever, query: str) -> list[Rule]:
    """Search failures degrade to no results on the pages."""
    try:
        return retriever.search_full_text(query)
    except StoreError as e:
        log.warning("search.degraded", query=query, error=str(e))
        return []


def create_app(settings: AppSettings | None = None, adapter: GroqAdapter | None = None) -> FastAPI:
    """
    Build the app. `adapter` overrides the Groq adapter built from settings,
    which is how tests inject a fake ruling service.
    """
    settings = settings or AppSettings()
    store = RuleStore(sqlite_path=settings.sqlite_path)
    retriever = RuleRetriever(store)
    adapter = adapter or build_adapter(settings)
    pipeline = RulingPipeline(settings, adapter) if adapter is not None else None

    app = FastAPI(title="Rulecraft", description="D&D 2024 rules reference and rulings")
    app.state.settings = settings
    app.state.store = store
    app.state.retriever = retriever
    app.state.pipeline = pipeline
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    @app.get("/", response_class=HTMLResponse)
    def index() -> str:
        try:
            count = store.count_rules()
        except StoreError as e:
            log.warning("index.count_failed", error=str(e))
            count = 0
        return render_index(count)

    @app.get("/health", response_class=PlainTextResponse)
    def health() -> str:
        return "OK"

    @app.get("/rules", response_class=HTMLResponse)
    def list_rules() -> str:
        try:
            rules = store.list_rules()
        except StoreError as e:
            log.warning("rules.list_failed", error=str(e))
            rules = []
        return render_rules_list(rules)

    @app.get("/rules/{rule_id}", response_class=HTMLResponse)
    def get_rule(rule_id: str):
        try:
            rule = store.get_rule(rule_id)
        except StoreError as e:
            log.warning("rules.get_failed", rule_id=rule_id, error=str(e))
            rule = None
        if rule is None:
            return HTMLResponse(render_rule_not_found(rule_id), status_code=404)
        return render_rule_detail(rule)

    @app.post("/api/rules", status_code=201)
    def create_rule(payload: CreateRuleRequest):
        data = payload.model_dump()
        data["id"] = data["id"] or str(uuid.uuid4())
        try:
            rule = Rule(**data)
        except ValidationError as e:
            return JSONResponse({"error": str(e)}, status_code=422)
        try:
            stored = store.create_rule(rule)
        except DuplicateRuleError as e:
            return JSONResponse({"error": str(e)}, status_code=409)
        except StoreError as e:
            log.error("rules.create_failed", rule_id=rule.id, error=str(e))
            return JSONResponse({"error": str(e)}, status_code=500)
        return {"id": stored.id, "message": "Rule created successfully"}

    @app.get("/search", response_class=HTMLResponse)
    def search(q: str = "") -> str:
        query = q.strip()
        results = _full_text_or_empty(retriever, query) if query else []
        return render_search_results(query, results)

    @app.get("/api/search", response_model=list[RuleSuggestion])
    def suggest(q: str = "", limit: int = Query(8, ge=1, le=50)):
        try:
            return retriever.suggest(q, limit)
        except StoreError as e:
            log.warning("search.suggest_degraded", query=q, error=str(e))
            return []

    @app.get("/scenario", response_class=HTMLResponse)
    def scenario_form() -> str:
        return render_scenario_form()

    @app.post("/scenario/ask", response_class=HTMLResponse)
    def ask_scenario(request: Request, question: str = Form(...)) -> str:
        question = question.strip()
        if not question:
            return render_scenario_form()
        relevant = _full_text_or_empty(retriever, question)
        pipeline = request.app.state.pipeline
        if pipeline is None:
            answer = NOT_CONFIGURED_MESSAGE
        else:
            try:
                answer = pipeline.get_ruling(question, relevant)
            except RulingError as e:
                answer = ruling_error_message(e)
        return render_ruling(RulingResult(question=question, answer=answer, cited_rules=relevant))

    return app


def main() -> None:
    settings = AppSettings()
    configure_logging(json_logs=settings.enable_json_logs, level=settings.log_level)
    log.info("server.starting", host=settings.host, port=settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
