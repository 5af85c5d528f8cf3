from __future__ import annotations

from collections.abc import Sequence

import structlog

from rulecraft.infra.config import AppSettings
from rulecraft.knowledge.models import Rule
from rulecraft.knowledge.retriever import RuleRetriever
from rulecraft.llm.groq_adapter import GroqAdapter, RulingError, RulingNotConfiguredError
from rulecraft.orchestrator.prompts import (
    NO_CONTEXT_PLACEHOLDER,
    RULE_CONTEXT_BLOCK,
    RULING_SYSTEM_PROMPT,
)

from .models import RulingResult

log = structlog.get_logger(__name__)


def build_rules_context(rules: Sequence[Rule]) -> str:
    """Render rules as prompt context, keeping their order. Placeholder when empty."""
    if not rules:
        return NO_CONTEXT_PLACEHOLDER
    return "\n".join(
        RULE_CONTEXT_BLOCK.format(
            title=r.title, content=r.content, source=r.source, page=r.page_label
        )
        for r in rules
    )


def build_messages(question: str, rules: Sequence[Rule]) -> list[dict]:
    """One system message carrying persona and context, one user message with the question."""
    system = RULING_SYSTEM_PROMPT.format(rules_context=build_rules_context(rules))
    return [
        {"role": "system", "content": system.strip()},
        {"role": "user", "content": question},
    ]


def build_adapter(settings: AppSettings) -> GroqAdapter | None:
    """Returns None when no API key is configured."""
    if not settings.ruling_configured:
        return None
    return GroqAdapter(api_key=settings.groq_api_key, timeout_s=settings.ruling_timeout_s)


class RulingPipeline:
    """Context building, prompt construction, the service call and reply extraction."""

    def __init__(self, settings: AppSettings, adapter: GroqAdapter) -> None:
        self.settings = settings
        self.adapter = adapter

    @classmethod
    def from_settings(cls, settings: AppSettings) -> RulingPipeline:
        adapter = build_adapter(settings)
        if adapter is None:
            raise RulingNotConfiguredError()
        return cls(settings, adapter)

    def get_ruling(self, question: str, relevant_rules: Sequence[Rule]) -> str:
        """Ask the model for a ruling grounded in relevant_rules. Raises RulingError."""
        messages = build_messages(question, relevant_rules)
        log.info(
            "ruling.request",
            model=self.settings.ruling_model,
            context_rules=[r.id for r in relevant_rules],
        )
        try:
            reply = self.adapter.complete(
                model=self.settings.ruling_model,
                messages=messages,
                max_tokens=self.settings.ruling_max_tokens,
            )
            return reply.first()
        except RulingError as e:
            log.warning("ruling.failed", error_type=type(e).__name__, error=str(e))
            raise

    def ask(self, question: str, retriever: RuleRetriever) -> RulingResult:
        """Full-text search for context, then a ruling. StoreError and RulingError propagate."""
        rules = retriever.search_full_text(question)
        answer = self.get_ruling(question, rules)
        return RulingResult(question=question, answer=answer, cited_rules=rules)
