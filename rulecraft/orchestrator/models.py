from __future__ import annotations

from pydantic import BaseModel

from rulecraft.knowledge.models import Rule


class RulingResult(BaseModel):
    """A ruling together with the rules that grounded it, in search order."""

    question: str
    answer: str
    cited_rules: list[Rule] = []
