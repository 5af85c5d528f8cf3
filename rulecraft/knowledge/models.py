from __future__ import annotations

import uuid

from pydantic import BaseModel, Field, field_validator


class Rule(BaseModel):
    """
    Canonical rule record, strictly validated.
    - id is stable, unique and never changes after creation.
    - title, category, content and source are non-empty after trimming.
    - created_at / updated_at are epoch milliseconds owned by the store;
      whatever the caller passes is overwritten on write.
    """

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    subcategory: str | None = None
    content: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1)
    page: int | None = Field(default=None, ge=1)
    created_at: int = 0
    updated_at: int = 0

    @field_validator("id", "title", "category", "source", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("content", mode="before")
    @classmethod
    def content_not_blank(cls, v):
        # Content keeps its inner layout; only an all-whitespace body is rejected.
        if isinstance(v, str) and not v.strip():
            return ""
        return v

    @field_validator("subcategory", mode="before")
    @classmethod
    def blank_subcategory_is_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @classmethod
    def new(
        cls,
        title: str,
        category: str,
        content: str,
        source: str,
        subcategory: str | None = None,
        page: int | None = None,
    ) -> Rule:
        """Build a rule with a freshly generated id."""
        return cls(
            id=str(uuid.uuid4()),
            title=title,
            category=category,
            subcategory=subcategory,
            content=content,
            source=source,
            page=page,
        )

    @property
    def page_label(self) -> str:
        return str(self.page) if self.page is not None else "N/A"


class RuleSuggestion(BaseModel):
    """Type-ahead hit, safe to surface to the browser."""

    id: str
    title: str
    category: str
    excerpt: str
