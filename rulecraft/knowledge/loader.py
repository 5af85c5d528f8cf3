from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError

from .models import Rule

RULE_FILE_PATTERNS = ("*.yaml", "*.yml")


class RuleEntry(BaseModel):
    """One rule inside a YAML rules file; category and source come from the file."""

    id: str
    title: str
    subcategory: str | None = None
    page: int | None = None
    content: str


class RulesFile(BaseModel):
    category: str
    source: str
    rules: list[dict] = []


@dataclass
class LoadedFile:
    path: Path
    category: str
    rules: list[Rule] = field(default_factory=list)
    # (rule id or position, reason) for entries that failed validation
    failures: list[tuple[str, str]] = field(default_factory=list)


def find_rule_files(root: str | Path) -> list[Path]:
    """List YAML rule files directly under root, sorted by name."""
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Rules directory not found: {root}")
    files = {p for pattern in RULE_FILE_PATTERNS for p in root.glob(pattern)}
    return sorted(files)


def load_rules_file(path: str | Path) -> LoadedFile:
    """
    Parse one YAML rules file.
    Raises ValueError if the file itself is unreadable or malformed; a bad entry
    is recorded in `failures` and does not stop the rest of the file.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
        header = RulesFile(**(raw or {}))
    except (OSError, yaml.YAMLError, ValidationError, TypeError) as e:
        raise ValueError(f"Invalid rules file {path}: {e}") from e

    loaded = LoadedFile(path=path, category=header.category)
    for pos, item in enumerate(header.rules):
        label = str(item.get("id", f"#{pos + 1}")) if isinstance(item, dict) else f"#{pos + 1}"
        try:
            entry = RuleEntry(**item)
            rule = Rule(
                id=entry.id,
                title=entry.title,
                category=header.category,
                subcategory=entry.subcategory,
                content=entry.content,
                source=header.source,
                page=entry.page,
            )
        except (ValidationError, TypeError) as e:
            loaded.failures.append((label, str(e)))
            continue
        loaded.rules.append(rule)
    return loaded
