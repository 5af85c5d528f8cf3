from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from rulecraft.infra.config import AppSettings
from rulecraft.memory.store import RuleStore, StoreError
from rulecraft.services.telemetry import configure_logging

from .loader import find_rule_files, load_rules_file
from .models import Rule

log = structlog.get_logger(__name__)


@dataclass
class ImportReport:
    files: list[Path] = field(default_factory=list)
    parsed: list[Rule] = field(default_factory=list)
    inserted: int = 0
    updated: int = 0
    # (file or rule id, reason)
    failures: list[tuple[str, str]] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)


def collect_rules(rules_dir: str | Path, report: ImportReport) -> None:
    """Parse every rules file into report.parsed. Bad files and entries become failures."""
    report.files = find_rule_files(rules_dir)
    seen_ids: set[str] = set()
    for path in report.files:
        try:
            loaded = load_rules_file(path)
        except ValueError as e:
            log.warning("import.file_failed", path=str(path), error=str(e))
            report.failures.append((str(path), str(e)))
            continue
        log.info(
            "import.file_parsed", path=path.name, category=loaded.category, rules=len(loaded.rules)
        )
        for label, reason in loaded.failures:
            report.failures.append((f"{path.name}:{label}", reason))
        for rule in loaded.rules:
            if rule.id in seen_ids:
                report.failures.append((rule.id, f"Duplicate rule id in {path.name}"))
                continue
            seen_ids.add(rule.id)
            report.parsed.append(rule)


def import_rules(
    rules_dir: str | Path, store: RuleStore | None = None, dry_run: bool = False
) -> ImportReport:
    """
    Load YAML rules and upsert them one by one.
    Per-file and per-rule failures are collected in the report; the batch always runs to the end.
    """
    report = ImportReport()
    collect_rules(rules_dir, report)
    if dry_run or store is None:
        return report

    for rule in report.parsed:
        try:
            if store.upsert_rule(rule):
                report.inserted += 1
            else:
                report.updated += 1
        except StoreError as e:
            log.warning("import.upsert_failed", rule_id=rule.id, error=str(e))
            report.failures.append((rule.id, str(e)))
    log.info(
        "import.done", inserted=report.inserted, updated=report.updated, failed=report.failed
    )
    return report


def main(argv: list[str] | None = None) -> int:
    settings = AppSettings()
    parser = argparse.ArgumentParser(
        description="Import D&D 2024 rules from YAML files into the SQLite database."
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Preview changes without modifying the database"
    )
    parser.add_argument("--rules-dir", default=settings.rules_dir, help="Directory of YAML files")
    parser.add_argument("--sqlite-path", default=settings.sqlite_path, help="SQLite database path")
    args = parser.parse_args(argv)
    configure_logging(json_logs=settings.enable_json_logs, level=settings.log_level)

    print("Rulecraft Rules Importer")
    if args.dry_run:
        print("DRY RUN MODE - No changes will be made")

    if not Path(args.rules_dir).is_dir():
        print(f"❌ Rules directory not found: {args.rules_dir}", file=sys.stderr)
        return 1

    try:
        store = None if args.dry_run else RuleStore(sqlite_path=args.sqlite_path)
        report = import_rules(args.rules_dir, store=store, dry_run=args.dry_run)
    except FileNotFoundError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except StoreError as e:
        print(f"❌ Database error: {e}", file=sys.stderr)
        return 1

    if not report.files:
        print(f"No YAML files found in {args.rules_dir}")
        return 0

    print(f"Found {len(report.files)} rules file(s), {len(report.parsed)} rule(s) parsed")
    for source, reason in report.failures:
        print(f"  ! {source}: {reason}", file=sys.stderr)

    if args.dry_run:
        for rule in report.parsed:
            print(f"  [{rule.category}/{rule.subcategory or '-'}] {rule.title} (id: {rule.id})")
        print("Dry run complete. Run without --dry-run to import.")
        return 0

    print("✅ Import complete!")
    print(f"  Inserted: {report.inserted} new rules")
    print(f"  Updated:  {report.updated} existing rules")
    print(f"  Failed:   {report.failed}")
    print(f"  Total:    {store.count_rules()} rules in database")
    return 0


if __name__ == "__main__":
    sys.exit(main())
