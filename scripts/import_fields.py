#!/usr/bin/env python3
"""
Import custom field definitions into the field schema database.

Reads field definitions from JSON or CSV and applies them through the schema
mutation service, so every invariant and audit record applies exactly as for
API calls. Fields are matched by (entity type, label); re-running the import
updates existing fields instead of duplicating them.

References use labels, since ids are not known up front:
    "sub_fields": ["Street", "City"]      composite members
    "depends_on": "Status"                dependency target

Usage:
    python scripts/import_fields.py --file client_data/field_definitions.json
    python scripts/import_fields.py --file client_data/fields.csv --dry-run
    python scripts/import_fields.py --file client_data/fields.csv --verbose
"""

import argparse
import csv
import json
import sys
import time
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, List

from dotenv import load_dotenv
from sqlalchemy.orm import Session

# Load environment variables
load_dotenv()

from fieldschema.core.errors import SchemaError
from fieldschema.core.logging import get_logger
from fieldschema.db.session import SessionLocal
from fieldschema.engine.types import parse_entity_type, parse_field_type, parse_lookup_type
from fieldschema.schemas.fields import FieldDefinitionCreate, FieldDefinitionUpdate
from fieldschema.services import fields as service

IMPORT_ACTOR = "import@local.test"
BOOL_COLUMNS = ("is_required", "is_hidden", "is_read_only")

logger = get_logger(__name__)


# ============================================================================
# Data Loading Functions
# ============================================================================

def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in ("1", "true", "yes", "y")


def _split_labels(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    return [part.strip() for part in str(value or "").split("|") if part.strip()]


def load_csv(file_path: Path) -> List[Dict[str, Any]]:
    """
    One row per field. ``options`` holds one option per line inside the cell
    (blank lines are real options); ``sub_fields`` is pipe-separated.
    """
    with open(file_path, "r", encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    out = []
    for row in rows:
        item: Dict[str, Any] = {k: (v if v != "" else None) for k, v in row.items() if k}
        for col in BOOL_COLUMNS:
            item[col] = _as_bool(row.get(col))
        if row.get("options"):
            item["options"] = row["options"].replace("\r\n", "\n").split("\n")
        if row.get("sort_order"):
            item["sort_order"] = int(row["sort_order"])
        out.append(item)
    return out


def load_json(file_path: Path) -> List[Dict[str, Any]]:
    """Either a list of fields with ``entity_type`` or ``{entity_type: [fields]}``."""
    with open(file_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        return [dict(item, entity_type=et) for et, items in data.items() for item in items]
    return list(data)


def load_fields(file_path: Path) -> List[Dict[str, Any]]:
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    if file_path.suffix.lower() == ".csv":
        return load_csv(file_path)
    return load_json(file_path)


# ============================================================================
# Validation Functions
# ============================================================================

class ImportValidationError(Exception):
    """Raised when the import file is inconsistent."""

    pass


def validate_data(items: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """Check types and label references; returns the items grouped by entity type."""
    errors = []
    grouped: Dict[str, List[Dict[str, Any]]] = defaultdict(list)

    for n, item in enumerate(items, start=1):
        etype = parse_entity_type(item.get("entity_type"))
        label = (item.get("field_label") or "").strip()
        if etype is None:
            errors.append(f"Row {n}: unknown entity type '{item.get('entity_type')}'")
            continue
        if not label:
            errors.append(f"Row {n}: field_label is required")
            continue
        if parse_field_type(item.get("field_type") or "text") is None:
            errors.append(f"Row {n} ({label}): unknown field type '{item.get('field_type')}'")
        if item.get("lookup_type") and parse_lookup_type(item["lookup_type"]) is None:
            errors.append(f"Row {n} ({label}): unknown lookup type '{item['lookup_type']}'")
        grouped[etype.value].append(item)

    for etype, group in grouped.items():
        labels = [i["field_label"].strip() for i in group]
        dupes = sorted({lbl for lbl in labels if labels.count(lbl) > 1})
        if dupes:
            errors.append(f"{etype}: duplicate labels {', '.join(dupes)}")
        known = set(labels)
        for item in group:
            refs = _split_labels(item.get("sub_fields")) + _split_labels(item.get("depends_on"))
            missing = [r for r in refs if r not in known]
            if missing:
                errors.append(f"{etype} ({item['field_label']}): unknown references {', '.join(missing)}")

    if errors:
        print("\nValidation errors:")
        for error in errors:
            print(f"  ❌ {error}")
        raise ImportValidationError(f"{len(errors)} validation error(s)")
    return grouped


# ============================================================================
# Import Functions
# ============================================================================

def _attrs(item: Dict[str, Any]) -> Dict[str, Any]:
    keys = (
        "field_name", "field_type", "is_required", "is_hidden", "is_read_only", "sort_order",
        "options", "placeholder", "default_value", "lookup_type", "role",
    )
    out = {k: item[k] for k in keys if item.get(k) is not None}
    out.setdefault("field_type", "text")
    return out


def import_entity_type(db: Session, entity_type: str, items: List[Dict[str, Any]], verbose: bool = False) -> Dict[str, int]:
    """
    Two passes: plain attributes first, then composite members and dependencies
    once every referenced label has an id.
    """
    stats = {"created": 0, "updated": 0}
    by_label = {f.field_label: f for f in service.list_fields(db, entity_type)}

    for item in items:
        label = item["field_label"].strip()
        attrs = _attrs(item)
        existing = by_label.get(label)
        if existing is None:
            f = service.create_field(
                db, entity_type, FieldDefinitionCreate(field_label=label, **attrs), actor=IMPORT_ACTOR
            )
            stats["created"] += 1
        else:
            attrs.pop("field_name", None)
            f = service.update_field(db, existing.id, FieldDefinitionUpdate(**attrs), actor=IMPORT_ACTOR)
            stats["updated"] += 1
        by_label[label] = f
        if verbose:
            print(f"\n    {entity_type}: {f.field_name} {label} ({f.field_type})", end="")

    for item in items:
        refs: Dict[str, Any] = {}
        if item.get("sub_fields"):
            refs["sub_field_ids"] = [str(by_label[lbl].id) for lbl in _split_labels(item["sub_fields"])]
        if item.get("depends_on"):
            refs["dependent_on_field_id"] = str(by_label[_split_labels(item["depends_on"])[0]].id)
        if refs:
            f = by_label[item["field_label"].strip()]
            service.update_field(db, f.id, FieldDefinitionUpdate(**refs), actor=IMPORT_ACTOR)

    db.commit()
    print(f"  {entity_type}: {stats['created']} created, {stats['updated']} updated")
    return stats


def run_import(file_path: Path, dry_run: bool = False, verbose: bool = False) -> Dict[str, Any]:
    start_time = time.time()

    print("Importing field definitions...")
    if dry_run:
        print("  [DRY RUN MODE - No changes will be made]")

    print("  ✓ Validating data...", end="", flush=True)
    grouped = validate_data(load_fields(file_path))
    print(" OK")

    if dry_run:
        print("\n✓ Dry-run complete - validation passed. No data imported.")
        return {"dry_run": True, "validation_passed": True}

    summary: Dict[str, Any] = {}
    db = SessionLocal()
    try:
        for entity_type, items in grouped.items():
            summary[entity_type] = import_entity_type(db, entity_type, items, verbose=verbose)
        summary["elapsed_time"] = time.time() - start_time
        logger.info("Field import complete", file=str(file_path), entity_types=len(grouped))
        print(f"\n✓ Import complete! ({summary['elapsed_time']:.1f}s)")
    except SchemaError as e:
        db.rollback()
        logger.warning("Field import rejected", code=e.code, message=e.message)
        print(f"\n❌ Import failed: [{e.code}] {e.message}")
        raise
    finally:
        db.close()
    return summary


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="Import custom field definitions")
    parser.add_argument(
        "--file",
        type=Path,
        default=Path(__file__).parent.parent / "client_data" / "field_definitions.json",
        help="JSON or CSV file with field definitions (default: client_data/field_definitions.json)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Validate data without importing")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    args = parser.parse_args()

    try:
        run_import(args.file.resolve(), dry_run=args.dry_run, verbose=args.verbose)
    except (ImportValidationError, FileNotFoundError) as e:
        print(f"\n❌ {e}")
        sys.exit(1)
    except SchemaError:
        sys.exit(1)


if __name__ == "__main__":
    main()
