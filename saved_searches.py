"""Persistence helpers for named search queries."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from errors import ValidationError
from query_parser import MAX_QUERY_LENGTH

DEFAULT_SAVED_SEARCHES_PATH = "data/saved_searches.json"


def _normalize_entries(raw: Any) -> list[dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    out: list[dict[str, Any]] = []
    seen: set[str] = set()
    default_taken = False
    for item in raw:
        if not isinstance(item, dict):
            continue
        name = str(item.get("name", "")).strip()
        query = str(item.get("query", "")).strip()
        if not name or not query or name in seen:
            continue
        is_default = bool(item.get("isDefault", False)) and not default_taken
        default_taken = default_taken or is_default
        seen.add(name)
        out.append({"name": name, "query": query, "isDefault": is_default})
    return out


def load_saved_searches(path: str) -> list[dict[str, Any]]:
    """Load saved searches from disk, newest first."""
    target = Path(path).expanduser()
    if not target.exists():
        return []
    payload = json.loads(target.read_text(encoding="utf-8"))
    return _normalize_entries(payload.get("searches", []) if isinstance(payload, dict) else [])


def _write(target: Path, entries: list[dict[str, Any]]) -> Path:
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = {"searches": _normalize_entries(entries)}
    target.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return target


def save_search(path: str, name: str, query: str, is_default: bool = False) -> Path:
    """Save or replace a named search and return the saved path."""
    name_text = str(name or "").strip()
    query_text = str(query or "").strip()
    if not name_text:
        raise ValidationError("Search name is required")
    if not query_text:
        raise ValidationError("Search query is required")
    if len(query_text) > MAX_QUERY_LENGTH:
        raise ValidationError(f"Query too long: maximum {MAX_QUERY_LENGTH} characters")

    target = Path(path).expanduser()
    entries = [entry for entry in load_saved_searches(str(target)) if entry["name"] != name_text]
    if is_default:
        for entry in entries:
            entry["isDefault"] = False
    entries.insert(0, {"name": name_text, "query": query_text, "isDefault": bool(is_default)})
    return _write(target, entries)


def delete_search(path: str, name: str) -> bool:
    """Remove a saved search; returns False when the name was not found."""
    target = Path(path).expanduser()
    entries = load_saved_searches(str(target))
    remaining = [entry for entry in entries if entry["name"] != str(name).strip()]
    if len(remaining) == len(entries):
        return False
    _write(target, remaining)
    return True


def default_search(path: str) -> dict[str, Any] | None:
    return next((entry for entry in load_saved_searches(path) if entry["isDefault"]), None)
