"""FinanceState schema helpers and migration of stored/imported states."""

from __future__ import annotations

import json
import math
import re
from copy import deepcopy
from typing import Any

from hangar_finance.defaults import DEFAULTS


SCHEMA_VERSION = 1
FINANCE_STATE_TYPE = "finance_state"

SECTIONS = ("costs", "options", "inflation", "fiscal")

PCT_FIELDS = ("part_acc_pct", "fiscal.tax_rate_pct")
NON_NEGATIVE_FIELDS = (
    "tarif_tb",
    "tarif_acc",
    "interest_rate_pct",
    "down_payment",
    "maintenance_eur_per_kwc",
    "costs.installation",
    "costs.charpente",
    "costs.couverture",
    "costs.fondations",
    "costs.raccordement",
    "costs.developpement",
    "costs.frais_commerciaux",
    "costs.soulte",
    "options.bardage",
    "options.cheneaux",
    "options.batterie",
    "fiscal.ifer_eur_per_kwc",
)
SIGNED_FIELDS = (
    "inflation.infl_tb",
    "inflation.infl_acc",
    "inflation.infl_maintenance",
    "inflation.infl_assurance",
    "inflation.infl_divers",
    "inflation.infl_ifer",
)
DURATION_FIELD = "fiscal.duration_years"
MIN_DURATION_YEARS = 1
MAX_DURATION_YEARS = 50

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", str(key)).lower()


def get_field(state: dict, path: str) -> Any:
    node: Any = state
    for part in path.split("."):
        node = node[part]
    return node


def set_field(state: dict, path: str, value: Any) -> None:
    parts = path.split(".")
    node = state
    for part in parts[:-1]:
        node = node[part]
    node[parts[-1]] = value


def _overlay(target: dict, payload: dict, prefix: str, warnings: list[str], unknown_keys: list[str]) -> None:
    for raw_key, value in payload.items():
        key = raw_key if raw_key in target else snake_case(raw_key)
        if key not in target:
            unknown_keys.append(f"{prefix}{raw_key}")
            continue
        # An explicit snake_case key wins over its camelCase alias.
        if key != raw_key and key in payload:
            continue
        if not prefix and key in SECTIONS:
            if isinstance(value, dict):
                _overlay(target[key], value, f"{key}.", warnings, unknown_keys)
            else:
                warnings.append(f"{key} ignored because it is not an object.")
            continue
        target[key] = value


def _coerce_number(state: dict, path: str, warnings: list[str]) -> float:
    try:
        val = float(get_field(state, path))
        if not math.isfinite(val):
            raise ValueError(path)
    except (TypeError, ValueError):
        val = float(get_field(DEFAULTS, path))
        warnings.append(f"{path} invalid and reset to default.")
    return val


def migrate_finance_state(raw_state: Any) -> tuple[dict, list[str], list[str]]:
    """Merge an incoming FinanceState over the defaults and sanitize every field.

    Accepts the snake_case keys used here as well as the camelCase keys of the
    web application's stored JSON. Never raises: invalid values are reset to
    their default with a warning, out-of-range values are clamped, unknown keys
    are returned as dotted paths and ignored.
    """
    warnings: list[str] = []
    unknown_keys: list[str] = []
    state = deepcopy(DEFAULTS)
    payload = raw_state if isinstance(raw_state, dict) else {}
    if raw_state is not None and not isinstance(raw_state, dict):
        warnings.append("Finance state is not an object; defaults used.")

    _overlay(state, payload, "", warnings, unknown_keys)

    for path in PCT_FIELDS:
        set_field(state, path, float(min(100.0, max(0.0, _coerce_number(state, path, warnings)))))

    for path in NON_NEGATIVE_FIELDS:
        set_field(state, path, max(0.0, _coerce_number(state, path, warnings)))

    for path in SIGNED_FIELDS:
        set_field(state, path, _coerce_number(state, path, warnings))

    duration = int(_coerce_number(state, DURATION_FIELD, warnings))
    set_field(state, DURATION_FIELD, int(min(MAX_DURATION_YEARS, max(MIN_DURATION_YEARS, duration))))

    return state, warnings, sorted(unknown_keys)


def finance_state_bundle(state: dict) -> dict:
    """Wrap a FinanceState with type and schema metadata for export."""
    return {
        "type": FINANCE_STATE_TYPE,
        "schema_version": SCHEMA_VERSION,
        "state": deepcopy(state),
    }


def parse_finance_state_json(raw_json: str) -> tuple[dict, list[str], list[str]]:
    """Parse exported finance-state JSON (bundle or bare state) into a migrated state."""
    try:
        payload = json.loads(raw_json)
    except (TypeError, json.JSONDecodeError):
        return deepcopy(DEFAULTS), ["Finance state JSON could not be parsed."], []

    if not isinstance(payload, dict):
        return deepcopy(DEFAULTS), ["Import payload is not a JSON object."], []

    if payload.get("type") == FINANCE_STATE_TYPE:
        state, warnings, unknown = migrate_finance_state(payload.get("state", {}))
        version = payload.get("schema_version")
        if version != SCHEMA_VERSION:
            warnings.append(f"Imported schema_version={version}; migrated to schema_version={SCHEMA_VERSION}.")
        return state, warnings, unknown

    state, warnings, unknown = migrate_finance_state(payload)
    warnings.append("Imported finance state JSON without bundle metadata.")
    return state, warnings, unknown
