from __future__ import annotations

from copy import deepcopy
from pathlib import Path

import pytest

import hangar_finance.runtime_logging as runtime_logging
from hangar_finance.defaults import DEFAULTS
from hangar_finance.schema import migrate_finance_state


@pytest.fixture(autouse=True)
def isolated_runtime_log(tmp_path, monkeypatch) -> Path:
    log_dir = Path(tmp_path) / "runtime_logs"
    monkeypatch.setattr(runtime_logging, "LOG_DIR", log_dir)
    monkeypatch.setattr(runtime_logging, "RUNTIME_EVENTS_LOG_FILE", log_dir / "runtime_events.jsonl")
    return log_dir


@pytest.fixture
def base_state() -> dict:
    state, _, _ = migrate_finance_state(deepcopy(DEFAULTS))
    return state


@pytest.fixture
def scenario_state(base_state) -> dict:
    """100 000 EUR capex, 5-year loan at 0 %, grid sale only, no inflation."""
    state = deepcopy(base_state)
    state["tarif_tb"] = 0.13
    state["part_acc_pct"] = 0.0
    state["interest_rate_pct"] = 0.0
    state["down_payment"] = 0.0
    state["costs"] = {
        "installation": 50_000.0,
        "charpente": 30_000.0,
        "couverture": 10_000.0,
        "fondations": 10_000.0,
        "raccordement": 0.0,
        "developpement": 0.0,
        "frais_commerciaux": 0.0,
        "soulte": 0.0,
    }
    state["inflation"] = {key: 0.0 for key in state["inflation"]}
    state["fiscal"]["duration_years"] = 5
    return state
