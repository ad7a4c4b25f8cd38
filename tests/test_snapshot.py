from __future__ import annotations

import json
from copy import deepcopy
from datetime import datetime, timezone

from hangar_finance.model import compute_finance_model
from hangar_finance.snapshot import (
    build_finance_snapshot,
    compute_extended_rows,
    cumulative_ebe_with_extension,
    investor_gain_with_extension,
    snapshot_is_stale,
    treasury_summary,
)


VALIDATED_AT = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _scenario_snapshot(state) -> dict:
    result = compute_finance_model(100.0, 1200.0, state)
    return build_finance_snapshot(100.0, 1200.0, result, validated_at=VALIDATED_AT)


def test_snapshot_carries_context_kpis_and_series(scenario_state):
    result = compute_finance_model(100.0, 1200.0, scenario_state)
    snapshot = build_finance_snapshot(100.0, 1200.0, result, validated_at=VALIDATED_AT)

    assert snapshot["validatedAt"] == "2026-01-01T00:00:00+00:00"
    assert snapshot["kwc"] == 100.0
    assert snapshot["productionAnnuelleKwh"] == 120_000.0
    assert snapshot["capitalEmprunte"] == 100_000.0
    assert snapshot["triProjetPct"] == result.kpis.tri_projet_pct
    assert snapshot["roiAvecAccYears"] is None
    assert snapshot["revenuAnnee1"] == result.series[0].total_ca
    assert snapshot["chargesAnnee1"] == result.series[0].charges.total_charges
    assert abs(snapshot["gainNetExploitation"] - (5 * 12_250.0 - 100_000.0)) < 1e-6
    assert abs(snapshot["investorMultiple"] - 0.6125) < 1e-9

    assert len(snapshot["series"]) == 5
    assert set(snapshot["series"][0]) == {
        "year", "caAcc", "caTb", "totalCa", "maintenance", "assurance", "divers", "ifer",
        "totalCharges", "ebe", "amortissement", "interets", "rai", "is", "resultatNet", "dscr",
    }
    assert snapshot["cumulative"]["costLine"] == 100_000.0
    # JSON-ready as stored.
    assert json.loads(json.dumps(snapshot)) == snapshot


def test_snapshot_timestamp_defaults_to_now(base_state):
    result = compute_finance_model(100.0, 1200.0, base_state)
    snapshot = build_finance_snapshot(100.0, 1200.0, result)
    assert datetime.fromisoformat(snapshot["validatedAt"]).tzinfo is not None


def test_snapshot_staleness(scenario_state):
    snapshot = _scenario_snapshot(scenario_state)
    assert not snapshot_is_stale(snapshot, 100.0, 1200.0)
    assert snapshot_is_stale(snapshot, 120.0, 1200.0)
    assert snapshot_is_stale(snapshot, 100.0, 1150.0)
    assert snapshot_is_stale(None, 100.0, 1200.0)


def test_extended_rows_after_debt_repayment(scenario_state):
    snapshot = _scenario_snapshot(scenario_state)
    rows = compute_extended_rows(snapshot)

    assert [r["year"] for r in rows] == list(range(6, 16))
    for row in rows:
        assert row["amortissement"] == 0.0
        assert row["interets"] == 0.0
        assert row["dscr"] == 0.0
        assert abs(row["ebe"] - 12_250.0) < 1e-6
        assert row["rai"] == row["ebe"]
        assert abs(row["maintenance"] - 1_000.0) < 1e-6
        assert row["caAcc"] == 0.0

    # 5 years of 7750 losses are absorbed before any tax is due (fallback 25 %).
    assert [r["is"] for r in rows[:3]] == [0.0, 0.0, 0.0]
    assert abs(rows[3]["is"] - (12_250.0 - 2_000.0) * 0.25) < 1e-6
    assert abs(rows[4]["is"] - 12_250.0 * 0.25) < 1e-6


def test_extended_rows_follow_observed_growth(base_state):
    result = compute_finance_model(100.0, 1200.0, base_state)
    snapshot = build_finance_snapshot(100.0, 1200.0, result, validated_at=VALIDATED_AT)
    rows = compute_extended_rows(snapshot, extra_years=5)

    assert len(rows) == 5
    last = snapshot["series"][-1]
    assert rows[0]["totalCa"] > last["totalCa"]
    assert rows[0]["totalCharges"] > last["totalCharges"]
    # Taxed years exist, so the implied rate is the configured 25 %.
    assert abs(rows[0]["is"] / rows[0]["rai"] - 0.25) < 1e-9


def test_extended_rows_with_zero_charges_use_even_split():
    snapshot = {
        "series": [
            {"year": 1, "totalCa": 100.0, "caAcc": 0.0, "totalCharges": 0.0, "maintenance": 0.0,
             "assurance": 0.0, "divers": 0.0, "ifer": 0.0, "rai": 100.0, "is": 0.0},
        ],
        "cumulative": {"cumulativeEbe": [100.0]},
    }
    rows = compute_extended_rows(snapshot, extra_years=2)
    assert rows[0]["year"] == 2
    assert rows[0]["totalCharges"] == 0.0
    assert rows[0]["is"] == 25.0
    assert compute_extended_rows({"series": []}) == []


def test_cumulative_ebe_with_extension(scenario_state):
    snapshot = _scenario_snapshot(scenario_state)
    rows = compute_extended_rows(snapshot)
    assert abs(cumulative_ebe_with_extension(snapshot, rows) - 15 * 12_250.0) < 1e-6
    assert cumulative_ebe_with_extension({"cumulative": {}}, []) == 0.0


def test_extended_rows_when_revenue_turns_negative():
    snapshot = {
        "series": [
            {"year": 1, "totalCa": 100.0, "caAcc": 0.0, "totalCharges": 40.0, "maintenance": 10.0,
             "assurance": 10.0, "divers": 10.0, "ifer": 10.0, "rai": 60.0, "is": 15.0},
            {"year": 2, "totalCa": -20.0, "caAcc": 0.0, "totalCharges": 40.0, "maintenance": 10.0,
             "assurance": 10.0, "divers": 10.0, "ifer": 10.0, "rai": -60.0, "is": 0.0},
        ],
        "cumulative": {"cumulativeEbe": [60.0, 0.0], "cumulativeDeficit": [0.0, 60.0]},
    }
    rows = compute_extended_rows(snapshot, extra_years=2)
    # No real growth rate spans a sign change, so revenue stays flat at the year-1 level.
    assert [r["totalCa"] for r in rows] == [100.0, 100.0]
    assert all(isinstance(r["is"], float) for r in rows)
    assert rows[0]["is"] == 0.0
    assert rows[1]["is"] == 15.0


def test_investor_gain_with_extension(scenario_state):
    snapshot = _scenario_snapshot(scenario_state)
    rows = compute_extended_rows(snapshot)
    gain = investor_gain_with_extension(snapshot, rows)

    assert gain["horizonYears"] == 15
    assert abs(gain["cumulativeEbe"] - 183_750.0) < 1e-6
    assert abs(gain["gainNetExploitation"] - 83_750.0) < 1e-6
    assert abs(gain["investorMultiple"] - 1.8375) < 1e-9

    free = dict(snapshot, totalCost=0.0)
    assert investor_gain_with_extension(free, rows)["investorMultiple"] == 0.0


def test_treasury_summary_with_loan_deficits(scenario_state):
    summary = treasury_summary(_scenario_snapshot(scenario_state))

    assert abs(summary["netTreasuryYear1"] - (12_250.0 - 20_000.0)) < 1e-6
    assert summary["selfFinanced"] is False
    assert summary["breakEvenYear"] is None
    # 5 x 7750 = 38750, rounded up to the next hundred.
    assert summary["cashReserve"] == 38_800.0
    assert summary["deficitYears"] == [1, 2, 3, 4, 5]


def test_treasury_summary_self_financed_from_year_one(base_state):
    state = deepcopy(base_state)
    state["down_payment"] = 1e9
    result = compute_finance_model(100.0, 1200.0, state)
    snapshot = build_finance_snapshot(100.0, 1200.0, result, validated_at=VALIDATED_AT)
    summary = treasury_summary(snapshot)

    assert result.capital_emprunte == 0.0
    assert summary["netTreasuryYear1"] == snapshot["series"][0]["ebe"]
    assert summary["netTreasuryYear1"] > 0
    assert summary["selfFinanced"] is True
    assert summary["breakEvenYear"] == 1
    assert summary["cashReserve"] == 0.0
    assert summary["deficitYears"] == []


def test_treasury_summary_reserve_stops_at_first_covered_year():
    snapshot = {
        "series": [
            {"year": 1, "ebe": 50.0, "amortissement": 100.0, "interets": 20.0},
            {"year": 2, "ebe": 90.0, "amortissement": 100.0, "interets": 10.0},
            {"year": 3, "ebe": 120.0, "amortissement": 100.0, "interets": 5.0},
            {"year": 4, "ebe": 10.0, "amortissement": 100.0, "interets": 0.0},
        ],
    }
    summary = treasury_summary(snapshot)
    assert summary["netTreasuryYear1"] == -70.0
    assert summary["breakEvenYear"] == 3
    # 70 + 20 shortfall, year 4 comes after recovery and is ignored.
    assert summary["deficitYears"] == [1, 2]
    assert summary["cashReserve"] == 100.0
    assert treasury_summary({"series": []})["cashReserve"] == 0.0
