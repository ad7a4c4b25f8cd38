"""Input guidance metadata and advisory range checks for finance assumptions."""

from __future__ import annotations

from typing import Any

from hangar_finance.schema import get_field


INPUT_GUIDANCE: dict[str, dict[str, Any]] = {
    "tarif_tb": {"min": 0.05, "max": 0.2, "note": "Feed-in tariff for surplus sold to the grid (EUR/kWh)."},
    "tarif_acc": {"min": 0.08, "max": 0.3, "note": "Price of self-consumed energy sold to the occupant (EUR/kWh)."},
    "part_acc_pct": {"min": 0.0, "max": 80.0, "note": "Self-consumption share of the production, in percent."},
    "interest_rate_pct": {"min": 1.0, "max": 8.0, "note": "Annual rate on the borrowed capital, in percent."},
    "maintenance_eur_per_kwc": {"min": 5.0, "max": 25.0, "note": "Annual O&M cost per installed kWc."},
    "costs.installation": {"min": 0.0, "max": 2_000_000.0, "note": "Modules, inverters and PV installation."},
    "costs.raccordement": {"min": 0.0, "max": 200_000.0, "note": "Grid connection works and fees."},
    "costs.developpement": {"min": 0.0, "max": 50_000.0, "note": "Studies, permits and project development."},
    "inflation.infl_tb": {"min": 0.0, "max": 3.0, "note": "Annual indexation of the grid tariff, in percent."},
    "inflation.infl_acc": {"min": 0.0, "max": 5.0, "note": "Annual indexation of the self-consumption price, in percent."},
    "inflation.infl_maintenance": {"min": 0.0, "max": 5.0, "note": "Annual drift of O&M costs, in percent."},
    "inflation.infl_assurance": {"min": 0.0, "max": 5.0, "note": "Annual drift of insurance premiums, in percent."},
    "inflation.infl_divers": {"min": 0.0, "max": 5.0, "note": "Annual drift of miscellaneous charges, in percent."},
    "inflation.infl_ifer": {"min": 0.0, "max": 3.0, "note": "Annual indexation of the IFER network tax, in percent."},
    "fiscal.tax_rate_pct": {"min": 15.0, "max": 33.33, "note": "Corporate income tax rate, in percent."},
    "fiscal.ifer_eur_per_kwc": {"min": 0.0, "max": 10.0, "note": "IFER per kWc, due above 100 kWc only."},
    "fiscal.duration_years": {"min": 10, "max": 30, "note": "Loan term and business-plan horizon, in years."},
}


def _fmt(v: float) -> str:
    if abs(v - round(v)) < 1e-9:
        return f"{int(round(v))}"
    return f"{v:.3f}".rstrip("0").rstrip(".")


def help_with_guidance(key: str, base_help: str) -> str:
    g = INPUT_GUIDANCE.get(key)
    if not g:
        return base_help
    return f"{base_help} Reasonable range: {_fmt(g['min'])} to {_fmt(g['max'])}. {g['note']}"


def advisory_warnings(state: dict) -> list[str]:
    """Out-of-range notices for a FinanceState; never blocks a computation."""
    warnings: list[str] = []
    for key, g in INPUT_GUIDANCE.items():
        try:
            v = float(get_field(state, key))
        except (KeyError, TypeError, ValueError):
            continue
        if v < g["min"] or v > g["max"]:
            warnings.append(
                f"{key}={v:.3f} is outside the recommended range [{_fmt(g['min'])}, {_fmt(g['max'])}]."
            )
    return warnings
