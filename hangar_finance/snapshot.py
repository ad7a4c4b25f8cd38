"""Frozen finance snapshot taken when a business plan is validated.

The snapshot is a JSON-ready dict with the web application's camelCase keys.
It carries its computation context (kWc, specific yield) so that a later
change of building power or yield can invalidate it, and it is the input of
the post-financing projection (years after the loan is repaid).
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

from hangar_finance.model import FinanceModelResult, apply_loss_carry_forward


DEFAULT_EXTRA_YEARS = 10
FALLBACK_TAX_RATE = 0.25
RESERVE_ROUNDING_EUR = 100


def build_finance_snapshot(
    kwc: float,
    productible_kwh_per_kwc: float,
    result: FinanceModelResult,
    validated_at: datetime | None = None,
) -> dict:
    stamp = validated_at or datetime.now(timezone.utc)
    first = result.series[0] if result.series else None
    cumulative_ebe = result.cumulative.cumulative_ebe
    last_cumulative_ebe = cumulative_ebe[-1] if cumulative_ebe else 0.0

    return {
        "validatedAt": stamp.isoformat(),
        "kwc": kwc,
        "productibleKwhPerKwc": productible_kwh_per_kwc,
        "productionAnnuelleKwh": result.production_annual_kwh,
        "totalCost": result.total_cost,
        "downPayment": result.down_payment,
        "capitalEmprunte": result.capital_emprunte,
        **result.kpis.to_dict(),
        "revenuAnnee1": first.total_ca if first else 0.0,
        "chargesAnnee1": first.charges.total_charges if first else 0.0,
        "resultatNetAnnee1": first.resultat_net if first else 0.0,
        "gainNetExploitation": last_cumulative_ebe - result.total_cost,
        "investorMultiple": last_cumulative_ebe / result.total_cost if result.total_cost > 0 else 0.0,
        "series": [row.to_snapshot_row() for row in result.series],
        "cumulative": result.cumulative.to_dict(),
    }


def snapshot_is_stale(snapshot: dict | None, kwc: float, productible_kwh_per_kwc: float) -> bool:
    """True when the snapshot was computed for another building power or specific yield."""
    if not snapshot:
        return True
    return snapshot.get("kwc") != kwc or snapshot.get("productibleKwhPerKwc") != productible_kwh_per_kwc


def _cagr(first: float, last: float, n: int) -> float:
    # A sign change between the endpoints has no real compound rate.
    if n <= 1 or first <= 0 or last < 0:
        return 0.0
    return (last / first) ** (1 / (n - 1)) - 1


def _inferred_tax_rate(series: list[dict]) -> float:
    for row in reversed(series):
        if row["rai"] > 0 and row["is"] > 0:
            return row["is"] / row["rai"]
    return FALLBACK_TAX_RATE


def compute_extended_rows(snapshot: dict, extra_years: int = DEFAULT_EXTRA_YEARS) -> list[dict]:
    """Project the business plan past the financed horizon, debt fully repaid.

    Revenue and charges follow the average growth observed between the first
    and the last simulated year, compounded from year 1. Revenue is split
    with the last year's self-consumption share and charges with the last
    year's component shares. The tax rate is the one implied by the latest
    taxed year and the loss carry-forward keeps running from the last
    recorded deficit.
    """
    series = snapshot.get("series") or []
    if not series:
        return []

    n = len(series)
    first = series[0]
    last = series[-1]

    ca_growth = _cagr(first["totalCa"], last["totalCa"], n)
    charges_growth = _cagr(first["totalCharges"], last["totalCharges"], n)
    acc_ratio = last["caAcc"] / last["totalCa"] if last["totalCa"] > 0 else 0.0
    tax_rate = _inferred_tax_rate(series)

    charges_last = last["totalCharges"]
    charge_ratios = {
        key: (last[key] / charges_last if charges_last > 0 else 0.25)
        for key in ("maintenance", "assurance", "divers", "ifer")
    }

    deficits = (snapshot.get("cumulative") or {}).get("cumulativeDeficit") or []
    deficit = deficits[-1] if deficits else 0.0

    rows: list[dict] = []
    for j in range(extra_years):
        i = n + j
        total_ca = first["totalCa"] * (1 + ca_growth) ** i
        ca_acc = total_ca * acc_ratio
        total_charges = first["totalCharges"] * (1 + charges_growth) ** i
        ebe = total_ca - total_charges
        rai = ebe
        impot, deficit = apply_loss_carry_forward(rai, deficit, tax_rate)

        rows.append(
            {
                "year": i + 1,
                "caAcc": ca_acc,
                "caTb": total_ca - ca_acc,
                "totalCa": total_ca,
                "maintenance": total_charges * charge_ratios["maintenance"],
                "assurance": total_charges * charge_ratios["assurance"],
                "divers": total_charges * charge_ratios["divers"],
                "ifer": total_charges * charge_ratios["ifer"],
                "totalCharges": total_charges,
                "ebe": ebe,
                "amortissement": 0.0,
                "interets": 0.0,
                "rai": rai,
                "is": impot,
                "resultatNet": rai - impot,
                "dscr": 0.0,
            }
        )
    return rows


def cumulative_ebe_with_extension(snapshot: dict, extended_rows: list[dict]) -> float:
    ebe = (snapshot.get("cumulative") or {}).get("cumulativeEbe") or []
    base = ebe[-1] if ebe else 0.0
    return base + sum(row["ebe"] for row in extended_rows)


def investor_gain_with_extension(snapshot: dict, extended_rows: list[dict]) -> dict:
    """Net operating gain and investor multiple over the financed plus projected years."""
    total_cost = snapshot.get("totalCost") or 0.0
    cumulative_ebe = cumulative_ebe_with_extension(snapshot, extended_rows)
    return {
        "horizonYears": len(snapshot.get("series") or []) + len(extended_rows),
        "cumulativeEbe": cumulative_ebe,
        "gainNetExploitation": cumulative_ebe - total_cost,
        "investorMultiple": cumulative_ebe / total_cost if total_cost > 0 else 0.0,
    }


def _net_treasury(row: dict) -> float:
    return row["ebe"] - (row["amortissement"] + row["interets"])


def treasury_summary(snapshot: dict) -> dict:
    """Year-1 cash position after debt service and the reserve needed to cover early deficits.

    ``breakEvenYear`` is the first year whose EBE covers the loan annuity
    (capital plus interest), None when no simulated year does. The reserve
    sums the consecutive cash shortfalls from year 1 until the first year
    with a non-negative net treasury, rounded up to the next hundred euros.
    """
    series = snapshot.get("series") or []
    net_year1 = _net_treasury(series[0]) if series else 0.0

    break_even_year = None
    for row in series:
        if row["ebe"] >= row["amortissement"] + row["interets"]:
            break_even_year = row["year"]
            break

    shortfall = 0.0
    deficit_years: list[int] = []
    for row in series:
        net = _net_treasury(row)
        if net >= 0:
            break
        deficit_years.append(row["year"])
        shortfall += abs(net)

    return {
        "netTreasuryYear1": net_year1,
        "selfFinanced": net_year1 >= 0,
        "breakEvenYear": break_even_year,
        "cashReserve": float(math.ceil(shortfall / RESERVE_ROUNDING_EUR) * RESERVE_ROUNDING_EUR),
        "deficitYears": deficit_years,
    }
