"""Default finance assumptions for a hangar PV business plan."""

from __future__ import annotations

from copy import deepcopy

from hangar_finance.metrics import round_half_up
from hangar_finance.pricing import lookup_building_cost


# Base annual charges in EUR per installed kWc, each indexed on its own inflation rate.
ASSURANCE_EUR_PER_KWC = 11.5
DIVERS_EUR_PER_KWC = 12.0

# IFER is not due at or below this installed power.
IFER_THRESHOLD_KWC = 100.0

INSTALLATION_EUR_PER_KWC = 500.0
FRAIS_COMMERCIAUX_EUR_PER_KWC = 50.0

# Share of the grid building tariff booked on frame and roofing; foundations take the rest.
CHARPENTE_SHARE = 0.5
COUVERTURE_SHARE = 0.25

DEFAULT_FINANCE_COSTS = {
    "installation": 0.0,
    "charpente": 0.0,
    "couverture": 0.0,
    "fondations": 0.0,
    "raccordement": 0.0,
    "developpement": 0.0,
    "frais_commerciaux": 0.0,
    "soulte": 0.0,
}

DEFAULT_FINANCE_OPTIONS = {
    "bardage": 0.0,
    "cheneaux": 0.0,
    "batterie": 0.0,
}

DEFAULT_FINANCE_INFLATION = {
    "infl_tb": 1.0,
    "infl_acc": 2.0,
    "infl_maintenance": 1.0,
    "infl_assurance": 2.0,
    "infl_divers": 2.0,
    "infl_ifer": 1.0,
}

DEFAULT_FINANCE_FISCAL = {
    "tax_rate_pct": 25.0,
    "ifer_eur_per_kwc": 8.36,
    "duration_years": 20,
}


def _building_costs(building_info: dict | None) -> tuple[float, float, float]:
    charpente, couverture, fondations = 30_000.0, 15_000.0, 15_000.0
    if not building_info:
        return charpente, couverture, fondations

    found = lookup_building_cost(
        building_info.get("type", ""),
        building_info.get("width", 0.0),
        building_info.get("nb_spans", 0),
    )
    if found is None:
        return charpente, couverture, fondations

    tarif = float(found.tarif)
    charpente = round_half_up(tarif * CHARPENTE_SHARE)
    couverture = round_half_up(tarif * COUVERTURE_SHARE)
    fondations = tarif - charpente - couverture
    return charpente, couverture, fondations


def create_default_finance_state(kwc: float | None = None, building_info: dict | None = None) -> dict:
    """Build a FinanceState with default tariffs, costs, inflation and fiscal assumptions.

    kWc and specific yield are never stored in the state; ``kwc`` only seeds
    the per-kWc cost lines. ``building_info`` (``type``, ``width``,
    ``nb_spans``) selects the grid tariff for the building cost lines.
    """
    k = float(kwc or 0.0)
    charpente, couverture, fondations = _building_costs(building_info)

    costs = deepcopy(DEFAULT_FINANCE_COSTS)
    costs.update(
        {
            "installation": round_half_up(INSTALLATION_EUR_PER_KWC * k),
            "charpente": charpente,
            "couverture": couverture,
            "fondations": fondations,
            "raccordement": 15_000.0,
            "developpement": 5_000.0,
            "frais_commerciaux": round_half_up(FRAIS_COMMERCIAUX_EUR_PER_KWC * k),
            "soulte": 0.0,
        }
    )

    return {
        "tarif_tb": 0.1312,
        "tarif_acc": 0.18,
        "part_acc_pct": 0.0,
        "interest_rate_pct": 3.9,
        "down_payment": 0.0,
        "costs": costs,
        "maintenance_eur_per_kwc": 10.0,
        "options": deepcopy(DEFAULT_FINANCE_OPTIONS),
        "inflation": deepcopy(DEFAULT_FINANCE_INFLATION),
        "fiscal": deepcopy(DEFAULT_FINANCE_FISCAL),
    }


DEFAULTS = create_default_finance_state()
