"""Core business-plan engine for a hangar PV project.

Given the installed power (kWc), the specific yield (kWh/kWc/yr) and a
FinanceState dict, the engine simulates revenue, charges, straight-line
financing, corporate tax with loss carry-forward and debt coverage year by
year, then derives the summary KPIs (project IRR, average DSCR and the two
payback horizons). Nothing is rounded inside the yearly loop; rounding is
applied to the KPIs only.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

import pandas as pd

from hangar_finance.defaults import ASSURANCE_EUR_PER_KWC, DIVERS_EUR_PER_KWC, IFER_THRESHOLD_KWC
from hangar_finance.metrics import compute_irr, compute_payback, round_half_up


COST_FIELDS = (
    "installation",
    "charpente",
    "couverture",
    "fondations",
    "raccordement",
    "developpement",
    "frais_commerciaux",
    "soulte",
)
OPTION_FIELDS = ("bardage", "cheneaux", "batterie")
INFLATION_FIELDS = (
    "infl_tb",
    "infl_acc",
    "infl_maintenance",
    "infl_assurance",
    "infl_divers",
    "infl_ifer",
)


@dataclass(frozen=True)
class YearCharges:
    maintenance: float
    assurance: float
    divers: float
    ifer: float
    total_charges: float


@dataclass(frozen=True)
class YearRow:
    year: int
    ca_acc: float
    ca_tb: float
    total_ca: float
    charges: YearCharges
    ebe: float
    amortissement: float
    dach: float
    interets: float
    rbt: float
    rai: float
    impot: float
    resultat_net: float
    dscr: float

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "caAcc": self.ca_acc,
            "caTb": self.ca_tb,
            "totalCa": self.total_ca,
            "charges": {
                "maintenance": self.charges.maintenance,
                "assurance": self.charges.assurance,
                "divers": self.charges.divers,
                "ifer": self.charges.ifer,
                "totalCharges": self.charges.total_charges,
            },
            "ebe": self.ebe,
            "amortissement": self.amortissement,
            "dach": self.dach,
            "interets": self.interets,
            "rbt": self.rbt,
            "rai": self.rai,
            "is": self.impot,
            "resultatNet": self.resultat_net,
            "dscr": self.dscr,
        }

    def to_snapshot_row(self) -> dict:
        """Flat row used in frozen snapshots (no nested charges record)."""
        return {
            "year": self.year,
            "caAcc": self.ca_acc,
            "caTb": self.ca_tb,
            "totalCa": self.total_ca,
            "maintenance": self.charges.maintenance,
            "assurance": self.charges.assurance,
            "divers": self.charges.divers,
            "ifer": self.charges.ifer,
            "totalCharges": self.charges.total_charges,
            "ebe": self.ebe,
            "amortissement": self.amortissement,
            "interets": self.interets,
            "rai": self.rai,
            "is": self.impot,
            "resultatNet": self.resultat_net,
            "dscr": self.dscr,
        }


@dataclass(frozen=True)
class CumulativeSeries:
    cumulative_ca_avec_acc: tuple[float, ...]
    cumulative_ca_sans_acc: tuple[float, ...]
    cumulative_ebe: tuple[float, ...]
    cumulative_deficit: tuple[float, ...]
    cumulative_is: tuple[float, ...]
    cost_line: float

    def to_dict(self) -> dict:
        return {
            "cumulativeCaAvecAcc": list(self.cumulative_ca_avec_acc),
            "cumulativeCaSansAcc": list(self.cumulative_ca_sans_acc),
            "cumulativeEbe": list(self.cumulative_ebe),
            "cumulativeDeficit": list(self.cumulative_deficit),
            "cumulativeIS": list(self.cumulative_is),
            "costLine": self.cost_line,
        }


@dataclass(frozen=True)
class FinanceKpis:
    tri_projet_pct: float | None
    dscr_moyen: float
    roi_sans_acc_years: float | None
    roi_avec_acc_years: float | None

    def to_dict(self) -> dict:
        return {
            "triProjetPct": self.tri_projet_pct,
            "dscrMoyen": self.dscr_moyen,
            "roiSansAccYears": self.roi_sans_acc_years,
            "roiAvecAccYears": self.roi_avec_acc_years,
        }


@dataclass(frozen=True)
class FinanceModelResult:
    production_annual_kwh: float
    total_cost: float
    down_payment: float
    capital_emprunte: float
    kpis: FinanceKpis
    series: tuple[YearRow, ...]
    cumulative: CumulativeSeries

    def to_dict(self) -> dict:
        return {
            "productionAnnualKwh": self.production_annual_kwh,
            "totalCost": self.total_cost,
            "downPayment": self.down_payment,
            "capitalEmprunte": self.capital_emprunte,
            "kpis": self.kpis.to_dict(),
            "series": [row.to_dict() for row in self.series],
            "cumulative": self.cumulative.to_dict(),
        }


def compute_total_cost(state: dict) -> float:
    """Uninflated capex: the eight cost lines plus the three options."""
    costs = state["costs"]
    options = state["options"]
    total = 0.0
    for field in COST_FIELDS:
        total += costs[field]
    for field in OPTION_FIELDS:
        total += options[field]
    return total


def clamp_down_payment(down_payment: float | None, total_cost: float) -> float:
    """Down payment actually applied: never more than the project cost, no error raised."""
    return min(down_payment or 0.0, total_cost)


def apply_loss_carry_forward(rai: float, deficit: float, tax_rate: float) -> tuple[float, float]:
    """Return (tax, deficit carried to next year) for one year's pre-tax result."""
    if rai < 0:
        return 0.0, deficit + abs(rai)
    taxable_base = max(0.0, rai - deficit)
    return taxable_base * tax_rate, max(0.0, deficit - rai)


def validate_finance_state(state: dict) -> None:
    """Boundary checks for a FinanceState; the engine itself does not call this."""
    part_acc = float(state["part_acc_pct"])
    if not (0 <= part_acc <= 100):
        raise ValueError("part_acc_pct must be in [0,100].")
    tax_rate = float(state["fiscal"]["tax_rate_pct"])
    if not (0 <= tax_rate <= 100):
        raise ValueError("fiscal.tax_rate_pct must be in [0,100].")

    non_negative_fields = [
        "tarif_tb",
        "tarif_acc",
        "interest_rate_pct",
        "down_payment",
        "maintenance_eur_per_kwc",
    ]
    for field in non_negative_fields:
        if float(state[field]) < 0:
            raise ValueError(f"{field} must be non-negative.")
    for field in COST_FIELDS:
        if float(state["costs"][field]) < 0:
            raise ValueError(f"costs.{field} must be non-negative.")
    for field in OPTION_FIELDS:
        if float(state["options"][field]) < 0:
            raise ValueError(f"options.{field} must be non-negative.")
    if float(state["fiscal"]["ifer_eur_per_kwc"]) < 0:
        raise ValueError("fiscal.ifer_eur_per_kwc must be non-negative.")

    for field in INFLATION_FIELDS:
        if float(state["inflation"][field]) <= -100:
            raise ValueError(f"inflation.{field} must be greater than -100.")

    if int(state["fiscal"]["duration_years"]) < 1:
        raise ValueError("fiscal.duration_years must be at least 1.")


def compute_finance_model(kwc: float, productible_kwh_per_kwc: float, state: dict) -> FinanceModelResult:
    """Simulate the financed horizon year by year and derive the summary KPIs.

    ``fiscal.duration_years`` is truncated with ``int()``, so 20.9 runs 20
    years; migrated states already carry an integer duration.
    """
    n_years = int(state["fiscal"]["duration_years"])
    if n_years < 1:
        raise ValueError("fiscal.duration_years must be at least 1.")

    production_annual_kwh = kwc * productible_kwh_per_kwc

    acc_kwh = production_annual_kwh * (state["part_acc_pct"] / 100)
    tb_kwh = production_annual_kwh - acc_kwh
    # Baseline with the whole production exported, for the payback without self-consumption.
    tb_kwh_sans_acc = production_annual_kwh

    total_cost = compute_total_cost(state)
    down_payment = clamp_down_payment(state.get("down_payment"), total_cost)
    capital_emprunte = total_cost - down_payment
    amortissement = capital_emprunte / n_years

    inflation = state["inflation"]
    infl_tb = inflation["infl_tb"] / 100
    infl_acc = inflation["infl_acc"] / 100
    infl_maint = inflation["infl_maintenance"] / 100
    infl_assur = inflation["infl_assurance"] / 100
    infl_div = inflation["infl_divers"] / 100
    infl_ifer = inflation["infl_ifer"] / 100
    interest_rate = state["interest_rate_pct"] / 100
    tax_rate = state["fiscal"]["tax_rate_pct"] / 100

    ifer_base = 0.0 if kwc <= IFER_THRESHOLD_KWC else kwc * state["fiscal"]["ifer_eur_per_kwc"]

    series: list[YearRow] = []
    ebe_flows: list[float] = []
    cumul_ca_avec_acc: list[float] = []
    cumul_ca_sans_acc: list[float] = []
    cumul_ebe: list[float] = []
    cumul_deficit: list[float] = []
    cumul_is: list[float] = []

    sum_ca_avec_acc = 0.0
    sum_ca_sans_acc = 0.0
    sum_ebe = 0.0
    sum_is = 0.0
    sum_dscr = 0.0
    deficit = 0.0

    for i in range(n_years):
        ca_acc = acc_kwh * state["tarif_acc"] * (1 + infl_acc) ** i
        ca_tb = tb_kwh * state["tarif_tb"] * (1 + infl_tb) ** i
        total_ca = ca_acc + ca_tb
        ca_tb_sans_acc = tb_kwh_sans_acc * state["tarif_tb"] * (1 + infl_tb) ** i

        maintenance = kwc * state["maintenance_eur_per_kwc"] * (1 + infl_maint) ** i
        assurance = kwc * ASSURANCE_EUR_PER_KWC * (1 + infl_assur) ** i
        divers = kwc * DIVERS_EUR_PER_KWC * (1 + infl_div) ** i
        ifer = ifer_base * (1 + infl_ifer) ** i
        total_charges = maintenance + assurance + divers + ifer

        ebe = total_ca - total_charges

        # Balance still due at the start of the year, on borrowed capital only.
        dach = capital_emprunte - amortissement * i
        interets = dach * interest_rate

        rbt = ebe - amortissement
        rai = rbt - interets
        impot, deficit = apply_loss_carry_forward(rai, deficit, tax_rate)
        resultat_net = rai - impot

        debt_service = amortissement + interets
        dscr = ebe / debt_service if debt_service > 0 else 0.0
        sum_dscr += dscr

        sum_ca_avec_acc += total_ca
        sum_ca_sans_acc += ca_tb_sans_acc
        sum_ebe += ebe
        sum_is += impot
        cumul_ca_avec_acc.append(sum_ca_avec_acc)
        cumul_ca_sans_acc.append(sum_ca_sans_acc)
        cumul_ebe.append(sum_ebe)
        cumul_deficit.append(deficit)
        cumul_is.append(sum_is)
        ebe_flows.append(ebe)

        series.append(
            YearRow(
                year=i + 1,
                ca_acc=ca_acc,
                ca_tb=ca_tb,
                total_ca=total_ca,
                charges=YearCharges(
                    maintenance=maintenance,
                    assurance=assurance,
                    divers=divers,
                    ifer=ifer,
                    total_charges=total_charges,
                ),
                ebe=ebe,
                amortissement=amortissement,
                dach=dach,
                interets=interets,
                rbt=rbt,
                rai=rai,
                impot=impot,
                resultat_net=resultat_net,
                dscr=dscr,
            )
        )

    tri_projet_pct = compute_irr([-total_cost, *ebe_flows])
    dscr_moyen = sum_dscr / n_years
    roi_avec_acc = compute_payback(total_cost, cumul_ca_avec_acc)
    roi_sans_acc = compute_payback(total_cost, cumul_ca_sans_acc)

    kpis = FinanceKpis(
        tri_projet_pct=round_half_up(tri_projet_pct, 2) if tri_projet_pct is not None else None,
        dscr_moyen=round_half_up(dscr_moyen, 2),
        roi_sans_acc_years=round_half_up(roi_sans_acc, 1) if roi_sans_acc is not None else None,
        roi_avec_acc_years=round_half_up(roi_avec_acc, 1) if roi_avec_acc is not None else None,
    )

    return FinanceModelResult(
        production_annual_kwh=production_annual_kwh,
        total_cost=total_cost,
        down_payment=down_payment,
        capital_emprunte=capital_emprunte,
        kpis=kpis,
        series=tuple(series),
        cumulative=CumulativeSeries(
            cumulative_ca_avec_acc=tuple(cumul_ca_avec_acc),
            cumulative_ca_sans_acc=tuple(cumul_ca_sans_acc),
            cumulative_ebe=tuple(cumul_ebe),
            cumulative_deficit=tuple(cumul_deficit),
            cumulative_is=tuple(cumul_is),
            cost_line=total_cost,
        ),
    )


def series_frame(result: FinanceModelResult) -> pd.DataFrame:
    """Year-by-year business plan as a DataFrame (one row per simulated year)."""
    rows = result.series
    cumulative = result.cumulative
    df = pd.DataFrame(
        {
            "Year": [r.year for r in rows],
            "CA Acc": [r.ca_acc for r in rows],
            "CA Tb": [r.ca_tb for r in rows],
            "Total CA": [r.total_ca for r in rows],
            "Maintenance": [r.charges.maintenance for r in rows],
            "Assurance": [r.charges.assurance for r in rows],
            "Divers": [r.charges.divers for r in rows],
            "IFER": [r.charges.ifer for r in rows],
            "Total Charges": [r.charges.total_charges for r in rows],
            "EBE": [r.ebe for r in rows],
            "Amortissement": [r.amortissement for r in rows],
            "DACH": [r.dach for r in rows],
            "Interets": [r.interets for r in rows],
            "RBT": [r.rbt for r in rows],
            "RAI": [r.rai for r in rows],
            "IS": [r.impot for r in rows],
            "Resultat Net": [r.resultat_net for r in rows],
            "DSCR": [r.dscr for r in rows],
            "Cumulative CA Avec Acc": list(cumulative.cumulative_ca_avec_acc),
            "Cumulative CA Sans Acc": list(cumulative.cumulative_ca_sans_acc),
            "Cumulative EBE": list(cumulative.cumulative_ebe),
            "Cumulative Deficit": list(cumulative.cumulative_deficit),
            "Cumulative IS": list(cumulative.cumulative_is),
        }
    )
    df.attrs["total_cost"] = result.total_cost
    df.attrs["down_payment"] = result.down_payment
    df.attrs["capital_emprunte"] = result.capital_emprunte
    df.attrs["production_annual_kwh"] = result.production_annual_kwh
    df.attrs["kpis"] = asdict(result.kpis)
    return df
