"""Business-plan accounting and roll-forward integrity checks."""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

from hangar_finance.model import apply_loss_carry_forward


def _finding(
    check: str,
    max_abs_delta: float,
    year: str,
    lhs_name: str,
    rhs_name: str,
) -> dict[str, Any]:
    return {
        "Check": check,
        "Max Abs Delta": float(max_abs_delta),
        "Year of Max Delta": year,
        "LHS": lhs_name,
        "RHS": rhs_name,
    }


def _year_of_max_delta(df: pd.DataFrame, delta: np.ndarray) -> str:
    if len(delta) == 0:
        return ""
    idx = int(np.argmax(np.abs(delta)))
    if "Year" in df.columns and idx < len(df):
        return str(int(df.iloc[idx]["Year"]))
    return str(idx)


def _check_series_identity(
    findings: list[dict[str, Any]],
    df: pd.DataFrame,
    check_name: str,
    lhs_name: str,
    rhs_name: str,
    lhs: np.ndarray,
    rhs: np.ndarray,
    tol: float,
) -> None:
    delta = np.nan_to_num(np.asarray(lhs, dtype=float) - np.asarray(rhs, dtype=float), nan=0.0)
    if len(delta) == 0:
        return
    max_abs = float(np.max(np.abs(delta)))
    if max_abs > float(tol):
        findings.append(_finding(check_name, max_abs, _year_of_max_delta(df, delta), lhs_name, rhs_name))


def _recomputed_tax(rai: np.ndarray, tax_rate: float) -> tuple[np.ndarray, np.ndarray]:
    taxes = np.zeros(len(rai))
    deficits = np.zeros(len(rai))
    deficit = 0.0
    for i, value in enumerate(rai):
        taxes[i], deficit = apply_loss_carry_forward(float(value), deficit, tax_rate)
        deficits[i] = deficit
    return taxes, deficits


def run_integrity_checks(df: pd.DataFrame, state: dict, tol: float = 1e-6) -> list[dict[str, Any]]:
    """Return integrity findings for a ``series_frame`` (empty list means all checks passed)."""
    if not isinstance(df, pd.DataFrame) or df.empty:
        return [{"Check": "Dataframe not available", "Max Abs Delta": np.nan, "Year of Max Delta": "", "LHS": "", "RHS": ""}]

    findings: list[dict[str, Any]] = []

    # Operating account.
    _check_series_identity(
        findings,
        df,
        "Revenue identity",
        "Total CA",
        "CA Acc + CA Tb",
        df["Total CA"].to_numpy(),
        (df["CA Acc"] + df["CA Tb"]).to_numpy(),
        tol,
    )
    _check_series_identity(
        findings,
        df,
        "Charges identity",
        "Total Charges",
        "Maintenance + Assurance + Divers + IFER",
        df["Total Charges"].to_numpy(),
        (df["Maintenance"] + df["Assurance"] + df["Divers"] + df["IFER"]).to_numpy(),
        tol,
    )
    _check_series_identity(
        findings,
        df,
        "EBE identity",
        "EBE",
        "Total CA - Total Charges",
        df["EBE"].to_numpy(),
        (df["Total CA"] - df["Total Charges"]).to_numpy(),
        tol,
    )
    _check_series_identity(
        findings,
        df,
        "RBT identity",
        "RBT",
        "EBE - Amortissement",
        df["RBT"].to_numpy(),
        (df["EBE"] - df["Amortissement"]).to_numpy(),
        tol,
    )
    _check_series_identity(
        findings,
        df,
        "RAI identity",
        "RAI",
        "RBT - Interets",
        df["RAI"].to_numpy(),
        (df["RBT"] - df["Interets"]).to_numpy(),
        tol,
    )
    _check_series_identity(
        findings,
        df,
        "Net result identity",
        "Resultat Net",
        "RAI - IS",
        df["Resultat Net"].to_numpy(),
        (df["RAI"] - df["IS"]).to_numpy(),
        tol,
    )

    # Debt schedule.
    capital = float(df.attrs.get("capital_emprunte", df["DACH"].iloc[0]))
    years_elapsed = df["Year"].to_numpy(dtype=float) - 1
    _check_series_identity(
        findings,
        df,
        "Outstanding capital schedule",
        "DACH",
        "Capital - Amortissement * (Year - 1)",
        df["DACH"].to_numpy(),
        capital - df["Amortissement"].to_numpy() * years_elapsed,
        tol,
    )
    _check_series_identity(
        findings,
        df.tail(1),
        "Capital fully repaid",
        "Sum of Amortissement",
        "Capital",
        np.array([df["Amortissement"].sum()]),
        np.array([capital]),
        tol,
    )
    interest_rate = float(state["interest_rate_pct"]) / 100
    _check_series_identity(
        findings,
        df,
        "Interest identity",
        "Interets",
        "DACH * Interest Rate",
        df["Interets"].to_numpy(),
        df["DACH"].to_numpy() * interest_rate,
        tol,
    )
    debt_service = (df["Amortissement"] + df["Interets"]).to_numpy()
    safe_service = np.where(debt_service > 0, debt_service, 1.0)
    _check_series_identity(
        findings,
        df,
        "DSCR identity",
        "DSCR",
        "EBE / (Amortissement + Interets)",
        df["DSCR"].to_numpy(),
        np.where(debt_service > 0, df["EBE"].to_numpy() / safe_service, 0.0),
        tol,
    )

    # Tax with loss carry-forward.
    _check_series_identity(
        findings,
        df,
        "Non-negative tax",
        "IS",
        "max(0, IS)",
        df["IS"].to_numpy(),
        np.maximum(0.0, df["IS"].to_numpy()),
        tol,
    )
    tax_rate = float(state["fiscal"]["tax_rate_pct"]) / 100
    taxes, deficits = _recomputed_tax(df["RAI"].to_numpy(dtype=float), tax_rate)
    _check_series_identity(
        findings,
        df,
        "Tax recomputation",
        "IS",
        "Tax Rate * max(0, RAI - Prior Deficit)",
        df["IS"].to_numpy(),
        taxes,
        tol,
    )
    _check_series_identity(
        findings,
        df,
        "Deficit roll-forward",
        "Cumulative Deficit",
        "Prior Deficit + losses - absorbed profits",
        df["Cumulative Deficit"].to_numpy(),
        deficits,
        tol,
    )

    # Cumulative series.
    for cumulative_col, yearly_col in (
        ("Cumulative CA Avec Acc", "Total CA"),
        ("Cumulative EBE", "EBE"),
        ("Cumulative IS", "IS"),
    ):
        _check_series_identity(
            findings,
            df,
            f"{cumulative_col} roll-forward",
            cumulative_col,
            f"Running sum of {yearly_col}",
            df[cumulative_col].to_numpy(),
            np.cumsum(df[yearly_col].to_numpy()),
            tol,
        )

    return findings
