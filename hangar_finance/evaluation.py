"""Evaluate a project's business plan from raw (stored or imported) finance inputs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import pandas as pd

from hangar_finance.input_metadata import advisory_warnings
from hangar_finance.integrity_checks import run_integrity_checks
from hangar_finance.model import FinanceModelResult, compute_finance_model, series_frame, validate_finance_state
from hangar_finance.runtime_logging import append_runtime_event
from hangar_finance.schema import migrate_finance_state
from hangar_finance.snapshot import build_finance_snapshot


@dataclass
class FinanceEvaluation:
    state: dict
    result: FinanceModelResult
    frame: pd.DataFrame
    warnings: list[str] = field(default_factory=list)
    unknown_keys: list[str] = field(default_factory=list)
    integrity_findings: list[dict[str, Any]] = field(default_factory=list)
    snapshot: dict | None = None


def evaluate_project(
    kwc: float,
    productible_kwh_per_kwc: float,
    raw_state: Any,
    freeze_snapshot: bool = False,
    validated_at: datetime | None = None,
) -> FinanceEvaluation:
    """Migrate, validate and compute a business plan, recording notable outcomes in the runtime log.

    Raises ``ValueError`` when the migrated state fails validation.
    """
    context = {"kwc": kwc, "productible_kwh_per_kwc": productible_kwh_per_kwc}

    state, warnings, unknown_keys = migrate_finance_state(raw_state)
    warnings = warnings + advisory_warnings(state)
    if warnings or unknown_keys:
        append_runtime_event(
            level="WARNING",
            event="input_warnings",
            message=f"{len(warnings)} input warning(s), {len(unknown_keys)} unknown key(s).",
            context={**context, "warnings": warnings, "unknown_keys": unknown_keys},
        )

    try:
        validate_finance_state(state)
    except ValueError as exc:
        append_runtime_event(
            level="ERROR",
            event="finance_validation_failed",
            message=str(exc),
            context=context,
            exc=exc,
        )
        raise

    result = compute_finance_model(kwc, productible_kwh_per_kwc, state)
    kpis = result.kpis
    if kpis.tri_projet_pct is None:
        append_runtime_event(
            level="WARNING",
            event="irr_not_converged",
            message="Project IRR could not be computed.",
            context={**context, "total_cost": result.total_cost},
        )
    if kpis.roi_avec_acc_years is None or kpis.roi_sans_acc_years is None:
        append_runtime_event(
            level="INFO",
            event="payback_not_reached",
            message="Investment is not recovered within the business-plan horizon.",
            context={
                **context,
                "roi_avec_acc_years": kpis.roi_avec_acc_years,
                "roi_sans_acc_years": kpis.roi_sans_acc_years,
                "duration_years": state["fiscal"]["duration_years"],
            },
        )

    frame = series_frame(result)
    findings = run_integrity_checks(frame, state)
    if findings:
        append_runtime_event(
            level="ERROR",
            event="integrity_checks_failed",
            message=f"{len(findings)} integrity check(s) failed.",
            context={**context, "checks": [f["Check"] for f in findings]},
        )

    snapshot = None
    if freeze_snapshot:
        snapshot = build_finance_snapshot(kwc, productible_kwh_per_kwc, result, validated_at=validated_at)
        append_runtime_event(
            level="INFO",
            event="finance_snapshot_frozen",
            message="Finance snapshot frozen.",
            context={**context, "validated_at": snapshot["validatedAt"]},
        )

    return FinanceEvaluation(
        state=state,
        result=result,
        frame=frame,
        warnings=warnings,
        unknown_keys=unknown_keys,
        integrity_findings=findings,
        snapshot=snapshot,
    )
