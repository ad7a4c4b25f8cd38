from __future__ import annotations

import math

from hangar_finance.metrics import _recover_working_rate, compute_irr, compute_payback, npv, round_half_up


def test_irr_single_period_ten_percent():
    irr = compute_irr([-1000.0, 1100.0])
    assert irr is not None
    assert abs(irr - 10.0) < 0.01


def test_irr_break_even_flows_give_zero_rate():
    irr = compute_irr([-1000.0, 1000.0])
    assert irr is not None
    assert abs(irr) < 1e-6


def test_irr_rejects_non_outflow_first_entry_and_short_series():
    assert compute_irr([100.0, 200.0]) is None
    assert compute_irr([0.0, 200.0]) is None
    assert compute_irr([-1000.0]) is None
    assert compute_irr([]) is None


def test_irr_is_a_root_of_npv():
    flows = [-100_000.0] + [12_000.0] * 20
    irr = compute_irr(flows)
    assert irr is not None
    assert abs(npv(irr / 100, flows)) < 1e-4


def test_irr_returns_none_without_convergence():
    assert compute_irr([-1000.0, 1100.0, -50.0, 30.0], max_iter=0) is None


def test_working_rate_recovery_bounds():
    assert _recover_working_rate(-1.0) == -0.5
    assert _recover_working_rate(-0.99) == -0.99
    assert _recover_working_rate(10.5) == 5
    assert _recover_working_rate(10) == 10
    assert _recover_working_rate(0.07) == 0.07


def test_irr_flat_start_nudges_then_recovers_from_floor():
    # dNPV is zero at the 10 % start; the path then overshoots below -99 %
    # and is reset to -50 %, landing on the lower of the two roots.
    irr = compute_irr([-0.8, 2.0, -1.1])
    expected = (2.2 / (2.0 + math.sqrt(0.48)) - 1) * 100
    assert irr is not None
    assert abs(irr - expected) < 1e-6


def test_irr_recovers_from_ceiling_then_floor():
    # Nudge, jump past 1000 % (reset to 500 %), jump below -99 % (reset to -50 %).
    irr = compute_irr([-0.7, 2.0, -1.1])
    expected = (2.2 / (2.0 + math.sqrt(0.92)) - 1) * 100
    assert irr is not None
    assert abs(irr - expected) < 1e-6


def test_irr_gives_up_when_resets_cycle_or_derivative_stays_flat():
    # The 4900 % root lies above the ceiling, so the iteration keeps resetting to 500 %.
    assert compute_irr([-1.0, 50.0]) is None
    assert compute_irr([-1.0, 0.0, 0.0]) is None


def test_payback_within_first_year():
    assert compute_payback(1000.0, [1000.0]) == 1.0
    assert compute_payback(500.0, [1000.0, 2000.0]) == 0.5


def test_payback_interpolates_from_previous_year_index():
    # (i - 1) + (cost - prev) / delta with i = 1
    assert compute_payback(1000.0, [500.0, 1500.0]) == 0.5
    assert compute_payback(2500.0, [1000.0, 2000.0, 3000.0]) == 1.5


def test_payback_not_reached():
    assert compute_payback(1000.0, [100.0, 200.0, 300.0]) is None
    assert compute_payback(1000.0, []) is None


def test_payback_zero_cost_and_zero_revenue():
    assert compute_payback(0.0, [0.0, 0.0]) == 0.0


def test_payback_first_crossing_wins():
    assert compute_payback(1000.0, [200.0, 1200.0, 900.0, 5000.0]) == 0.8


def test_round_half_up_matches_half_toward_positive_infinity():
    assert round_half_up(2.5) == 3.0
    assert round_half_up(-2.5) == -2.0
    assert round_half_up(13771.5) == 13772.0
    assert round_half_up(1.25, 1) == 1.3
    assert round_half_up(9.984, 2) == 9.98
    assert math.isnan(round_half_up(float("nan"), 2))
