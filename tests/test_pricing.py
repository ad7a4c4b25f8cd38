from __future__ import annotations

from hangar_finance.pricing import all_pricing_series, has_pricing_grid, lookup_building_cost


def test_exact_grid_row():
    found = lookup_building_cost("SYM", 15, 4)
    assert found is not None
    assert found.tarif == 55_086
    assert found.kwc_grid == 96
    assert found.exact is True
    assert found.interpolated is False


def test_interpolated_between_rows():
    found = lookup_building_cost("SYM", 15, 4.5)
    assert found is not None
    assert found.tarif == 60_524
    # 96 + 0.5 * 23 = 107.5, rounded half up.
    assert found.kwc_grid == 108
    assert found.exact is False
    assert found.interpolated is True


def test_out_of_range_spans_take_boundary_rows():
    below = lookup_building_cost("SYM", 15, 3)
    assert below is not None
    assert below.tarif == 55_086
    assert below.exact is False
    assert below.interpolated is False

    above = lookup_building_cost("SYM", 15, 20)
    assert above is not None
    assert above.tarif == 189_655
    assert above.kwc_grid == 386


def test_unknown_building_has_no_grid():
    assert lookup_building_cost("SYM", 16, 4) is None
    assert lookup_building_cost("HANGAR", 15, 4) is None
    assert has_pricing_grid("ASYM2", 29.1)
    assert not has_pricing_grid("ASYM2", 29)


def test_grid_series_are_sorted_and_complete():
    series = all_pricing_series()
    assert len(series) == 10
    for s in series:
        spans = [e.nb_spans for e in s.entries]
        assert spans == sorted(spans)
        assert spans[0] == 4
        assert s.spacing == 7.5
