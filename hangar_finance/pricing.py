"""Construction tariff grid (foundations + frame + steel roofing, without PV).

Each series is keyed by building type and internal width code and lists, per
span count, the reference kWc and the tariff in euros.
"""

from __future__ import annotations

from dataclasses import dataclass

from hangar_finance.metrics import round_half_up


BUILDING_TYPES = ("SYM", "ASYM1", "ASYM2")
SPAN_SPACING_M = 7.5


@dataclass(frozen=True)
class PricingEntry:
    nb_spans: int
    kwc: float
    tarif: float


@dataclass(frozen=True)
class PricingSeries:
    type: str
    width: float
    width_pdf: float
    spacing: float
    entries: tuple[PricingEntry, ...]


@dataclass(frozen=True)
class BuildingCostResult:
    tarif: float
    kwc_grid: float
    exact: bool
    interpolated: bool


def _series(building_type: str, width: float, width_pdf: float, rows: list[tuple[int, float, float]]) -> PricingSeries:
    return PricingSeries(
        type=building_type,
        width=width,
        width_pdf=width_pdf,
        spacing=SPAN_SPACING_M,
        entries=tuple(PricingEntry(nb_spans=n, kwc=k, tarif=t) for n, k, t in rows),
    )


ALL_SERIES_DEFAULT: tuple[PricingSeries, ...] = (
    _series(
        "ASYM1", 16.4, 16.4,
        [
            (4, 96, 57_288), (5, 126, 68_777), (6, 151, 80_452), (7, 175, 92_127),
            (8, 199, 103_630), (9, 229, 115_305), (10, 253, 127_820), (11, 278, 139_495),
            (12, 302, 150_985), (13, 332, 162_488), (14, 356, 176_705), (15, 380, 188_380),
            (16, 405, 200_055),
        ],
    ),
    _series(
        "ASYM1", 20, 20,
        [
            (4, 120, 69_598), (5, 156, 83_948), (6, 186, 98_469), (7, 215, 113_659),
            (8, 245, 128_366), (9, 282, 142_888), (10, 312, 157_238), (11, 342, 171_759),
            (12, 372, 186_109), (13, 409, 200_816), (14, 438, 217_969), (15, 468, 233_159),
            (16, 498, 247_680),
        ],
    ),
    _series(
        "ASYM2", 25.5, 25.5,
        [
            (4, 169, 80_756), (5, 214, 97_152), (6, 255, 113_905), (7, 296, 130_657),
            (8, 338, 148_250), (9, 388, 165_002), (10, 429, 181_583), (11, 470, 198_336),
            (12, 511, 215_088),
        ],
    ),
    _series(
        "ASYM2", 29.1, 29,
        [
            (4, 193, 92_159), (5, 244, 111_617), (6, 290, 132_086), (7, 337, 151_901),
            (8, 386, 171_359), (9, 441, 190_988), (10, 488, 210_803),
        ],
    ),
    _series(
        "SYM", 15, 15,
        [
            (4, 96, 55_086), (5, 119, 65_962), (6, 145, 76_838), (7, 167, 87_885),
            (8, 193, 98_761), (9, 219, 109_994), (10, 241, 120_870), (11, 267, 131_747),
            (12, 290, 143_634), (13, 316, 154_510), (14, 338, 167_731), (15, 364, 178_608),
            (16, 386, 189_655),
        ],
    ),
    _series(
        "SYM", 18.6, 18.6,
        [
            (4, 120, 64_229), (5, 148, 78_093), (6, 181, 91_771), (7, 209, 105_806),
            (8, 241, 120_325), (9, 274, 134_188), (10, 302, 147_867), (11, 334, 161_730),
            (12, 362, 175_765), (13, 395, 189_444), (14, 423, 205_799), (15, 455, 219_478),
            (16, 483, 234_353),
        ],
    ),
    _series(
        "SYM", 22.3, 22.35,
        [
            (4, 145, 73_649), (5, 178, 88_889), (6, 217, 104_130), (7, 251, 120_395),
            (8, 290, 135_636), (9, 329, 150_876), (10, 362, 166_302), (11, 401, 181_542),
            (12, 435, 196_782), (13, 474, 212_208), (14, 507, 231_049),
        ],
    ),
    _series(
        "SYM", 26, 26.05,
        [
            (4, 169, 86_673), (5, 214, 104_883), (6, 255, 123_918), (7, 296, 142_113),
            (8, 338, 160_494), (9, 388, 178_689), (10, 429, 197_069), (11, 470, 215_093),
            (12, 511, 234_314),
        ],
    ),
    _series(
        "SYM", 29.8, 29.75,
        [
            (4, 193, 101_561), (5, 238, 124_076), (6, 290, 145_580), (7, 334, 167_255),
            (8, 386, 188_759), (9, 438, 211_275), (10, 483, 232_950), (11, 535, 254_454),
        ],
    ),
    _series(
        "SYM", 33.5, 33.46,
        [
            (4, 217, 118_675), (5, 273, 144_950), (6, 326, 171_053), (7, 377, 197_329),
            (8, 435, 224_273), (9, 494, 250_376), (10, 546, 276_651),
        ],
    ),
)

_SERIES_BY_KEY: dict[tuple[str, float], PricingSeries] = {(s.type, float(s.width)): s for s in ALL_SERIES_DEFAULT}


def _series_for(building_type: str, width: float) -> PricingSeries | None:
    try:
        return _SERIES_BY_KEY.get((str(building_type), float(width)))
    except (TypeError, ValueError):
        return None


def has_pricing_grid(building_type: str, width: float) -> bool:
    return _series_for(building_type, width) is not None


def all_pricing_series() -> tuple[PricingSeries, ...]:
    return ALL_SERIES_DEFAULT


def lookup_building_cost(building_type: str, width: float, nb_spans: float) -> BuildingCostResult | None:
    """Exact or interpolated grid tariff for a building, None when no grid exists.

    Span counts outside the tabulated range take the nearest boundary row
    (no extrapolation). Non-tabulated span counts inside the range are
    linearly interpolated between the bracketing rows, for both the tariff
    and the reference kWc, and rounded to whole units.
    """
    series = _series_for(building_type, width)
    if series is None:
        return None

    for entry in series.entries:
        if entry.nb_spans == nb_spans:
            return BuildingCostResult(tarif=entry.tarif, kwc_grid=entry.kwc, exact=True, interpolated=False)

    ordered = sorted(series.entries, key=lambda e: e.nb_spans)
    if not ordered:
        return None
    first = ordered[0]
    last = ordered[-1]

    if nb_spans < first.nb_spans or nb_spans > last.nb_spans:
        closest = first if nb_spans < first.nb_spans else last
        return BuildingCostResult(tarif=closest.tarif, kwc_grid=closest.kwc, exact=False, interpolated=False)

    lower = first
    for entry in ordered:
        if entry.nb_spans <= nb_spans:
            lower = entry
    upper = last
    for entry in ordered:
        if entry.nb_spans >= nb_spans:
            upper = entry
            break

    if lower.nb_spans == upper.nb_spans:
        return BuildingCostResult(tarif=lower.tarif, kwc_grid=lower.kwc, exact=True, interpolated=False)

    ratio = (nb_spans - lower.nb_spans) / (upper.nb_spans - lower.nb_spans)
    return BuildingCostResult(
        tarif=round_half_up(lower.tarif + ratio * (upper.tarif - lower.tarif)),
        kwc_grid=round_half_up(lower.kwc + ratio * (upper.kwc - lower.kwc)),
        exact=False,
        interpolated=True,
    )
