import math

import pytest

from backend.core.config import settings
from backend.services import geo


def test_same_point_is_zero_km() -> None:
    assert geo.distance_km([28.97, 41.01], [28.97, 41.01]) == pytest.approx(0.0)


def test_known_city_distance() -> None:
    istanbul = [28.9784, 41.0082]
    ankara = [32.8597, 39.9334]
    assert geo.distance_km(istanbul, ankara) == pytest.approx(350.0, abs=5.0)


def test_distance_is_symmetric() -> None:
    a, b = [2.3522, 48.8566], [-0.1276, 51.5072]
    assert geo.distance_km(a, b) == pytest.approx(geo.distance_km(b, a))


@pytest.mark.parametrize(
    "origin, target",
    [
        (None, [10.0, 10.0]),
        ([10.0, 10.0], None),
        ([0.0, 0.0], [10.0, 10.0]),
        ([10.0, 10.0], [0, 0]),
        ([10.0], [10.0, 10.0]),
        ([math.nan, 1.0], [10.0, 10.0]),
    ],
)
def test_invalid_location_returns_sentinel(origin, target) -> None:  # type: ignore[no-untyped-def]
    assert geo.distance_km(origin, target) == settings.distance_sentinel_km


def test_unset_location_is_not_valid() -> None:
    assert not geo.is_valid_location([0, 0])
    assert geo.is_valid_location([0, 12.5])
    assert not geo.is_valid_location(["east", "north"])


def test_bounding_box_contains_radius() -> None:
    box = geo.bounding_box([29.0, 41.0], 50)
    assert box is not None
    min_lon, max_lon, min_lat, max_lat = box
    assert min_lon < 29.0 < max_lon
    assert min_lat < 41.0 < max_lat
    # A point right at the edge of the radius due north stays inside
    north = [29.0, 41.0 + 49.9 / geo.KM_PER_DEGREE_LAT]
    assert min_lat <= north[1] <= max_lat


def test_bounding_box_skipped_near_pole_and_antimeridian() -> None:
    assert geo.bounding_box([10.0, 89.9], 100) is None
    assert geo.bounding_box([179.9, 10.0], 100) is None
