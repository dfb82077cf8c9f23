"""
Tests for solar position and twilight classification.
"""

from datetime import datetime, timezone

import pytest

from launch_visibility.astronomy import (
    J2000_JULIAN_DAY,
    TwilightLevel,
    calculate_gmst,
    julian_day,
    solar_elevation,
    solar_position,
    twilight_level,
)
from launch_visibility.geodesy import BERMUDA

from conftest import DAY_NET, NIGHT_NET


class TestTwilightLevel:
    """Tests for sky brightness bands."""

    @pytest.mark.parametrize("elevation,expected", [
        (10.0, TwilightLevel.DAY),
        (0.1, TwilightLevel.DAY),
        (-5.9, TwilightLevel.CIVIL),
        (-6.1, TwilightLevel.NAUTICAL),
        (-11.9, TwilightLevel.NAUTICAL),
        (-12.1, TwilightLevel.ASTRONOMICAL),
        (-17.9, TwilightLevel.ASTRONOMICAL),
        (-18.1, TwilightLevel.NIGHT),
        (-60.0, TwilightLevel.NIGHT),
    ])
    def test_bands(self, elevation, expected) -> None:
        assert twilight_level(elevation) is expected

    def test_labels(self) -> None:
        assert TwilightLevel.NAUTICAL.label == "Nautical twilight"
        assert TwilightLevel.NIGHT.label == "Night"


class TestJulianDay:
    def test_j2000_epoch(self) -> None:
        epoch = datetime(2000, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert julian_day(epoch) == pytest.approx(J2000_JULIAN_DAY)

    def test_naive_is_utc(self) -> None:
        naive = datetime(2024, 5, 1, 6, 30)
        aware = naive.replace(tzinfo=timezone.utc)
        assert julian_day(naive) == julian_day(aware)

    def test_gmst_at_j2000(self) -> None:
        epoch = datetime(2000, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert calculate_gmst(epoch) == pytest.approx(280.46, abs=0.01)

    def test_gmst_range(self) -> None:
        gmst = calculate_gmst(datetime(2031, 7, 4, 22, 15, tzinfo=timezone.utc))
        assert 0.0 <= gmst < 360.0


class TestSolarPosition:
    """Tests for the low-precision solar almanac."""

    def test_june_solstice_declination(self) -> None:
        dec, _ = solar_position(datetime(2025, 6, 21, 12, tzinfo=timezone.utc))
        assert dec == pytest.approx(23.44, abs=0.1)

    def test_december_solstice_declination(self) -> None:
        dec, _ = solar_position(datetime(2025, 12, 21, 12, tzinfo=timezone.utc))
        assert dec == pytest.approx(-23.44, abs=0.1)

    def test_march_equinox_declination(self) -> None:
        dec, _ = solar_position(datetime(2025, 3, 20, 9, tzinfo=timezone.utc))
        assert abs(dec) < 0.5


class TestSolarElevation:
    """Tests for sun elevation at the observer."""

    def test_bermuda_night(self) -> None:
        elevation = solar_elevation(NIGHT_NET, BERMUDA.latitude, BERMUDA.longitude)
        assert elevation < -18.0
        assert twilight_level(elevation) is TwilightLevel.NIGHT

    def test_bermuda_midday(self) -> None:
        elevation = solar_elevation(DAY_NET, BERMUDA.latitude, BERMUDA.longitude)
        assert elevation > 60.0

    def test_equator_noon_at_equinox(self) -> None:
        """Sun is nearly overhead at 0,0 around 12:07 UTC on the March equinox."""
        when = datetime(2025, 3, 20, 12, 7, tzinfo=timezone.utc)
        assert solar_elevation(when, 0.0, 0.0) > 85.0

    def test_bounds(self) -> None:
        for hour in range(0, 24, 3):
            when = datetime(2025, 9, 1, hour, tzinfo=timezone.utc)
            elevation = solar_elevation(when, BERMUDA.latitude, BERMUDA.longitude)
            assert -90.0 <= elevation <= 90.0
