"""
Tests for heuristic trajectory synthesis.
"""

import pytest

from launch_visibility.errors import CoordinateUnavailable
from launch_visibility.geodesy import BERMUDA, great_circle_distance, horizon_radius
from launch_visibility.synthesizer import (
    RETROGRADE_SAFETY_AZIMUTH,
    altitude_at,
    azimuth_for_launch,
    launch_azimuth,
    synthesize_for_launch,
    synthesize_samples,
    synthesize_trajectory,
)

from conftest import CAPE_LAT, CAPE_LNG, make_launch


class TestLaunchAzimuth:
    """Tests for inclination -> launch azimuth."""

    def test_iss_inclination(self) -> None:
        assert launch_azimuth(51.64, 28.5) == pytest.approx(45.1, abs=0.3)

    def test_starlink_inclination(self) -> None:
        assert launch_azimuth(53.2, 28.5) == pytest.approx(47.1, abs=0.5)

    @pytest.mark.parametrize("inclination", [90.0, 97.5, 98.0, 140.0])
    def test_retrograde_uses_safety_azimuth(self, inclination) -> None:
        assert launch_azimuth(inclination, 28.5) == RETROGRADE_SAFETY_AZIMUTH

    def test_below_latitude_goes_due_east(self) -> None:
        """27 degrees cannot be reached directly from 28.5 N."""
        assert launch_azimuth(27.0, 28.5) == 90.0

    def test_equatorial_goes_due_east(self) -> None:
        assert launch_azimuth(0.0, 28.5) == 90.0


class TestAltitudeModel:
    @pytest.mark.parametrize("t,expected", [
        (0, 0.0),
        (60, 0.0),
        (120, 0.0),
        (150, 9000.0),
        (600, 144000.0),
    ])
    def test_altitude_at(self, t, expected) -> None:
        assert altitude_at(t) == pytest.approx(expected)


class TestSynthesizeSamples:
    """Tests for raw sample generation."""

    def test_sample_count_and_spacing(self) -> None:
        samples = synthesize_samples(CAPE_LAT, CAPE_LNG, 45.0)
        assert len(samples) == 21
        times = [s[0] for s in samples]
        assert times[0] == 0.0
        assert times[-1] == 600.0
        assert all(b - a == pytest.approx(30.0) for a, b in zip(times, times[1:]))

    def test_first_sample_at_pad(self) -> None:
        t, lat, lng, alt = synthesize_samples(CAPE_LAT, CAPE_LNG, 90.0)[0]
        assert (lat, lng) == pytest.approx((CAPE_LAT, CAPE_LNG))
        assert alt == 0.0

    def test_ground_speed(self) -> None:
        _, lat, lng, _ = synthesize_samples(CAPE_LAT, CAPE_LNG, 45.0)[-1]
        assert great_circle_distance(CAPE_LAT, CAPE_LNG, lat, lng) == pytest.approx(
            4800.0, rel=1e-6
        )

    def test_invalid_step(self) -> None:
        with pytest.raises(ValueError, match="step_s"):
            synthesize_samples(CAPE_LAT, CAPE_LNG, 45.0, step_s=0)

    def test_invalid_duration(self) -> None:
        with pytest.raises(ValueError, match="duration_s"):
            synthesize_samples(CAPE_LAT, CAPE_LNG, 45.0, duration_s=-1)


class TestSynthesizeTrajectory:
    """Tests for observer-relative synthesized points."""

    def test_points_sorted_and_consistent(self) -> None:
        points = synthesize_trajectory(CAPE_LAT, CAPE_LNG, 67.0, BERMUDA)
        assert [p.time for p in points] == sorted(p.time for p in points)
        for p in points:
            assert p.visible == (p.distance <= horizon_radius(p.altitude))

    def test_toward_observer_is_visible(self) -> None:
        """An east-northeast track from the Cape passes close to Bermuda."""
        points = synthesize_trajectory(CAPE_LAT, CAPE_LNG, 67.0, BERMUDA)
        assert any(p.visible for p in points)

    def test_grounded_points_never_visible(self) -> None:
        points = synthesize_trajectory(CAPE_LAT, CAPE_LNG, 67.0, BERMUDA)
        assert not any(p.visible for p in points if p.time <= 120)


class TestSynthesizeForLaunch:
    def test_uses_mission_profile(self, starlink_launch) -> None:
        assert azimuth_for_launch(starlink_launch) == pytest.approx(47.0, abs=0.5)

    def test_missing_pad_latitude_uses_default(self, padless_launch) -> None:
        assert azimuth_for_launch(padless_launch) == pytest.approx(
            launch_azimuth(53.2, 28.5)
        )

    def test_explicit_azimuth(self, starlink_launch) -> None:
        points = synthesize_for_launch(starlink_launch, BERMUDA, azimuth=90.0)
        assert len(points) == 21
        assert points[-1].longitude > CAPE_LNG

    def test_missing_pad_raises(self, padless_launch) -> None:
        with pytest.raises(CoordinateUnavailable):
            synthesize_for_launch(padless_launch, BERMUDA)

    def test_retrograde_launch(self) -> None:
        launch = make_launch(mission_name="Transporter-12", orbit="Sun-Synchronous Orbit")
        assert azimuth_for_launch(launch) == RETROGRADE_SAFETY_AZIMUTH
