"""Tests for heart rate and power zone models."""

import pytest

from recovery_analytics.analysis.zones import IntensityClass, ZoneModel, hr_zones, lthr_zones, power_zones
from recovery_analytics.exceptions import ZoneConfigurationError


class TestZoneModel:

    def test_hr_zone_lookup(self):
        zones = hr_zones(200)

        assert zones.zone_count == 5
        assert zones.zone_of(100) == 1
        assert zones.zone_of(120) == 2
        assert zones.zone_of(150) == 3
        assert zones.zone_of(170) == 4
        assert zones.zone_of(195) == 5

    def test_power_zones(self):
        zones = power_zones(200)

        assert zones.zone_count == 7
        assert zones.zone_of(100) == 1
        assert zones.zone_of(205) == 4
        assert zones.zone_of(400) == 7

    def test_lthr_zones(self):
        zones = lthr_zones(170)

        assert zones.zone_of(140) == 1
        assert zones.zone_of(170) == 5

    def test_intensity_classes(self):
        zones = hr_zones(200)

        assert zones.intensity_of(130) == IntensityClass.LOW
        assert zones.intensity_of(150) == IntensityClass.MID
        assert zones.intensity_of(185) == IntensityClass.HIGH

    def test_time_in_zones(self):
        zones = hr_zones(200)

        distribution = zones.time_in_zones([100, 125, 125, 190], seconds_per_sample=5)

        assert distribution == {1: 5, 2: 10, 3: 0, 4: 0, 5: 5}

    def test_non_increasing_boundaries_rejected(self):
        with pytest.raises(ZoneConfigurationError):
            ZoneModel(name="hr", boundaries=(120, 140, 140, 160))
        with pytest.raises(ZoneConfigurationError):
            ZoneModel(name="hr", boundaries=(160, 140))

    def test_empty_boundaries_rejected(self):
        with pytest.raises(ZoneConfigurationError):
            ZoneModel(name="hr", boundaries=())

    def test_invalid_anchor_rejected(self):
        with pytest.raises(ZoneConfigurationError):
            hr_zones(0)
        with pytest.raises(ValueError):
            power_zones(-250)
