"""Heart rate and power training zones."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Sequence, Tuple

from ..exceptions import ZoneConfigurationError


# Zone boundaries as fractions of the anchor value (max HR, FTP or LTHR)
HR_ZONE_FRACTIONS = (0.60, 0.70, 0.80, 0.90)
POWER_ZONE_FRACTIONS = (0.55, 0.75, 0.90, 1.05, 1.20, 1.50)
LTHR_ZONE_FRACTIONS = (0.85, 0.89, 0.94, 0.99)


class IntensityClass(Enum):
    """Coarse intensity bucket used for polarization analysis."""

    LOW = "low"      # Z1-Z2
    MID = "mid"      # Z3
    HIGH = "high"    # Z4 and above


@dataclass(frozen=True)
class ZoneModel:
    """Ordered zone boundaries for one intensity metric.

    ``boundaries[i]`` is the lower edge of zone ``i + 2``; anything below the
    first boundary is zone 1.
    """

    name: str
    boundaries: Tuple[float, ...]

    def __post_init__(self):
        if not self.boundaries:
            raise ZoneConfigurationError(f"{self.name} zones need at least one boundary")
        for lower, upper in zip(self.boundaries, self.boundaries[1:]):
            if not upper > lower:
                raise ZoneConfigurationError(
                    f"{self.name} zone boundaries must be strictly increasing: {self.boundaries}"
                )

    @property
    def zone_count(self) -> int:
        return len(self.boundaries) + 1

    def zone_of(self, value: float) -> int:
        """Return the 1-based zone containing ``value``."""
        zone = 1
        for boundary in self.boundaries:
            if value >= boundary:
                zone += 1
            else:
                break
        return zone

    def intensity_of(self, value: float) -> IntensityClass:
        zone = self.zone_of(value)
        if zone <= 2:
            return IntensityClass.LOW
        elif zone == 3:
            return IntensityClass.MID
        return IntensityClass.HIGH

    def time_in_zones(self, samples: Sequence[float], seconds_per_sample: float = 1.0) -> Dict[int, float]:
        """Seconds spent in each zone for an evenly sampled stream."""
        distribution = {zone: 0.0 for zone in range(1, self.zone_count + 1)}
        for value in samples:
            distribution[self.zone_of(value)] += seconds_per_sample
        return distribution

    @classmethod
    def from_fractions(cls, name: str, anchor: float, fractions: Iterable[float]) -> "ZoneModel":
        if anchor is None or anchor <= 0:
            raise ZoneConfigurationError(f"{name} zones need a positive anchor value, got {anchor}")
        return cls(name=name, boundaries=tuple(anchor * f for f in fractions))


def hr_zones(max_hr: float) -> ZoneModel:
    """Five heart rate zones from percentage of max HR."""
    return ZoneModel.from_fractions("heart_rate", max_hr, HR_ZONE_FRACTIONS)


def lthr_zones(lthr: float) -> ZoneModel:
    """Five heart rate zones anchored on lactate threshold HR."""
    return ZoneModel.from_fractions("lthr", lthr, LTHR_ZONE_FRACTIONS)


def power_zones(ftp: float) -> ZoneModel:
    """Seven Coggan power zones from FTP."""
    return ZoneModel.from_fractions("power", ftp, POWER_ZONE_FRACTIONS)
