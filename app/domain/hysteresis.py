"""
Hysteresis Decision
===================
Two-threshold pump decision used by the irrigation controller.

Soil moisture sensors report higher values for drier soil. The dry and wet
thresholds form a dead band: nothing is commanded while moisture sits inside
``[wet_threshold, dry_threshold]``, so a value hovering near one boundary
cannot toggle the pump back and forth.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.enums.device import PumpCommand, PumpStatus


@dataclass(frozen=True)
class HysteresisThresholds:
    """
    Dry/wet switching points in raw sensor units.

    Raises:
        ValueError: If the bands overlap (dry_threshold must exceed wet_threshold)
    """

    dry_threshold: int = 700
    wet_threshold: int = 400

    def __post_init__(self):
        if self.dry_threshold <= self.wet_threshold:
            raise ValueError(
                f"dry_threshold ({self.dry_threshold}) must be greater than "
                f"wet_threshold ({self.wet_threshold})"
            )

    def in_dead_band(self, moisture: float) -> bool:
        return self.wet_threshold <= moisture <= self.dry_threshold


def decide(moisture: float, pump_status: PumpStatus, thresholds: HysteresisThresholds) -> PumpCommand | None:
    """
    Return the command a reading calls for, or None when no transition is due.

    - Dry soil with the pump reported OFF -> TURN_PUMP_ON
    - Wet soil with the pump reported ON -> TURN_PUMP_OFF
    - Anything else (dead band, pump already in the implied state, UNKNOWN
      pump status) -> None
    """
    if moisture > thresholds.dry_threshold and pump_status is PumpStatus.OFF:
        return PumpCommand.TURN_PUMP_ON
    if moisture < thresholds.wet_threshold and pump_status is PumpStatus.ON:
        return PumpCommand.TURN_PUMP_OFF
    return None
