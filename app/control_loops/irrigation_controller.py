"""
IrrigationController: hysteresis pump automation with a command cooldown.

Every accepted reading is evaluated once:

1. Cooldown gate - if fewer than ``cooldown_seconds`` have passed since the
   last pump command, nothing is evaluated.
2. Hysteresis gate - ``app.domain.hysteresis.decide`` picks TURN_PUMP_ON,
   TURN_PUMP_OFF or nothing.
3. The command is published synchronously; ``last_command_time`` advances
   only when the publish is confirmed, so a failed publish can be retried by
   the very next reading.

While the triggering condition holds, the same command is re-sent each time
the cooldown expires; the device's reported pump status is the only feedback.

Manual commands skip both gates and reset the cooldown before dispatch,
whatever the publish outcome.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.domain.hysteresis import HysteresisThresholds, decide
from app.domain.telemetry import Reading
from app.enums.device import PumpCommand
from app.enums.events import ControlOutcome
from app.services.hardware.command_publisher import CommandPublisher, PublishResult
from app.utils.concurrency import synchronized
from app.utils.time import EPOCH, Clock, iso_or_none, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ControlDecision:
    """What the controller did with one reading."""

    outcome: ControlOutcome
    command: PumpCommand | None = None
    remaining_cooldown_seconds: int = 0
    error: str | None = None

    @property
    def command_sent(self) -> bool:
        return self.outcome is ControlOutcome.COMMAND_SENT


class IrrigationController:
    """
    Cooldown-gated command issuer on top of the hysteresis decision.

    Attributes:
        last_command_time: Time of the last confirmed automatic command or of
            the last manual dispatch; the Unix epoch means "never".
    """

    def __init__(
        self,
        publisher: CommandPublisher,
        thresholds: HysteresisThresholds | None = None,
        cooldown_seconds: int = 30,
        lock: threading.RLock | None = None,
        clock: Clock = utc_now,
    ):
        """
        Args:
            publisher: Sends commands to the pump controller
            thresholds: Dry/wet switching points (defaults 700/400)
            cooldown_seconds: Minimum seconds between two pump commands
            lock: Shared state lock (same instance as the telemetry store's)
            clock: Source of "now" for manual commands and status
        """
        self.publisher = publisher
        self.thresholds = thresholds or HysteresisThresholds()
        self.cooldown_seconds = cooldown_seconds
        self._lock = lock or threading.RLock()
        self._clock = clock
        self.last_command_time: datetime = EPOCH

        self._counters = {
            "commands_sent": 0,
            "publish_failures": 0,
            "cooldown_skips": 0,
            "manual_commands": 0,
        }

        logger.info(
            "IrrigationController initialized (dry>%s, wet<%s, cooldown=%ss)",
            self.thresholds.dry_threshold,
            self.thresholds.wet_threshold,
            cooldown_seconds,
        )

    # ==================== Cooldown ====================

    def _elapsed_seconds(self, now: datetime) -> float:
        return (now - self.last_command_time).total_seconds()

    def _remaining_cooldown(self, now: datetime) -> int:
        elapsed = self._elapsed_seconds(now)
        if elapsed >= self.cooldown_seconds:
            return 0
        return self.cooldown_seconds - math.floor(elapsed)

    # ==================== Automation ====================

    @synchronized
    def evaluate(self, reading: Reading, now: datetime) -> ControlDecision:
        """Run the automation for one reading captured at ``now``."""
        moisture = reading.soil_moisture
        pump_status = reading.pump_status

        if self._elapsed_seconds(now) < self.cooldown_seconds:
            remaining = self._remaining_cooldown(now)
            self._counters["cooldown_skips"] += 1
            logger.info("Automation: pump command cooldown active, %ss remaining", remaining)
            return ControlDecision(ControlOutcome.COOLDOWN_ACTIVE, remaining_cooldown_seconds=remaining)

        command = decide(moisture, pump_status, self.thresholds)
        if command is None:
            logger.info(
                "Automation: soil moisture %s within range or pump already in desired state (%s)",
                moisture,
                pump_status.value,
            )
            return ControlDecision(ControlOutcome.NO_ACTION)

        if command is PumpCommand.TURN_PUMP_ON:
            logger.info("Automation: soil moisture %s is dry, turning pump ON", moisture)
        else:
            logger.info("Automation: soil moisture %s is wet, turning pump OFF", moisture)

        result = self.publisher.send(command)
        if not result.ok:
            self._counters["publish_failures"] += 1
            logger.error("Automation: failed to publish %s; cooldown unchanged", command.value)
            return ControlDecision(ControlOutcome.PUBLISH_FAILED, command=command, error=result.error)

        self.last_command_time = now
        self._counters["commands_sent"] += 1
        return ControlDecision(ControlOutcome.COMMAND_SENT, command=command)

    # ==================== Manual override ====================

    @synchronized
    def manual_command(self, action: PumpCommand | str, now: datetime | None = None) -> PublishResult:
        """
        Publish an operator command immediately.

        The cooldown is reset on dispatch, before the outcome is known, so
        automation backs off after any operator action.
        """
        now = now or self._clock()
        self.last_command_time = now
        self._counters["manual_commands"] += 1
        logger.info("Manual command '%s' requested; cooldown reset", getattr(action, "value", action))

        result = self.publisher.send(action)
        if not result.ok:
            self._counters["publish_failures"] += 1
        return result

    # ==================== Status ====================

    @synchronized
    def status(self, now: datetime | None = None) -> dict[str, Any]:
        """Snapshot of controller state for the API."""
        now = now or self._clock()
        return {
            "last_command_time": iso_or_none(self.last_command_time),
            "cooldown_seconds": self.cooldown_seconds,
            "remaining_cooldown_seconds": self._remaining_cooldown(now),
            "dry_threshold": self.thresholds.dry_threshold,
            "wet_threshold": self.thresholds.wet_threshold,
            "automation_enabled": True,
            **self._counters,
        }
