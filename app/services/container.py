from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from app.config import AppConfig
from app.control_loops.irrigation_controller import IrrigationController
from app.domain.hysteresis import HysteresisThresholds
from app.extensions import socketio
from app.hardware.mqtt.mqtt_broker_wrapper import MQTTClientWrapper
from app.services.hardware.command_publisher import CommandPublisher
from app.services.hardware.telemetry_ingestor import TelemetryIngestor
from app.services.telemetry_store import TelemetryStore
from app.services.utilities.weather_service import WeatherService
from app.utils.emitters import EmitterService
from app.workers.unified_scheduler import UnifiedScheduler

logger = logging.getLogger(__name__)

WEATHER_REFRESH_JOB = "weather.refresh"


@dataclass
class ServiceContainer:
    """Aggregate and manage the gateway services."""

    config: AppConfig
    mqtt_client: Optional[MQTTClientWrapper]
    state_lock: threading.RLock
    telemetry_store: TelemetryStore
    command_publisher: CommandPublisher
    irrigation_controller: IrrigationController
    telemetry_ingestor: TelemetryIngestor
    weather_service: WeatherService
    emitter_service: EmitterService
    scheduler: UnifiedScheduler

    @classmethod
    def build(
        cls,
        config: AppConfig,
        *,
        mqtt_client: Optional[MQTTClientWrapper] = None,
        start: bool = False,
    ) -> "ServiceContainer":
        """Construct the service container with all dependencies.

        Args:
            config: Application configuration
            mqtt_client: Pre-built MQTT wrapper; one is created from config when
                omitted and MQTT is enabled
            start: Whether to subscribe, fetch weather and start the scheduler
        """
        logger.info("Building ServiceContainer...")

        if mqtt_client is None and config.enable_mqtt:
            mqtt_client = MQTTClientWrapper(
                broker=config.mqtt_broker_host,
                port=config.mqtt_broker_port,
                client_id=config.mqtt_client_id,
                username=config.mqtt_username,
                password=config.mqtt_password,
            )
            logger.info(
                "MQTT connecting to %s:%s in the background; retries until the broker answers",
                config.mqtt_broker_host,
                config.mqtt_broker_port,
            )
        elif mqtt_client is None:
            logger.info("MQTT disabled, gateway runs without telemetry or commands")

        # Store, controller and ingestor share one state domain
        state_lock = threading.RLock()
        emitter_service = EmitterService(sio=socketio)

        telemetry_store = TelemetryStore(capacity=config.history_capacity, lock=state_lock)
        command_publisher = CommandPublisher(
            mqtt_client,
            topic=config.command_topic,
            timeout_seconds=config.publish_timeout_seconds,
        )
        irrigation_controller = IrrigationController(
            command_publisher,
            thresholds=HysteresisThresholds(
                dry_threshold=config.moisture_dry_threshold,
                wet_threshold=config.moisture_wet_threshold,
            ),
            cooldown_seconds=config.pump_cooldown_seconds,
            lock=state_lock,
        )
        telemetry_ingestor = TelemetryIngestor(
            telemetry_store,
            irrigation_controller,
            mqtt_client=mqtt_client,
            topic=config.sensor_topic,
            emitter=emitter_service,
            lock=state_lock,
        )
        weather_service = WeatherService(
            config.weather_api_key,
            city=config.weather_city,
            country_code=config.weather_country_code,
            units=config.weather_units,
            base_url=config.weather_base_url,
            timeout_seconds=config.weather_timeout_seconds,
            emitter=emitter_service,
        )

        scheduler = UnifiedScheduler()
        scheduler.schedule_interval(
            WEATHER_REFRESH_JOB,
            weather_service.refresh,
            config.weather_refresh_seconds,
        )

        container = cls(
            config=config,
            mqtt_client=mqtt_client,
            state_lock=state_lock,
            telemetry_store=telemetry_store,
            command_publisher=command_publisher,
            irrigation_controller=irrigation_controller,
            telemetry_ingestor=telemetry_ingestor,
            weather_service=weather_service,
            emitter_service=emitter_service,
            scheduler=scheduler,
        )
        logger.info("ServiceContainer built successfully.")

        if start:
            container.start()
        return container

    def start(self) -> None:
        """Begin ingesting telemetry and refreshing weather."""
        self.telemetry_ingestor.start()
        # First fetch happens at startup, the scheduler takes over afterwards
        self.weather_service.refresh()
        self.scheduler.start()
        logger.info("✓ Gateway runtime started")

    def shutdown(self) -> None:
        """Release external resources before process exit."""
        try:
            self.scheduler.stop()
            logger.info("✓ UnifiedScheduler stopped")
        except Exception as e:
            logger.warning(f"Failed to stop UnifiedScheduler: {e}")

        if self.mqtt_client is not None:
            self.mqtt_client.disconnect()
        logger.info("ServiceContainer shutdown complete.")
