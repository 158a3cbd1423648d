"""
Service Organization
====================

**hardware/**
  Services that talk to the field device over MQTT.
  Examples: TelemetryIngestor, CommandPublisher

**utilities/**
  Services for external data sources.
  Examples: WeatherService

``telemetry_store`` holds the in-memory readings; ``container`` wires
everything together.
"""
