"""
Hardware Service Layer
======================
Services for the MQTT link to the field device.

Services:
- TelemetryIngestor: Parses sensor messages, stores them, runs automation
- CommandPublisher: Serializes and publishes pump commands

The control loop imports CommandPublisher from here while the ingestor
imports the control loop, so nothing is re-exported at package level.
"""
