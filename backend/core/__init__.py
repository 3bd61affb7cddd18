"""Core services: device transport, exploration and MQTT publishing."""
