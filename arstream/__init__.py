"""Gyro + still-frame streaming client for a WebSocket collector."""

__version__ = "0.1.0"
