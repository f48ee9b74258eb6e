"""Domain model of the notification delivery service."""
