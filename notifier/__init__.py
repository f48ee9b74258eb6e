"""Notification delivery service package.

Ensures the local ``notifier`` package takes precedence over similarly named
distributions that might be installed in the environment.
"""
