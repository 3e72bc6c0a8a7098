"""Shared errors, constants, configuration and logging for kp-copy."""
