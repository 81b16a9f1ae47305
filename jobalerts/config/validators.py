"""Additional validation utilities for configuration."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for settings that are valid but likely mistakes.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    alerts = config_dict.get("alerts") or {}
    if not isinstance(alerts, dict):
        return warning_messages

    window = alerts.get("digest_window_minutes", 10)
    digest_interval = alerts.get("digest_interval", "10m")

    # A digest is only sent when a pass lands inside [time - window, time + window]
    if isinstance(window, int) and isinstance(digest_interval, str):
        try:
            interval_minutes = parse_duration(digest_interval) / 60
        except DurationParseError:
            interval_minutes = None
        if interval_minutes is not None and interval_minutes > 2 * window + 1:
            warning_messages.append(
                f"digest_interval ({digest_interval}) is longer than the digest window "
                f"(+/-{window} minutes); some digests may never be sent"
            )

    instant_interval = alerts.get("instant_interval")
    if isinstance(instant_interval, str) and instant_interval.strip().lower() in (
        "1m", "2m", "pt1m", "pt2m"
    ):
        warning_messages.append(
            f"Short instant_interval ({instant_interval}) runs a full alert pass every few minutes"
        )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit warning messages using Python's warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
