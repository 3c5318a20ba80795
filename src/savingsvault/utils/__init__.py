"""Utility modules for savingsvault."""

from savingsvault.utils.inflight import ActionInProgressError, InFlightGuard

__all__ = ["ActionInProgressError", "InFlightGuard"]
