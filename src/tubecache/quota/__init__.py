"""Quota governance for the remote API's daily budget."""

from tubecache.quota.governor import QuotaGovernor, Reservation

__all__ = ["QuotaGovernor", "Reservation"]
