"""Per-tier message quotas."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

# Trailing window used for the daily message quota
QUOTA_WINDOW_HOURS: int = 24


@dataclass(frozen=True)
class Entitlements:
    """What a user tier may do.

    Attributes:
        max_messages_per_day: Messages allowed in the trailing quota window.
    """

    max_messages_per_day: int


ENTITLEMENTS_BY_USER_TYPE: Mapping[str, Entitlements] = MappingProxyType(
    {
        "guest": Entitlements(max_messages_per_day=20),
        "regular": Entitlements(max_messages_per_day=100),
    }
)


def get_entitlements(user_type: str) -> Entitlements:
    """Look up a tier's entitlements, treating unknown tiers as guests."""
    return ENTITLEMENTS_BY_USER_TYPE.get(user_type, ENTITLEMENTS_BY_USER_TYPE["guest"])
