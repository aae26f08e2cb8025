# clubsync/models/domain/tier_domain.py
"""
Membership tier vocabulary.

Tiers are a closed, ordered set. The order is the access rank: a member
holding a higher tier may use anything gated on a lower one.
"""

from enum import Enum


class Tier(str, Enum):
    """Canonical member tiers, declared lowest rank first."""

    SOCIAL = "Social"
    CORE = "Core"
    PREMIUM = "Premium"
    CORPORATE = "Corporate"
    VIP = "VIP"

    @property
    def rank(self) -> int:
        return TIER_ORDER.index(self)


class TierSlug(str, Enum):
    """Lowercase working form used by the tier normalizer."""

    SOCIAL = "social"
    CORE = "core"
    PREMIUM = "premium"
    CORPORATE = "corporate"
    VIP = "vip"
    STAFF = "staff"


TIER_ORDER: tuple[Tier, ...] = tuple(Tier)

# Administrative display set used to repair stored values.
ADMIN_TIER_NAMES: tuple[str, ...] = (
    "Social",
    "Core",
    "Premium",
    "Corporate",
    "VIP",
    "Staff",
    "Group Lessons",
)

CANONICAL_TIER_NAMES: dict[TierSlug, str] = {
    TierSlug.SOCIAL: "Social",
    TierSlug.CORE: "Core",
    TierSlug.PREMIUM: "Premium",
    TierSlug.CORPORATE: "Corporate",
    TierSlug.VIP: "VIP",
    TierSlug.STAFF: "Staff",
}

SLUG_BY_TIER_NAME: dict[str, TierSlug] = {
    name.lower(): slug for slug, name in CANONICAL_TIER_NAMES.items()
}


def tier_rank(tier: Tier | str) -> int:
    """Rank of a canonical tier; display names are accepted."""
    return Tier(tier).rank


def has_tier_access(member_tier: Tier | str, required_tier: Tier | str) -> bool:
    """True when member_tier ranks at or above required_tier."""
    return tier_rank(member_tier) >= tier_rank(required_tier)
