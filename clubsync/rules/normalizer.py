"""
Tier and status string normalization.

External systems hand us tier labels like "VIP Membership", "  premium ",
or "Corporate plan". Everything that reaches the store or a business rule
goes through here first. Normalization never raises: unknown or empty
input degrades to the lowest-privilege tier and leaves a warning behind.
"""

import re
from collections.abc import Sequence

from clubsync.infrastructure.observability.logging import get_logger
from clubsync.models.domain.tier_domain import (
    ADMIN_TIER_NAMES,
    CANONICAL_TIER_NAMES,
    SLUG_BY_TIER_NAME,
    TierSlug,
)

logger = get_logger(__name__)

DEFAULT_TIER_SLUG = TierSlug.SOCIAL

# Rarer tokens first so "vip-corporate" resolves to vip, not corporate.
DEFAULT_FUZZY_PATTERNS: tuple[str, ...] = ("vip", "premium", "corporate", "core", "social", "staff")

_MEMBERSHIP_SUFFIX = re.compile(r"\s+membership$", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


class TierNormalizer:
    """
    Maps raw tier strings onto TierSlug values.

    Args:
        fuzzy_patterns: Ordered substrings tried when no exact match exists.
            Each pattern must be a known slug; the first one contained in the
            cleaned input wins.
    """

    def __init__(self, fuzzy_patterns: Sequence[str] = DEFAULT_FUZZY_PATTERNS):
        patterns = []
        for pattern in fuzzy_patterns:
            cleaned = pattern.strip().lower()
            try:
                patterns.append((cleaned, TierSlug(cleaned)))
            except ValueError as e:
                raise ValueError(f"Unknown tier pattern in fuzzy list: {pattern!r}") from e
        self.fuzzy_patterns: tuple[tuple[str, TierSlug], ...] = tuple(patterns)

    def normalize_slug(self, raw: str | None) -> TierSlug:
        if not isinstance(raw, str) or not raw.strip():
            self._fallback(raw, "empty")
            return DEFAULT_TIER_SLUG

        lowered = raw.strip().lower()

        for slug in TierSlug:
            if lowered == slug.value:
                return slug

        slug = SLUG_BY_TIER_NAME.get(lowered)
        if slug is not None:
            return slug

        for pattern, slug in self.fuzzy_patterns:
            if pattern in lowered:
                self._fallback(raw, "fuzzy_match", matched_pattern=pattern, normalized_slug=slug.value)
                return slug

        self._fallback(raw, "no_match")
        return DEFAULT_TIER_SLUG

    def normalize_name(self, raw: str | None) -> str:
        return CANONICAL_TIER_NAMES[self.normalize_slug(raw)]

    @staticmethod
    def _fallback(raw, reason: str, **fields) -> None:
        logger.warning(
            "Tier normalization fallback used",
            diagnostic="tier_normalization_fallback",
            raw_value=raw,
            reason=reason,
            **fields,
        )


default_normalizer = TierNormalizer()


def normalize_tier_slug(raw: str | None) -> TierSlug:
    return default_normalizer.normalize_slug(raw)


def normalize_tier_name(raw: str | None) -> str:
    return default_normalizer.normalize_name(raw)


def is_social_tier(raw: str | None) -> bool:
    return normalize_tier_slug(raw) is TierSlug.SOCIAL


def is_staff_tier(raw: str | None) -> bool:
    return normalize_tier_slug(raw) is TierSlug.STAFF


def repair_tier_value(raw):
    """
    Repair a stored tier value such as "core membership" -> "Core".

    Only exact (case-insensitive) display names are accepted after stripping
    a trailing " membership". Anything else is returned unchanged so the
    caller's validator can flag it.
    """
    if not isinstance(raw, str):
        return raw

    cleaned = _MEMBERSHIP_SUFFIX.sub("", raw.strip()).strip()
    for name in ADMIN_TIER_NAMES:
        if name.lower() == cleaned.lower():
            return name
    return raw


def normalize_status_token(raw: str | None) -> str | None:
    """Lowercase an external status and join inner whitespace: "Past Due" -> "past_due"."""
    if not isinstance(raw, str):
        return None
    cleaned = raw.strip().lower()
    if not cleaned:
        return None
    return _WHITESPACE.sub("_", cleaned)
