"""
Paywall config: typed wrappers over historybox.core.config for unlock/teaser economics.
"""
from __future__ import annotations

from historybox.core.config import settings


def get_unlock_cost_coins() -> int:
    return settings.unlock_cost_coins


def get_unlock_batch_size() -> int:
    return settings.unlock_batch_size


def get_teaser_post_limit() -> int:
    return settings.teaser_post_limit


def get_teaser_description_words() -> int:
    return settings.teaser_description_words


def get_memory_cost_coins() -> int:
    return settings.memory_cost_coins


def get_signup_bonus_coins() -> int:
    return settings.signup_bonus_coins


def get_region_precision() -> int:
    return settings.region_geohash_precision
