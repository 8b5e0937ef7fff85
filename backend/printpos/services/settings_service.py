# Overview: Service-layer operations for the shop profile shown on invoices.

from __future__ import annotations

import logging

from ..models import ShopProfile, PROFILE_ID
from ..seed import default_profile
from ..store import PROFILE
from printpos.time_utils import utcnow

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "address", "phone", "email", "website", "footer_note", "logo")


def get_profile(store) -> ShopProfile:
    """The stored profile, or the defaults when none has been saved."""
    profile = store.get_by_id(PROFILE, PROFILE_ID)
    if profile is None:
        return default_profile()
    return profile


def save_profile(store, patch: dict) -> ShopProfile:
    """
    Replace the profile wholesale from a validated patch.

    Fields absent from the patch are reset to empty, not kept.
    """
    profile = ShopProfile(
        id=PROFILE_ID,
        name=patch["name"],
        address=patch.get("address") or "",
        phone=patch.get("phone") or "",
        email=patch.get("email") or "",
        website=patch.get("website") or None,
        footer_note=patch.get("footer_note") or "",
        logo=patch.get("logo") or None,
        updated_at=utcnow(),
    )
    saved = store.put(PROFILE, profile)
    logger.info("Shop profile saved: %s", saved.name)
    return saved
