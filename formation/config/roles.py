"""Role compatibility and positional category tables."""

from types import MappingProxyType
from typing import Mapping, Optional, Tuple

GOALKEEPER = "GK"
DEFENSE = "DF"
MIDFIELD = "MF"
FORWARD = "FW"

ROLE_CATEGORIES: Tuple[str, ...] = (GOALKEEPER, DEFENSE, MIDFIELD, FORWARD)

# Primary fit for a role listed in the slot's preferred roles.
PRIMARY_ROLE_FIT = 100.0
SECONDARY_ROLE_FIT = 75.0
CATEGORY_ROLE_FIT = 50.0
NO_ROLE_FIT = 0.0

# role id -> compatible (secondary) role ids.
# Roles absent from this table (e.g. "ncb", "sk") always score zero role fit.
SECONDARY_ROLES: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "gk": (),
        "cb": ("bpd", "ncb"),
        "bpd": ("cb", "dlp"),
        "fb": ("wb", "wm"),
        "wb": ("fb", "wm", "w"),
        "dm": ("dlp", "cm"),
        "dlp": ("dm", "cm", "ap"),
        "cm": ("b2b", "dm", "ap"),
        "b2b": ("cm", "ap"),
        "ap": ("cm", "iw"),
        "wm": ("wb", "w"),
        "w": ("wm", "iw"),
        "iw": ("w", "ap"),
        "cf": ("tf", "p"),
        "tf": ("cf", "p"),
        "p": ("tf", "cf"),
    }
)

# Category membership, checked in this order.
CATEGORY_ROLES: Mapping[str, frozenset] = MappingProxyType(
    {
        GOALKEEPER: frozenset({"gk"}),
        DEFENSE: frozenset({"cb", "bpd", "ncb", "fb", "wb"}),
        MIDFIELD: frozenset({"dm", "dlp", "cm", "b2b", "ap", "wm"}),
        FORWARD: frozenset({"w", "iw", "cf", "tf", "p"}),
    }
)


def category_for_role(role_id: str) -> Optional[str]:
    """Return the coarse category (GK/DF/MF/FW) a fine-grained role belongs to."""
    for category, roles in CATEGORY_ROLES.items():
        if role_id in roles:
            return category
    return None
