"""
Owner identity normalization.

Pipedrive hands back owners in two shapes: a bare user id (activities,
notes) or an embedded user object such as
``{"id": 5, "name": "Ann", "email": "ann@example.com", "value": 5}`` (deals).
Everything downstream keys on the canonical id returned by normalize_owner().
"""
from __future__ import annotations

from typing import Any, Iterable, Optional

from models.digest_models import EmbeddedOwner, OwnerId, OwnerRef, RawOwner

UNKNOWN_USER_LABEL = "Unknown User"


def _bare_id(value: Any) -> Optional[OwnerId]:
    # bool is an int subclass but never a user id
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return value if value.strip() else None
    return None


def parse_owner_ref(value: Any) -> Optional[OwnerRef]:
    """Turn a raw owner field from the API into a RawOwner or EmbeddedOwner."""
    if value is None:
        return None
    if isinstance(value, (RawOwner, EmbeddedOwner)):
        return value
    if isinstance(value, dict):
        owner_id = _bare_id(value.get("id"))
        if owner_id is None:
            owner_id = _bare_id(value.get("value"))
        if owner_id is None:
            return None
        return EmbeddedOwner(
            id=owner_id,
            name=value.get("name") or None,
            email=value.get("email") or None,
        )
    owner_id = _bare_id(value)
    if owner_id is None:
        return None
    return RawOwner(id=owner_id)


def normalize_owner(ref: Any) -> Optional[OwnerId]:
    """
    Reduce any owner reference to its canonical id.

    Accepts None, a bare id, an embedded user dict, or a parsed OwnerRef.
    Bare ids come back unchanged, so normalizing a canonical id is a no-op.
    """
    if ref is None:
        return None
    if isinstance(ref, (RawOwner, EmbeddedOwner)):
        return ref.id
    parsed = parse_owner_ref(ref)
    return parsed.id if parsed is not None else None


def embedded_name(ref: Any) -> Optional[str]:
    """Display name carried inside an embedded reference, if any."""
    parsed = parse_owner_ref(ref)
    if isinstance(parsed, EmbeddedOwner):
        return parsed.name
    return None


def fallback_label(owner_id: Any) -> str:
    if owner_id is None:
        return UNKNOWN_USER_LABEL
    return f"{UNKNOWN_USER_LABEL} ({owner_id})"


def resolve_name(
    owner_id: Any,
    users: Iterable[dict],
    default: Optional[str] = None,
) -> str:
    """
    Display name for a canonical owner id.

    Looks the id up in the users list first; when no user matches, uses
    ``default`` (typically the name embedded in a deal's owner object) and
    finally a deterministic "Unknown User (<id>)" label. Never raises and
    never returns an empty string.
    """
    canonical = normalize_owner(owner_id)
    if canonical is not None:
        for user in users or []:
            if not isinstance(user, dict):
                continue
            if normalize_owner(user.get("id")) == canonical:
                name = (user.get("name") or "").strip()
                if name:
                    return name
                break
    if default and default.strip():
        return default.strip()
    return fallback_label(canonical if canonical is not None else owner_id)
