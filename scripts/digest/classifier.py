"""
Phone-call detection for generic CRM activities.

Telephony integrations (JustCall and friends) push their records into
Pipedrive with whatever activity type the account happens to have, so the
type tag alone misses calls. Any one of the checks below is enough; a stray
false positive costs less than a missing call.
"""
from __future__ import annotations

from typing import Any, Mapping

CALL_TYPE = "call"

# Case-sensitive markers written by telephony integrations
INTEGRATION_SUBJECT_MARKERS = ("Outgoing Call", "Incoming Call")
INTEGRATION_NOTE_MARKERS = ("Call Recording", "justcall.io/recordings/")


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def is_call(activity: Mapping[str, Any]) -> bool:
    """Return True when the activity looks like a phone call."""
    if not activity:
        return False

    activity_type = _text(activity.get("type"))
    key_string = _text(activity.get("key_string"))
    subject = _text(activity.get("subject"))
    note = _text(activity.get("note"))

    if activity_type == CALL_TYPE:
        return True
    if key_string == CALL_TYPE or CALL_TYPE in key_string.lower():
        return True
    if CALL_TYPE in subject.lower():
        return True
    if CALL_TYPE in note.lower():
        return True
    if any(marker in subject for marker in INTEGRATION_SUBJECT_MARKERS):
        return True
    if any(marker in note for marker in INTEGRATION_NOTE_MARKERS):
        return True
    return False
