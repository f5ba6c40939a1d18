"""
How many people a dish is generated for
"""

import re
from typing import Optional

DEFAULT_PEOPLE_COUNT = 4

_PEOPLE_IN_NOTE = re.compile(r"pour\s+(\d+)\s+personnes?", re.IGNORECASE)


def people_count_from_note(note: Optional[str]) -> Optional[int]:
    """N from "Pour N personne(s)" anywhere in the note"""
    if not note:
        return None
    match = _PEOPLE_IN_NOTE.search(note)
    if match and int(match.group(1)) > 0:
        return int(match.group(1))
    return None


def resolve_people_count(
    manual_override: Optional[int],
    note: Optional[str],
    service_headcount: Optional[int],
    confirmed_rsvp: Optional[int],
) -> int:
    """Headcount used for generation.

    An explicit override wins, then "Pour N personne(s)" found in the note,
    then the larger of the service headcount and the confirmed RSVPs (4 when
    both are zero).
    """
    if manual_override:
        return manual_override

    from_note = people_count_from_note(note)
    if from_note:
        return from_note

    smart_count = max(service_headcount or 0, confirmed_rsvp or 0)
    return smart_count if smart_count > 0 else DEFAULT_PEOPLE_COUNT
