"""
Merge previews for duplicate groups.

First non-empty value wins, walking the members in priority order. A field
ends up empty only when every member has it empty.
"""

from typing import Iterable

from models.duplicate import ParsedRecord
from utils.text_utils import is_blank


class MergeEngine:
    """Builds canonical records out of a group's members."""

    @staticmethod
    def _first_non_empty(members: Iterable[ParsedRecord], mapping: dict[str, str]) -> dict[str, str]:
        members = list(members)
        merged: dict[str, str] = {}
        for field, header in mapping.items():
            merged[field] = ""
            for member in members:
                value = member.get(header)
                if not is_blank(value):
                    merged[field] = value.strip()
                    break
        return merged

    def generate_merge_preview(
        self, members: list[ParsedRecord], mapping: dict[str, str]
    ) -> dict[str, str]:
        """Primary-biased merge: members[0] wins wherever it has a value."""
        return self._first_non_empty(members, mapping)

    def generate_update_preview(
        self, members: list[ParsedRecord], mapping: dict[str, str]
    ) -> dict[str, str]:
        """Incoming values overwrite the primary; its own values only fill gaps."""
        return self._first_non_empty([*members[1:], *members[:1]], mapping)
