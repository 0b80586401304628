from __future__ import annotations

from typing import Iterable, NamedTuple

JSON_MEDIA_TYPE = "application/json"
PROBLEM_JSON_MEDIA_TYPE = "application/problem+json"


class MediaType(NamedTuple):
    type: str
    subtype: str

    @classmethod
    def parse(cls, value: str) -> "MediaType | None":
        essence = value.split(";", 1)[0].strip().lower()
        if "/" not in essence:
            return None
        type_, subtype = (part.strip() for part in essence.split("/", 1))
        if not type_ or not subtype:
            return None
        return cls(type_, subtype)

    def is_subset_of(self, other: "MediaType") -> bool:
        if other.type != "*" and other.type != self.type:
            return False
        if other.subtype == "*" or other.subtype == self.subtype:
            return True
        # application/*+json style suffix ranges
        if other.subtype.startswith("*+"):
            return self.subtype.endswith(other.subtype[1:])
        return False


_WRITABLE = (MediaType.parse(JSON_MEDIA_TYPE), MediaType.parse(PROBLEM_JSON_MEDIA_TYPE))


def parse_accept(header: str | None) -> list[str]:
    if not header:
        return []
    return [item.strip() for item in header.split(",") if item.strip()]


def can_write_structured_body(accept_preferences: Iterable[str]) -> bool:
    """Return True when a JSON problem body is acceptable to the caller.

    An empty preference list means the caller accepts any media type
    (RFC 9110 section 12.5.1).
    """
    preferences = [pref for pref in accept_preferences if pref and pref.strip()]
    if not preferences:
        return True
    for preference in preferences:
        accepted = MediaType.parse(preference)
        if accepted is None:
            continue
        if any(media.is_subset_of(accepted) for media in _WRITABLE):
            return True
    return False
