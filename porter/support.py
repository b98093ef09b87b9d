"""Capability flags and feature vocabulary for platform packages."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

# Optional features a source and target negotiate before a run.
HAS_DISCUSSION_BODY = "hasDiscussionBody"

NEGOTIABLE_FLAGS = (HAS_DISCUSSION_BODY,)

FEATURES = (
    "Users",
    "Passwords",
    "Categories",
    "Discussions",
    "Comments",
    "Polls",
    "Roles",
    "Avatars",
    "PrivateMessages",
    "Signatures",
    "Attachments",
    "Bookmarks",
    "Permissions",
    "Badges",
    "UserNotes",
    "Ranks",
    "Groups",
    "Tags",
    "Reactions",
    "Articles",
)


@dataclass(frozen=True)
class CapabilityFlags:
    """Read-only boolean flags for one platform; anything undeclared is False."""
    flags: Mapping[str, bool] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "flags", MappingProxyType(
            {name: bool(value) for name, value in self.flags.items()}
        ))

    @classmethod
    def from_declaration(cls, supported: Dict[str, Any]) -> "CapabilityFlags":
        return cls(supported.get("flags") or {})

    def get(self, name: str) -> bool:
        return self.flags.get(name, False)

    def __contains__(self, name: str) -> bool:
        return self.get(name)

    def to_dict(self) -> Dict[str, bool]:
        return dict(self.flags)


def feature_status(supported: Dict[str, Any], feature: str) -> str:
    """Render one feature's support level: 'yes', 'no' or the declared note."""
    value: Optional[Any] = (supported.get("features") or {}).get(feature)
    if isinstance(value, str) and value:
        return value
    return "yes" if value else "no"


def split_feature_name(feature: str) -> str:
    """'PrivateMessages' -> 'Private Messages'."""
    return "".join(f" {c}" if c.isupper() and i else c for i, c in enumerate(feature))
