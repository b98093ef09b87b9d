"""Vanilla Forums target."""

from typing import List

from ..models.migration import ExportOperation
from ..models.structures import get_structure
from ..support import HAS_DISCUSSION_BODY
from .base import Target

# Counter columns the postscript fills in after import.
COUNTER_COLUMNS = {
    "User": {"CountDiscussions": "int", "CountComments": "int"},
    "Category": {"CountDiscussions": "int", "CountComments": "int", "LastDiscussionID": "int"},
    "Conversation": {"CountMessages": "int", "LastMessageID": "int"},
}

# Import order. The intermediate shape is already Vanilla's.
ENTITIES = (
    "User",
    "Role",
    "UserRole",
    "UserMeta",
    "Category",
    "Discussion",
    "Comment",
    "Conversation",
    "UserConversation",
    "ConversationMessage",
)

ENTITY_FILTERS = {
    "User": {"Photo": "null_if_empty", "Email": "null_if_empty"},
    "Discussion": {"Format": "null_if_empty"},
    "Comment": {"Format": "null_if_empty"},
}


def vanilla_structure(entity: str):
    return get_structure(entity).with_columns(COUNTER_COLUMNS.get(entity, {}))


class Vanilla(Target):
    """Imports the intermediate tables into Vanilla's GDN_ tables."""

    SUPPORTED = {
        "name": "Vanilla",
        "prefix": "GDN_",
        "features": {
            "Users": 1,
            "Passwords": 1,
            "Categories": 1,
            "Discussions": 1,
            "Comments": 1,
            "Polls": 0,
            "Roles": 1,
            "Avatars": 1,
            "PrivateMessages": 1,
            "Signatures": 1,
            "Attachments": 0,
            "Bookmarks": 0,
            "Permissions": 0,
            "Badges": 0,
            "UserNotes": 0,
            "Ranks": 0,
            "Groups": 0,
            "Tags": 0,
            "Reactions": 0,
            "Articles": 0,
        },
        "flags": {
            HAS_DISCUSSION_BODY: True,
        },
    }

    def declare_operations(self) -> List[ExportOperation]:
        return [
            ExportOperation(
                entity=entity,
                query=f"select * from :_{entity}",
                structure=vanilla_structure(entity),
                filters=ENTITY_FILTERS.get(entity, {}),
                requires=(entity,),
            )
            for entity in ENTITIES
        ]
