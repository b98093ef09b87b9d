"""Canonical intermediate schema every source exports into."""

from typing import Dict

from .schema import TableStructure

EXPORT_STRUCTURE_DECLARATION = {
    "User": {
        "UserID": "int",
        "Name": "varchar(50)",
        "Email": "varchar(100)",
        "Password": "varbinary(100)",
        "HashMethod": "varchar(10)",
        "Photo": "varchar(255)",
        "Title": "varchar(100)",
        "Location": "varchar(100)",
        "About": "text",
        "Gender": ["u", "m", "f"],
        "DateOfBirth": "datetime",
        "ShowEmail": "tinyint(1)",
        "Verified": "tinyint(1)",
        "Banned": "tinyint(4)",
        "Admin": "tinyint(1)",
        "DateFirstVisit": "datetime",
        "DateLastActive": "datetime",
        "DateInserted": "datetime",
        "DateUpdated": "datetime",
        "InsertIPAddress": "varchar(39)",
        "LastIPAddress": "varchar(39)",
    },
    "Role": {
        "RoleID": "int",
        "Name": "varchar(100)",
        "Description": "varchar(200)",
        "CanSession": "tinyint(1)",
    },
    "UserRole": {
        "UserID": "int",
        "RoleID": "int",
    },
    "UserMeta": {
        "UserID": "int",
        "Name": "varchar(255)",
        "Value": "text",
    },
    "Category": {
        "CategoryID": "int",
        "Name": "varchar(255)",
        "UrlCode": "varchar(255)",
        "Description": "varchar(500)",
        "ParentCategoryID": "int",
        "DateInserted": "datetime",
        "InsertUserID": "int",
        "DateUpdated": "datetime",
        "UpdateUserID": "int",
        "Sort": "int",
        "Archived": "tinyint(1)",
    },
    "Discussion": {
        "DiscussionID": "int",
        "Name": "varchar(255)",
        "Body": "text",
        "Format": "varchar(20)",
        "CategoryID": "int",
        "DateInserted": "datetime",
        "InsertUserID": "int",
        "InsertIPAddress": "varchar(39)",
        "DateUpdated": "datetime",
        "UpdateUserID": "int",
        "DateLastComment": "datetime",
        "CountComments": "int",
        "CountViews": "int",
        "Closed": "tinyint(1)",
        "Announce": "tinyint(1)",
        "Sink": "tinyint(1)",
    },
    "Comment": {
        "CommentID": "int",
        "DiscussionID": "int",
        "Body": "text",
        "Format": "varchar(20)",
        "DateInserted": "datetime",
        "InsertUserID": "int",
        "InsertIPAddress": "varchar(39)",
        "DateUpdated": "datetime",
        "UpdateUserID": "int",
    },
    "Conversation": {
        "ConversationID": "int",
        "Subject": "varchar(255)",
        "FirstMessageID": "int",
        "DateInserted": "datetime",
        "InsertUserID": "int",
        "DateUpdated": "datetime",
        "UpdateUserID": "int",
    },
    "UserConversation": {
        "UserID": "int",
        "ConversationID": "int",
        "Deleted": "tinyint(1)",
        "LastMessageID": "int",
    },
    "ConversationMessage": {
        "MessageID": "int",
        "ConversationID": "int",
        "Body": "text",
        "Format": "varchar(20)",
        "InsertUserID": "int",
        "DateInserted": "datetime",
        "InsertIPAddress": "varchar(39)",
    },
}

EXPORT_STRUCTURE: Dict[str, TableStructure] = {
    entity: TableStructure(columns)
    for entity, columns in EXPORT_STRUCTURE_DECLARATION.items()
}


def get_structure(entity: str) -> TableStructure:
    """Canonical structure for an entity."""
    if entity not in EXPORT_STRUCTURE:
        raise KeyError(f"No canonical structure for entity: {entity}")
    return EXPORT_STRUCTURE[entity]
