"""Flarum target."""

from typing import List

from ..models.migration import ExportOperation
from ..support import HAS_DISCUSSION_BODY
from .base import Target

USER_STRUCTURE = {
    "id": "int",
    "username": "varchar(100)",
    "email": "varchar(150)",
    "is_email_confirmed": "tinyint(1)",
    "password": "varbinary(100)",
    "avatar_url": "varchar(100)",
    "joined_at": "datetime",
    "last_seen_at": "datetime",
    "discussion_count": "int",
    "comment_count": "int",
}

GROUP_STRUCTURE = {
    "id": "int",
    "name_singular": "varchar(100)",
    "name_plural": "varchar(100)",
}

GROUP_USER_STRUCTURE = {
    "user_id": "int",
    "group_id": "int",
}

TAG_STRUCTURE = {
    "id": "int",
    "name": "varchar(100)",
    "slug": "varchar(100)",
    "description": "text",
    "parent_id": "int",
    "position": "int",
}

DISCUSSION_STRUCTURE = {
    "id": "int",
    "title": "varchar(200)",
    "user_id": "int",
    "created_at": "datetime",
    "last_posted_at": "datetime",
    "comment_count": "int",
    "view_count": "int",
    "is_locked": "tinyint(1)",
    "is_sticky": "tinyint(1)",
}

DISCUSSION_TAG_STRUCTURE = {
    "discussion_id": "int",
    "tag_id": "int",
}

POST_STRUCTURE = {
    "id": "int",
    "discussion_id": "int",
    "user_id": "int",
    "type": "varchar(100)",
    "content": "text",
    "created_at": "datetime",
    "edited_at": "datetime",
    "edited_user_id": "int",
    "ip_address": "varchar(45)",
}


class Flarum(Target):
    """
    Imports the intermediate tables into Flarum.

    Flarum has no discussion body: the opening message is the discussion's
    first post. Bodies carried on the intermediate Discussion table become
    posts numbered after the highest comment id, so the two id ranges never
    collide.
    """

    SUPPORTED = {
        "name": "Flarum",
        "prefix": "flarum_",
        "features": {
            "Users": 1,
            "Passwords": 1,
            "Categories": "as tags",
            "Discussions": 1,
            "Comments": 1,
            "Polls": 0,
            "Roles": "as groups",
            "Avatars": 1,
            "PrivateMessages": 0,
            "Signatures": 0,
            "Attachments": 0,
            "Bookmarks": 0,
            "Permissions": 0,
            "Badges": 0,
            "UserNotes": 0,
            "Ranks": 0,
            "Groups": 0,
            "Tags": 1,
            "Reactions": 0,
            "Articles": 0,
        },
        "flags": {
            HAS_DISCUSSION_BODY: False,
        },
    }

    def declare_operations(self) -> List[ExportOperation]:
        return [
            ExportOperation(
                entity="users",
                query="""
                    select
                        u.UserID as id,
                        u.Name as username,
                        u.Email as email,
                        u.Verified as is_email_confirmed,
                        u.Password as password,
                        u.Photo as avatar_url,
                        u.DateInserted as joined_at,
                        u.DateLastActive as last_seen_at
                    from :_User u
                """,
                structure=USER_STRUCTURE,
                filters={"avatar_url": "null_if_empty", "is_email_confirmed": "bool"},
                requires=("User",),
            ),
            ExportOperation(
                entity="groups",
                query="""
                    select
                        r.RoleID as id,
                        r.Name as name_singular,
                        r.Name as name_plural
                    from :_Role r
                """,
                structure=GROUP_STRUCTURE,
                requires=("Role",),
            ),
            ExportOperation(
                entity="group_user",
                query="""
                    select
                        ur.UserID as user_id,
                        ur.RoleID as group_id
                    from :_UserRole ur
                """,
                structure=GROUP_USER_STRUCTURE,
                requires=("UserRole",),
            ),
            ExportOperation(
                entity="tags",
                query="""
                    select
                        c.CategoryID as id,
                        c.Name as name,
                        c.UrlCode as slug,
                        c.Description as description,
                        c.ParentCategoryID as parent_id,
                        c.Sort as position
                    from :_Category c
                """,
                structure=TAG_STRUCTURE,
                filters={"slug": "lowercase"},
                requires=("Category",),
            ),
            ExportOperation(
                entity="discussions",
                query="""
                    select
                        d.DiscussionID as id,
                        d.Name as title,
                        d.InsertUserID as user_id,
                        d.DateInserted as created_at,
                        coalesce(d.DateLastComment, d.DateInserted) as last_posted_at,
                        d.CountComments as comment_count,
                        d.CountViews as view_count,
                        d.Closed as is_locked,
                        d.Announce as is_sticky
                    from :_Discussion d
                """,
                structure=DISCUSSION_STRUCTURE,
                filters={"is_locked": "bool", "is_sticky": "bool"},
                requires=("Discussion",),
            ),
            ExportOperation(
                entity="discussion_tag",
                query="""
                    select
                        d.DiscussionID as discussion_id,
                        d.CategoryID as tag_id
                    from :_Discussion d
                    where d.CategoryID is not null
                """,
                structure=DISCUSSION_TAG_STRUCTURE,
                requires=("Discussion",),
            ),
            ExportOperation(
                entity="posts",
                query="""
                    select
                        c.CommentID as id,
                        c.DiscussionID as discussion_id,
                        c.InsertUserID as user_id,
                        'comment' as type,
                        c.Body as content,
                        c.DateInserted as created_at,
                        c.DateUpdated as edited_at,
                        c.UpdateUserID as edited_user_id,
                        c.InsertIPAddress as ip_address
                    from :_Comment c
                """,
                structure=POST_STRUCTURE,
                requires=("Comment",),
            ),
            # Discussion bodies become each discussion's first post.
            ExportOperation(
                entity="posts",
                query="""
                    select
                        (select coalesce(max(c.CommentID), 0) from :_Comment c) + d.DiscussionID as id,
                        d.DiscussionID as discussion_id,
                        d.InsertUserID as user_id,
                        'comment' as type,
                        d.Body as content,
                        d.DateInserted as created_at,
                        d.DateUpdated as edited_at,
                        d.UpdateUserID as edited_user_id,
                        d.InsertIPAddress as ip_address
                    from :_Discussion d
                    where d.Body is not null
                """,
                structure=POST_STRUCTURE,
                feature=HAS_DISCUSSION_BODY,
                depends_on=("Discussion",),
                requires=("Discussion", "Comment"),
            ),
        ]
