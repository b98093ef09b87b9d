"""CodoForum source. Tested against CodoForum 3.x on MySQL."""

from typing import List

from ..models.migration import ExportOperation
from .base import Source


def _users_query(model) -> str:
    # Older releases have no `created` column.
    if model.source_exists("users", ["created"]):
        first_visit = "from_unixtime(u.created)"
    else:
        first_visit = "null"
    return f"""
        select
            u.id as UserID,
            u.username as Name,
            u.mail as Email,
            u.user_status as Verified,
            u.pass as Password,
            'Vanilla' as HashMethod,
            {first_visit} as DateFirstVisit
        from :_users u
    """


class CodoForum(Source):
    """Exports users, roles, signatures, categories, topics and posts."""

    SUPPORTED = {
        "name": "CodoForum",
        "prefix": "codo_",
        "charset_table": "posts",
        "features": {
            "Users": 1,
            "Passwords": 1,
            "Categories": 1,
            "Discussions": 1,
            "Comments": 1,
            "Polls": 0,
            "Roles": 1,
            "Avatars": 0,
            "PrivateMessages": 0,
            "Signatures": 1,
            "Attachments": 0,
            "Bookmarks": 0,
            "Permissions": 0,
            "UserNotes": 0,
            "Ranks": 0,
            "Groups": 0,
            "Tags": 0,
            "Reactions": 0,
            "Articles": 0,
        },
    }

    source_tables = {
        "users": ["id", "username", "mail", "user_status", "pass", "signature"],
        "roles": ["rid", "rname"],
        "user_roles": ["uid", "rid"],
        "categories": ["cat_id", "cat_name"],
        "topics": ["topic_id", "cat_id", "uid", "title"],
        "posts": ["post_id", "topic_id", "uid", "imessage"],
    }

    def declare_operations(self) -> List[ExportOperation]:
        return [
            ExportOperation(
                entity="User",
                query=_users_query,
                filters={"Name": "html_decode"},
            ),
            ExportOperation(
                entity="Role",
                query="""
                    select
                        r.rid as RoleID,
                        r.rname as Name
                    from :_roles r
                """,
            ),
            ExportOperation(
                entity="UserRole",
                query="""
                    select
                        ur.uid as UserID,
                        ur.rid as RoleID
                    from :_user_roles ur
                    where ur.is_primary = 1
                """,
            ),
            ExportOperation(
                entity="UserMeta",
                query="""
                    select
                        u.id as UserID,
                        'Plugin.Signatures.Sig' as Name,
                        u.signature as Value
                    from :_users u
                    where u.signature != '' and u.signature is not null
                """,
            ),
            ExportOperation(
                entity="Category",
                query="""
                    select
                        c.cat_id as CategoryID,
                        c.cat_name as Name
                    from :_categories c
                """,
                filters={"Name": "html_decode"},
            ),
            ExportOperation(
                entity="Discussion",
                query="""
                    select
                        t.topic_id as DiscussionID,
                        t.cat_id as CategoryID,
                        t.uid as InsertUserID,
                        t.title as Name,
                        from_unixtime(t.topic_created) as DateInserted,
                        from_unixtime(t.last_post_time) as DateLastComment
                    from :_topics t
                """,
                filters={"Name": "html_decode"},
            ),
            ExportOperation(
                entity="Comment",
                query="""
                    select
                        p.post_id as CommentID,
                        p.topic_id as DiscussionID,
                        p.uid as InsertUserID,
                        p.imessage as Body,
                        'Markdown' as Format,
                        from_unixtime(p.post_created) as DateInserted
                    from :_posts p
                """,
                depends_on=("Discussion",),
            ),
        ]
