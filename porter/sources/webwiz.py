"""Web Wiz Forums source."""

from typing import List

from ..models.migration import ExportOperation
from ..support import HAS_DISCUSSION_BODY
from .base import Source

USER_MAP = {
    "Author_ID": "UserID",
    "Username": {"Column": "Name", "Filter": "HTMLDecoder"},
    "Real_name": {"Column": "FullName", "Type": "varchar(50)", "Filter": "HTMLDecoder"},
    "Password": {"Column": "Password", "Filter": "concat_salt:Salt"},
    "Gender2": "Gender",
    "Author_email": "Email",
    "Photo2": {"Column": "Photo", "Filter": "HTMLDecoder"},
    "Login_IP": "LastIPAddress",
    "Banned": {"Column": "Banned", "Filter": "bool"},
    "Join_date": {"Column": "DateInserted"},
    "Last_visit": {"Column": "DateLastActive"},
    "Location": {"Column": "Location", "Filter": "HTMLDecoder"},
    "DOB": {"Column": "DateOfBirth", "Filter": "force_date"},
    "Show_email": {"Column": "ShowEmail", "Filter": "bool"},
}

DISCUSSION_MAP = {
    "Topic_ID": "DiscussionID",
    "Forum_ID": "CategoryID",
    "Author_ID": "InsertUserID",
    "Subject": {"Column": "Name", "Filter": "HTMLDecoder"},
    "IP_addr": "InsertIPAddress",
    "Format": "Format",
    "Message_date": {"Column": "DateInserted"},
    "No_of_views": "CountViews",
    "Locked": {"Column": "Closed", "Filter": "bool"},
}

COMMENT_MAP = {
    "Thread_ID": "CommentID",
    "Topic_ID": "DiscussionID",
    "Author_ID": "InsertUserID",
    "IP_addr": "InsertIPAddress",
    "Message": {"Column": "Body"},
    "Format": "Format",
    "Message_date": {"Column": "DateInserted"},
}

# Private messages have no thread id; group them by de-prefixed title
# and participant list into z_pmgroup (MySQL only).
CONVERSATION_TEMPS = """
    drop table if exists z_pmto;

    create table z_pmto (
        PM_ID int unsigned,
        User_ID int,
        primary key(PM_ID, User_ID)
    );

    insert ignore z_pmto (PM_ID, User_ID)
    select PM_ID, Author_ID
    from :_PMMessage;

    insert ignore z_pmto (PM_ID, User_ID)
    select PM_ID, From_ID
    from :_PMMessage;

    drop table if exists z_pmto2;

    create table z_pmto2 (
        PM_ID int unsigned,
        UserIDs varchar(250),
        primary key (PM_ID)
    );

    replace z_pmto2 (PM_ID, UserIDs)
    select PM_ID, group_concat(User_ID order by User_ID)
    from z_pmto
    group by PM_ID;

    drop table if exists z_pmtext;

    create table z_pmtext (
        PM_ID int unsigned,
        Title varchar(250),
        Title2 varchar(250),
        UserIDs varchar(250),
        Group_ID int unsigned
    );

    insert z_pmtext (PM_ID, Title, Title2)
    select
        PM_ID,
        PM_Tittle,
        case when PM_Tittle like 'Re:%' then trim(substring(PM_Tittle, 4)) else PM_Tittle end
    from :_PMMessage;

    create index z_idx_pmtext on z_pmtext (PM_ID);

    update z_pmtext pm
    join z_pmto2 t on pm.PM_ID = t.PM_ID
    set pm.UserIDs = t.UserIDs;

    drop table if exists z_pmgroup;

    create table z_pmgroup (
        Group_ID int unsigned,
        Title varchar(250),
        UserIDs varchar(250)
    );

    insert z_pmgroup (Group_ID, Title, UserIDs)
    select min(pm.PM_ID), pm.Title2, t2.UserIDs
    from z_pmtext pm
    join z_pmto2 t2 on pm.PM_ID = t2.PM_ID
    group by pm.Title2, t2.UserIDs;

    create index z_idx_pmgroup on z_pmgroup (Title, UserIDs);
    create index z_idx_pmgroup2 on z_pmgroup (Group_ID);

    update z_pmtext pm
    join z_pmgroup g on pm.Title2 = g.Title and pm.UserIDs = g.UserIDs
    set pm.Group_ID = g.Group_ID
"""


def _users_query(model) -> str:
    if model.source_exists("Author", ["Avatar"]):
        photo = (
            "case when u.Avatar like 'http%' then u.Avatar "
            "when u.Avatar > '' then concat('webwiz/', u.Avatar) else null end"
        )
    else:
        photo = "null"
    return f"""
        select
            case u.Gender when 'Male' then 'm' when 'Female' then 'f' else 'u' end as Gender2,
            {photo} as Photo2,
            'webwiz' as HashMethod,
            u.*
        from :_Author u
    """


class WebWiz(Source):
    """
    Exports Web Wiz Forums, including private messages as conversations.

    Web Wiz keeps a topic's opening message as its first thread row. When the
    target stores discussion bodies, that row becomes the discussion body and
    is left out of the comments; otherwise every thread row is a comment.
    """

    SUPPORTED = {
        "name": "Web Wiz Forums",
        "prefix": "tbl",
        "charset_table": "Topic",
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
            HAS_DISCUSSION_BODY: False,
        },
    }

    source_tables = {
        "Author": ["Author_ID", "Username", "Password", "Salt", "Author_email", "Signature"],
        "Group": ["Group_ID", "Name"],
        "Forum": ["Forum_ID", "Cat_ID", "Forum_name"],
        "Category": ["Cat_ID", "Cat_name"],
        "Topic": ["Topic_ID", "Forum_ID", "Subject", "Start_Thread_ID"],
        "Thread": ["Thread_ID", "Topic_ID", "Author_ID", "Message", "Message_date"],
        "PMMessage": ["PM_ID", "Author_ID", "From_ID", "PM_Tittle", "PM_Message"],
    }

    def before_run(self, model) -> None:
        model.comment("Building private message groups")
        model.query(CONVERSATION_TEMPS)

    def declare_operations(self) -> List[ExportOperation]:
        return [
            ExportOperation(entity="User", query=_users_query, column_map=USER_MAP),
            ExportOperation(
                entity="Role",
                query="select * from :_Group",
                column_map={"Group_ID": "RoleID", "Name": "Name"},
            ),
            ExportOperation(
                entity="UserRole",
                query="select u.* from :_Author u",
                column_map={"Author_ID": "UserID", "Group_ID": "RoleID"},
            ),
            ExportOperation(
                entity="UserMeta",
                query="""
                    select
                        Author_ID as UserID,
                        'Plugin.Signatures.Sig' as `Name`,
                        Signature as `Value`
                    from :_Author
                    where Signature <> ''
                """,
            ),
            ExportOperation(
                entity="Category",
                query="""
                    select
                        f.Forum_ID,
                        f.Cat_ID * 1000 as Parent_ID,
                        f.Forum_order,
                        f.Forum_name,
                        f.Forum_description
                    from :_Forum f

                    union all

                    select
                        c.Cat_ID * 1000,
                        null,
                        c.Cat_order,
                        c.Cat_name,
                        null
                    from :_Category c
                """,
                column_map={
                    "Forum_ID": "CategoryID",
                    "Forum_name": {"Column": "Name", "Filter": "HTMLDecoder"},
                    "Forum_description": "Description",
                    "Parent_ID": "ParentCategoryID",
                    "Forum_order": "Sort",
                },
            ),
            # Opening message joined in as the body.
            ExportOperation(
                entity="Discussion",
                query="""
                    select
                        th.Author_ID,
                        th.Message,
                        th.Message_date,
                        th.IP_addr,
                        'Html' as Format,
                        t.*
                    from :_Topic t
                    join :_Thread th
                        on t.Start_Thread_ID = th.Thread_ID
                """,
                column_map=dict(DISCUSSION_MAP, Message={"Column": "Body"}),
                feature=HAS_DISCUSSION_BODY,
            ),
            ExportOperation(
                entity="Discussion",
                query="""
                    select
                        th.Author_ID,
                        th.Message_date,
                        th.IP_addr,
                        'Html' as Format,
                        t.*
                    from :_Topic t
                    join :_Thread th
                        on t.Start_Thread_ID = th.Thread_ID
                """,
                column_map=DISCUSSION_MAP,
                fallback_for=HAS_DISCUSSION_BODY,
            ),
            ExportOperation(
                entity="Comment",
                query="""
                    select
                        th.*,
                        'Html' as Format
                    from :_Thread th
                    join :_Topic t
                        on t.Topic_ID = th.Topic_ID
                    where th.Thread_ID <> t.Start_Thread_ID
                """,
                column_map=COMMENT_MAP,
                feature=HAS_DISCUSSION_BODY,
                depends_on=("Discussion",),
            ),
            ExportOperation(
                entity="Comment",
                query="""
                    select
                        th.*,
                        'Html' as Format
                    from :_Thread th
                """,
                column_map=COMMENT_MAP,
                fallback_for=HAS_DISCUSSION_BODY,
                depends_on=("Discussion",),
            ),
            ExportOperation(
                entity="Conversation",
                query="""
                    select
                        pm.*,
                        g.Title
                    from :_PMMessage pm
                    join z_pmgroup g
                        on pm.PM_ID = g.Group_ID
                """,
                column_map={
                    "PM_ID": "ConversationID",
                    "Title": {"Column": "Subject", "Type": "varchar(255)", "Filter": "HTMLDecoder"},
                    "Author_ID": "InsertUserID",
                    "PM_Message_Date": {"Column": "DateInserted"},
                },
            ),
            ExportOperation(
                entity="UserConversation",
                query="""
                    select
                        g.Group_ID,
                        t.User_ID
                    from z_pmto t
                    join z_pmgroup g
                        on g.Group_ID = t.PM_ID
                """,
                column_map={"Group_ID": "ConversationID", "User_ID": "UserID"},
                depends_on=("Conversation",),
            ),
            ExportOperation(
                entity="ConversationMessage",
                query="""
                    select
                        pm.*,
                        pm2.Group_ID,
                        'Html' as Format
                    from :_PMMessage pm
                    join z_pmtext pm2
                        on pm.PM_ID = pm2.PM_ID
                """,
                column_map={
                    "Group_ID": "ConversationID",
                    "PM_ID": "MessageID",
                    "PM_Message": "Body",
                    "Format": "Format",
                    "PM_Message_Date": {"Column": "DateInserted"},
                    "Author_ID": "InsertUserID",
                },
                depends_on=("Conversation",),
            ),
        ]
