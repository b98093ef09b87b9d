"""Vanilla finalization: recompute denormalized counters."""

from typing import List, Tuple

from .base import Postscript

# (table that must exist, statement)
COUNTER_UPDATES: List[Tuple[Tuple[str, ...], str]] = [
    (
        ("Discussion", "Comment"),
        """
        update {prefix}Discussion
        set CountComments = (
            select count(*) from {prefix}Comment c
            where c.DiscussionID = {prefix}Discussion.DiscussionID
        )
        """,
    ),
    (
        ("Discussion", "Comment"),
        """
        update {prefix}Discussion
        set DateLastComment = (
            select max(c.DateInserted) from {prefix}Comment c
            where c.DiscussionID = {prefix}Discussion.DiscussionID
        )
        where DateLastComment is null
        """,
    ),
    (
        ("Category", "Discussion"),
        """
        update {prefix}Category
        set CountDiscussions = (
            select count(*) from {prefix}Discussion d
            where d.CategoryID = {prefix}Category.CategoryID
        ),
        LastDiscussionID = (
            select max(d.DiscussionID) from {prefix}Discussion d
            where d.CategoryID = {prefix}Category.CategoryID
        )
        """,
    ),
    (
        ("Category", "Discussion"),
        """
        update {prefix}Category
        set CountComments = (
            select coalesce(sum(d.CountComments), 0) from {prefix}Discussion d
            where d.CategoryID = {prefix}Category.CategoryID
        )
        """,
    ),
    (
        ("User", "Discussion"),
        """
        update {prefix}User
        set CountDiscussions = (
            select count(*) from {prefix}Discussion d
            where d.InsertUserID = {prefix}User.UserID
        )
        """,
    ),
    (
        ("User", "Comment"),
        """
        update {prefix}User
        set CountComments = (
            select count(*) from {prefix}Comment c
            where c.InsertUserID = {prefix}User.UserID
        )
        """,
    ),
    (
        ("Conversation", "ConversationMessage"),
        """
        update {prefix}Conversation
        set CountMessages = (
            select count(*) from {prefix}ConversationMessage m
            where m.ConversationID = {prefix}Conversation.ConversationID
        ),
        LastMessageID = (
            select max(m.MessageID) from {prefix}ConversationMessage m
            where m.ConversationID = {prefix}Conversation.ConversationID
        )
        """,
    ),
    (
        ("Conversation", "ConversationMessage"),
        """
        update {prefix}Conversation
        set FirstMessageID = (
            select min(m.MessageID) from {prefix}ConversationMessage m
            where m.ConversationID = {prefix}Conversation.ConversationID
        )
        where FirstMessageID is null
        """,
    ),
]


class VanillaPostscript(Postscript):
    """Fills the counter columns Vanilla keeps on discussions, categories, users and conversations."""

    name = "vanilla"

    def run(self, model) -> None:
        for tables, sql in COUNTER_UPDATES:
            if not all(self.storage.exists(table) for table in tables):
                continue
            self.execute(sql)

        model.comment("Recalculated Vanilla counters")
