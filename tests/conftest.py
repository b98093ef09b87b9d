"""Shared fixtures: sqlite databases, sample packages and an in-memory storage."""

from contextlib import contextmanager
from typing import Dict, List

import pytest

from porter import registry
from porter.config import Config
from porter.connection import Connection, ConnectionDescriptor
from porter.models.migration import ExportOperation, RunRequest, RunState
from porter.sources.base import Source
from porter.storage.base import BaseStorage
from porter.support import HAS_DISCUSSION_BODY
from porter.targets.base import Target

MEMBERS = [
    (1, "Ann &amp; Co", "2020-01-01 10:00:00"),
    (2, "Bob", "2020-01-02 11:00:00"),
    (3, "Cy", "2020-01-03 12:00:00"),
]

TOPICS = [
    (10, 1, "Hello", "<p>First</p>", "2020-02-01 09:00:00"),
    (11, 2, "Again", "<p>Second</p>", "2020-02-02 09:00:00"),
]

POSTS = [
    (100, 10, 2, "Reply one", "2020-02-01 10:00:00"),
    (101, 10, 3, "Reply two", "2020-02-01 11:00:00"),
    (102, 11, 1, "Reply three", "2020-02-02 10:00:00"),
]

MEMBER_MAP = {
    "id": "UserID",
    "name": {"Column": "Name", "Filter": "html_decode"},
    "created_ts": "DateInserted",
}

MEMBER_STRUCTURE = {
    "UserID": "integer",
    "Name": "varchar(50)",
    "DateInserted": "varchar(30)",
}


class SampleSource(Source):
    """Three members mapped to (UserID, Name, DateInserted)."""

    SUPPORTED = {"name": "Sample Forum", "prefix": "", "features": {"Users": 1}}

    source_tables = {"members": ["id", "name", "created_ts"]}

    def declare_operations(self) -> List[ExportOperation]:
        return [
            ExportOperation(
                entity="User",
                query="select id, name, created_ts from :_members",
                column_map=MEMBER_MAP,
                structure=MEMBER_STRUCTURE,
            ),
        ]


class SignatureSource(SampleSource):
    """Reads a signature column the sample members table does not have."""

    source_tables = {"members": ["id", "name", "created_ts", "signature"]}

    def declare_operations(self) -> List[ExportOperation]:
        return [
            ExportOperation(
                entity="UserMeta",
                query="select id, signature from :_members",
                column_map={"id": "UserID", "signature": "Value"},
            ),
        ]


class ForumSource(Source):
    """Exports members, topics and posts into the canonical entities."""

    SUPPORTED = {"name": "Sample Board", "prefix": ""}

    source_tables = {
        "members": ["id", "name", "created_ts"],
        "topics": ["id", "member_id", "title", "body"],
        "posts": ["id", "topic_id", "member_id", "body"],
    }

    def declare_operations(self) -> List[ExportOperation]:
        return [
            ExportOperation(
                entity="User",
                query="select id as UserID, name as Name, created_ts as DateInserted from :_members",
                filters={"Name": "html_decode"},
            ),
            ExportOperation(
                entity="Discussion",
                query="""
                    select
                        id as DiscussionID,
                        member_id as InsertUserID,
                        title as Name,
                        body as Body,
                        'Html' as Format,
                        created_ts as DateInserted
                    from :_topics
                """,
            ),
            ExportOperation(
                entity="Comment",
                query="""
                    select
                        id as CommentID,
                        topic_id as DiscussionID,
                        member_id as InsertUserID,
                        body as Body,
                        'Text' as Format,
                        created_ts as DateInserted
                    from :_posts
                """,
                depends_on=("Discussion",),
            ),
        ]


class SampleTarget(Target):
    """Copies intermediate users into dst_members."""

    SUPPORTED = {"name": "Sample Target", "prefix": "dst_"}

    def declare_operations(self) -> List[ExportOperation]:
        return [
            ExportOperation(
                entity="members",
                query="select UserID as member_id, Name as member_name from :_User",
                structure={"member_id": "int", "member_name": "varchar(50)"},
                requires=("User",),
            ),
            ExportOperation(
                entity="topics",
                query="select DiscussionID as topic_id from :_Discussion",
                structure={"topic_id": "int"},
                requires=("Discussion",),
            ),
        ]


class BodySource(Source):
    """Stores no discussion body; can export one as a separate entity."""

    SUPPORTED = {"name": "Body Source", "flags": {HAS_DISCUSSION_BODY: False}}

    def declare_operations(self) -> List[ExportOperation]:
        return [
            ExportOperation(entity="User", query="select 1"),
            ExportOperation(entity="Discussion", query="select 1"),
            ExportOperation(
                entity="DiscussionBody",
                query="select 1",
                structure={"DiscussionID": "int", "Body": "text"},
                feature=HAS_DISCUSSION_BODY,
            ),
        ]


class BodySourceWithFlag(BodySource):
    SUPPORTED = {"name": "Body Source", "flags": {HAS_DISCUSSION_BODY: True}}


class BodyTarget(Target):
    """Imports bodies as their own posts when they were exported."""

    SUPPORTED = {"name": "Body Target", "prefix": "bt_", "flags": {HAS_DISCUSSION_BODY: False}}

    def declare_operations(self) -> List[ExportOperation]:
        return [
            ExportOperation(entity="users", query="select 1", structure={"id": "int"}),
            ExportOperation(
                entity="body_posts",
                query="select 1",
                structure={"id": "int"},
                feature=HAS_DISCUSSION_BODY,
                depends_on=("DiscussionBody",),
            ),
        ]


class BodyTargetWithFlag(BodyTarget):
    SUPPORTED = {"name": "Body Target", "prefix": "bt_", "flags": {HAS_DISCUSSION_BODY: True}}


class IndexingTarget(BodyTarget):
    """Always reads discussion bodies, whatever the flags say."""

    def declare_operations(self) -> List[ExportOperation]:
        return super().declare_operations() + [
            ExportOperation(
                entity="search_index",
                query="select 1",
                structure={"id": "int"},
                depends_on=("DiscussionBody",),
            ),
        ]


class MemoryStorage(BaseStorage):
    """Keeps written rows in lists; records every batch size."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.tables: Dict[str, List[dict]] = {}
        self.structures: Dict[str, object] = {}
        self.batches: Dict[str, List[int]] = {}
        self.created: List[str] = []

    def create_table(self, name, structure):
        self.tables[name] = []
        self.structures[name] = structure
        self.batches[name] = []
        self.created.append(name)

    @contextmanager
    def writer(self, name, structure):
        def write(batch):
            self.tables[name].extend(batch)
            self.batches[name].append(len(batch))

        yield write

    def exists(self, table, columns=None):
        name = self.table_name(table)
        if name not in self.structures:
            return False
        return all(column in self.structures[name] for column in columns or ())


@pytest.fixture
def config(tmp_path):
    """Two sqlite databases: 'source' and 'target' (the default)."""
    return Config.from_dict({
        "default_alias": "target",
        "connections": [
            {"alias": "source", "adapter": "sqlite", "name": str(tmp_path / "source.db")},
            {"alias": "target", "adapter": "sqlite", "name": str(tmp_path / "target.db")},
        ],
    })


@pytest.fixture
def source_connection(config):
    """Source database seeded with members, topics and posts."""
    connection = Connection(ConnectionDescriptor.from_config(config, "source"))
    with connection.engine.begin() as conn:
        conn.exec_driver_sql(
            "create table members (id integer primary key, name varchar(50), created_ts varchar(30))"
        )
        conn.exec_driver_sql(
            "create table topics (id integer primary key, member_id integer, "
            "title varchar(100), body text, created_ts varchar(30))"
        )
        conn.exec_driver_sql(
            "create table posts (id integer primary key, topic_id integer, member_id integer, "
            "body text, created_ts varchar(30))"
        )
        conn.exec_driver_sql("insert into members values (?, ?, ?)", MEMBERS)
        conn.exec_driver_sql("insert into topics values (?, ?, ?, ?, ?)", TOPICS)
        conn.exec_driver_sql("insert into posts values (?, ?, ?, ?, ?)", POSTS)
    yield connection
    connection.close()


@pytest.fixture
def target_connection(config):
    connection = Connection(ConnectionDescriptor.from_config(config, "target"))
    yield connection
    connection.close()


@pytest.fixture
def run_state():
    return RunState(request=RunRequest(source="source", package="sample"))


@pytest.fixture
def sample_packages(monkeypatch):
    """Register the sample packages under test ids."""
    monkeypatch.setitem(registry.SOURCES, "sample", SampleSource)
    monkeypatch.setitem(registry.SOURCES, "signature", SignatureSource)
    monkeypatch.setitem(registry.SOURCES, "board", ForumSource)
    monkeypatch.setitem(registry.SOURCES, "body", BodySource)
    monkeypatch.setitem(registry.SOURCES, "body_flagged", BodySourceWithFlag)
    monkeypatch.setitem(registry.TARGETS, "sample_target", SampleTarget)
    monkeypatch.setitem(registry.TARGETS, "body_target", BodyTarget)
    monkeypatch.setitem(registry.TARGETS, "body_target_flagged", BodyTargetWithFlag)
    monkeypatch.setitem(registry.TARGETS, "indexing_target", IndexingTarget)


def rows(connection: Connection, sql: str) -> List[tuple]:
    """Fetch all rows of a query as tuples."""
    with connection.open() as conn:
        return [tuple(r) for r in conn.exec_driver_sql(sql).fetchall()]
