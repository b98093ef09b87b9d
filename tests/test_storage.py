"""Tests for the batch buffer, database storage and file storage."""

import pytest
from sqlalchemy import inspect

from porter.exceptions import DestinationWriteFailure
from porter.models.schema import TableStructure
from porter.storage import BatchBuffer, DatabaseStorage, FileStorage

from conftest import MemoryStorage, rows

STRUCTURE = TableStructure({
    "UserID": "int",
    "Name": "varchar(50)",
    "Password": "varbinary(100)",
    "Gender": ["u", "m", "f"],
    "DateInserted": "datetime",
})


def user_rows(count, start=1):
    return [
        {
            "UserID": i,
            "Name": f"user{i}",
            "Password": "secret",
            "Gender": "u",
            "DateInserted": "2020-01-01 10:00:00",
        }
        for i in range(start, start + count)
    ]


class TestBatchBuffer:
    """Flush boundaries."""

    def make(self, size):
        written = []
        buffer = BatchBuffer(size, written.append, sample=lambda: 42)
        return buffer, written

    def test_exact_batch(self):
        """batch_size rows: one flush, nothing pending."""
        buffer, written = self.make(3)
        for i in range(3):
            buffer.add({"i": i})

        assert buffer.flushes == 1
        assert buffer.pending == 0
        assert [len(b) for b in written] == [3]

    def test_one_over(self):
        """batch_size + 1 rows: one flush, one row pending until the end."""
        buffer, written = self.make(3)
        for i in range(4):
            buffer.add({"i": i})

        assert buffer.flushes == 1
        assert buffer.pending == 1

        buffer.flush()
        assert buffer.flushes == 2
        assert buffer.pending == 0
        assert [len(b) for b in written] == [3, 1]
        assert buffer.total == 4

    def test_empty_flush_is_noop(self):
        """Flushing nothing writes nothing."""
        buffer, written = self.make(3)
        buffer.flush()
        assert written == []
        assert buffer.flushes == 0
        assert buffer.memory == []

    def test_memory_sampled_per_flush(self):
        buffer, _ = self.make(2)
        for i in range(5):
            buffer.add({"i": i})
        buffer.flush()
        assert buffer.memory == [42, 42, 42]

    def test_rejects_zero_size(self):
        with pytest.raises(ValueError):
            BatchBuffer(0, lambda batch: None)


class TestBaseStorage:
    """Batching and reset tracking, independent of the backend."""

    def test_store_batches(self):
        """store() writes full batches then the remainder."""
        storage = MemoryStorage(batch_size=3)
        storage.prepare("User", STRUCTURE)
        stats = storage.store("User", STRUCTURE, iter(user_rows(7)))

        assert stats.rows == 7
        assert stats.batches == 3
        assert storage.batches["PORT_User"] == [3, 3, 1]
        assert len(stats.memory) == 4

    def test_store_exact_multiple(self):
        """No trailing empty insert when rows divide evenly."""
        storage = MemoryStorage(batch_size=3)
        storage.prepare("User", STRUCTURE)
        stats = storage.store("User", STRUCTURE, iter(user_rows(3)))

        assert stats.batches == 1
        assert storage.batches["PORT_User"] == [3]

    def test_store_nothing(self):
        """An empty stream stores nothing and does not fail."""
        storage = MemoryStorage(batch_size=3)
        storage.prepare("User", STRUCTURE)
        stats = storage.store("User", STRUCTURE, iter([]))

        assert stats.rows == 0
        assert stats.batches == 0
        assert storage.batches["PORT_User"] == []

    def test_prepare_once_per_prefixed_name(self):
        """Reset tracking is keyed by the prefixed table name."""
        reset = set()
        storage = MemoryStorage(reset_tables=reset)

        assert storage.prepare("User", STRUCTURE) is True
        assert storage.prepare("User", STRUCTURE) is False

        storage.set_prefix("GDN_")
        assert storage.prepare("User", STRUCTURE) is True
        assert reset == {"PORT_User", "GDN_User"}

    def test_default_batch_size(self):
        assert MemoryStorage().batch_size == 1000


class TestDatabaseStorage:
    """Tables synthesized and written through SQLAlchemy on sqlite."""

    def test_prepare_then_exists(self, target_connection):
        """A prepared table reports every declared column."""
        storage = DatabaseStorage(target_connection)
        storage.prepare("User", STRUCTURE)

        assert storage.exists("User")
        assert storage.exists("User", list(STRUCTURE))
        assert storage.exists("User", ["userid", "name"])
        assert not storage.exists("User", ["UserID", "Email"])
        assert not storage.exists("Comment")

    def test_columns_nullable(self, target_connection):
        """Synthesized columns all accept NULL."""
        storage = DatabaseStorage(target_connection)
        storage.prepare("User", STRUCTURE)

        columns = inspect(target_connection.engine).get_columns("PORT_User")
        assert [c["name"] for c in columns] == list(STRUCTURE)
        assert all(c["nullable"] for c in columns)

    def test_store_rows(self, target_connection):
        """Rows land in order, with string dates and text passwords accepted."""
        storage = DatabaseStorage(target_connection, batch_size=2)
        storage.prepare("User", STRUCTURE)
        stats = storage.store("User", STRUCTURE, iter(user_rows(5)))

        assert stats.rows == 5
        assert stats.batches == 3
        assert storage.count("User") == 5
        assert [r[0] for r in rows(target_connection, "select UserID from PORT_User")] == [1, 2, 3, 4, 5]

    def test_prepare_again_appends(self, target_connection):
        """N rows, prepare again, M rows -> N + M rows."""
        storage = DatabaseStorage(target_connection)
        storage.prepare("User", STRUCTURE)
        storage.store("User", STRUCTURE, iter(user_rows(4)))

        storage.prepare("User", STRUCTURE)
        storage.store("User", STRUCTURE, iter(user_rows(3, start=5)))

        assert storage.count("User") == 7

    def test_new_run_recreates(self, target_connection):
        """A fresh reset set drops the table from a previous run."""
        first = DatabaseStorage(target_connection)
        first.prepare("User", STRUCTURE)
        first.store("User", STRUCTURE, iter(user_rows(4)))

        second = DatabaseStorage(target_connection)
        second.prepare("User", STRUCTURE)
        assert second.count("User") == 0

    def test_enum_rejects_other_values(self, target_connection):
        """Enum columns only accept their options (and NULL)."""
        storage = DatabaseStorage(target_connection)
        storage.prepare("User", STRUCTURE)
        storage.store("User", STRUCTURE, iter([{"UserID": 1, "Gender": "f"}, {"UserID": 2, "Gender": None}]))

        with pytest.raises(DestinationWriteFailure):
            storage.store("User", STRUCTURE, iter([{"UserID": 3, "Gender": "zzz"}]))
        assert rows(target_connection, "select Gender from PORT_User order by UserID") == [("f",), (None,)]

    def test_write_failure(self, target_connection):
        """A rejected insert aborts with DestinationWriteFailure."""
        storage = DatabaseStorage(target_connection)
        storage.prepare("User", STRUCTURE)
        with target_connection.engine.begin() as conn:
            conn.exec_driver_sql("drop table PORT_User")

        with pytest.raises(DestinationWriteFailure) as exc_info:
            storage.store("User", STRUCTURE, iter(user_rows(2)))
        assert exc_info.value.entity == "PORT_User"


class TestFileStorage:
    """CSV output."""

    def test_prepare_then_exists(self, tmp_path):
        """The header carries every declared column."""
        storage = FileStorage(str(tmp_path / "out"))
        storage.prepare("User", STRUCTURE)

        assert (tmp_path / "out" / "PORT_User.csv").exists()
        assert storage.exists("User", list(STRUCTURE))
        assert not storage.exists("User", ["Email"])
        assert not storage.exists("Comment")

    def test_store_and_append(self, tmp_path):
        """Rows append after a repeated prepare; NULLs round-trip."""
        storage = FileStorage(str(tmp_path), batch_size=2)
        storage.prepare("User", STRUCTURE)
        storage.store("User", STRUCTURE, iter(user_rows(3)))
        storage.prepare("User", STRUCTURE)
        storage.store("User", STRUCTURE, iter([{"UserID": 9, "Name": None}]))

        written = storage.read("User")
        assert [r["UserID"] for r in written] == ["1", "2", "3", "9"]
        assert written[-1]["Name"] is None
        assert written[0]["DateInserted"] == "2020-01-01 10:00:00"

    def test_null_marker_text_survives(self, tmp_path):
        """Text spelled like the NULL marker is escaped, not read back as NULL."""
        storage = FileStorage(str(tmp_path))
        structure = TableStructure({"UserID": "int", "Name": "varchar(50)"})
        storage.prepare("User", structure)
        storage.store("User", structure, iter([
            {"UserID": 1, "Name": "\\N"},
            {"UserID": 2, "Name": "\\\\N"},
            {"UserID": 3, "Name": None},
        ]))

        assert [r["Name"] for r in storage.read("User")] == ["\\N", "\\\\N", None]

    def test_binary_values(self, tmp_path):
        """UTF-8 bytes are written as text; other bytes keep their escapes."""
        storage = FileStorage(str(tmp_path))
        structure = TableStructure({"UserID": "int", "Password": "varbinary(100)"})
        storage.prepare("User", structure)
        storage.store("User", structure, iter([
            {"UserID": 1, "Password": b"salt$hash"},
            {"UserID": 2, "Password": b"\xffab"},
        ]))

        assert [r["Password"] for r in storage.read("User")] == ["salt$hash", "\\xffab"]
