import pytest
from sqlalchemy import Float, Integer, Text, inspect
from sqlalchemy.dialects import mysql, postgresql, sqlite

from dynrecord import Database
from dynrecord.errors import StorageError
from dynrecord.persistence.models import Bean
from dynrecord.persistence.store import coerce_for_column, widen_column_ddl


@pytest.fixture()
def store(sqlite_db):
    Database.connect()
    yield Database.store()
    Database.disconnect()


def _columns(store, table):
    return [c["name"] for c in inspect(store.connection).get_columns(table)]


def test_dispense_lowercases_and_does_not_create_tables(store):
    bean = store.dispense("Book")
    assert bean == Bean(type="book")
    assert bean.is_empty
    assert not inspect(store.connection).has_table("book")


def test_first_store_creates_table_and_assigns_id(store):
    bean = store.dispense("book")
    bean["title"] = "Dune"
    bean["pages"] = 412
    assert store.store(bean) == 1
    assert bean.id == 1
    assert _columns(store, "book") == ["id", "title", "pages"]


def test_new_attributes_add_columns(store):
    first = store.dispense("book")
    first["title"] = "Dune"
    store.store(first)

    second = store.dispense("book")
    second["title"] = "Emma"
    second["rating"] = 4.5
    second["Available"] = True
    assert store.store(second) == 2
    assert _columns(store, "book") == ["id", "title", "rating", "available"]

    loaded = store.load("book", 1)
    assert loaded.fields == {"title": "Dune", "rating": None, "available": None}


def test_store_updates_an_existing_row(store):
    bean = store.dispense("book")
    bean["title"] = "Draft"
    bean_id = store.store(bean)

    bean["title"] = "Final"
    assert store.store(bean) == bean_id
    assert store.count("book") == 1
    assert store.load("book", bean_id)["title"] == "Final"


def test_sqlite_keeps_mismatched_values(store):
    bean = store.dispense("book")
    bean["pages"] = 100
    store.store(bean)

    other = store.dispense("book")
    other["pages"] = "unknown"
    store.store(other)

    assert store.load("book", other.id)["pages"] == "unknown"
    assert store.load("book", bean.id)["pages"] == 100


def test_empty_bean_can_be_stored(store):
    assert store.store(store.dispense("marker")) == 1
    assert store.count("marker") == 1


def test_load_missing_row_or_table_gives_empty_bean(store):
    assert store.load("ghost", 1).is_empty
    bean = store.dispense("book")
    bean["title"] = "Dune"
    store.store(bean)
    missing = store.load("book", 99)
    assert missing.is_empty
    assert missing.fields == {}


def test_count_and_find_on_missing_table(store):
    assert store.count("ghost") == 0
    assert store.find_all("ghost") == []
    assert store.find("ghost", "x > 1") == []


def test_find_clauses_and_params(store):
    for title, pages in [("A", 10), ("B", 30), ("C", 20)]:
        bean = store.dispense("book")
        bean["title"] = title
        bean["pages"] = pages
        store.store(bean)

    assert [b["title"] for b in store.find_all("book")] == ["A", "B", "C"]
    assert [b["title"] for b in store.find("book", "ORDER BY pages DESC")] == ["B", "C", "A"]
    assert [b["title"] for b in store.find("book", " LIMIT 2")] == ["A", "B"]
    found = store.find("book", "pages >= :low AND title != :skip", {"low": 20, "skip": "C"})
    assert [(b.id, b["title"]) for b in found] == [(2, "B")]


def test_colons_are_literal_without_params(store):
    bean = store.dispense("note")
    bean["body"] = "a:b"
    store.store(bean)
    assert len(store.find("note", "body = 'a:b'")) == 1


def test_bad_condition_raises_storage_error_and_connection_survives(store):
    bean = store.dispense("book")
    bean["title"] = "Dune"
    store.store(bean)
    with pytest.raises(StorageError, match="find on 'book' failed"):
        store.find("book", "no_such_column = 1")
    assert store.count("book") == 1


@pytest.mark.parametrize("name", ["my table", "1st", "drop;--", ""])
def test_invalid_identifiers(store, name):
    with pytest.raises(StorageError, match="invalid identifier"):
        store.dispense(name)


def test_invalid_column_name(store):
    bean = store.dispense("book")
    bean["bad column"] = 1
    with pytest.raises(StorageError, match="invalid identifier"):
        store.store(bean)


def test_unsupported_value_is_rejected_before_any_ddl(store):
    bean = store.dispense("book")
    bean["tags"] = ["a", "b"]
    with pytest.raises(StorageError, match="cannot store value of type list"):
        store.store(bean)
    assert bean.id is None
    assert not inspect(store.connection).has_table("book")


def test_id_cannot_be_a_field(store):
    bean = store.dispense("book")
    bean["ID"] = 5
    with pytest.raises(StorageError, match="primary key"):
        store.store(bean)


def test_fields_folding_onto_one_column_are_rejected(store):
    bean = store.dispense("book")
    bean["Title"] = "upper"
    bean["title"] = "lower"
    with pytest.raises(StorageError, match="collides"):
        store.store(bean)
    assert not inspect(store.connection).has_table("book")


def test_bool_into_integer_column_is_stored_as_number(store):
    bean = store.dispense("book")
    bean["pages"] = 3
    store.store(bean)

    other = store.dispense("book")
    other["pages"] = True
    store.store(other)

    stored = store.load("book", other.id)["pages"]
    assert stored == 1 and not isinstance(stored, bool)
    column = inspect(store.connection).get_columns("book")[1]
    assert isinstance(column["type"], Integer)


def test_widen_ddl_per_dialect():
    assert (
        widen_column_ddl(postgresql.dialect(), "book", "pages", Text())
        == "ALTER TABLE book ALTER COLUMN pages TYPE TEXT USING pages::TEXT"
    )
    assert widen_column_ddl(mysql.dialect(), "book", "pages", Text()) == (
        "ALTER TABLE book MODIFY pages TEXT"
    )
    assert widen_column_ddl(sqlite.dialect(), "book", "pages", Text()) is None


def test_widen_ddl_quotes_reserved_words():
    ddl = widen_column_ddl(postgresql.dialect(), "order", "user", Float())
    assert ddl.startswith('ALTER TABLE "order" ALTER COLUMN "user" TYPE FLOAT')


def test_coerce_for_column():
    assert coerce_for_column(True, Integer()) == 1
    assert type(coerce_for_column(True, Integer())) is int
    assert type(coerce_for_column(False, Float())) is int
    assert coerce_for_column(True, Text()) is True
    assert coerce_for_column(7, Integer()) == 7
