"""
Unit tests for the fluent QueryBuilder.
"""

from datetime import datetime

import pytest

from query_hub.infrastructure.sql.builder import (
    BuiltQuery,
    QueryBuilder,
    StatementKind,
    to_sql_timestamp,
)
from query_hub.infrastructure.sql.core.values import raw
from query_hub.infrastructure.sql.exceptions import (
    ConditionFormatError,
    InvalidLimitError,
    MissingFromError,
    PlaceholderCollisionError,
    QueryBuilderError,
)

STAMP = datetime(2024, 5, 6, 7, 8, 9)


@pytest.mark.unit
class TestSelect:
    """SELECT construction and clause setters."""

    def test_full_chain_renders_in_clause_order(self):
        q = (
            QueryBuilder.select("SELECT * FROM users")
            .where({"id": 110})
            .order(["username ASC", "id DESC"])
            .limit(5)
            .group("id")
            .offset(6)
        )

        assert q.render() == (
            "SELECT * FROM users WHERE id = :id GROUP BY id "
            "ORDER BY username ASC, id DESC LIMIT 5 OFFSET 6"
        )
        assert q.bindings == {":id": 110}

    def test_select_with_from(self):
        q = (
            QueryBuilder.select("SELECT *")
            .from_("users")
            .order("username ASC, id DESC")
            .limit(5)
            .offset(6)
        )

        assert q.render() == "SELECT * FROM users ORDER BY username ASC, id DESC LIMIT 5 OFFSET 6"

    def test_select_prefix_is_added(self):
        q = QueryBuilder.select("* FROM users WHERE id=:id", {":id": 12})

        assert q.render() == "SELECT * FROM users WHERE id=:id"
        assert q.bindings == {":id": 12}

    def test_params_keys_are_normalized(self):
        q = QueryBuilder.select("SELECT username FROM users WHERE id > :id", {"id": 15})

        assert q.bindings == {":id": 15}

    def test_kind(self):
        assert QueryBuilder.select("SELECT 1").kind is StatementKind.SELECT

    def test_kind_is_read_only(self):
        q = QueryBuilder.select("SELECT 1")

        with pytest.raises(AttributeError):
            q.kind = StatementKind.INSERT

    def test_group_and_having(self):
        q = (
            QueryBuilder.select("SELECT age, COUNT(*)")
            .from_("users")
            .group(["age", "email"])
            .having("COUNT(*) > 1")
        )

        assert q.render() == (
            "SELECT age, COUNT(*) FROM users GROUP BY age, email HAVING COUNT(*) > 1"
        )

    def test_keywords_are_not_doubled(self):
        q = (
            QueryBuilder.select("select id")
            .from_("FROM users")
            .group("group by id")
            .having("HAVING id > 1")
            .order("ORDER BY id")
        )

        assert q.render() == "SELECT id FROM users GROUP BY id HAVING id > 1 ORDER BY id"

    def test_empty_order_clears_slot(self):
        q = QueryBuilder.select("SELECT *").from_("t").order("id").order([])

        assert q.render() == "SELECT * FROM t"

    def test_where_operators_and_raw(self):
        q = QueryBuilder.select("SELECT *").from_("users").where(
            {
                "age": [">=", 18],
                0: raw("deleted_at IS NULL"),
                "u.email": ["LIKE", "%@x"],
                "created_at": ["<", raw("NOW()")],
            }
        )

        assert q.render() == (
            "SELECT * FROM users WHERE age >= :age AND deleted_at IS NULL "
            "AND u.email LIKE :u_email AND created_at < NOW()"
        )
        assert q.bindings == {":age": 18, ":u_email": "%@x"}

    def test_where_replaces_previous_conditions(self):
        q = QueryBuilder.select("SELECT *").from_("t").where({"id": 1}).where({"id": 2})

        assert q.render() == "SELECT * FROM t WHERE id = :id"
        assert q.bindings == {":id": 2}

    def test_where_extra_params(self):
        q = QueryBuilder.select("SELECT *").from_("t").where(
            {0: raw("age BETWEEN :low AND :high")}, {"low": 1, "high": 9}
        )

        assert q.render() == "SELECT * FROM t WHERE age BETWEEN :low AND :high"
        assert q.bindings == {":low": 1, ":high": 9}

    def test_empty_where_is_noop(self):
        q = QueryBuilder.select("SELECT *").from_("t").where({})

        assert q.render() == "SELECT * FROM t"

    def test_malformed_condition_raises_at_call(self):
        with pytest.raises(ConditionFormatError):
            QueryBuilder.select("SELECT *").from_("t").where({"id": [">", 1, 2]})

    def test_where_colliding_with_params(self):
        with pytest.raises(PlaceholderCollisionError):
            QueryBuilder.select("SELECT * FROM t WHERE x = :id", {"id": 1}).where({"id": 2})

    def test_failed_where_params_leave_builder_unchanged(self):
        q = QueryBuilder.select("SELECT *").from_("t").where({"id": 1})

        with pytest.raises(PlaceholderCollisionError):
            q.where({}, {"id": 2})

        assert q.render() == "SELECT * FROM t WHERE id = :id"
        assert q.bindings == {":id": 1}
        assert q.where({"id": 5}).build().bindings == {":id": 5}

    def test_failed_params_merge_is_not_partial(self):
        q = QueryBuilder.select("SELECT *").from_("t").where({"b": 1})

        with pytest.raises(PlaceholderCollisionError):
            q.where({}, {"a": 1, "b": 2})

        assert q.bindings == {":b": 1}

    def test_failed_where_keeps_previous_clause(self):
        q = QueryBuilder.select("SELECT *", {"id": 1}).from_("t").where({"x": 3})

        with pytest.raises(PlaceholderCollisionError):
            q.where({"id": 2})

        assert q.render() == "SELECT * FROM t WHERE x = :x"
        assert q.bindings == {":x": 3, ":id": 1}


@pytest.mark.unit
class TestLimitOffset:
    """LIMIT/OFFSET validation."""

    def test_digit_string_is_accepted(self):
        q = QueryBuilder.select("SELECT *").from_("t").limit("10").offset(" 20 ")

        assert q.render() == "SELECT * FROM t LIMIT 10 OFFSET 20"

    @pytest.mark.parametrize("value", ["ten", 1.5, None, True, "-1", -1])
    def test_invalid_limit(self, value):
        with pytest.raises(InvalidLimitError):
            QueryBuilder.select("SELECT *").limit(value)

    def test_invalid_offset(self):
        with pytest.raises(InvalidLimitError, match="OFFSET"):
            QueryBuilder.select("SELECT *").offset("x")


@pytest.mark.unit
class TestToCount:
    """Count-mode rewrite."""

    def test_count_drops_pagination_keeps_where(self):
        q = (
            QueryBuilder.select("SELECT id, username")
            .from_("users")
            .where({"id": [">", 3]})
            .order("id DESC")
            .limit(5)
            .offset(10)
            .to_count()
        )

        assert q.render() == "SELECT COUNT(*) FROM users WHERE id > :id"
        assert q.bindings == {":id": 3}

    def test_count_before_pagination(self):
        before = QueryBuilder.select("SELECT *").from_("users").to_count().order("id").limit(1)
        after = QueryBuilder.select("SELECT *").from_("users").order("id").limit(1).to_count()

        assert before.render() == after.render() == "SELECT COUNT(*) FROM users"

    def test_count_column(self):
        q = QueryBuilder.select("SELECT *").from_("users").to_count("id")

        assert q.render() == "SELECT COUNT(id) FROM users"

    def test_count_requires_from(self):
        with pytest.raises(MissingFromError):
            QueryBuilder.select("SELECT * FROM users").to_count()


@pytest.mark.unit
class TestInsert:
    """Single-row INSERT."""

    def test_insert_with_timestamps(self):
        q = QueryBuilder.insert(
            "users2", {"username": "Alex", "email": "e@x"}, add_timestamps=True, timestamp=STAMP
        )
        built = q.build()

        assert built.sql == (
            "INSERT INTO users2 (username, email, created_at, updated_at) "
            "VALUES (:username, :email, :created_at, :updated_at)"
        )
        assert built.bindings == {
            ":username": "Alex",
            ":email": "e@x",
            ":created_at": "2024-05-06 07:08:09",
            ":updated_at": "2024-05-06 07:08:09",
        }
        assert built.kind is StatementKind.INSERT
        assert built.input_bindings == built.bindings
        assert built.where_bindings == {}

    def test_timestamps_default_to_now(self):
        built = QueryBuilder.insert("t", {"a": 1}, add_timestamps=True).build()

        assert built.bindings[":created_at"] == built.bindings[":updated_at"]
        assert len(built.bindings[":created_at"]) == 19

    def test_caller_timestamp_is_kept(self):
        q = QueryBuilder.insert(
            "t", {"a": 1, "created_at": "2000-01-01 00:00:00"}, add_timestamps=True, timestamp=STAMP
        )

        assert q.bindings[":created_at"] == "2000-01-01 00:00:00"
        assert q.bindings[":updated_at"] == "2024-05-06 07:08:09"

    def test_insert_without_timestamps(self):
        q = QueryBuilder.insert("t", {"a": 1})

        assert q.render() == "INSERT INTO t (a) VALUES (:a)"

    def test_insert_raw_value(self):
        q = QueryBuilder.insert("t", {"a": 1, "created_at": raw("NOW()")})

        assert q.render() == "INSERT INTO t (a, created_at) VALUES (:a, NOW())"
        assert q.bindings == {":a": 1}

    def test_insert_rejects_positional_raw(self):
        with pytest.raises(ConditionFormatError):
            QueryBuilder.insert("t", {0: raw("x"), "a": 1})


@pytest.mark.unit
class TestUpdateDeleteTruncate:
    """UPDATE, DELETE and TRUNCATE."""

    def test_update(self):
        q = QueryBuilder.update("users", {"username": "Bo", "age": 30}, {"id": 5})

        assert q.render() == "UPDATE users SET username = :username, age = :age WHERE id = :id"
        assert q.bindings == {":username": "Bo", ":age": 30, ":id": 5}
        assert q.kind is StatementKind.UPDATE

    def test_update_with_timestamp(self):
        q = QueryBuilder.update("t", {"a": 1}, {"id": 2}, add_timestamps=True, timestamp=STAMP)

        assert q.render() == "UPDATE t SET a = :a, updated_at = :updated_at WHERE id = :id"
        assert q.bindings[":updated_at"] == "2024-05-06 07:08:09"

    def test_update_bare_raw_assignment(self):
        q = QueryBuilder.update("t", {0: raw("hits = hits + 1")}, {"id": 2})

        assert q.render() == "UPDATE t SET hits = hits + 1 WHERE id = :id"
        assert q.bindings == {":id": 2}

    def test_update_same_column_same_value(self):
        q = QueryBuilder.update("t", {"status": 1}, {"status": 1})

        assert q.bindings == {":status": 1}

    def test_update_same_column_different_value(self):
        with pytest.raises(PlaceholderCollisionError):
            QueryBuilder.update("t", {"status": 1}, {"status": 0})

    def test_update_qualified_where_avoids_collision(self):
        q = QueryBuilder.update("t", {"status": 1}, {"t.status": 0})

        assert q.render() == "UPDATE t SET status = :status WHERE t.status = :t_status"
        assert q.bindings == {":status": 1, ":t_status": 0}

    def test_update_requires_assignment(self):
        with pytest.raises(QueryBuilderError):
            QueryBuilder.update("t", {}, {"id": 1})

    def test_update_without_where(self):
        assert QueryBuilder.update("t", {"a": 1}, {}).render() == "UPDATE t SET a = :a"

    def test_delete_with_limit(self):
        q = QueryBuilder.delete("users", {"id": ["<", 10]}, limit=3)

        assert q.render() == "DELETE FROM users WHERE id < :id LIMIT 3"
        assert q.bindings == {":id": 10}
        assert q.kind is StatementKind.DELETE

    def test_delete_without_limit(self):
        assert QueryBuilder.delete("users", {"id": 1}).render() == "DELETE FROM users WHERE id = :id"

    def test_truncate(self):
        q = QueryBuilder.truncate("users")

        assert q.render() == "TRUNCATE TABLE users"
        assert q.bindings == {}
        assert q.kind is StatementKind.TRUNCATE


@pytest.mark.unit
class TestQueryAndBatch:
    """Raw queries and multi-row inserts."""

    def test_query_is_verbatim(self):
        q = QueryBuilder.query("  CREATE TABLE IF NOT EXISTS tasks (id INT)  ")

        assert q.render() == "CREATE TABLE IF NOT EXISTS tasks (id INT)"
        assert q.kind is StatementKind.QUERY

    def test_query_params(self):
        q = QueryBuilder.query("DELETE FROM t WHERE id = :id", {"id": 4})

        assert q.bindings == {":id": 4}

    def test_insert_multi(self):
        q = QueryBuilder.insert_multi("t", ["a", "b"], [[1, 2], [3, 4], [5, 6]], chunk_size=2)
        built = q.build()

        assert built.kind is StatementKind.INSERT_MULTI
        assert built.is_batch
        assert [statement.sql for statement in built.batch] == [
            "INSERT INTO t (a, b) VALUES (?, ?), (?, ?)",
            "INSERT INTO t (a, b) VALUES (?, ?)",
        ]
        assert [statement.values for statement in built.batch] == [(1, 2, 3, 4), (5, 6)]
        assert built.sql == (
            "INSERT INTO t (a, b) VALUES (?, ?), (?, ?); INSERT INTO t (a, b) VALUES (?, ?)"
        )
        assert built.bindings == {}


@pytest.mark.unit
class TestBuild:
    """Render output and builder independence."""

    def test_build_is_idempotent(self):
        q = QueryBuilder.select("SELECT *").from_("t").where({"id": 1}).limit(2)

        first, second = q.build(), q.build()
        assert isinstance(first, BuiltQuery)
        assert first == second

    def test_build_snapshot_is_detached(self):
        q = QueryBuilder.select("SELECT *").from_("t").where({"id": 1})
        built = q.build()
        built.bindings[":id"] = 99

        assert q.bindings == {":id": 1}

    def test_parts_snapshot(self):
        built = QueryBuilder.select("SELECT *").from_("t").build()

        assert built.parts["SELECT"] == "SELECT *"
        assert built.parts["FROM"] == "FROM t"
        assert built.parts["LIMIT"] is None

    def test_where_bindings_include_params(self):
        built = (
            QueryBuilder.select("SELECT * FROM t WHERE a = :a", {"a": 1})
            .where({"b": 2})
            .build()
        )

        assert built.where_bindings == {":b": 2, ":a": 1}

    def test_instances_do_not_share_state(self):
        first = QueryBuilder.select("SELECT *").from_("t")
        second = QueryBuilder.select("SELECT *").from_("t")
        first.where({"id": 1}).limit(1)

        assert second.render() == "SELECT * FROM t"
        assert second.bindings == {}

    def test_copy_is_independent(self):
        base = QueryBuilder.select("SELECT *").from_("users").where({"id": 1})
        counted = base.copy().to_count()
        base.limit(5)

        assert counted.render() == "SELECT COUNT(*) FROM users WHERE id = :id"
        assert base.render() == "SELECT * FROM users WHERE id = :id LIMIT 5"
        assert counted.kind is base.kind


@pytest.mark.unit
class TestToSqlTimestamp:
    """Timestamp formatting."""

    def test_datetime(self):
        assert to_sql_timestamp(STAMP) == "2024-05-06 07:08:09"

    def test_iso_string(self):
        assert to_sql_timestamp("2024-05-06 07:08:09") == "2024-05-06 07:08:09"

    def test_unix_seconds(self):
        assert to_sql_timestamp(0) == datetime.fromtimestamp(0).strftime("%Y-%m-%d %H:%M:%S")

    def test_invalid_string(self):
        with pytest.raises(QueryBuilderError):
            to_sql_timestamp("yesterday")
