"""Tests for repository_pattern/infrastructure/persistence/query.py.

Statements are inspected without a database; execution is covered by the
repository tests.
"""

import pytest
from sqlalchemy import func

from repository_pattern.domain.repositories import ALL_COLUMNS as INTERFACE_COLUMNS
from repository_pattern.infrastructure.persistence.query import (
    ALL_COLUMNS,
    Query,
    is_all_columns,
    is_operator,
)
from sample_models import Customer, Order, Tag


def _params(stmt):
    return list(stmt.compile().params.values())


def _orders():
    return Query.for_model(Order)


# --- immutability ---

def test_for_model_selects_the_model():
    query = _orders()
    assert query.model is Order
    assert query.statement.column_descriptions[0]["entity"] is Order


def test_shaping_returns_a_new_query():
    query = _orders()
    shaped = query.where("status", "paid")
    assert shaped is not query
    assert query.statement.whereclause is None
    assert shaped.statement.whereclause is not None


def test_queries_compare_by_identity():
    assert _orders() != _orders()


# --- filters ---

def test_where_two_argument_form_means_equals():
    stmt = _orders().where("status", "paid").statement
    assert "orders.status =" in str(stmt)
    assert _params(stmt) == ["paid"]


def test_where_with_operator():
    stmt = _orders().where("total", ">", 20).statement
    assert "orders.total >" in str(stmt)
    assert _params(stmt) == [20]


def test_where_operator_is_case_insensitive():
    stmt = _orders().where("status", "LIKE", "pa%").statement
    assert "LIKE" in str(stmt)


def test_where_accepts_column_expressions():
    stmt = _orders().where(Order.total, "<=", 5).statement
    assert "orders.total <=" in str(stmt)


def test_where_equals_none_renders_is_null():
    stmt = _orders().where("shipped_at", "=", None).statement
    assert "orders.shipped_at IS NULL" in str(stmt)


def test_where_rejects_unknown_operator():
    with pytest.raises(ValueError):
        _orders().where("total", "~~", 3)


def test_where_rejects_unknown_attribute():
    with pytest.raises(AttributeError):
        _orders().where("colour", "red")


def test_where_in_and_not_in():
    assert "IN" in str(_orders().where_in("id", [1, 2]).statement)
    assert "NOT IN" in str(_orders().where_not_in("id", [1, 2]).statement)


def test_where_between_requires_two_values():
    with pytest.raises(ValueError):
        _orders().where_between("total", [1])


def test_where_between_renders_between():
    stmt = _orders().where_between("total", (10, 20)).statement
    assert "BETWEEN" in str(stmt)
    assert _params(stmt) == [10, 20]


def test_where_null_and_not_null():
    assert "IS NULL" in str(_orders().where_null("shipped_at").statement)
    assert "IS NOT NULL" in str(_orders().where_not_null("shipped_at").statement)


def test_where_has_on_collection_uses_exists():
    stmt = Query.for_model(Customer).where_has("orders").statement
    assert "EXISTS" in str(stmt)


def test_where_has_passes_related_class_to_constraint():
    seen = []

    def constraint(related):
        seen.append(related)
        return related.status == "paid"

    Query.for_model(Customer).where_has("orders", constraint)
    assert seen == [Order]


def test_has_on_many_to_one():
    assert "EXISTS" in str(_orders().has("customer").statement)


def test_where_has_rejects_unknown_relation():
    with pytest.raises(AttributeError):
        _orders().where_has("invoices")


def test_where_key_rejects_wrong_arity():
    with pytest.raises(ValueError):
        _orders().where_key((1, 2))


def test_where_key_filters_primary_key():
    stmt = _orders().where_key(3).statement
    assert "orders.id =" in str(stmt)
    assert _params(stmt) == [3]


# --- ordering and limits ---

def test_order_by_rejects_bad_direction():
    with pytest.raises(ValueError):
        _orders().order_by("total", "sideways")


def test_order_by_desc():
    assert "ORDER BY orders.total DESC" in str(_orders().order_by_desc("total").statement)


def test_take_and_skip():
    stmt = _orders().take(5).skip(10).statement
    assert "LIMIT" in str(stmt)
    assert "OFFSET" in str(stmt)


# --- eager loading and visibility ---

def test_with_accumulates_options():
    query = _orders().with_("customer").with_(["tags", "payment"])
    assert len(query.options) == 3


def test_with_supports_dotted_paths():
    assert len(Query.for_model(Customer).with_("orders.tags").options) == 1


def test_with_rejects_unknown_relation():
    with pytest.raises(AttributeError):
        Query.for_model(Customer).with_("orders.invoices")


def test_with_count_labels():
    query = Query.for_model(Customer).with_count("orders")
    assert [label for label, _ in query.counts] == ["orders_count"]
    assert "orders_count" in str(query.select_statement())


def test_with_count_through_secondary_table():
    query = _orders().with_count("tags")
    assert "order_tags" in str(query.select_statement())


def test_hide_and_show_are_stored():
    query = _orders().hide(["total"]).show(["id", "status"])
    assert query.hidden == frozenset({"total"})
    assert query.visible == frozenset({"id", "status"})


def test_apply_visibility_sets_instance_overrides():
    order = Order(id=1, status="paid", total=3.0)
    _orders().hide(["total"]).apply_visibility([order])
    assert order.to_dict() == {"id": 1, "status": "paid"}


# --- statements ---

def test_select_statement_with_columns_adds_load_only():
    stmt = _orders().select_statement(["id", "status"])
    assert len(stmt._with_options) == 1


def test_select_statement_all_columns_has_no_options():
    assert _orders().select_statement(["*"])._with_options == ()


def test_count_statement_drops_ordering_and_paging():
    stmt = _orders().order_by("total").take(2).skip(4).count_statement()
    sql = str(stmt)
    assert "count(*)" in sql
    assert "ORDER BY" not in sql
    assert "LIMIT" not in sql


def test_count_statement_for_column():
    sql = str(_orders().where("status", "paid").count_statement("shipped_at"))
    assert "count(orders.shipped_at)" in sql
    assert "orders.status" in sql


def test_aggregate_statement():
    sql = str(_orders().aggregate_statement("max", "total"))
    assert "max(orders.total)" in sql


def test_aggregate_statement_rejects_unknown_function():
    with pytest.raises(ValueError):
        _orders().aggregate_statement("median", "total")


def test_pluck_statement_with_key():
    stmt = Query.for_model(Tag).pluck_statement("name", "id")
    assert len(stmt.selected_columns) == 2


def test_pluck_statement_accepts_expressions():
    stmt = _orders().pluck_statement(func.upper(Order.status))
    assert "upper(orders.status)" in str(stmt)


# --- helpers ---

def test_is_operator():
    assert is_operator("not in")
    assert not is_operator("paid")
    assert not is_operator(3)


def test_is_all_columns():
    assert is_all_columns(None)
    assert is_all_columns(["*"])
    assert is_all_columns(("*",))
    assert not is_all_columns(["id"])


def test_all_columns_is_the_interface_constant():
    assert ALL_COLUMNS is INTERFACE_COLUMNS
