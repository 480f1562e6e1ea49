"""Tests for repository_pattern/infrastructure/serialization.py.

Uses transient sample models, so only attributes set in the constructor
count as loaded.
"""

from sample_models import Customer, Order


def _customer(**overrides):
    defaults = {"id": 1, "name": "alice", "email": "alice@example.com", "active": True}
    defaults.update(overrides)
    return Customer(**defaults)


def test_class_level_hidden_fields_are_excluded():
    assert _customer().to_dict() == {"id": 1, "name": "alice", "active": True}


def test_set_hidden_replaces_class_default():
    customer = _customer().set_hidden(["active"])
    assert customer.to_dict() == {"id": 1, "name": "alice", "email": "alice@example.com"}


def test_set_visible_restricts_output():
    customer = _customer().set_visible({"name"})
    assert customer.to_dict() == {"name": "alice"}


def test_hidden_wins_over_visible():
    customer = _customer().set_visible({"name", "email"})
    assert customer.to_dict() == {"name": "alice"}


def test_visibility_is_per_instance():
    first = _customer().set_hidden([])
    second = _customer(id=2)
    assert "email" in first.to_dict()
    assert "email" not in second.to_dict()


def test_get_hidden_falls_back_to_class_default():
    assert _customer().get_hidden() == frozenset({"email"})


def test_is_visible():
    customer = _customer()
    assert customer.is_visible("name")
    assert not customer.is_visible("email")


def test_unloaded_attributes_are_skipped():
    order = Order(id=9, status="paid")
    assert order.to_dict() == {"id": 9, "status": "paid"}


def test_loaded_relationship_is_serialized_without_cycles():
    customer = _customer()
    customer.orders = [Order(id=9, status="paid", total=5.0)]
    data = customer.to_dict()
    assert data["orders"] == [{"id": 9, "status": "paid", "total": 5.0}]


def test_many_to_one_relationship_is_nested():
    order = Order(id=9, status="paid", customer=_customer())
    assert order.to_dict()["customer"]["name"] == "alice"


def test_aggregate_attributes_are_serialized():
    customer = _customer()
    customer.orders_count = 3
    assert customer.to_dict()["orders_count"] == 3


def test_aggregate_attributes_respect_visibility():
    customer = _customer().set_hidden(["orders_count"])
    customer.orders_count = 3
    assert "orders_count" not in customer.to_dict()


def test_reset_visibility_restores_class_defaults():
    customer = _customer().set_hidden([]).set_visible({"email"})
    customer.reset_visibility()
    assert customer.to_dict() == {"id": 1, "name": "alice", "active": True}


def test_attach_counts_replaces_previous_counts():
    customer = _customer()
    customer.attach_counts({"orders_count": 3})
    customer.attach_counts({"tags_count": 1})
    data = customer.to_dict()
    assert data["tags_count"] == 1
    assert "orders_count" not in data


def test_attach_counts_leaves_other_aggregates_alone():
    customer = _customer()
    customer.orders_sum_total = 140.0
    customer.attach_counts({})
    assert customer.orders_sum_total == 140.0
