"""Tests for repository_pattern/domain/errors.py."""

import pytest

from repository_pattern.domain.errors import ConfigurationError, NotFoundError, RepositoryError


class _Invoice:
    pass


def test_configuration_error_is_repository_error():
    assert issubclass(ConfigurationError, RepositoryError)


def test_repository_error_is_runtime_error():
    assert issubclass(RepositoryError, RuntimeError)


def test_not_found_error_is_lookup_error():
    with pytest.raises(LookupError):
        raise NotFoundError(_Invoice, [7])


def test_not_found_error_message_names_model_and_ids():
    err = NotFoundError(_Invoice, [7, 8])
    assert str(err) == "No query results for model [_Invoice] 7, 8"


def test_not_found_error_without_ids():
    err = NotFoundError(_Invoice)
    assert str(err) == "No query results for model [_Invoice]"
    assert err.ids == []


def test_not_found_error_accepts_model_name():
    err = NotFoundError("Invoice", (1,))
    assert err.model == "Invoice"
    assert err.ids == [1]
