"""Tests for the initial password operation.

The operation body is driven directly with the pyinfra host patched, so
each branch can be checked against the shadow entry it sees.
"""

from unittest.mock import patch

import pytest

from accord.pyinfra_facts.accounts import ShadowPassword
from accord.pyinfra_operations.accounts import initial_password

HASH = "$6$salt$hash"


def run_initial_password(shadow_field, **kwargs):
    """Run the operation against a host reporting ``shadow_field``."""
    with patch("accord.pyinfra_operations.accounts.host") as host:
        host.get_fact.return_value = shadow_field
        commands = list(initial_password._inner(**kwargs))
    return host, commands


def test_sets_password_on_locked_account():
    host, commands = run_initial_password("!", user="deploy", password=HASH)

    assert commands == ["usermod -p '$6$salt$hash' deploy"]
    host.get_fact.assert_called_once_with(ShadowPassword, user="deploy")
    host.noop.assert_not_called()


def test_sets_password_on_empty_shadow_field():
    _, commands = run_initial_password("", user="deploy", password=HASH)

    assert commands == ["usermod -p '$6$salt$hash' deploy"]


def test_removed_account_is_noop():
    host, commands = run_initial_password("!", user="deploy", password=HASH, present=False)

    assert commands == []
    host.get_fact.assert_not_called()
    host.noop.assert_called_once()


def test_missing_user_is_noop():
    host, commands = run_initial_password(None, user="deploy", password=HASH)

    assert commands == []
    assert "does not exist" in host.noop.call_args.args[0]


def test_existing_password_is_kept():
    host, commands = run_initial_password("$6$other$hash", user="deploy", password=HASH)

    assert commands == []
    assert "already has a password" in host.noop.call_args.args[0]


@pytest.mark.parametrize("password", ["!", "*", "!!"])
def test_locked_declared_password_is_noop(password):
    host, commands = run_initial_password("!", user="deploy", password=password)

    assert commands == []
    assert "No initial password" in host.noop.call_args.args[0]


def test_default_password_is_noop():
    host, commands = run_initial_password("!", user="deploy")

    assert commands == []
    host.noop.assert_called_once()
