"""Tests for SSH public key parsing."""

import pytest

from accord.errors import ConfigurationError, MalformedKeyError
from accord.keys import parse_ssh_key, parse_ssh_keys
from accord.models import SshKeyEntry


def test_parse_rsa_key():
    """A conventional three-part line splits into type, material and name."""
    entry = parse_ssh_key("ssh-rsa AABBCCDDEEFFGGHHIIJJKKLLMMNNOOPPQQRRSSTTUUVV== test1@test")

    assert entry == SshKeyEntry(
        type="ssh-rsa",
        material="AABBCCDDEEFFGGHHIIJJKKLLMMNNOOPPQQRRSSTTUUVV==",
        name="test1@test",
    )


def test_parse_ed25519_key_with_surrounding_whitespace():
    entry = parse_ssh_key("  ssh-ed25519\tAAAAC3NzaC1lZDI1NTE5AAAAIG deploy@ci  \n")

    assert entry.type == "ssh-ed25519"
    assert entry.material == "AAAAC3NzaC1lZDI1NTE5AAAAIG"
    assert entry.name == "deploy@ci"


def test_comment_keeps_inner_whitespace():
    """Everything after the material is the comment."""
    entry = parse_ssh_key("ssh-rsa AAAA Jane Doe laptop")

    assert entry.name == "Jane Doe laptop"
    assert entry.to_line() == "ssh-rsa AAAA Jane Doe laptop"


def test_single_token_is_malformed():
    with pytest.raises(MalformedKeyError, match="malformed") as exc_info:
        parse_ssh_key("blah")

    assert exc_info.value.line == "blah"
    assert "blah" in str(exc_info.value)


@pytest.mark.parametrize(
    "line",
    [
        "",
        "   ",
        "ssh-rsa AAAA",
        "ssh-foo AAAA name@host",
        "ssh-rsa not*base64 name@host",
    ],
)
def test_malformed_lines(line):
    with pytest.raises(MalformedKeyError):
        parse_ssh_key(line)


def test_malformed_key_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        parse_ssh_key("blah")


def test_parse_keys_keeps_declaration_order(test_keys):
    entries = parse_ssh_keys(test_keys)

    assert [e.name for e in entries] == ["test1@test", "test2@test"]


def test_parse_keys_fails_on_first_malformed_line(test_keys):
    with pytest.raises(MalformedKeyError) as exc_info:
        parse_ssh_keys([test_keys[0], "blah", "also bad"])

    assert exc_info.value.line == "blah"


def test_parse_is_deterministic(test_keys):
    assert parse_ssh_key(test_keys[1]) == parse_ssh_key(test_keys[1])
