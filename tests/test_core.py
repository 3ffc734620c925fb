"""
Tests for the Accord pipeline.
"""

from unittest.mock import MagicMock

import pytest

from accord.core import AccordCore
from accord.errors import ConfigurationError, MalformedKeyError
from accord.models import ApplyReport, Ensure

DEFINITIONS = '''
from accord.models import AccountSpec

deploy = AccountSpec(
    title="deploy",
    ssh_keys=["ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIG deploy@ci"],
)

old_admin = AccountSpec(title="old_admin", ensure="absent")
'''


@pytest.fixture
def definitions(temp_dir):
    path = temp_dir / "accounts.py"
    path.write_text(DEFINITIONS)
    return path


@pytest.fixture
def core(settings):
    return AccordCore(settings=settings, applier=MagicMock())


def test_load_accounts(core, definitions):
    accounts = core.load_accounts(definitions)

    assert [a.title for a in accounts] == ["deploy", "old_admin"]


def test_load_missing_file(core, temp_dir):
    with pytest.raises(FileNotFoundError):
        core.load_accounts(temp_dir / "missing.py")


def test_load_file_without_accounts(core, temp_dir):
    path = temp_dir / "empty.py"
    path.write_text("x = 1\n")

    with pytest.raises(ConfigurationError, match="No accounts"):
        core.load_accounts(path)


def test_load_duplicate_titles(core, temp_dir):
    path = temp_dir / "dupes.py"
    path.write_text(
        "from accord.models import AccountSpec\n"
        "a = AccountSpec(title='deploy')\n"
        "b = AccountSpec(title='deploy', shell='/bin/sh')\n"
    )

    with pytest.raises(ConfigurationError, match="Duplicate account title"):
        core.load_accounts(path)


def test_load_aliased_account_once(core, temp_dir):
    path = temp_dir / "alias.py"
    path.write_text(
        "from accord.models import AccountSpec\n"
        "a = AccountSpec(title='deploy')\n"
        "b = a\n"
    )

    assert len(core.load_accounts(path)) == 1


def test_load_invalid_definition(core, temp_dir):
    path = temp_dir / "invalid.py"
    path.write_text(
        "from accord.models import AccountSpec\n"
        "a = AccountSpec(title='deploy', home_dir='relative')\n"
    )

    with pytest.raises(ConfigurationError, match="Invalid account definition"):
        core.load_accounts(path)


@pytest.mark.parametrize("source, error", [
    ("a = AccountSpec(title='deploy')\n", "NameError"),
    ("a = AccountSpec(title='deploy'\n", "SyntaxError"),
])
def test_load_broken_definitions_file(core, temp_dir, source, error):
    path = temp_dir / "broken.py"
    path.write_text(source)

    with pytest.raises(ConfigurationError, match=error):
        core.load_accounts(path)


def test_plan(core, definitions):
    plans = core.plan(definitions)

    assert [p.title for p in plans] == ["deploy", "old_admin"]
    assert plans[0].ensure == Ensure.PRESENT
    assert "SshKey[deploy_ssh_key_deploy@ci]" in plans[0].refs
    assert plans[1].ensure == Ensure.ABSENT


def test_apply_converges_each_plan(core, definitions):
    core.applier.apply.side_effect = lambda plan, dry_run: ApplyReport(title=plan.title, dry_run=dry_run)

    reports = core.apply(definitions, dry_run=True)

    assert list(reports) == ["deploy", "old_admin"]
    assert all(r.dry_run for r in reports.values())
    assert core.applier.apply.call_count == 2


def test_malformed_key_stops_before_applying(core, temp_dir):
    path = temp_dir / "accounts.py"
    path.write_text(
        "from accord.models import AccountSpec\n"
        "good = AccountSpec(title='good')\n"
        "bad = AccountSpec(title='bad', ssh_keys=['blah'])\n"
    )

    with pytest.raises(MalformedKeyError):
        core.apply(path)

    core.applier.apply.assert_not_called()
