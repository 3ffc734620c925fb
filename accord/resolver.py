"""Attribute resolution for account definitions.

Merges an AccountSpec with the configured defaults and derives the
group name, home path and SSH paths every planned resource relies on.
"""

import logging
import posixpath

from .models import AccountSpec, ResolvedAccount, TriState
from .settings import AccordSettings, get_settings

logger = logging.getLogger(__name__)


def resolve(spec: AccountSpec, settings: AccordSettings | None = None) -> ResolvedAccount:
    """Resolve every attribute of an account definition.

    Resolution is total: omitted optional fields fall back to defaults and
    nothing here raises.

    Args:
        spec: Declared account
        settings: Defaults source (global settings when omitted)

    Returns:
        ResolvedAccount with all fields defaulted
    """
    settings = settings or get_settings()

    username = spec.username or spec.title

    if spec.create_group:
        group_name = username
        # The dedicated group takes the user's uid unless a gid is given
        group_gid = spec.gid if spec.gid is not None else spec.uid
    else:
        group_name = str(spec.gid) if spec.gid is not None else settings.default_group
        group_gid = None

    home_path = spec.home_dir or posixpath.join(settings.home_root, username)
    ssh_dir_path = posixpath.join(home_path, ".ssh")

    resolved = ResolvedAccount(
        title=spec.title,
        ensure=spec.ensure,
        username=username,
        comment=spec.comment,
        password=spec.password,
        shell=spec.shell or settings.default_shell,
        manage_home=TriState.TRUE if spec.manage_home else TriState.UNSET,
        create_group=spec.create_group,
        group_name=group_name,
        group_gid=group_gid,
        uid=spec.uid,
        system=spec.system,
        allowdupe=spec.allowdupe,
        purge_ssh_keys=spec.purge_ssh_keys,
        groups=spec.groups,
        ssh_keys=spec.ssh_keys,
        home_path=home_path,
        home_dir_perms=spec.home_dir_perms or settings.default_home_perms,
        ssh_dir_path=ssh_dir_path,
        authorized_keys_path=posixpath.join(ssh_dir_path, "authorized_keys"),
    )

    logger.debug(
        f"Resolved account {spec.title}: user={username} group={group_name} home={home_path}"
    )
    return resolved
