"""PyInfra operations for account initialisation.

Provides the one-shot initial password operation planned for every account.
"""

import shlex
from typing import Any

from pyinfra import host
from pyinfra.api import operation

from ..pyinfra_facts.accounts import ShadowPassword, is_locked


@operation()
def initial_password(
    user: str,
    password: str = "!",
    present: bool = True,
    **kwargs: Any,
):
    """Set a user's password once, while the account is still locked.

    The operation is a no-op when the account is being removed, when the
    user does not exist, when the account already has a real password, or
    when the requested password is itself a lock marker.

    Args:
        user: Login name
        password: Crypted password as accepted by ``usermod -p``
        present: Whether the account is meant to exist
        **kwargs: Additional global operation arguments (_sudo, etc.)

    Example:
        initial_password(
            name="Set initial password for deploy",
            user="deploy",
            password="$6$salt$hash",
        )
    """
    if not present:
        host.noop(f"Account {user} is being removed")
        return

    current = host.get_fact(ShadowPassword, user=user)
    if current is None:
        host.noop(f"User {user} does not exist")
        return

    if not is_locked(current):
        host.noop(f"User {user} already has a password")
        return

    if is_locked(password):
        host.noop(f"No initial password declared for {user}")
        return

    yield f"usermod -p {shlex.quote(password)} {shlex.quote(user)}"
