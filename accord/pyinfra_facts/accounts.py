"""PyInfra facts for local account state.

Facts read the shadow database so operations can decide whether an
account still carries a locked placeholder password.
"""

import shlex
from typing import List, Optional

from pyinfra.api import FactBase

LOCKED_PREFIXES = ("!", "*")


class ShadowPassword(FactBase):
    """Get the password field of a user's shadow entry.

    Args:
        user: Login name

    Returns:
        The crypted password field, or None if the user does not exist

    Example:
        current = host.get_fact(ShadowPassword, user="deploy")
        if current is not None and is_locked(current):
            print("deploy has no password yet")
    """

    def command(self, user: str) -> str:
        """Generate command to read the shadow entry.

        Args:
            user: Login name

        Returns:
            Command string to execute
        """
        return f"getent shadow {shlex.quote(user)} | cut -d: -f2 || true"

    def process(self, output: List[str]) -> Optional[str]:
        """Return the first line of output, or None when the user is unknown."""
        if not output:
            return None
        return output[0].strip()


def is_locked(password_field: str) -> bool:
    """True when the field is empty or a lock marker rather than a real hash."""
    return password_field == "" or password_field.startswith(LOCKED_PREFIXES)
