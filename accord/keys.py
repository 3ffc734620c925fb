"""SSH public key parsing.

Turns OpenSSH public key lines (``type material comment``) into
``SshKeyEntry`` objects. The comment doubles as the key's name, so it is
required here even though OpenSSH itself treats it as optional.
"""

import logging
import re
from typing import Iterable, List

from .errors import MalformedKeyError
from .models import SshKeyEntry

logger = logging.getLogger(__name__)

KEY_TYPES = frozenset({
    "ssh-rsa",
    "ssh-dss",
    "ssh-ed25519",
    "ecdsa-sha2-nistp256",
    "ecdsa-sha2-nistp384",
    "ecdsa-sha2-nistp521",
    "sk-ecdsa-sha2-nistp256@openssh.com",
    "sk-ssh-ed25519@openssh.com",
})

_BASE64 = re.compile(r"^[A-Za-z0-9+/]+={0,3}$")


def parse_ssh_key(line: str) -> SshKeyEntry:
    """Parse a single public key line.

    Args:
        line: Key in ``type material comment`` form. Whitespace inside the
            trailing comment is kept.

    Returns:
        SshKeyEntry with type, material and name set

    Raises:
        MalformedKeyError: If the line lacks any of the three fields, names
            an unknown key type, or the material is not base64

    Example:
        >>> parse_ssh_key("ssh-rsa AAAAB3NzaC1yc2E= deploy@ci")
        SshKeyEntry(type='ssh-rsa', material='AAAAB3NzaC1yc2E=', name='deploy@ci')
    """
    if not isinstance(line, str):
        raise MalformedKeyError(repr(line), "not a string")

    fields = line.strip().split(None, 2)
    if len(fields) < 3:
        raise MalformedKeyError(line, "expected 'type material comment'")

    key_type, material, name = fields
    if key_type not in KEY_TYPES:
        raise MalformedKeyError(line, f"unknown key type {key_type!r}")
    if not _BASE64.match(material):
        raise MalformedKeyError(line, "key material is not base64")

    return SshKeyEntry(type=key_type, material=material, name=name.strip())


def parse_ssh_keys(lines: Iterable[str]) -> List[SshKeyEntry]:
    """Parse keys in declaration order, failing on the first malformed line."""
    entries = []
    for line in lines:
        entry = parse_ssh_key(line)
        logger.debug(f"Parsed {entry.type} key {entry.name}")
        entries.append(entry)
    return entries
