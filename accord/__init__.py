"""
Accord - Declarative convergence for OS user accounts.

Declare an account once (its group, user record, home directory, SSH
directory and authorized keys) and Accord plans the ordered set of
resources that make the system match, then converges them with pyinfra.

    AccountSpec → resolve → plan → ConvergenceApplier
"""

from .core import AccordCore
from .errors import AccordError, ConfigurationError, MalformedKeyError
from .keys import parse_ssh_key
from .models import AccountSpec, Ensure, ResourceKind, ResourceNode, ResourcePlan
from .planner import plan
from .resolver import resolve
from .settings import AccordSettings, get_settings, reload_settings

__version__ = "0.1.0"
__all__ = [
    "AccordCore",
    "AccordError",
    "AccordSettings",
    "AccountSpec",
    "ConfigurationError",
    "Ensure",
    "MalformedKeyError",
    "ResourceKind",
    "ResourceNode",
    "ResourcePlan",
    "get_settings",
    "parse_ssh_key",
    "plan",
    "reload_settings",
    "resolve",
]
