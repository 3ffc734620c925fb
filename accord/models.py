"""
Centralized Pydantic models for Accord.

This module contains the data models used throughout the Accord pipeline:
- AccountSpec, the declared intent for one account
- ResolvedAccount from the attribute resolver
- SshKeyEntry from the key parser
- ResourceNode and ResourcePlan from the planner
- NodeResult and ApplyReport from the convergence applier
"""

import re
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

import networkx as nx
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)


# =============================================================================
# Core Enums
# =============================================================================

class Ensure(str, Enum):
    """Desired lifecycle state of an account or resource."""
    PRESENT = "present"
    ABSENT = "absent"


class TriState(str, Enum):
    """A flag that distinguishes "unset" from "false"."""
    TRUE = "true"
    FALSE = "false"
    UNSET = "unset"

    def to_flag(self) -> Optional[bool]:
        """Return True/False, or None when unset."""
        if self is TriState.UNSET:
            return None
        return self is TriState.TRUE


class ResourceKind(str, Enum):
    """Kinds of OS-level resources an account plan is made of."""
    GROUP = "group"
    USER = "user"
    EXEC = "exec"
    DIRECTORY = "directory"
    FILE = "file"
    SSH_KEY = "ssh_key"


class ExecutionStatus(str, Enum):
    """Convergence status for a single resource node."""
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


REF_LABELS = {
    ResourceKind.GROUP: "Group",
    ResourceKind.USER: "User",
    ResourceKind.EXEC: "Exec",
    ResourceKind.DIRECTORY: "Directory",
    ResourceKind.FILE: "File",
    ResourceKind.SSH_KEY: "SshKey",
}

_OCTAL_MODE = re.compile(r"^0?[0-7]{3,4}$")


def make_ref(kind: ResourceKind, identifier: str) -> str:
    """Build the kind-qualified reference used in ordering constraints."""
    return f"{REF_LABELS[kind]}[{identifier}]"


# =============================================================================
# Account Models
# =============================================================================

class AccountSpec(BaseModel):
    """Declared intent for one OS user account.

    Only ``title`` is required; everything else is defaulted by the
    attribute resolver.

    Examples:
        >>> AccountSpec(title="user")
        >>> AccountSpec(
        ...     title="admin",
        ...     username="sysadmin",
        ...     shell="/bin/zsh",
        ...     manage_home=False,
        ...     home_dir="/opt/admin",
        ...     uid=777,
        ...     system=True,
        ...     groups=["sudo", "users"],
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str = Field(..., min_length=1, description="Unique key of the account definition")
    ensure: Ensure = Ensure.PRESENT
    username: Optional[str] = Field(None, description="Login name (defaults to title)")
    comment: Optional[str] = Field(None, description="GECOS comment for the user record")
    password: str = Field("!", description="Crypted initial password; '!' keeps the account locked")
    shell: Optional[str] = None
    manage_home: bool = True
    home_dir: Optional[str] = None
    home_dir_perms: Optional[str] = Field(None, examples=["750", "0700"])
    create_group: bool = True
    gid: Optional[Union[int, str]] = Field(
        None,
        description="Numeric id of the dedicated group, or primary group when create_group is false",
    )
    uid: Optional[int] = None
    system: bool = False
    allowdupe: bool = False
    purge_ssh_keys: bool = False
    groups: Tuple[str, ...] = ()
    ssh_keys: Tuple[str, ...] = ()

    @field_validator("username", "shell")
    @classmethod
    def validate_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("home_dir")
    @classmethod
    def validate_home_dir(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith("/"):
            raise ValueError(f"home_dir must be an absolute path, got {v!r}")
        return v

    @field_validator("home_dir_perms")
    @classmethod
    def validate_home_dir_perms(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not _OCTAL_MODE.match(v):
            raise ValueError(f"home_dir_perms must be an octal mode, got {v!r}")
        return v

    @model_validator(mode="after")
    def validate_group_gid(self) -> "AccountSpec":
        # A dedicated group needs a numeric id; names only select an existing group
        if self.create_group and isinstance(self.gid, str):
            raise ValueError(
                f"gid must be numeric when create_group is true, got {self.gid!r}"
            )
        return self


class ResolvedAccount(BaseModel):
    """An AccountSpec with every attribute defaulted and every path derived."""

    model_config = ConfigDict(frozen=True)

    title: str
    ensure: Ensure
    username: str
    comment: Optional[str] = None
    password: str
    shell: str
    manage_home: TriState
    create_group: bool
    group_name: str = Field(..., min_length=1)
    group_gid: Optional[Union[int, str]] = None
    uid: Optional[int] = None
    system: bool
    allowdupe: bool
    purge_ssh_keys: bool
    groups: Tuple[str, ...]
    ssh_keys: Tuple[str, ...]
    home_path: str
    home_dir_perms: str
    ssh_dir_path: str
    ssh_dir_perms: str = "700"
    authorized_keys_path: str
    authorized_keys_perms: str = "600"

    @field_validator("home_path")
    @classmethod
    def validate_home_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"home_path must be absolute, got {v!r}")
        return v


class SshKeyEntry(BaseModel):
    """One parsed SSH public key."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., min_length=1, examples=["ssh-rsa", "ssh-ed25519"])
    material: str = Field(..., min_length=1, description="Base64 key blob")
    name: str = Field(..., min_length=1, description="Trailing comment, unique per account")

    def to_line(self) -> str:
        """Rebuild the OpenSSH public key line."""
        return f"{self.type} {self.material} {self.name}"


# =============================================================================
# Plan Models
# =============================================================================

class ResourceNode(BaseModel):
    """One planned OS-level resource.

    Nodes are immutable: ``attributes`` is a read-only mapping and list
    values are stored as tuples.
    """

    model_config = ConfigDict(frozen=True)

    kind: ResourceKind
    identifier: str
    attributes: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)
    ordering_constraints: FrozenSet[str] = frozenset()

    @field_validator("attributes", mode="after")
    @classmethod
    def freeze_attributes(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType({
            key: tuple(value) if isinstance(value, list) else value
            for key, value in v.items()
        })

    @field_serializer("attributes")
    def serialize_attributes(self, value: Mapping[str, Any]) -> Dict[str, Any]:
        return dict(value)

    @field_serializer("ordering_constraints")
    def serialize_ordering_constraints(self, value: FrozenSet[str]) -> List[str]:
        return sorted(value)

    def __hash__(self) -> int:
        return hash((self.kind, self.identifier, self.ordering_constraints))

    @property
    def ref(self) -> str:
        return make_ref(self.kind, self.identifier)

    @property
    def ensure(self) -> Optional[str]:
        return self.attributes.get("ensure")


class ResourcePlan(BaseModel):
    """Ordered resource nodes for one account.

    Nodes are stored in convergence order; ``ordering_constraints`` on each
    node name the refs that must converge before it.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    ensure: Ensure
    nodes: Tuple[ResourceNode, ...] = ()

    @property
    def refs(self) -> List[str]:
        return [node.ref for node in self.nodes]

    def get(self, kind: ResourceKind, identifier: str) -> Optional[ResourceNode]:
        """Find a node by kind and identifier."""
        for node in self.nodes:
            if node.kind == kind and node.identifier == identifier:
                return node
        return None

    def by_ref(self, ref: str) -> Optional[ResourceNode]:
        for node in self.nodes:
            if node.ref == ref:
                return node
        return None

    def of_kind(self, kind: ResourceKind) -> List[ResourceNode]:
        return [node for node in self.nodes if node.kind == kind]

    def graph(self) -> nx.DiGraph:
        """Dependency graph with an edge from each prerequisite to its dependent."""
        graph = nx.DiGraph()
        for node in self.nodes:
            graph.add_node(node.ref)
        for node in self.nodes:
            for prerequisite in sorted(node.ordering_constraints):
                graph.add_edge(prerequisite, node.ref)
        return graph


# =============================================================================
# Convergence Models
# =============================================================================

class NodeResult(BaseModel):
    """Outcome of converging one resource node."""
    ref: str
    kind: ResourceKind
    status: ExecutionStatus
    command: List[str] = Field(default_factory=list)
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None


class ApplyReport(BaseModel):
    """Per-node convergence results for one account plan."""
    title: str
    dry_run: bool = False
    results: List[NodeResult] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(r.status != ExecutionStatus.FAILED for r in self.results)

    def count(self, status: ExecutionStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    def result_for(self, ref: str) -> Optional[NodeResult]:
        for result in self.results:
            if result.ref == ref:
                return result
        return None
