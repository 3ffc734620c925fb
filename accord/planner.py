"""Resource planning for a single account.

Turns a ResolvedAccount into an ordered ResourcePlan:

    group -> user -> initial password hook
                  -> home dir -> ssh dir -> ssh keys
                                         -> authorized_keys file

Removal plans run the chain the other way round so contents are removed
before their containers and the user before its primary group.
"""

import logging
from typing import Dict, List, Optional

import networkx as nx

from .errors import DependencyCycleError, DuplicateResourceError, PlanOrderingError
from .keys import parse_ssh_keys
from .models import (
    Ensure,
    ResolvedAccount,
    ResourceKind,
    ResourceNode,
    ResourcePlan,
    make_ref,
)

logger = logging.getLogger(__name__)


def group_id(title: str) -> str:
    return title


def user_id(title: str) -> str:
    return title


def password_hook_id(title: str) -> str:
    return f"{title}_set_initial_password"


def home_id(title: str) -> str:
    return f"{title}_home"


def ssh_dir_id(title: str) -> str:
    return f"{title}_sshdir"


def authorized_keys_id(title: str) -> str:
    return f"{title}_sshdir_authorized_keys"


def ssh_key_id(title: str, name: str) -> str:
    return f"{title}_ssh_key_{name}"


def plan(resolved: ResolvedAccount, ensure: Optional[Ensure] = None) -> ResourcePlan:
    """Build the ordered resource plan for one account.

    Args:
        resolved: Output of the attribute resolver
        ensure: Desired state, defaults to ``resolved.ensure``

    Returns:
        ResourcePlan whose nodes are in a valid convergence order

    Raises:
        MalformedKeyError: If any declared SSH key fails to parse (present only)
        PlanError: If the generated graph is inconsistent
    """
    ensure = Ensure(ensure or resolved.ensure)

    if ensure == Ensure.PRESENT:
        nodes = _plan_present(resolved)
    else:
        nodes = _plan_absent(resolved)

    check_nodes(nodes)

    logger.debug(f"Planned {len(nodes)} resources for {resolved.title} ({ensure.value})")
    return ResourcePlan(title=resolved.title, ensure=ensure, nodes=tuple(nodes))


def _plan_present(account: ResolvedAccount) -> List[ResourceNode]:
    title = account.title
    # Parse every key up front so a malformed one aborts before any node exists
    keys = parse_ssh_keys(account.ssh_keys)

    user_ref = make_ref(ResourceKind.USER, user_id(title))
    home_ref = make_ref(ResourceKind.DIRECTORY, home_id(title))
    ssh_dir_ref = make_ref(ResourceKind.DIRECTORY, ssh_dir_id(title))

    nodes = []
    user_requires = set()

    if account.create_group:
        group = ResourceNode(
            kind=ResourceKind.GROUP,
            identifier=group_id(title),
            attributes={
                "ensure": Ensure.PRESENT.value,
                "name": account.group_name,
                "system": account.system,
                "gid": account.group_gid,
            },
        )
        nodes.append(group)
        user_requires.add(group.ref)

    nodes.append(ResourceNode(
        kind=ResourceKind.USER,
        identifier=user_id(title),
        attributes={
            "ensure": Ensure.PRESENT.value,
            "name": account.username,
            "uid": account.uid,
            "comment": account.comment,
            "shell": account.shell,
            "gid": account.group_name,
            "groups": account.groups,
            "home": account.home_path,
            "managehome": account.manage_home.to_flag(),
            "system": account.system,
            "allowdupe": account.allowdupe,
            "purge_ssh_keys": account.purge_ssh_keys,
        },
        ordering_constraints=frozenset(user_requires),
    ))

    nodes.append(_password_hook(account, Ensure.PRESENT, frozenset({user_ref})))

    nodes.append(ResourceNode(
        kind=ResourceKind.DIRECTORY,
        identifier=home_id(title),
        attributes={
            "ensure": "directory",
            "path": account.home_path,
            "owner": account.username,
            "group": account.group_name,
            "mode": account.home_dir_perms,
        },
        ordering_constraints=frozenset({user_ref}),
    ))

    nodes.append(ResourceNode(
        kind=ResourceKind.DIRECTORY,
        identifier=ssh_dir_id(title),
        attributes={
            "ensure": "directory",
            "path": account.ssh_dir_path,
            "owner": account.username,
            "group": account.group_name,
            "mode": account.ssh_dir_perms,
        },
        ordering_constraints=frozenset({home_ref}),
    ))

    for key in keys:
        nodes.append(ResourceNode(
            kind=ResourceKind.SSH_KEY,
            identifier=ssh_key_id(title, key.name),
            attributes={
                "ensure": Ensure.PRESENT.value,
                "user": account.username,
                "name": key.name,
                "type": key.type,
                "key": key.material,
                "target": account.authorized_keys_path,
            },
            ordering_constraints=frozenset({ssh_dir_ref}),
        ))

    if keys:
        authorized_keys = ResourceNode(
            kind=ResourceKind.FILE,
            identifier=authorized_keys_id(title),
            attributes={
                "ensure": Ensure.PRESENT.value,
                "path": account.authorized_keys_path,
                "owner": account.username,
                "group": account.group_name,
                "mode": account.authorized_keys_perms,
            },
            ordering_constraints=frozenset({ssh_dir_ref}),
        )
    else:
        authorized_keys = ResourceNode(
            kind=ResourceKind.FILE,
            identifier=authorized_keys_id(title),
            attributes={
                "ensure": Ensure.ABSENT.value,
                "path": account.authorized_keys_path,
            },
            ordering_constraints=frozenset({ssh_dir_ref}),
        )
    nodes.append(authorized_keys)

    return nodes


def _plan_absent(account: ResolvedAccount) -> List[ResourceNode]:
    title = account.title
    absent = Ensure.ABSENT.value

    nodes = [_password_hook(account, Ensure.ABSENT, frozenset())]

    authorized_keys = ResourceNode(
        kind=ResourceKind.FILE,
        identifier=authorized_keys_id(title),
        attributes={"ensure": absent, "path": account.authorized_keys_path},
    )
    ssh_dir = ResourceNode(
        kind=ResourceKind.DIRECTORY,
        identifier=ssh_dir_id(title),
        attributes={"ensure": absent, "path": account.ssh_dir_path},
        ordering_constraints=frozenset({authorized_keys.ref}),
    )
    home = ResourceNode(
        kind=ResourceKind.DIRECTORY,
        identifier=home_id(title),
        attributes={"ensure": absent, "path": account.home_path},
        ordering_constraints=frozenset({ssh_dir.ref}),
    )
    user = ResourceNode(
        kind=ResourceKind.USER,
        identifier=user_id(title),
        attributes={
            "ensure": absent,
            "name": account.username,
            "uid": account.uid,
            "comment": account.comment,
            "shell": account.shell,
            "gid": account.group_name,
            "groups": account.groups,
            "home": account.home_path,
            "managehome": account.manage_home.to_flag(),
            "system": account.system,
        },
        ordering_constraints=frozenset({home.ref}),
    )
    nodes.extend([authorized_keys, ssh_dir, home, user])

    if account.create_group:
        nodes.append(ResourceNode(
            kind=ResourceKind.GROUP,
            identifier=group_id(title),
            attributes={"ensure": absent, "name": account.group_name, "gid": None},
            ordering_constraints=frozenset({user.ref}),
        ))

    return nodes


def _password_hook(account: ResolvedAccount, ensure: Ensure, requires: frozenset) -> ResourceNode:
    return ResourceNode(
        kind=ResourceKind.EXEC,
        identifier=password_hook_id(account.title),
        attributes={
            "ensure": ensure.value,
            "user": account.username,
            "password": account.password,
        },
        ordering_constraints=requires,
    )


def check_nodes(nodes: List[ResourceNode]) -> None:
    """Validate a node sequence as a dependency graph.

    Checks, in order: refs are unique, every constraint names a node in the
    sequence, the graph is acyclic, and every node comes after all of its
    prerequisites.

    Raises:
        DuplicateResourceError: Two nodes share a ref
        PlanOrderingError: Unknown prerequisite, or a node before its prerequisite
        DependencyCycleError: Constraints form a cycle
    """
    positions: Dict[str, int] = {}
    for index, node in enumerate(nodes):
        if node.ref in positions:
            raise DuplicateResourceError(f"Duplicate resource {node.ref}")
        positions[node.ref] = index

    graph = nx.DiGraph()
    graph.add_nodes_from(positions)
    for node in nodes:
        for prerequisite in node.ordering_constraints:
            if prerequisite not in positions:
                raise PlanOrderingError(
                    f"{node.ref} requires {prerequisite}, which is not planned"
                )
            graph.add_edge(prerequisite, node.ref)

    if not nx.is_directed_acyclic_graph(graph):
        cycle = [edge[0] for edge in nx.find_cycle(graph)]
        cycle.append(cycle[0])
        raise DependencyCycleError(f"Dependency cycle detected: {' → '.join(cycle)}")

    for node in nodes:
        for prerequisite in node.ordering_constraints:
            if positions[prerequisite] > positions[node.ref]:
                raise PlanOrderingError(
                    f"{node.ref} is ordered before its prerequisite {prerequisite}"
                )
