"""
Convergence Applier - runs a resource plan through pyinfra.

Each planned node is rendered to a small pyinfra deploy file and executed
on its own, in plan order, so success or failure can be reported per
resource. When a node fails, every node that depends on it (directly or
transitively) is skipped; unrelated nodes still run.
"""

import logging
import posixpath
import re
import subprocess
from pathlib import Path
from typing import Any, Dict, List

import networkx as nx

from .errors import ApplyError
from .models import (
    ApplyReport,
    Ensure,
    ExecutionStatus,
    NodeResult,
    ResourceKind,
    ResourceNode,
    ResourcePlan,
)
from .settings import AccordSettings, get_settings

logger = logging.getLogger(__name__)

DEPLOY_HEADER = '''"""Generated by Accord: {ref}"""

from pyinfra.operations import files, server

from accord.pyinfra_operations import accounts
'''


def _format_call(function: str, description: str, params: Dict[str, Any]) -> str:
    """Format a pyinfra operation call, dropping parameters that are None."""
    lines = [f"{function}(", f"    name={description!r},"]
    for key, value in params.items():
        if value is None:
            continue
        lines.append(f"    {key}={value!r},")
    lines.append(")")
    return "\n".join(lines) + "\n"


def to_pyinfra_operation(node: ResourceNode) -> str:
    """Generate PyInfra operation code for one resource node.

    Args:
        node: Planned resource

    Returns:
        str: PyInfra operation code as a string

    Example generated code:
        ```python
        files.directory(
            name='Ensure directory /home/deploy',
            path='/home/deploy',
            present=True,
            user='deploy',
            group='deploy',
            mode='750',
            recursive=False,
        )
        ```
    """
    attrs = node.attributes
    absent = attrs.get("ensure") == Ensure.ABSENT.value

    if node.kind == ResourceKind.GROUP:
        if absent:
            return _format_call("server.group", f"Remove group {attrs['name']}", {
                "group": attrs["name"],
                "present": False,
            })
        return _format_call("server.group", f"Ensure group {attrs['name']}", {
            "group": attrs["name"],
            "present": True,
            "system": attrs.get("system", False),
            "gid": attrs.get("gid"),
        })

    if node.kind == ResourceKind.USER:
        if absent:
            return _format_call("server.user", f"Remove user {attrs['name']}", {
                "user": attrs["name"],
                "present": False,
            })
        # Home directory ownership and mode belong to the directory nodes
        return _format_call("server.user", f"Ensure user {attrs['name']}", {
            "user": attrs["name"],
            "present": True,
            "uid": attrs.get("uid"),
            "comment": attrs.get("comment"),
            "shell": attrs.get("shell"),
            "group": attrs.get("gid"),
            "groups": list(attrs.get("groups") or ()) or None,
            "home": attrs.get("home"),
            "create_home": attrs.get("managehome"),
            "ensure_home": False,
            "system": attrs.get("system", False),
            "unique": not attrs.get("allowdupe", False),
        })

    if node.kind == ResourceKind.EXEC:
        return _format_call("accounts.initial_password", f"Set initial password for {attrs['user']}", {
            "user": attrs["user"],
            "password": attrs.get("password", "!"),
            "present": not absent,
        })

    if node.kind == ResourceKind.DIRECTORY:
        if absent:
            return _format_call("files.directory", f"Remove directory {attrs['path']}", {
                "path": attrs["path"],
                "present": False,
            })
        return _format_call("files.directory", f"Ensure directory {attrs['path']}", {
            "path": attrs["path"],
            "present": True,
            "user": attrs.get("owner"),
            "group": attrs.get("group"),
            "mode": attrs.get("mode"),
            "recursive": False,
        })

    if node.kind == ResourceKind.FILE:
        if absent:
            return _format_call("files.file", f"Remove file {attrs['path']}", {
                "path": attrs["path"],
                "present": False,
            })
        return _format_call("files.file", f"Ensure file {attrs['path']}", {
            "path": attrs["path"],
            "present": True,
            "user": attrs.get("owner"),
            "group": attrs.get("group"),
            "mode": attrs.get("mode"),
            "touch": False,
        })

    if node.kind == ResourceKind.SSH_KEY:
        line = f"{attrs['type']} {attrs['key']} {attrs['name']}"
        target = attrs["target"]
        return _format_call("server.user_authorized_keys", f"Authorize key {attrs['name']} for {attrs['user']}", {
            "user": attrs["user"],
            "public_keys": [line],
            "delete_keys": False,
            "authorized_key_directory": posixpath.dirname(target),
            "authorized_key_filename": posixpath.basename(target),
        })

    raise ValueError(f"Unsupported resource kind: {node.kind}")


def _slug(text: str) -> str:
    return re.sub(r"[^A-Za-z0-9_]+", "_", text)


def deploy_filename(index: int, node: ResourceNode) -> str:
    """Stable, filesystem-safe deploy file name for a node."""
    return f"{index:02d}_{node.kind.value}_{_slug(node.identifier)}.py"


class ConvergenceApplier:
    """Compiles resource plans to pyinfra deploy files and runs them."""

    def __init__(
        self,
        output_dir: str | Path | None = None,
        settings: AccordSettings | None = None,
    ):
        """
        Initialize the applier.

        Args:
            output_dir: Where generated deploy files go (overrides settings)
            settings: Settings instance (global settings when omitted)
        """
        self.settings = settings or get_settings()
        self.output_dir = Path(output_dir or self.settings.output_dir)

    def _generate_inventory(self) -> str:
        return f'"""Generated by Accord."""\n\nhosts = ["{self.settings.inventory}"]\n'

    def _generate_deploy(self, node: ResourceNode) -> str:
        return DEPLOY_HEADER.format(ref=node.ref) + "\n\n" + to_pyinfra_operation(node)

    def compile(self, plan: ResourcePlan) -> Path:
        """Write the inventory and one deploy file per node.

        Args:
            plan: Resource plan for one account

        Returns:
            Directory holding the generated files

        Raises:
            ApplyError: If the files cannot be written
        """
        plan_dir = self.output_dir / _slug(plan.title)
        try:
            plan_dir.mkdir(parents=True, exist_ok=True)
            for stale in plan_dir.glob("*.py"):
                stale.unlink()
            (plan_dir / "inventory.py").write_text(self._generate_inventory())
            for index, node in enumerate(plan.nodes):
                (plan_dir / deploy_filename(index, node)).write_text(self._generate_deploy(node))
        except OSError as e:
            raise ApplyError(f"Cannot write deploy files to {plan_dir}: {e}") from e

        logger.info(f"Compiled {len(plan.nodes)} resources for {plan.title} into {plan_dir}")
        return plan_dir

    def apply(self, plan: ResourcePlan, dry_run: bool = False) -> ApplyReport:
        """Converge every node of a plan, in order.

        Args:
            plan: Resource plan for one account
            dry_run: Pass ``--dry`` to pyinfra so nothing is changed

        Returns:
            ApplyReport with one NodeResult per node
        """
        plan_dir = self.compile(plan)
        inventory = plan_dir / "inventory.py"
        graph = plan.graph()

        report = ApplyReport(title=plan.title, dry_run=dry_run)
        blocked: Dict[str, str] = {}

        for index, node in enumerate(plan.nodes):
            if node.ref in blocked:
                logger.warning(f"Skipping {node.ref}: prerequisite {blocked[node.ref]} failed")
                report.results.append(NodeResult(
                    ref=node.ref,
                    kind=node.kind,
                    status=ExecutionStatus.SKIPPED,
                    error=f"Prerequisite {blocked[node.ref]} failed",
                ))
                continue

            result = self._run_node(node, inventory, plan_dir / deploy_filename(index, node), dry_run)
            report.results.append(result)

            if result.status == ExecutionStatus.FAILED:
                logger.error(f"Failed to converge {node.ref}: {result.error}")
                for dependent in nx.descendants(graph, node.ref):
                    blocked.setdefault(dependent, node.ref)
            else:
                logger.info(f"Converged {node.ref}")

        return report

    def _build_command(self, inventory: Path, deploy: Path, dry_run: bool) -> List[str]:
        command = [self.settings.pyinfra_command, "-y"]
        if dry_run:
            command.append("--dry")
        command.extend([str(inventory), str(deploy)])
        return command

    def _run_node(
        self,
        node: ResourceNode,
        inventory: Path,
        deploy: Path,
        dry_run: bool,
    ) -> NodeResult:
        command = self._build_command(inventory, deploy, dry_run)
        logger.debug(f"Executing {node.ref}: {' '.join(command)}")

        result = NodeResult(ref=node.ref, kind=node.kind, status=ExecutionStatus.FAILED, command=command)
        try:
            process = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.settings.apply_timeout,
            )
        except subprocess.TimeoutExpired:
            result.error = f"Timed out after {self.settings.apply_timeout}s"
            return result
        except FileNotFoundError:
            result.error = f"Command not found: {command[0]}"
            return result

        result.exit_code = process.returncode
        result.stdout = process.stdout
        result.stderr = process.stderr

        if process.returncode == 0:
            result.status = ExecutionStatus.SUCCESS
        else:
            detail = process.stderr.strip() or "pyinfra failed with no error message"
            result.error = f"pyinfra exited with code {process.returncode}: {detail}"
        return result

