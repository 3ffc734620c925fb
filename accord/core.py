"""
Accord Core - declared accounts to converged system state.

Plan Pipeline: Load definitions → Resolve attributes → Plan resources
Apply Pipeline: Load definitions → Resolve → Plan every account → Converge with pyinfra

Each account is resolved and planned on its own; loading several
definitions from one file does not make them depend on each other.
"""

import importlib.util
import logging
from pathlib import Path
from typing import Dict, List

from pydantic import ValidationError

from .applier import ConvergenceApplier
from .errors import ConfigurationError
from .models import AccountSpec, ApplyReport, ResourcePlan
from .planner import plan as plan_resources
from .resolver import resolve
from .settings import AccordSettings, get_settings

logger = logging.getLogger(__name__)


class AccordCore:
    """Main coordinator for the Accord pipeline."""

    def __init__(
        self,
        settings: AccordSettings | None = None,
        applier: ConvergenceApplier | None = None,
    ):
        """
        Initialize AccordCore.

        Args:
            settings: Settings instance (global settings when omitted)
            applier: Convergence applier (built from settings when omitted)
        """
        self.settings = settings or get_settings()
        self.applier = applier or ConvergenceApplier(settings=self.settings)

        logger.info("AccordCore initialized")

    def load_accounts(self, definitions_file: Path) -> List[AccountSpec]:
        """
        Load account definitions by executing a Python file.

        Args:
            definitions_file: Path to a file defining AccountSpec objects

        Returns:
            List of AccountSpec objects in definition order

        Raises:
            FileNotFoundError: If the file does not exist
            ConfigurationError: If no accounts are defined or titles repeat
        """
        definitions_file = Path(definitions_file)
        if not definitions_file.exists():
            raise FileNotFoundError(f"File not found: {definitions_file}")

        spec = importlib.util.spec_from_file_location("accord_definitions", definitions_file)
        if spec is None or spec.loader is None:
            raise ConfigurationError(f"Could not load {definitions_file}")

        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid account definition in {definitions_file}: {e}") from e
        except Exception as e:
            raise ConfigurationError(
                f"Error loading {definitions_file}: {type(e).__name__}: {e}"
            ) from e

        accounts = []
        titles = set()
        for name, obj in vars(module).items():
            if isinstance(obj, AccountSpec):
                if any(obj is seen for seen in accounts):
                    continue
                if obj.title in titles:
                    raise ConfigurationError(f"Duplicate account title: {obj.title}")
                titles.add(obj.title)
                accounts.append(obj)
                logger.debug(f"Found account: {name} ({obj.title})")

        if not accounts:
            raise ConfigurationError(f"No accounts found in {definitions_file}")

        return accounts

    def plan_account(self, account: AccountSpec) -> ResourcePlan:
        """Resolve and plan a single account."""
        resolved = resolve(account, self.settings)
        return plan_resources(resolved, account.ensure)

    def plan(self, definitions_file: Path) -> List[ResourcePlan]:
        """
        Plan mode: resolve and plan every account without touching the system.

        Args:
            definitions_file: Path to the definitions file

        Returns:
            One ResourcePlan per account, in definition order
        """
        accounts = self.load_accounts(definitions_file)
        logger.info(f"Loaded {len(accounts)} accounts")

        plans = [self.plan_account(account) for account in accounts]
        logger.info(f"Planned {sum(len(p.nodes) for p in plans)} resources")
        return plans

    def apply(self, definitions_file: Path, dry_run: bool = False) -> Dict[str, ApplyReport]:
        """
        Full pipeline: load → plan every account → converge each plan.

        All accounts are planned before anything runs, so a malformed key in
        any definition stops the run before the system is touched.

        Args:
            definitions_file: Path to the definitions file
            dry_run: If True, pyinfra only reports what it would change

        Returns:
            Dict of ApplyReport keyed by account title
        """
        logger.info(f"Starting Accord pipeline for: {definitions_file}")

        plans = self.plan(definitions_file)

        reports = {}
        for resource_plan in plans:
            report = self.applier.apply(resource_plan, dry_run=dry_run)
            reports[resource_plan.title] = report
            if not report.success:
                logger.error(f"Account {resource_plan.title} did not fully converge")

        logger.info("Accord pipeline complete")
        return reports
