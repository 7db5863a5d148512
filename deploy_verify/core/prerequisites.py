"""
Prerequisite Checker - Confirms the external tools the deployment needs are installed.
"""

import logging
import shutil
from typing import Dict, Iterable, List, Optional, Tuple

from deploy_verify.errors import FatalPreconditionError
from deploy_verify.models.check_result import CheckResult
from deploy_verify.utils.shell import run_command

STAGE = "prerequisites"

# Preferred first: the compose plugin, then the standalone binary
COMPOSE_PLUGIN = ['docker', 'compose']
COMPOSE_STANDALONE = ['docker-compose']


class PrerequisiteChecker:
    """Checks the executable search path for required and optional tools."""

    def __init__(
        self,
        required: Iterable[str] = ('docker',),
        optional: Optional[Dict[str, Dict[str, str]]] = None,
        auto_install: bool = True,
        install_timeout: float = 600
    ):
        """
        Args:
            required: Tools whose absence aborts the run
            optional: Tool name -> {'install': shell command} for tools installed on demand
            auto_install: Run the install command for missing optional tools
            install_timeout: Timeout for an install command in seconds
        """
        self.required = list(required)
        self.optional = optional or {}
        self.auto_install = auto_install
        self.install_timeout = install_timeout
        self.logger = logging.getLogger('PrerequisiteChecker')

    @staticmethod
    def check(tools: Iterable[str]) -> Dict[str, bool]:
        """
        Probe PATH for each tool.

        Args:
            tools: Executable names

        Returns:
            Mapping of tool name to presence
        """
        return {tool: shutil.which(tool) is not None for tool in tools}

    def detect_compose(self) -> Tuple[List[str], CheckResult]:
        """
        Find the orchestration CLI.

        Returns:
            (command prefix, result) for the compose plugin or standalone binary

        Raises:
            FatalPreconditionError: if neither is installed
        """
        if shutil.which('docker') and run_command(COMPOSE_PLUGIN + ['version'], timeout=30).success:
            self.logger.info("Docker Compose plugin found.")
            return list(COMPOSE_PLUGIN), CheckResult.ok(
                'docker compose', 'compose plugin found', stage=STAGE
            )

        if shutil.which('docker-compose'):
            self.logger.info("Standalone docker-compose found.")
            return list(COMPOSE_STANDALONE), CheckResult.ok(
                'docker-compose', 'standalone docker-compose found', stage=STAGE
            )

        raise FatalPreconditionError(
            'docker compose', 'Docker Compose not installed. Please install it.'
        )

    def ensure_optional(self, tool: str) -> CheckResult:
        """
        Install a missing optional tool once.

        Raises:
            FatalPreconditionError: if the install command fails or the tool is still missing
        """
        if not self.auto_install:
            self.logger.warning(f"{tool} is not installed and automatic installation is disabled")
            return CheckResult.warn(tool, 'not installed (installation skipped)', stage=STAGE)

        command = self.optional.get(tool, {}).get('install')
        if not command:
            raise FatalPreconditionError(tool, 'not installed and no install command configured')

        self.logger.info(f"Installing {tool}...")
        result = run_command(command, timeout=self.install_timeout, shell=True)
        if not result.success:
            raise FatalPreconditionError(tool, f"installation failed: {result.error_text}")
        if not self.check([tool])[tool]:
            raise FatalPreconditionError(tool, 'installation finished but tool is still not on PATH')

        self.logger.info(f"{tool} installed")
        return CheckResult.ok(tool, 'installed on demand', stage=STAGE)

    def check_required(self) -> List[CheckResult]:
        """
        Look up the required tools on PATH without executing anything.

        Raises:
            FatalPreconditionError: on the first missing required tool
        """
        results = []
        for tool, present in self.check(self.required).items():
            if not present:
                raise FatalPreconditionError(tool, f"{tool} is not installed. Please install {tool} first.")
            self.logger.info(f"{tool} is installed")
            results.append(CheckResult.ok(tool, 'installed', stage=STAGE))
        return results

    def resolve_tools(self) -> Tuple[List[str], List[CheckResult]]:
        """
        Detect the compose command and make sure optional tools are present.

        This is the part of the stage that runs external commands.

        Returns:
            (compose command prefix, results)
        """
        compose_cmd, compose_result = self.detect_compose()
        results = [compose_result]

        for tool, present in self.check(self.optional).items():
            if present:
                results.append(CheckResult.ok(tool, 'installed', stage=STAGE))
            else:
                results.append(self.ensure_optional(tool))

        return compose_cmd, results

    def run(self) -> Tuple[List[str], List[CheckResult]]:
        """
        Check every configured tool.

        Returns:
            (compose command prefix, results)

        Raises:
            FatalPreconditionError: on a missing required tool or failed install
        """
        results = self.check_required()
        compose_cmd, tool_results = self.resolve_tools()
        return compose_cmd, results + tool_results
