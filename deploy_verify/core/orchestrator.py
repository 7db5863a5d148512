"""
Orchestration Driver - Drives Docker Compose and the container runtime as subprocesses.
"""

import logging
import os
from enum import Enum
from typing import Iterable, List, Optional

from deploy_verify.errors import FatalPreconditionError
from deploy_verify.models.check_result import CheckResult
from deploy_verify.utils.shell import CommandResult, run_command

STAGE = "orchestration"

DEFAULT_MANIFEST_NAMES = (
    'docker-compose.yaml',
    'docker-compose.yml',
    'compose.yaml',
    'compose.yml',
)


class FailurePolicy(Enum):
    """What to do when a build or start fails."""

    FAIL_FAST = "fail-fast"
    BEST_EFFORT = "best-effort"


def resolve_manifest(
    directory: str,
    filename: Optional[str] = None,
    candidates: Iterable[str] = DEFAULT_MANIFEST_NAMES
) -> str:
    """
    Find the compose manifest in a directory.

    Args:
        directory: Directory holding the manifest
        filename: Explicit manifest name or path, tried alone when given
        candidates: Names tried in order otherwise

    Returns:
        Absolute path of the manifest

    Raises:
        FatalPreconditionError: if no manifest exists
    """
    directory = os.path.abspath(directory)
    names = [filename] if filename else list(candidates)

    for name in names:
        path = os.path.join(directory, name)
        if os.path.isfile(path):
            return path

    raise FatalPreconditionError(
        'manifest', f"{' / '.join(names)} not found in {directory}"
    )


class OrchestrationDriver:
    """Builds, starts and inspects the composed services."""

    def __init__(
        self,
        project_dir: str,
        manifest_path: Optional[str] = None,
        compose_cmd: Optional[List[str]] = None,
        policy: FailurePolicy = FailurePolicy.FAIL_FAST,
        timeout: float = 900,
        runtime: str = 'docker'
    ):
        """
        Args:
            project_dir: Directory the commands run in
            manifest_path: Path to the compose manifest, passed with -f when given
            compose_cmd: Compose command prefix, e.g. ['docker', 'compose']
            policy: Failure policy for build and start
            timeout: Timeout for each subprocess in seconds
            runtime: Container runtime executable
        """
        self.project_dir = os.path.abspath(project_dir)
        self.manifest_path = os.path.abspath(manifest_path) if manifest_path else None
        self.compose_cmd = list(compose_cmd or ['docker', 'compose'])
        self.policy = policy
        self.timeout = timeout
        self.runtime = runtime
        self.logger = logging.getLogger('OrchestrationDriver')

    def _compose(self, *args: str) -> CommandResult:
        cmd = list(self.compose_cmd)
        if self.manifest_path:
            cmd += ['-f', self.manifest_path]
        cmd += list(args)
        return run_command(cmd, timeout=self.timeout, cwd=self.project_dir)

    def _runtime(self, *args: str, timeout: Optional[float] = 60) -> CommandResult:
        return run_command([self.runtime] + list(args), timeout=timeout, cwd=self.project_dir)

    def _lifecycle_result(self, subject: str, result: CommandResult) -> CheckResult:
        if result.success:
            self.logger.info(f"{subject} succeeded")
            return CheckResult.ok(subject, 'succeeded', stage=STAGE)

        reason = f"failed: {result.error_text}"
        if self.policy is FailurePolicy.FAIL_FAST:
            raise FatalPreconditionError(subject, reason)

        self.logger.error(f"{subject} {reason}, continuing")
        return CheckResult.fail(subject, reason, stage=STAGE)

    def build(self) -> CheckResult:
        """Build the images declared in the manifest."""
        self.logger.info("Building images...")
        return self._lifecycle_result('compose build', self._compose('build'))

    def up(self) -> CheckResult:
        """Start the composed services detached."""
        self.logger.info("Starting containers...")
        return self._lifecycle_result('compose up', self._compose('up', '-d'))

    def deploy(self) -> List[CheckResult]:
        """Build, then start. Under FAIL_FAST a failed build stops before starting."""
        return [self.build(), self.up()]

    def _listing(self, subject: str, result: CommandResult) -> CheckResult:
        if result.success:
            self.logger.info(f"{subject}:\n{result.stdout.rstrip()}")
            count = max(len(result.stdout.strip().splitlines()) - 1, 0)
            return CheckResult.ok(subject, f"{count} listed", stage=STAGE)
        self.logger.warning(f"{subject} failed: {result.error_text}")
        return CheckResult.warn(subject, f"failed: {result.error_text}", stage=STAGE)

    def list_images(self) -> CheckResult:
        return self._listing('images', self._runtime('images'))

    def list_containers(self) -> CheckResult:
        return self._listing('containers', self._runtime('ps'))

    def find_container(self, ancestor: str) -> Optional[str]:
        """
        Find a running container created from an image.

        Args:
            ancestor: Image name, e.g. 'nginx:alpine'

        Returns:
            First matching container ID, or None
        """
        result = self._runtime(
            'ps', '--filter', f'ancestor={ancestor}', '--format', '{{.ID}}'
        )
        if not result.success:
            self.logger.warning(f"Could not list containers for {ancestor}: {result.error_text}")
            return None

        ids = result.stdout.split()
        return ids[0] if ids else None

    def inspect_image(self, image: str) -> CommandResult:
        """Run ``docker image inspect`` and return the raw result."""
        return self._runtime('image', 'inspect', image)
