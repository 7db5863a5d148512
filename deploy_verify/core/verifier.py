"""
Deployment Verifier - Runs the deployment and verification stages in order.
"""

import csv
import os
import logging
from typing import Iterable, Optional

from deploy_verify.core.health import HealthProber
from deploy_verify.core.metadata import MetadataExtractor
from deploy_verify.core.orchestrator import (
    DEFAULT_MANIFEST_NAMES,
    FailurePolicy,
    OrchestrationDriver,
    resolve_manifest,
)
from deploy_verify.core.ports import PortChecker, PortMode
from deploy_verify.core.prerequisites import PrerequisiteChecker
from deploy_verify.core.registry import EndpointRegistry
from deploy_verify.errors import FatalPreconditionError
from deploy_verify.models.check_result import CheckResult
from deploy_verify.models.report import VerificationReport


class DeploymentVerifier:
    """Main verifier that deploys the stack and checks that it came up."""

    def __init__(
        self,
        directory: str = None,
        manifest_file: str = None,
        mode: PortMode = PortMode.PREFLIGHT,
        policy: FailurePolicy = None,
        registry: EndpointRegistry = None,
        auto_install: bool = True,
        report_path: str = None,
        image: str = None,
        timeout: float = None
    ):
        """
        Initialize the verifier.

        Args:
            directory: Directory holding the compose manifest (defaults to the working directory)
            manifest_file: Explicit manifest file name
            mode: PREFLIGHT deploys the stack, POSTDEPLOY checks a running one
            policy: Build/start failure policy (defaults to the configured one)
            registry: Endpoint and settings registry
            auto_install: Install missing optional tools
            report_path: Metadata report path (defaults to the configured name inside directory)
            image: Image to inspect (defaults to the configured one)
            timeout: Probe timeout in seconds (defaults to the configured one)
        """
        self.logger = logging.getLogger('DeploymentVerifier')
        self.registry = registry or EndpointRegistry()
        self.directory = os.path.abspath(directory or os.getcwd())
        self.manifest_file = manifest_file
        self.mode = mode

        if timeout is not None:
            self.registry.set_timeout(timeout)
        settings = self.registry.get_settings()

        orchestration = settings.get('orchestration', {})
        self.policy = policy or FailurePolicy(orchestration.get('policy', 'fail-fast'))
        self.command_timeout = float(orchestration.get('command_timeout', 900))
        self.manifest_names = orchestration.get('manifest_names') or DEFAULT_MANIFEST_NAMES

        metadata = settings.get('metadata', {})
        self.image = image or metadata.get('image', 'nginx:alpine')
        self.report_path = report_path or os.path.join(
            self.directory, metadata.get('report_file', 'nginx-logs.txt')
        )
        raw_file = metadata.get('raw_file')
        self.raw_path = os.path.join(self.directory, raw_file) if raw_file else None

        prerequisites = settings.get('prerequisites', {})
        self.prerequisites = PrerequisiteChecker(
            required=prerequisites.get('required', ['docker']),
            optional=prerequisites.get('optional') or {},
            auto_install=auto_install,
        )
        self.port_checker = PortChecker()

    def _resolve_manifest(self) -> Optional[str]:
        try:
            path = resolve_manifest(self.directory, self.manifest_file, self.manifest_names)
        except FatalPreconditionError:
            if self.mode is PortMode.PREFLIGHT:
                raise
            self.logger.info(f"No compose manifest in {self.directory}, checking running services only")
            return None

        self.logger.info(f"Found {os.path.basename(path)} in {self.directory}")
        return path

    def _deploy_stages(self, report: VerificationReport) -> OrchestrationDriver:
        report.add(*self.prerequisites.check_required())

        endpoints = self.registry.endpoints
        if self.mode is PortMode.PREFLIGHT:
            report.add(*self.port_checker.assert_ports_free(endpoints))

        manifest = self._resolve_manifest()
        if manifest:
            report.add(CheckResult.ok('manifest', manifest, stage='orchestration'))

        # Nothing above runs an external command
        compose_cmd, results = self.prerequisites.resolve_tools()
        report.add(*results)

        driver = OrchestrationDriver(
            self.directory,
            manifest,
            compose_cmd=compose_cmd,
            policy=self.policy,
            timeout=self.command_timeout,
        )

        if self.mode is PortMode.PREFLIGHT:
            report.add(*driver.deploy())

        report.add(driver.list_images(), driver.list_containers())

        if self.mode is PortMode.POSTDEPLOY:
            report.add(*self.port_checker.assert_ports_bound(endpoints))

        return driver

    def run(self) -> VerificationReport:
        """
        Run every stage in order.

        A fatal precondition stops the run; the report keeps the results
        gathered up to that point.

        Returns:
            VerificationReport for the run
        """
        report = VerificationReport(mode=self.mode.value)
        self.logger.info(f"Starting {self.mode.value} verification in {self.directory}")

        try:
            driver = self._deploy_stages(report)
        except FatalPreconditionError as e:
            self.logger.error(f"Aborting: {e}")
            report.fatal = str(e)
            return report

        probes = [self.registry.get_probe(endpoint) for endpoint in self.registry.endpoints]
        report.add(*HealthProber(probes).run())

        extractor = MetadataExtractor(
            driver,
            image=self.image,
            report_path=self.report_path,
            raw_path=self.raw_path,
        )
        metadata, results = extractor.run()
        report.add(*results)
        report.metadata = metadata
        if metadata is not None and os.path.isfile(self.report_path):
            report.report_path = self.report_path

        self.logger.info(f"Verification finished: {report.overall_status.value}")
        return report

    def export_to_csv(
        self,
        results: Iterable[CheckResult],
        output_path: str
    ) -> str:
        """
        Export results to CSV file.

        Args:
            results: CheckResult objects
            output_path: Output CSV file path

        Returns:
            Path to the created CSV file
        """
        os.makedirs(os.path.dirname(output_path) or '.', exist_ok=True)

        fieldnames = ['subject', 'stage', 'status', 'detail', 'check_time']

        with open(output_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for result in results:
                writer.writerow(result.to_dict())

        self.logger.info(f"Results exported to: {output_path}")
        return output_path


def verify_deployment(directory: str = None, mode: PortMode = PortMode.PREFLIGHT) -> VerificationReport:
    """
    Convenience function to run a verification with default configuration.

    Args:
        directory: Directory holding the compose manifest
        mode: Verification mode

    Returns:
        VerificationReport
    """
    return DeploymentVerifier(directory=directory, mode=mode).run()
