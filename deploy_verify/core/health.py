"""
Health Prober - Runs the endpoint probes concurrently.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence

from deploy_verify.models.check_result import CheckResult
from deploy_verify.probes.base_probe import BaseProbe, STAGE


class HealthProber:
    """Runs independent probes in parallel and merges their results in order."""

    def __init__(self, probes: Sequence[BaseProbe], max_workers: int = None):
        self.probes = list(probes)
        self.max_workers = max_workers or max(len(self.probes), 1)
        self.logger = logging.getLogger('HealthProber')

    def _run_probe(self, probe: BaseProbe) -> List[CheckResult]:
        try:
            return probe.probe()
        except Exception as e:
            # Crashes are reported per endpoint
            self.logger.exception(f"Probe for {probe.endpoint.name} crashed")
            return [CheckResult.fail(probe.endpoint.name, f"probe error: {e}", stage=STAGE)]

    def run(self) -> List[CheckResult]:
        """
        Probe every endpoint.

        Returns:
            Results grouped per endpoint, in the order the probes were given
        """
        if not self.probes:
            return []

        self.logger.info(f"Checking {len(self.probes)} services...")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(self._run_probe, probe) for probe in self.probes]
            per_probe = [future.result() for future in futures]

        results = [result for group in per_probe for result in group]
        for result in results:
            if result.is_ok:
                self.logger.info(f"{result.subject} is healthy: {result.detail}")
            else:
                self.logger.warning(f"{result.subject} is unhealthy: {result.detail}")
        return results
