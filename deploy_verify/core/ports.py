"""
Port Availability Checker.

Both modes read one snapshot of the host's listening TCP sockets, with
opposite expectations: before a deployment every port must be free,
after it every port must be bound.
"""

import logging
from enum import Enum
from typing import Iterable, List, Optional, Set

from deploy_verify.errors import FatalPreconditionError
from deploy_verify.models.check_result import CheckResult
from deploy_verify.models.endpoint import ServiceEndpoint
from deploy_verify.utils.network import get_listening_ports

STAGE = "ports"


class PortMode(Enum):
    PREFLIGHT = "preflight"
    POSTDEPLOY = "postdeploy"


class PortChecker:
    """Checks the TCP ports of the configured endpoints against local listeners."""

    def __init__(self):
        self.logger = logging.getLogger('PortChecker')

    def _not_checked(self) -> CheckResult:
        return CheckResult.warn(
            'port scan',
            "listening sockets could not be enumerated; rerun with elevated privileges",
            stage=STAGE,
        )

    def listeners(self) -> Optional[Set[int]]:
        """Snapshot of listening ports, or None when it cannot be taken."""
        return get_listening_ports()

    def is_bound(self, endpoint: ServiceEndpoint, listeners: Set[int]) -> bool:
        return endpoint.port in listeners

    def assert_ports_free(self, endpoints: Iterable[ServiceEndpoint]) -> List[CheckResult]:
        """
        Require every port to be free.

        Returns:
            OK results, one per endpoint, or a single WARN when the
            listening sockets could not be enumerated

        Raises:
            FatalPreconditionError: listing every port already in use
        """
        listeners = self.listeners()
        if listeners is None:
            return [self._not_checked()]

        results = []
        conflicts = []

        for endpoint in endpoints:
            if self.is_bound(endpoint, listeners):
                self.logger.error(f"Port {endpoint.port} ({endpoint.name}) is already in use.")
                conflicts.append(endpoint)
            else:
                self.logger.info(f"Port {endpoint.port} is available.")
                results.append(CheckResult.ok(
                    f"port {endpoint.port}", f"available for {endpoint.name}", stage=STAGE
                ))

        if conflicts:
            ports = ', '.join(f"{e.port} ({e.name})" for e in conflicts)
            raise FatalPreconditionError('ports', f"already in use: {ports}")

        return results

    def assert_ports_bound(self, endpoints: Iterable[ServiceEndpoint]) -> List[CheckResult]:
        """
        Expect every port to have a listener.

        Returns:
            OK for bound ports, FAIL for ports nobody listens on
        """
        listeners = self.listeners()
        if listeners is None:
            return [self._not_checked()]

        results = []

        for endpoint in endpoints:
            subject = f"port {endpoint.port}"
            if self.is_bound(endpoint, listeners):
                self.logger.info(f"Port {endpoint.port} ({endpoint.name}) is open.")
                results.append(CheckResult.ok(subject, f"{endpoint.name} is listening", stage=STAGE))
            else:
                self.logger.warning(f"Port {endpoint.port} ({endpoint.name}) is not open.")
                results.append(CheckResult.fail(subject, f"nothing listening for {endpoint.name}", stage=STAGE))

        return results

    def check(self, endpoints: Iterable[ServiceEndpoint], mode: PortMode) -> List[CheckResult]:
        if mode is PortMode.PREFLIGHT:
            return self.assert_ports_free(endpoints)
        return self.assert_ports_bound(endpoints)
