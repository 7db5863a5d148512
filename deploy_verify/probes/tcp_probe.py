"""
Raw TCP probe for services that do not speak HTTP, such as MongoDB.
"""

from typing import List, Tuple

from deploy_verify.models.check_result import CheckResult
from deploy_verify.probes.base_probe import BaseProbe
from deploy_verify.utils.network import accepts_connections


class TCPProbe(BaseProbe):
    """Probe that only opens and closes a TCP connection."""

    def get_method_name(self) -> str:
        return "tcp_connect"

    def probe(self) -> List[CheckResult]:
        healthy, detail = self.with_retries(self._attempt)
        return [self.result(healthy, detail)]

    def _attempt(self) -> Tuple[bool, str]:
        address = self.endpoint.address
        self.logger.info(f"Opening TCP connection to {address}")
        if accepts_connections(self.endpoint.host, self.endpoint.port, self.timeout):
            return True, f"{address} accepted a connection"
        return False, f"{address} refused or timed out after {self.timeout:g}s"
