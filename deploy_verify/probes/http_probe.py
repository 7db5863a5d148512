"""
HTTP GET probe for web-facing services.
A service is healthy only when it answers with status 200.
"""

import requests
from typing import Any, Dict, List, Optional, Tuple

from deploy_verify.models.check_result import CheckResult
from deploy_verify.models.endpoint import ServiceEndpoint
from deploy_verify.probes.base_probe import BaseProbe, STAGE
from deploy_verify.probes.markup import contains_markup


class HTTPProbe(BaseProbe):
    """Probe for services that speak HTTP."""

    def __init__(self, endpoint: ServiceEndpoint, settings: Dict[str, Any] = None):
        super().__init__(endpoint, settings)
        http_settings = self.settings.get('http', {})
        self.user_agent = http_settings.get('user_agent', 'deploy-verify/1.0')
        self.markup_lines = int(http_settings.get('markup_lines', 5))
        self._body: Optional[str] = None

    def get_method_name(self) -> str:
        return "http_get"

    def probe(self) -> List[CheckResult]:
        """
        Send GET requests until a 200 arrives or the retries run out.

        Returns:
            The status result, followed by a markup result when the
            endpoint expects an HTML page
        """
        healthy, detail = self.with_retries(self._attempt)
        results = [self.result(healthy, detail)]

        if self.endpoint.expect_markup:
            results.append(self._markup_result())

        return results

    def _attempt(self) -> Tuple[bool, str]:
        url = self.endpoint.url
        headers = {'User-Agent': self.user_agent}

        try:
            self.logger.info(f"Sending GET request to {url}")
            response = requests.get(
                url,
                headers=headers,
                timeout=self.timeout,
                allow_redirects=False
            )
        except requests.exceptions.Timeout:
            self._body = None
            return False, f"{url} timed out after {self.timeout:g}s"
        except requests.exceptions.RequestException as e:
            self._body = None
            return False, f"{url} unreachable ({self.handle_error(e)})"

        self._body = response.text
        if response.status_code == 200:
            return True, f"{url} returned 200"
        return False, f"{url} returned {response.status_code}"

    def _markup_result(self) -> CheckResult:
        subject = f"{self.endpoint.name}:markup"
        if self._body is None:
            return CheckResult.warn(subject, "no response body to inspect", stage=STAGE)
        if contains_markup(self._body, self.markup_lines):
            return CheckResult.ok(subject, "serving an HTML page", stage=STAGE)
        return CheckResult.warn(
            subject,
            f"no <html> tag in the first {self.markup_lines} lines of the response",
            stage=STAGE,
        )
