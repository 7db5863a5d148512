"""
Abstract base probe for all health check methods.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging
import time

from deploy_verify.models.check_result import CheckResult
from deploy_verify.models.endpoint import ServiceEndpoint

STAGE = "health"


class BaseProbe(ABC):
    """Abstract base class for all endpoint health probes."""

    def __init__(self, endpoint: ServiceEndpoint, settings: Dict[str, Any] = None):
        """
        Initialize probe with the endpoint to check.

        Args:
            endpoint: Service endpoint to probe
            settings: Application settings
        """
        self.endpoint = endpoint
        self.settings = settings or {}
        self.logger = logging.getLogger(self.__class__.__name__)

        http_settings = self.settings.get('http', {})
        self.timeout = float(http_settings.get('timeout', 5))
        self.max_retries = int(http_settings.get('max_retries', 1))
        self.backoff = float(http_settings.get('backoff', 1.0))

    @abstractmethod
    def probe(self) -> List[CheckResult]:
        """
        Probe the endpoint, retrying as configured.

        Returns:
            One or more CheckResult objects for this endpoint
        """
        pass

    @abstractmethod
    def get_method_name(self) -> str:
        """
        Get the name of the probe method.

        Returns:
            String identifier for this method
        """
        pass

    def with_retries(self, attempt: Callable[[], Tuple[bool, str]]) -> Tuple[bool, str]:
        """
        Run an attempt, retrying after a fixed backoff while it fails.

        Args:
            attempt: Callable returning (healthy, detail)

        Returns:
            (healthy, detail) of the last attempt
        """
        healthy, detail = False, "not attempted"
        for number in range(self.max_retries + 1):
            healthy, detail = attempt()
            if healthy:
                break
            if number < self.max_retries:
                self.logger.info(
                    f"{self.endpoint.name}: attempt {number + 1} failed ({detail}), "
                    f"retrying in {self.backoff:.1f}s"
                )
                time.sleep(self.backoff)
        return healthy, detail

    def result(self, healthy: bool, detail: str, subject: Optional[str] = None) -> CheckResult:
        subject = subject or self.endpoint.name
        if healthy:
            return CheckResult.ok(subject, detail, stage=STAGE)
        return CheckResult.fail(subject, detail, stage=STAGE)

    def handle_error(self, exception: Exception) -> str:
        """
        Log an error raised while probing.

        Args:
            exception: The exception that occurred

        Returns:
            Short description used as the result detail
        """
        message = f"{type(exception).__name__}: {exception}"
        self.logger.warning(f"Error probing {self.endpoint.name} ({self.endpoint.address}): {message}")
        return message
