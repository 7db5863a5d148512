"""
Verification Report model.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from deploy_verify.models.check_result import CheckResult, CheckStatus, worst_status
from deploy_verify.models.image_metadata import ImageMetadata

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_DEGRADED = 2


@dataclass
class VerificationReport:
    """Aggregated outcome of one verifier run."""

    mode: str
    results: List[CheckResult] = field(default_factory=list)
    metadata: Optional[ImageMetadata] = None
    report_path: Optional[str] = None
    fatal: Optional[str] = None

    def add(self, *results: CheckResult) -> None:
        self.results.extend(results)

    @property
    def overall_status(self) -> CheckStatus:
        if self.fatal:
            return CheckStatus.FAIL
        return worst_status(self.results)

    @property
    def exit_code(self) -> int:
        """0 when everything passed, 1 on a fatal precondition, 2 when degraded."""
        if self.fatal:
            return EXIT_FATAL
        if self.overall_status is CheckStatus.OK:
            return EXIT_OK
        return EXIT_DEGRADED

    def counts(self) -> dict:
        counts = {status.value: 0 for status in CheckStatus}
        for result in self.results:
            counts[result.status.value] += 1
        return counts

    def summary(self) -> str:
        counts = self.counts()
        line = (
            f"{counts['OK']} ok, {counts['WARN']} warnings, {counts['FAIL']} failed "
            f"-> {self.overall_status.value} (exit {self.exit_code})"
        )
        if self.fatal:
            line += f"\nAborted: {self.fatal}"
        return line
