"""
Check Result model.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable


class CheckStatus(Enum):
    """Outcome of a single check, ordered OK < WARN < FAIL."""

    OK = "OK"
    WARN = "WARN"
    FAIL = "FAIL"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    def __lt__(self, other: "CheckStatus") -> bool:
        if not isinstance(other, CheckStatus):
            return NotImplemented
        return self.severity < other.severity


_SEVERITY = {
    CheckStatus.OK: 0,
    CheckStatus.WARN: 1,
    CheckStatus.FAIL: 2,
}


@dataclass(frozen=True)
class CheckResult:
    """Represents the result of one check against one subject."""

    subject: str
    status: CheckStatus
    detail: str = ""
    stage: str = ""
    check_time: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.status.value:4}] {self.subject}: {self.detail}"

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'subject': self.subject,
            'stage': self.stage,
            'status': self.status.value,
            'detail': self.detail,
            'check_time': self.check_time.isoformat() if self.check_time else None,
        }

    @property
    def is_ok(self) -> bool:
        return self.status is CheckStatus.OK

    @classmethod
    def ok(cls, subject: str, detail: str = "", stage: str = "") -> 'CheckResult':
        return cls(subject=subject, status=CheckStatus.OK, detail=detail, stage=stage)

    @classmethod
    def warn(cls, subject: str, detail: str = "", stage: str = "") -> 'CheckResult':
        return cls(subject=subject, status=CheckStatus.WARN, detail=detail, stage=stage)

    @classmethod
    def fail(cls, subject: str, detail: str = "", stage: str = "") -> 'CheckResult':
        return cls(subject=subject, status=CheckStatus.FAIL, detail=detail, stage=stage)


def worst_status(results: Iterable[CheckResult]) -> CheckStatus:
    """
    Get the aggregate severity of a collection of results.

    Args:
        results: CheckResult objects

    Returns:
        The worst status found, CheckStatus.OK for an empty collection
    """
    return max((r.status for r in results), default=CheckStatus.OK)
