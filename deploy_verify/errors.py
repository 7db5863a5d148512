"""
Exceptions raised by the verification stages.
"""


class VerifierError(Exception):
    """Base class for deploy-verify errors."""


class FatalPreconditionError(VerifierError):
    """A precondition failed and the run cannot continue."""

    exit_code = 1

    def __init__(self, subject: str, reason: str):
        self.subject = subject
        self.reason = reason
        super().__init__(f"{subject}: {reason}")


class MetadataError(VerifierError):
    """Image inspection output could not be turned into ImageMetadata."""
