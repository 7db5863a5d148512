"""
deploy-verify - Deployment readiness checker for a Docker Compose stack

Deploys the compose services, probes them over HTTP and raw TCP, and writes
the proxy image's metadata to a report file.
"""

from .core.verifier import DeploymentVerifier, verify_deployment
from .core.registry import EndpointRegistry
from .errors import FatalPreconditionError, MetadataError
from .models.check_result import CheckResult, CheckStatus
from .models.endpoint import ServiceEndpoint
from .models.image_metadata import ImageMetadata

__version__ = "1.0.0"
__all__ = [
    'DeploymentVerifier',
    'verify_deployment',
    'EndpointRegistry',
    'FatalPreconditionError',
    'MetadataError',
    'CheckResult',
    'CheckStatus',
    'ServiceEndpoint',
    'ImageMetadata',
]
