"""
Models package - Data classes for the application.
"""

from deploy_verify.models.check_result import CheckResult, CheckStatus, worst_status
from deploy_verify.models.endpoint import Protocol, ServiceEndpoint
from deploy_verify.models.image_metadata import ImageMetadata
from deploy_verify.models.report import VerificationReport

__all__ = [
    'CheckResult',
    'CheckStatus',
    'worst_status',
    'Protocol',
    'ServiceEndpoint',
    'ImageMetadata',
    'VerificationReport',
]
