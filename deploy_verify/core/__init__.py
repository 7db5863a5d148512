"""
Core package - Deployment stages and the verifier that runs them.
"""

from deploy_verify.core.verifier import DeploymentVerifier, verify_deployment
from deploy_verify.core.registry import EndpointRegistry
from deploy_verify.core.ports import PortChecker, PortMode
from deploy_verify.core.orchestrator import FailurePolicy, OrchestrationDriver

__all__ = [
    'DeploymentVerifier',
    'verify_deployment',
    'EndpointRegistry',
    'PortChecker',
    'PortMode',
    'FailurePolicy',
    'OrchestrationDriver',
]
