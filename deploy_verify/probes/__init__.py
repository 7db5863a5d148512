"""
Probes package - Contains all health check method implementations.
"""

from deploy_verify.probes.base_probe import BaseProbe
from deploy_verify.probes.http_probe import HTTPProbe
from deploy_verify.probes.tcp_probe import TCPProbe
from deploy_verify.probes.markup import contains_markup

__all__ = [
    'BaseProbe',
    'HTTPProbe',
    'TCPProbe',
    'contains_markup',
]
