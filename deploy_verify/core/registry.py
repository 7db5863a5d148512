"""
Endpoint Registry - Loads endpoint and settings configuration and maps endpoints to probes.
"""

import copy
import math
import os
import logging
import yaml
from dotenv import find_dotenv, load_dotenv
from typing import Any, Dict, List, Optional, Type

from deploy_verify.models.endpoint import Protocol, ServiceEndpoint
from deploy_verify.probes.base_probe import BaseProbe
from deploy_verify.probes.http_probe import HTTPProbe
from deploy_verify.probes.tcp_probe import TCPProbe

CONFIG_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'config')

DEFAULT_SETTINGS: Dict[str, Any] = {
    'http': {
        'timeout': 5,
        'max_retries': 1,
        'backoff': 1.0,
        'user_agent': 'deploy-verify/1.0',
        'markup_lines': 5,
    },
    'logging': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    },
    'prerequisites': {
        'required': ['docker'],
        'optional': {},
    },
    'orchestration': {
        'policy': 'fail-fast',
        'command_timeout': 900,
        'manifest_names': [
            'docker-compose.yaml',
            'docker-compose.yml',
            'compose.yaml',
            'compose.yml',
        ],
    },
    'metadata': {
        'image': 'nginx:alpine',
        'report_file': 'nginx-logs.txt',
        'raw_file': 'nginx-logs.json',
    },
}

DEFAULT_ENDPOINTS: Dict[str, Dict[str, Any]] = {
    'backend': {'port': 5000, 'protocol': 'http'},
    'database': {'port': 27017, 'protocol': 'tcp'},
    'frontend': {'port': 3000, 'protocol': 'http'},
    'proxy': {'port': 80, 'protocol': 'http', 'expect_markup': True},
}

# Environment variables that override settings, loaded from .env when present
ENV_HOST = 'DEPLOY_VERIFY_HOST'
ENV_TIMEOUT = 'DEPLOY_VERIFY_TIMEOUT'
ENV_IMAGE = 'DEPLOY_VERIFY_IMAGE'


def validate_timeout(value: Any) -> float:
    """
    Coerce a timeout to seconds.

    Raises:
        ValueError: unless the value is a finite number greater than zero
    """
    timeout = float(value)
    if not (math.isfinite(timeout) and timeout > 0):
        raise ValueError(f"timeout must be a positive number of seconds, got {value}")
    return timeout


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class EndpointRegistry:
    """Registry that manages endpoint configuration, settings and probe instantiation."""

    # Map protocols to probe classes
    PROBE_MAP: Dict[Protocol, Type[BaseProbe]] = {
        Protocol.HTTP: HTTPProbe,
        Protocol.TCP: TCPProbe,
    }

    def __init__(
        self,
        config_path: str = None,
        settings_path: str = None,
        dotenv_path: Optional[str] = None
    ):
        """
        Initialize the registry with configuration files.

        Args:
            config_path: Path to endpoints.yaml
            settings_path: Path to settings.yaml
            dotenv_path: Path to a .env file (searched from the working directory if None)
        """
        self.logger = logging.getLogger('EndpointRegistry')

        if config_path is None:
            config_path = os.path.join(CONFIG_DIR, 'endpoints.yaml')
        if settings_path is None:
            settings_path = os.path.join(CONFIG_DIR, 'settings.yaml')

        raw_endpoints = self._load_config(config_path) or DEFAULT_ENDPOINTS
        self.settings = _deep_merge(DEFAULT_SETTINGS, self._load_config(settings_path))
        self._validate_timeout_setting()

        load_dotenv(dotenv_path or find_dotenv(usecwd=True))
        self._apply_env_overrides()

        self.endpoints = self._build_endpoints(raw_endpoints)

    def _load_config(self, path: str) -> Dict[str, Any]:
        """Load YAML configuration file."""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            self.logger.warning(f"Config file not found: {path}")
            return {}
        except yaml.YAMLError as e:
            self.logger.error(f"Error parsing YAML file {path}: {e}")
            return {}

        if not isinstance(data, dict):
            self.logger.error(f"Expected a mapping at the top of {path}, ignoring it")
            return {}
        return data

    def _validate_timeout_setting(self) -> None:
        http = self.settings['http']
        try:
            http['timeout'] = validate_timeout(http.get('timeout'))
        except (TypeError, ValueError) as e:
            default = float(DEFAULT_SETTINGS['http']['timeout'])
            self.logger.warning(f"Invalid http.timeout in settings ({e}), using {default:g}s")
            http['timeout'] = default

    def _apply_env_overrides(self) -> None:
        timeout = os.getenv(ENV_TIMEOUT)
        if timeout:
            try:
                self.settings['http']['timeout'] = validate_timeout(timeout)
            except ValueError as e:
                self.logger.warning(f"Ignoring invalid {ENV_TIMEOUT}: {e}")

        image = os.getenv(ENV_IMAGE)
        if image:
            self.settings['metadata']['image'] = image

    def _build_endpoints(self, raw: Dict[str, Any]) -> List[ServiceEndpoint]:
        endpoints = []
        host = os.getenv(ENV_HOST)
        for name, data in raw.items():
            try:
                endpoint = ServiceEndpoint.from_dict(name, data or {})
            except (TypeError, ValueError) as e:
                self.logger.error(f"Skipping invalid endpoint '{name}': {e}")
                continue
            if host:
                endpoint = endpoint.with_host(host)
            endpoints.append(endpoint)
        return endpoints

    def get_endpoint(self, name: str) -> Optional[ServiceEndpoint]:
        """
        Get endpoint by name.

        Args:
            name: Endpoint name, e.g. 'proxy'

        Returns:
            ServiceEndpoint or None
        """
        for endpoint in self.endpoints:
            if endpoint.name == name:
                return endpoint
        return None

    def get_probe(self, endpoint: ServiceEndpoint) -> BaseProbe:
        """
        Get the probe instance for an endpoint.

        Args:
            endpoint: Endpoint to probe

        Returns:
            Probe instance for the endpoint's protocol
        """
        probe_class = self.PROBE_MAP[endpoint.protocol]
        return probe_class(endpoint, self.settings)

    def list_endpoints(self) -> List[str]:
        """List all configured endpoint names."""
        return [endpoint.name for endpoint in self.endpoints]

    def get_settings(self) -> Dict[str, Any]:
        """Get application settings."""
        return self.settings

    def set_timeout(self, timeout: float) -> None:
        """Override the probe timeout; raises ValueError unless it is positive."""
        self.settings['http']['timeout'] = validate_timeout(timeout)
