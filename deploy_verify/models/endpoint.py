"""
Service Endpoint model.
"""

from dataclasses import dataclass, replace
from enum import Enum


class Protocol(Enum):
    HTTP = "http"
    TCP = "tcp"

    @classmethod
    def from_string(cls, value: str) -> 'Protocol':
        """Convert a config string such as 'HTTP' or 'tcp' to a Protocol."""
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown protocol: {value}")


@dataclass(frozen=True)
class ServiceEndpoint:
    """Represents one service exposed by the deployment."""

    name: str
    port: int
    host: str = "localhost"
    protocol: Protocol = Protocol.HTTP
    path: str = "/"
    expect_markup: bool = False

    @property
    def url(self) -> str:
        """HTTP URL for this endpoint; the port is omitted for port 80."""
        netloc = self.host if self.port == 80 else f"{self.host}:{self.port}"
        return f"http://{netloc}{self.path}"

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @classmethod
    def from_dict(cls, name: str, data: dict) -> 'ServiceEndpoint':
        """Create ServiceEndpoint from configuration dictionary."""
        if 'port' not in data:
            raise ValueError(f"Endpoint '{name}' has no port")
        return cls(
            name=name,
            port=int(data['port']),
            host=data.get('host', 'localhost'),
            protocol=Protocol.from_string(data.get('protocol', 'http')),
            path=data.get('path', '/'),
            expect_markup=bool(data.get('expect_markup', False)),
        )

    def with_host(self, host: str) -> 'ServiceEndpoint':
        return replace(self, host=host)
