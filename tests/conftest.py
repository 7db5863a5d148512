"""
Pytest configuration and fixtures.
"""

import json
import logging
import socket

import pytest
import yaml

from deploy_verify.core.registry import EndpointRegistry
from deploy_verify.utils.shell import CommandResult

FAST_SETTINGS = {
    'http': {'timeout': 1, 'max_retries': 0, 'backoff': 0},
    'prerequisites': {'required': ['docker'], 'optional': {}},
    'metadata': {'image': 'nginx:alpine'},
}

HTML_PAGE = """<!DOCTYPE html>
<html>
<head>
<title>Welcome to nginx!</title>
</head>
<body></body>
</html>
"""


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo handlers installed by setup_logging during a test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment overrides out of the tests."""
    for var in ('DEPLOY_VERIFY_HOST', 'DEPLOY_VERIFY_TIMEOUT', 'DEPLOY_VERIFY_IMAGE'):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def listener():
    """A TCP listener on an ephemeral loopback port; yields the port."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('127.0.0.1', 0))
    sock.listen(5)
    yield sock.getsockname()[1]
    sock.close()


@pytest.fixture
def free_port():
    """A loopback port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('127.0.0.1', 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def sample_endpoints():
    """Endpoint configuration for the four compose services."""
    return {
        'backend': {'host': '127.0.0.1', 'port': 5000, 'protocol': 'http'},
        'database': {'host': '127.0.0.1', 'port': 27017, 'protocol': 'tcp'},
        'frontend': {'host': '127.0.0.1', 'port': 3000, 'protocol': 'http'},
        'proxy': {'host': '127.0.0.1', 'port': 80, 'protocol': 'http', 'expect_markup': True},
    }


@pytest.fixture
def make_registry(tmp_path, sample_endpoints):
    """Build an EndpointRegistry from temporary YAML files."""
    def _make(endpoints=None, settings=None):
        endpoints_file = tmp_path / 'endpoints.yaml'
        endpoints_file.write_text(yaml.safe_dump(endpoints or sample_endpoints))
        settings_file = tmp_path / 'settings.yaml'
        settings_file.write_text(yaml.safe_dump(settings or FAST_SETTINGS))
        return EndpointRegistry(
            str(endpoints_file),
            str(settings_file),
            dotenv_path=str(tmp_path / '.env'),
        )
    return _make


@pytest.fixture
def compose_dir(tmp_path):
    """A project directory holding a compose manifest."""
    project = tmp_path / 'project'
    project.mkdir()
    (project / 'docker-compose.yaml').write_text("services:\n  proxy:\n    image: nginx:alpine\n")
    return project


@pytest.fixture
def inspect_output():
    """Output of `docker image inspect nginx:alpine`."""
    return json.dumps([{
        'Id': 'sha256:1f3c',
        'RepoTags': ['nginx:alpine'],
        'Created': '2024-02-14T18:20:13.123456789Z',
        'Os': 'linux',
        'Config': {
            'Cmd': ['nginx', '-g', 'daemon off;'],
            'ExposedPorts': {'80/tcp': {}},
            'Env': ['PATH=/usr/local/sbin:/usr/local/bin'],
        },
    }])


@pytest.fixture
def fake_docker(inspect_output):
    """
    Factory for a run_command replacement that answers like docker.

    Every call is recorded in the returned function's `calls` list.
    """
    def _make(build_ok=True, up_ok=True, container_id='3f4e5d6c7b8a', inspect=None):
        calls = []
        inspect_stdout = inspect_output if inspect is None else inspect

        def run(cmd, timeout=None, cwd=None, shell=False):
            args = cmd.split() if isinstance(cmd, str) else list(cmd)
            calls.append(args)
            text = ' '.join(args)

            if args[:3] == ['docker', 'compose', 'version']:
                return CommandResult(text, 0, stdout='Docker Compose version v2.24.0\n')
            if 'build' in args:
                if build_ok:
                    return CommandResult(text, 0)
                return CommandResult(text, 1, stderr='failed to solve: backend\n')
            if 'up' in args:
                if up_ok:
                    return CommandResult(text, 0)
                return CommandResult(text, 1, stderr='port is already allocated\n')
            if args[:2] == ['docker', 'ps'] and '--filter' in args:
                return CommandResult(text, 0, stdout=f"{container_id}\n" if container_id else '')
            if args[:3] == ['docker', 'image', 'inspect']:
                return CommandResult(text, 0, stdout=inspect_stdout)
            return CommandResult(text, 0, stdout='HEADER\nrow\n')

        run.calls = calls
        return run
    return _make
