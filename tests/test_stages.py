"""
Tests for the prerequisite, port, orchestration and metadata stages.
"""

import socket
from types import SimpleNamespace
from unittest.mock import Mock, patch

import psutil
import pytest

from deploy_verify.core.metadata import MetadataExtractor
from deploy_verify.core.orchestrator import FailurePolicy, OrchestrationDriver, resolve_manifest
from deploy_verify.core.ports import PortChecker, PortMode
from deploy_verify.core.prerequisites import PrerequisiteChecker
from deploy_verify.errors import FatalPreconditionError
from deploy_verify.models.check_result import CheckStatus
from deploy_verify.models.endpoint import Protocol, ServiceEndpoint
from deploy_verify.models.image_metadata import ImageMetadata
from deploy_verify.utils.network import accepts_connections, get_listening_ports
from deploy_verify.utils.shell import CommandResult


def _conn(port, kind=socket.SOCK_STREAM, status=psutil.CONN_LISTEN):
    return SimpleNamespace(
        laddr=('0.0.0.0', port), type=kind, status=status, family=socket.AF_INET, pid=None
    )


def _which(*present):
    return lambda tool: f"/usr/bin/{tool}" if tool in present else None


class TestPrerequisiteChecker:
    """Tests for tool detection and on-demand installation."""

    @patch('deploy_verify.core.prerequisites.shutil.which')
    def test_check_reports_presence(self, mock_which):
        mock_which.side_effect = _which('docker')

        assert PrerequisiteChecker.check(['docker', 'jq']) == {'docker': True, 'jq': False}

    @patch('deploy_verify.core.prerequisites.run_command')
    @patch('deploy_verify.core.prerequisites.shutil.which')
    def test_missing_docker_is_fatal(self, mock_which, mock_run):
        mock_which.side_effect = _which()

        with pytest.raises(FatalPreconditionError) as exc_info:
            PrerequisiteChecker(required=['docker']).run()

        assert exc_info.value.subject == 'docker'
        mock_run.assert_not_called()

    @patch('deploy_verify.core.prerequisites.run_command')
    @patch('deploy_verify.core.prerequisites.shutil.which')
    def test_compose_plugin_preferred(self, mock_which, mock_run):
        mock_which.side_effect = _which('docker', 'docker-compose')
        mock_run.return_value = CommandResult('docker compose version', 0)

        compose_cmd, results = PrerequisiteChecker(required=['docker']).run()

        assert compose_cmd == ['docker', 'compose']
        assert all(r.status is CheckStatus.OK for r in results)

    @patch('deploy_verify.core.prerequisites.run_command')
    @patch('deploy_verify.core.prerequisites.shutil.which')
    def test_standalone_compose_fallback(self, mock_which, mock_run):
        mock_which.side_effect = _which('docker', 'docker-compose')
        mock_run.return_value = CommandResult('docker compose version', 1, stderr="'compose' is not a docker command")

        compose_cmd, _ = PrerequisiteChecker(required=['docker']).run()

        assert compose_cmd == ['docker-compose']

    @patch('deploy_verify.core.prerequisites.run_command')
    @patch('deploy_verify.core.prerequisites.shutil.which')
    def test_no_compose_is_fatal(self, mock_which, mock_run):
        mock_which.side_effect = _which('docker')
        mock_run.return_value = CommandResult('docker compose version', 1)

        with pytest.raises(FatalPreconditionError):
            PrerequisiteChecker(required=['docker']).run()

    @patch('deploy_verify.core.prerequisites.run_command')
    @patch('deploy_verify.core.prerequisites.shutil.which')
    def test_optional_tool_installed_on_demand(self, mock_which, mock_run):
        installed = {'docker'}
        mock_which.side_effect = lambda tool: f"/usr/bin/{tool}" if tool in installed else None

        def run(cmd, timeout=None, shell=False, cwd=None):
            if shell:
                installed.add('jq')
            return CommandResult(str(cmd), 0)
        mock_run.side_effect = run

        checker = PrerequisiteChecker(
            required=['docker'],
            optional={'jq': {'install': 'apt-get install -y jq'}},
        )
        _, results = checker.run()

        jq = [r for r in results if r.subject == 'jq'][0]
        assert jq.status is CheckStatus.OK
        assert 'installed on demand' in jq.detail

    @patch('deploy_verify.core.prerequisites.run_command')
    @patch('deploy_verify.core.prerequisites.shutil.which')
    def test_failed_install_is_fatal(self, mock_which, mock_run):
        mock_which.side_effect = _which('docker')
        mock_run.side_effect = lambda cmd, **kwargs: CommandResult(
            str(cmd), 0 if not kwargs.get('shell') else 100, stderr='E: Unable to locate package jq'
        )

        checker = PrerequisiteChecker(
            required=['docker'],
            optional={'jq': {'install': 'apt-get install -y jq'}},
        )
        with pytest.raises(FatalPreconditionError) as exc_info:
            checker.run()

        assert 'Unable to locate package' in exc_info.value.reason

    @patch('deploy_verify.core.prerequisites.run_command')
    @patch('deploy_verify.core.prerequisites.shutil.which')
    def test_install_disabled_is_warn(self, mock_which, mock_run):
        mock_which.side_effect = _which('docker')
        mock_run.return_value = CommandResult('docker compose version', 0)

        checker = PrerequisiteChecker(
            required=['docker'],
            optional={'jq': {'install': 'apt-get install -y jq'}},
            auto_install=False,
        )
        _, results = checker.run()

        assert results[-1].subject == 'jq'
        assert results[-1].status is CheckStatus.WARN
        assert not any(call.kwargs.get('shell') for call in mock_run.call_args_list)

    @patch('deploy_verify.core.prerequisites.run_command')
    @patch('deploy_verify.core.prerequisites.shutil.which')
    def test_check_required_executes_nothing(self, mock_which, mock_run):
        mock_which.side_effect = _which('docker')

        results = PrerequisiteChecker(required=['docker']).check_required()

        assert [r.subject for r in results] == ['docker']
        mock_run.assert_not_called()


class TestPortChecker:
    """Tests for the two port operations over one listener snapshot."""

    def test_bound_port_is_fatal_before_deploy(self, listener):
        endpoints = [ServiceEndpoint('backend', listener, host='127.0.0.1')]

        with pytest.raises(FatalPreconditionError) as exc_info:
            PortChecker().assert_ports_free(endpoints)

        assert str(listener) in exc_info.value.reason

    def test_free_ports_pass_before_deploy(self, free_port):
        endpoints = [ServiceEndpoint('backend', free_port, host='127.0.0.1')]

        results = PortChecker().assert_ports_free(endpoints)

        assert [r.status for r in results] == [CheckStatus.OK]

    def test_conflicts_are_all_listed(self, listener, free_port):
        endpoints = [
            ServiceEndpoint('backend', free_port, host='127.0.0.1'),
            ServiceEndpoint('database', listener, host='127.0.0.1', protocol=Protocol.TCP),
        ]

        with pytest.raises(FatalPreconditionError) as exc_info:
            PortChecker().assert_ports_free(endpoints)

        assert 'database' in exc_info.value.reason
        assert 'backend' not in exc_info.value.reason

    def test_bound_port_is_ok_after_deploy(self, listener, free_port):
        endpoints = [
            ServiceEndpoint('backend', listener, host='127.0.0.1'),
            ServiceEndpoint('frontend', free_port, host='127.0.0.1'),
        ]

        results = PortChecker().assert_ports_bound(endpoints)

        assert [r.status for r in results] == [CheckStatus.OK, CheckStatus.FAIL]

    def test_check_dispatches_on_mode(self, listener):
        endpoints = [ServiceEndpoint('backend', listener, host='127.0.0.1')]
        checker = PortChecker()

        assert checker.check(endpoints, PortMode.POSTDEPLOY)[0].status is CheckStatus.OK
        with pytest.raises(FatalPreconditionError):
            checker.check(endpoints, PortMode.PREFLIGHT)

    def test_listener_on_other_local_address_is_conflict(self):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.bind(('127.0.0.2', 0))
        except OSError:
            sock.close()
            pytest.skip('127.0.0.2 is not a local address on this host')
        sock.listen(1)
        port = sock.getsockname()[1]
        try:
            endpoints = [ServiceEndpoint('proxy', port, host='127.0.0.1')]

            with pytest.raises(FatalPreconditionError) as exc_info:
                PortChecker().assert_ports_free(endpoints)

            assert str(port) in exc_info.value.reason
        finally:
            sock.close()

    @patch('deploy_verify.utils.network.psutil.net_connections')
    def test_only_tcp_listeners_count(self, mock_connections):
        mock_connections.return_value = [
            _conn(5000, status=psutil.CONN_ESTABLISHED),
            _conn(3000, kind=socket.SOCK_DGRAM, status=psutil.CONN_NONE),
            _conn(80),
        ]
        endpoints = [
            ServiceEndpoint('backend', 5000),
            ServiceEndpoint('frontend', 3000),
            ServiceEndpoint('proxy', 80),
        ]

        results = PortChecker().assert_ports_bound(endpoints)

        assert [r.status for r in results] == [CheckStatus.FAIL, CheckStatus.FAIL, CheckStatus.OK]
        mock_connections.assert_called_once_with(kind='inet')

    @pytest.mark.parametrize('error', [psutil.AccessDenied(), PermissionError('denied'), OSError('boom')])
    @patch('deploy_verify.utils.network.psutil.net_connections')
    def test_unreadable_sockets_are_warn(self, mock_connections, error):
        mock_connections.side_effect = error
        endpoints = [ServiceEndpoint('backend', 5000)]
        checker = PortChecker()

        for results in (checker.assert_ports_free(endpoints), checker.assert_ports_bound(endpoints)):
            assert len(results) == 1
            assert results[0].status is CheckStatus.WARN
            assert results[0].subject == 'port scan'


class TestNetwork:
    """Tests for the low-level network helpers."""

    def test_listener_is_enumerated(self, listener):
        assert listener in get_listening_ports()

    def test_free_port_is_not_enumerated(self, free_port):
        assert free_port not in get_listening_ports()

    def test_accepts_connections(self, listener, free_port):
        assert accepts_connections('127.0.0.1', listener, timeout=1) is True
        assert accepts_connections('127.0.0.1', free_port, timeout=1) is False

    @pytest.mark.parametrize('timeout', [0, -1])
    def test_accepts_connections_needs_positive_timeout(self, listener, timeout):
        with pytest.raises(ValueError):
            accepts_connections('127.0.0.1', listener, timeout=timeout)


class TestManifest:
    """Tests for locating the compose manifest."""

    def test_finds_default_name(self, compose_dir):
        path = resolve_manifest(str(compose_dir))
        assert path.endswith('docker-compose.yaml')

    def test_finds_alternative_name(self, tmp_path):
        (tmp_path / 'compose.yml').write_text('services: {}\n')
        assert resolve_manifest(str(tmp_path)).endswith('compose.yml')

    def test_explicit_file(self, tmp_path):
        (tmp_path / 'stack.yaml').write_text('services: {}\n')
        assert resolve_manifest(str(tmp_path), 'stack.yaml').endswith('stack.yaml')

    def test_missing_manifest_is_fatal(self, tmp_path):
        with pytest.raises(FatalPreconditionError) as exc_info:
            resolve_manifest(str(tmp_path))
        assert exc_info.value.subject == 'manifest'


class TestOrchestrationDriver:
    """Tests for the compose driver."""

    def _driver(self, compose_dir, policy=FailurePolicy.FAIL_FAST):
        return OrchestrationDriver(
            str(compose_dir),
            str(compose_dir / 'docker-compose.yaml'),
            compose_cmd=['docker', 'compose'],
            policy=policy,
        )

    def test_deploy_builds_then_starts(self, compose_dir, fake_docker):
        run = fake_docker()
        with patch('deploy_verify.core.orchestrator.run_command', side_effect=run):
            results = self._driver(compose_dir).deploy()

        assert [r.status for r in results] == [CheckStatus.OK, CheckStatus.OK]
        manifest = str(compose_dir / 'docker-compose.yaml')
        assert run.calls[0] == ['docker', 'compose', '-f', manifest, 'build']
        assert run.calls[1] == ['docker', 'compose', '-f', manifest, 'up', '-d']

    def test_fail_fast_stops_on_build_failure(self, compose_dir, fake_docker):
        run = fake_docker(build_ok=False)
        with patch('deploy_verify.core.orchestrator.run_command', side_effect=run):
            with pytest.raises(FatalPreconditionError) as exc_info:
                self._driver(compose_dir).deploy()

        assert 'failed to solve' in exc_info.value.reason
        assert not any('up' in call for call in run.calls)

    def test_best_effort_continues_after_build_failure(self, compose_dir, fake_docker):
        run = fake_docker(build_ok=False)
        with patch('deploy_verify.core.orchestrator.run_command', side_effect=run):
            results = self._driver(compose_dir, FailurePolicy.BEST_EFFORT).deploy()

        assert [r.status for r in results] == [CheckStatus.FAIL, CheckStatus.OK]

    def test_find_container_returns_first_id(self, compose_dir):
        with patch('deploy_verify.core.orchestrator.run_command') as mock_run:
            mock_run.return_value = CommandResult('docker ps', 0, stdout='abc123\ndef456\n')
            container_id = self._driver(compose_dir).find_container('nginx:alpine')

        assert container_id == 'abc123'
        assert 'ancestor=nginx:alpine' in mock_run.call_args.args[0]

    def test_find_container_none(self, compose_dir):
        with patch('deploy_verify.core.orchestrator.run_command') as mock_run:
            mock_run.return_value = CommandResult('docker ps', 0, stdout='')
            assert self._driver(compose_dir).find_container('nginx:alpine') is None

    def test_listing_failure_is_warn(self, compose_dir):
        with patch('deploy_verify.core.orchestrator.run_command') as mock_run:
            mock_run.return_value = CommandResult('docker images', 1, stderr='Cannot connect to the Docker daemon')
            result = self._driver(compose_dir).list_images()

        assert result.status is CheckStatus.WARN
        assert 'Cannot connect' in result.detail


class TestMetadataExtractor:
    """Tests for image metadata extraction."""

    def _driver(self, inspect_result, container_id='abc123'):
        driver = Mock()
        driver.find_container.return_value = container_id
        driver.inspect_image.return_value = inspect_result
        return driver

    def test_extract_writes_report(self, tmp_path, inspect_output):
        driver = self._driver(CommandResult('docker image inspect', 0, stdout=inspect_output))
        report_path = tmp_path / 'nginx-logs.txt'
        raw_path = tmp_path / 'nginx-logs.json'

        metadata, results = MetadataExtractor(
            driver, 'nginx:alpine', str(report_path), str(raw_path)
        ).run()

        assert isinstance(metadata, ImageMetadata)
        assert metadata.repo_tags == ['nginx:alpine']
        assert all(r.status is CheckStatus.OK for r in results)

        text = report_path.read_text()
        for label in ('RepoTags:', 'Created:', 'Os:', 'Config:', 'ExposedPorts:'):
            assert label in text
        assert raw_path.read_text() == inspect_output

    @pytest.mark.parametrize('output', ['', '[]', '{not json', '{"Id": "sha256:abc"}'])
    def test_malformed_payload_is_warn(self, tmp_path, output):
        driver = self._driver(CommandResult('docker image inspect', 0, stdout=output))
        report_path = tmp_path / 'nginx-logs.txt'

        metadata, results = MetadataExtractor(driver, 'nginx:alpine', str(report_path), None).run()

        assert metadata is None
        assert results[-1].status is CheckStatus.WARN
        assert not report_path.exists()

    def test_missing_container_is_warn(self, tmp_path, inspect_output):
        driver = self._driver(
            CommandResult('docker image inspect', 0, stdout=inspect_output), container_id=None
        )

        metadata, results = MetadataExtractor(
            driver, 'nginx:alpine', str(tmp_path / 'report.txt'), None
        ).run()

        assert results[0].status is CheckStatus.WARN
        assert metadata is not None

    def test_inspect_failure_is_warn(self, tmp_path):
        driver = self._driver(CommandResult(
            'docker image inspect', 1, stderr='Error: No such image: nginx:alpine'
        ))

        metadata, results = MetadataExtractor(
            driver, 'nginx:alpine', str(tmp_path / 'report.txt'), None
        ).run()

        assert metadata is None
        assert results[-1].status is CheckStatus.WARN
        assert 'No such image' in results[-1].detail
