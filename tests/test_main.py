# -*- coding: utf-8 -*-
"""
HTTP 端点和启动流程测试
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from prometheus_client import CONTENT_TYPE_LATEST

import main
from collector import ConohaCollector, SnapshotExporter
from config.loader import ENV_MAPPING, ExporterConfig
from scheduler import RefreshScheduler

from tests.conftest import COMPUTE_URL, REGION, TENANT_ID


@pytest.fixture
def collector(client):
    return ConohaCollector(client)


@pytest.fixture
def http(monkeypatch):
    monkeypatch.setattr(main, 'exporter', None)
    monkeypatch.setattr(main, 'scheduler', None)
    return main.app.test_client()


@pytest.fixture
def clean_env(monkeypatch):
    for env_name in ENV_MAPPING:
        monkeypatch.delenv(env_name, raising=False)


class TestEndpoints:

    def test_index(self, http):
        response = http.get('/')

        assert response.status_code == 200
        assert b'/metrics' in response.data

    def test_metrics_not_initialized(self, http):
        response = http.get('/metrics')

        assert response.status_code == 200
        assert response.data == b'# Exporter not initialized\n'

    def test_metrics(self, http, monkeypatch, collector):
        monkeypatch.setattr(main, 'exporter', SnapshotExporter(collector))
        collector.refresh()

        response = http.get('/metrics')

        assert response.status_code == 200
        assert response.headers['Content-Type'] == CONTENT_TYPE_LATEST
        assert b'conoha_cpu{instance="web-1"} 7.0' in response.data

    def test_metrics_include_runtime_collectors(self, http, monkeypatch, collector):
        monkeypatch.setattr(main, 'exporter', SnapshotExporter(collector, registry=main.build_registry()))
        collector.refresh()

        data = http.get('/metrics').data

        assert b'python_info{' in data
        assert b'python_gc_objects_collected_total' in data
        assert b'conoha_cpu{instance="web-1"} 7.0' in data

    def test_health_starting(self, http, monkeypatch, collector):
        monkeypatch.setattr(main, 'exporter', SnapshotExporter(collector))
        monkeypatch.setattr(main, 'scheduler', RefreshScheduler(collector.refresh, interval=70))

        data = http.get('/health').get_json()

        assert data['status'] == 'starting'
        assert data['snapshot']['generation'] == 0
        assert data['scheduler']['interval'] == 70

    def test_health_after_refresh(self, http, monkeypatch, collector):
        monkeypatch.setattr(main, 'exporter', SnapshotExporter(collector))
        collector.refresh()

        data = http.get('/health').get_json()

        assert data['status'] == 'healthy'
        assert data['snapshot']['generation'] == 1
        assert data['snapshot']['by_metric']['conoha_deposit'] == 1


class TestStartup:

    def test_parse_args(self):
        args = main.parse_args(['--port', '9100', '--tenant-id', 't', '--log-level', 'DEBUG'])

        assert args.port == 9100
        assert args.tenant_id == 't'
        assert args.log_level == 'DEBUG'
        assert args.region is None
        assert args.config is None

    def test_missing_credentials_exit(self, clean_env):
        with pytest.raises(SystemExit) as exc_info:
            main.main(['--region', REGION])

        assert exc_info.value.code == 1

    def test_missing_config_file_exit(self, clean_env, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main.main(['--config', str(tmp_path / 'missing.yaml')])

        assert exc_info.value.code == 1

    def test_auth_failure_exit(self, clean_env, monkeypatch, conoha):
        conoha.token_status = 401
        monkeypatch.setattr('requests.Session', lambda: conoha.session)

        with pytest.raises(SystemExit) as exc_info:
            main.main(['--tenant-id', TENANT_ID, '--username', 'u', '--password', 'p'])

        assert exc_info.value.code == 1

    def test_build_collector(self, monkeypatch, conoha):
        conoha.token_expires = datetime.now(timezone.utc) + timedelta(hours=24)
        monkeypatch.setattr('requests.Session', lambda: conoha.session)
        config = ExporterConfig(tenant_id=TENANT_ID, username='api-user', password='secret')

        collector = main.build_collector(config)

        assert conoha.count(f'{COMPUTE_URL}/servers') == 1
        assert collector.refresh().generation == 1

    def test_main_starts_server(self, clean_env, monkeypatch, http, collector):
        monkeypatch.setenv('CONOHA_TENANT_ID', TENANT_ID)
        monkeypatch.setenv('CONOHA_USERNAME', 'api-user')
        monkeypatch.setenv('CONOHA_PASSWORD', 'secret')
        monkeypatch.setattr(main, 'build_collector', lambda config: collector)
        run = MagicMock()
        monkeypatch.setattr(main.app, 'run', run)

        main.main(['--port', '9100'])

        assert run.call_args[1]['port'] == 9100
        assert main.exporter is not None
        assert b'python_info' in main.exporter.render()
        assert main.scheduler.get_status()['thread_alive'] is False
