# -*- coding: utf-8 -*-
"""
测试公共 fixture

FakeConoha 替代 requests.Session，按 URL 返回预设的 ConoHa API 响应
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import requests

from provider.conoha.client import ConohaClient
from provider.conoha.token_manager import TokenManager

REGION = 'tyo1'
TENANT_ID = 'tenant-1'
IDENTITY_URL = 'https://identity.tyo1.conoha.io/v2.0/tokens'
ACCOUNT_URL = 'https://account.tyo1.conoha.io/v1/tenant-1'
COMPUTE_URL = 'https://compute.tyo1.conoha.io/v2/tenant-1'
DATABASE_URL = 'https://database-hosting.tyo1.conoha.io/v1'

NOW = datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


class Clock:
    """可手动推进的时钟"""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now = self.now + timedelta(seconds=seconds)


def make_response(payload=None, status_code=200, body=None):
    """构造 requests.Response 替身"""
    if body is None:
        body = json.dumps(payload).encode('utf-8')
    response = MagicMock()
    response.status_code = status_code
    response.content = body
    response.text = body.decode('utf-8', errors='replace')
    response.json.side_effect = lambda: json.loads(body)
    return response


def service_catalog(region: str = REGION):
    return [
        {'type': 'account', 'name': 'Account Service',
         'endpoints': [{'region': region, 'publicURL': ACCOUNT_URL}]},
        {'type': 'compute', 'name': 'Compute Service',
         'endpoints': [{'region': 'sin1', 'publicURL': 'https://compute.sin1.conoha.io/v2/tenant-1'},
                       {'region': region, 'publicURL': COMPUTE_URL}]},
        {'type': 'databasehosting', 'name': 'Database Hosting Service',
         'endpoints': [{'region': region, 'publicURL': DATABASE_URL + '/'}]},
    ]


def token_payload(token_id: str, expires: datetime):
    return {
        'access': {
            'token': {
                'id': token_id,
                'issued_at': '2026-01-01T00:00:00.000000',
                'expires': expires.strftime('%Y-%m-%dT%H:%M:%SZ'),
            },
            'serviceCatalog': service_catalog(),
            'user': {'name': 'api-user'},
        }
    }


def usage_payload(key: str, schema, rows):
    return {key: {'schema': list(schema), 'data': [list(row) for row in rows]}}


def series_rows(count: int, *columns):
    """
    生成 count 行 rrd 数据：第 i 行为 [unixtime, column(i) ...]

    columns 为 i -> value 的函数
    """
    return [[1700000000 + i * 60] + [float(column(i)) for column in columns] for i in range(count)]


class FakeConoha:
    """
    requests.Session 替身

    - POST 到 Identity API 时签发 token-1, token-2 ...
    - GET 时按完整 URL（含查询参数）查找预设响应，并记录调用
    """

    def __init__(self, token_expires: datetime = NOW + timedelta(hours=24)):
        self.token_expires = token_expires
        self.token_status = 200
        self.token_error = None
        self.token_requests = 0
        self.routes = {}
        self.calls = []

        self.session = MagicMock(spec=requests.Session)
        self.session.get.side_effect = self._get
        self.session.post.side_effect = self._post

    def route(self, url: str, payload=None, status_code: int = 200, error: Exception = None, body: bytes = None):
        self.routes[url] = (payload, status_code, error, body)

    def count(self, url: str) -> int:
        return self.calls.count(url)

    def _post(self, url, json=None, headers=None, timeout=None):
        if self.token_error is not None:
            raise self.token_error
        self.token_requests += 1
        if self.token_status != 200:
            return make_response({'error': 'unauthorized'}, status_code=self.token_status)
        return make_response(token_payload(f'token-{self.token_requests}', self.token_expires))

    def _get(self, url, params=None, headers=None, timeout=None):
        key = url
        if params:
            key += '?' + '&'.join(f'{name}={value}' for name, value in sorted(params.items()))
        self.calls.append(key)

        if key not in self.routes:
            return make_response({'error': 'not found'}, status_code=404)

        payload, status_code, error, body = self.routes[key]
        if error is not None:
            raise error
        return make_response(payload, status_code=status_code, body=body)


def install_default_routes(fake: FakeConoha):
    """
    预设一套完整的 ConoHa 环境：

    - 2 台服务器（web-1 有 1 块网卡，db-1 没有网卡）
    - 3 个数据库，service_id 分别为 a, a, b
    - 对象存储和充值汇总

    rrd 数据均为 10 行，取 rows[len-3] 即第 7 行
    """
    fake.route(f'{COMPUTE_URL}/servers', {'servers': [
        {'id': 'srv-1', 'name': 'web-1', 'links': []},
        {'id': 'srv-2', 'name': 'db-1', 'links': []},
    ]})
    fake.route(f'{COMPUTE_URL}/servers/srv-1/os-interface', {'interfaceAttachments': [
        {'port_id': 'port-1', 'mac_addr': '02:01:aa:bb:cc:dd', 'net_id': 'net-1', 'port_state': 'ACTIVE',
         'fixed_ips': [{'ip_address': '203.0.113.10', 'subnet_id': 'subnet-1'}]},
    ]})
    fake.route(f'{COMPUTE_URL}/servers/srv-2/os-interface', {'interfaceAttachments': []})

    for server_id, factor in (('srv-1', 1), ('srv-2', 2)):
        fake.route(f'{COMPUTE_URL}/servers/{server_id}/rrd/cpu',
                   usage_payload('cpu', ['unixtime', 'value'], series_rows(10, lambda i, f=factor: i * f)))
        fake.route(f'{COMPUTE_URL}/servers/{server_id}/rrd/disk',
                   usage_payload('disk', ['unixtime', 'read', 'write'],
                                 series_rows(10, lambda i, f=factor: i * 100 * f, lambda i, f=factor: i * 200 * f)))
    fake.route(f'{COMPUTE_URL}/servers/srv-1/rrd/interface?port_id=port-1',
               usage_payload('interface', ['unixtime', 'rx', 'tx'],
                             series_rows(10, lambda i: i * 1000, lambda i: i * 2000)))

    databases = [
        {'database_id': 'db-1', 'db_name': 'app_main', 'db_size': 0.5, 'service_id': 'a', 'status': 'Ready', 'type': 'mysql'},
        {'database_id': 'db-2', 'db_name': 'app_log', 'db_size': 1.25, 'service_id': 'a', 'status': 'Ready', 'type': 'mysql'},
        {'database_id': 'db-3', 'db_name': 'blog', 'db_size': 0.1, 'service_id': 'b', 'status': 'Ready', 'type': 'postgresql'},
    ]
    fake.route(f'{DATABASE_URL}/databases', {'total_count': 3, 'current_count': 3, 'databases': databases})
    for database in databases:
        detail = dict(database, db_size=database['db_size'] + 0.01, charset='utf8', memo='')
        fake.route(f"{DATABASE_URL}/databases/{database['database_id']}", {'database': detail})
    fake.route(f'{DATABASE_URL}/services/a/quotas', {'quota': {'total_usage': 1.77, 'quota': 10}})
    fake.route(f'{DATABASE_URL}/services/b/quotas', {'quota': {'total_usage': 0.11, 'quota': 5}})

    fake.route(f'{ACCOUNT_URL}/object-storage/rrd/request',
               usage_payload('request', ['unixtime', 'get', 'put', 'delete'],
                             series_rows(10, lambda i: i * 10, lambda i: i * 3, lambda i: i)))
    fake.route(f'{ACCOUNT_URL}/object-storage/rrd/size',
               usage_payload('size', ['unixtime', 'value'], series_rows(10, lambda i: i * 1024)))
    fake.route(f'{ACCOUNT_URL}/payment-summary', {'payment_summary': {'total_deposit_amount': 5000}})


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def conoha():
    fake = FakeConoha()
    install_default_routes(fake)
    return fake


@pytest.fixture
def token_manager(conoha, clock):
    return TokenManager(
        region=REGION,
        tenant_id=TENANT_ID,
        username='api-user',
        password='secret',
        session=conoha.session,
        clock=clock
    )


@pytest.fixture
def client(token_manager):
    conoha_client = ConohaClient(token_manager, region=REGION)
    conoha_client.connect()
    return conoha_client
