# -*- coding: utf-8 -*-
"""
响应数据结构解析测试
"""

import math

import pytest

from api.conoha.models import Database, DatabaseQuota, Interface, PaymentSummary, Server, UsageSeries
from provider.conoha.errors import DecodeError

from tests.conftest import series_rows


class TestUsageSeries:

    def test_sample_three_rows_back(self):
        rows = [[float(i), float(i)] for i in range(10)]
        rows[7] = [5.0, 7.0]
        series = UsageSeries.from_dict({'schema': ['read', 'write'], 'data': rows})

        assert series.sample(3) == {'read': 5.0, 'write': 7.0}

    def test_sample_configurable_offset(self):
        series = UsageSeries.from_dict({
            'schema': ['unixtime', 'value'],
            'data': series_rows(10, lambda i: i * 2),
        })

        assert series.sample(5)['value'] == 10.0
        assert series.sample(1)['value'] == 18.0

    def test_not_enough_rows(self):
        series = UsageSeries.from_dict({'schema': ['value'], 'data': [[1], [2]]})

        with pytest.raises(DecodeError):
            series.sample(3)

    def test_invalid_offset(self):
        series = UsageSeries.from_dict({'schema': ['value'], 'data': [[1]]})

        with pytest.raises(ValueError):
            series.sample(0)

    def test_null_value_is_nan(self):
        series = UsageSeries.from_dict({'schema': ['unixtime', 'value'], 'data': [[1, None], [2, 3], [3, 4]]})

        assert math.isnan(series.sample(3)['value'])

    @pytest.mark.parametrize('data', [
        {'schema': ['value']},
        {'data': [[1]]},
        {'schema': 'value', 'data': [[1]]},
        {'schema': ['value'], 'data': [['1']]},
        {'schema': ['value'], 'data': [[True]]},
        {'schema': ['a', 'b'], 'data': [[1]]},
        {'schema': [1], 'data': [[1]]},
        [],
    ])
    def test_malformed(self, data):
        with pytest.raises(DecodeError):
            UsageSeries.from_dict(data)


class TestResourceRecords:

    def test_server(self):
        server = Server.from_dict({'id': 'srv-1', 'name': 'web-1', 'links': []})

        assert server == Server(id='srv-1', name='web-1')
        assert server.interfaces == ()

    def test_interface(self):
        interface = Interface.from_dict({'port_id': 'p', 'mac_addr': '02:00:00:00:00:01', 'net_id': None})

        assert interface.mac_addr == '02:00:00:00:00:01'
        assert interface.net_id == ''

    def test_database(self):
        database = Database.from_dict({
            'database_id': 'db-1', 'db_name': 'app', 'db_size': 1, 'service_id': 'svc',
            'status': 'Ready', 'internal_hostname': 'mysql-1.internal',
        })

        assert database.db_size == 1.0
        assert database.internal_hostname == 'mysql-1.internal'
        assert database.memo == ''

    @pytest.mark.parametrize('field, value', [
        ('database_id', None),
        ('db_size', '1.5'),
        ('db_size', True),
        ('service_id', 42),
        ('status', 1),
    ])
    def test_database_type_errors(self, field, value):
        data = {'database_id': 'db-1', 'db_name': 'app', 'db_size': 1.5, 'service_id': 'svc', 'status': 'Ready'}
        data[field] = value

        with pytest.raises(DecodeError):
            Database.from_dict(data)

    def test_database_missing_field(self):
        with pytest.raises(DecodeError):
            Database.from_dict({'database_id': 'db-1', 'db_name': 'app', 'service_id': 'svc'})

    def test_quota(self):
        assert DatabaseQuota.from_dict({'total_usage': 1.5, 'quota': 10}) == DatabaseQuota(total_usage=1.5, quota=10.0)

        with pytest.raises(DecodeError):
            DatabaseQuota.from_dict({'total_usage': 1.5})

    def test_payment_summary(self):
        summary = PaymentSummary.from_dict({'total_deposit_amount': 3000})

        assert summary.total_deposit_amount == 3000.0
