# -*- coding: utf-8 -*-
"""
ConoHa Account API 客户端模块

功能：
- 获取对象存储的请求数和使用容量（rrd）
- 获取账户充值汇总
"""

import logging
from typing import Dict

from api.conoha.models import PaymentSummary, UsageSeries, parse_object
from provider.conoha.client import ConohaClient

logger = logging.getLogger(__name__)

SERVICE = 'account'


class AccountAPI:
    """
    Account API 客户端

    功能：
    - /object-storage/rrd/request: 对象存储请求数
    - /object-storage/rrd/size: 对象存储使用容量
    - /payment-summary: 充值汇总
    """

    def __init__(self, client: ConohaClient):
        self.client = client

    def object_storage_requests(self, offset: int) -> Dict[str, float]:
        """对象存储请求数（按请求方法）"""
        data = self.client.get_json(SERVICE, '/object-storage/rrd/request')
        return parse_object(data, 'request', UsageSeries.from_dict).sample(offset)

    def object_storage_usage(self, offset: int) -> Dict[str, float]:
        """对象存储使用容量"""
        data = self.client.get_json(SERVICE, '/object-storage/rrd/size')
        return parse_object(data, 'size', UsageSeries.from_dict).sample(offset)

    def payment_summary(self) -> PaymentSummary:
        """账户充值汇总"""
        data = self.client.get_json(SERVICE, '/payment-summary')
        return parse_object(data, 'payment_summary', PaymentSummary.from_dict)
