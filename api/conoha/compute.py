# -*- coding: utf-8 -*-
"""
ConoHa Compute API 客户端模块

功能：
- 获取服务器列表及其网卡
- 获取 CPU / 磁盘 / 网卡的使用量（rrd）
"""

import logging
from dataclasses import replace
from typing import Dict, List

from api.conoha.models import Interface, Server, UsageSeries, parse_list, parse_object
from provider.conoha.client import ConohaClient

logger = logging.getLogger(__name__)

SERVICE = 'compute'


class ComputeAPI:
    """
    Compute API 客户端

    功能：
    - 调用 /servers 和 /servers/{id}/os-interface 获取实例清单
    - 调用 /servers/{id}/rrd/{metric} 获取使用量
    """

    def __init__(self, client: ConohaClient):
        """
        初始化 Compute API 客户端

        Args:
            client: ConoHa API 客户端
        """
        self.client = client

    def list_servers(self) -> List[Server]:
        """
        获取服务器列表（包含网卡信息）

        Returns:
            服务器列表，每台服务器的 interfaces 已填充
        """
        data = self.client.get_json(SERVICE, '/servers')
        servers = parse_list(data, 'servers', Server.from_dict)

        result = []
        for server in servers:
            interfaces = self.list_interfaces(server.id)
            result.append(replace(server, interfaces=tuple(interfaces)))

        logger.debug(f"获取到 {len(result)} 台服务器")
        return result

    def list_interfaces(self, server_id: str) -> List[Interface]:
        """获取服务器的网卡列表"""
        data = self.client.get_json(SERVICE, f'/servers/{server_id}/os-interface')
        return parse_list(data, 'interfaceAttachments', Interface.from_dict)

    def _usage(self, server_id: str, metric: str, offset: int, params=None) -> Dict[str, float]:
        data = self.client.get_json(SERVICE, f'/servers/{server_id}/rrd/{metric}', params=params)
        series = parse_object(data, metric, UsageSeries.from_dict)
        return series.sample(offset)

    def cpu_usage(self, server: Server, offset: int) -> Dict[str, float]:
        """CPU 使用量，包含 'value' 字段"""
        return self._usage(server.id, 'cpu', offset)

    def disk_usage(self, server: Server, offset: int) -> Dict[str, float]:
        """磁盘 IO，包含 'read' / 'write' 字段"""
        return self._usage(server.id, 'disk', offset)

    def interface_usage(self, server: Server, interface: Interface, offset: int) -> Dict[str, float]:
        """网卡流量，包含 'rx' / 'tx' 字段"""
        return self._usage(server.id, 'interface', offset, params={'port_id': interface.port_id})
