# -*- coding: utf-8 -*-
"""
ConoHa Database Hosting API 客户端模块

功能：
- 获取数据库列表和单个数据库详情
- 获取数据库服务配额（GB）
"""

import logging
from typing import List

from api.conoha.models import Database, DatabaseQuota, parse_list, parse_object
from provider.conoha.client import ConohaClient

logger = logging.getLogger(__name__)

SERVICE = 'databasehosting'


class DatabaseAPI:
    """Database Hosting API 客户端"""

    def __init__(self, client: ConohaClient):
        self.client = client

    def list_databases(self) -> List[Database]:
        """获取数据库列表"""
        data = self.client.get_json(SERVICE, '/databases')
        databases = parse_list(data, 'databases', Database.from_dict)
        logger.debug(f"获取到 {len(databases)} 个数据库")
        return databases

    def database_info(self, database_id: str) -> Database:
        """获取数据库详情（用于刷新 db_size）"""
        data = self.client.get_json(SERVICE, f'/databases/{database_id}')
        return parse_object(data, 'database', Database.from_dict)

    def database_quota(self, service_id: str) -> DatabaseQuota:
        """获取数据库服务的配额和总使用量"""
        data = self.client.get_json(SERVICE, f'/services/{service_id}/quotas')
        return parse_object(data, 'quota', DatabaseQuota.from_dict)
