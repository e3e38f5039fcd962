# -*- coding: utf-8 -*-
"""
ConoHa API 客户端模块

功能：
- 每次请求前确认 token 有效（由 TokenManager 负责续期）
- 附加 X-Auth-Token 请求头发送 GET 请求
- 从服务目录解析 account / compute / databasehosting 的 endpoint
"""

import json
import logging
from typing import Any, Dict, Optional

import requests

from provider.conoha.errors import DecodeError, EndpointNotFoundError, TransportError
from provider.conoha.token_manager import TokenManager

logger = logging.getLogger(__name__)

SERVICE_TYPES = ('account', 'compute', 'databasehosting')


class ConohaClient:
    """
    ConoHa API 客户端

    功能：
    - 持有 requests.Session 和 TokenManager
    - 不做重试，单次请求失败直接抛出异常
    """

    def __init__(
        self,
        token_manager: TokenManager,
        region: str,
        session: Optional[requests.Session] = None,
        timeout: float = 30
    ):
        """
        初始化 ConoHa 客户端

        Args:
            token_manager: Token 管理器
            region: ConoHa 区域，用于匹配服务目录中的 endpoint
            session: requests.Session（可选，默认与 TokenManager 共用）
            timeout: 请求超时时间（秒）
        """
        self.token_manager = token_manager
        self.region = region
        self.session = session or token_manager.session
        self.timeout = timeout
        self._endpoints: Dict[str, str] = {}

    def connect(self):
        """
        获取首个 token 并解析各服务的 endpoint

        服务目录只在这里读取一次。缺少的服务不会报错，
        使用时由 endpoint() 抛出 EndpointNotFoundError

        Raises:
            AuthError: 首次认证失败
        """
        self.token_manager.ensure_valid()
        catalog = self.token_manager.service_catalog

        endpoints = {}
        for service_type in SERVICE_TYPES:
            try:
                endpoints[service_type] = catalog.resolve(service_type, self.region)
                logger.info(f"{service_type} endpoint: {endpoints[service_type]}")
            except EndpointNotFoundError:
                logger.warning(f"服务目录中没有 {service_type} 服务（region={self.region}）")
        self._endpoints = endpoints

    def endpoint(self, service_type: str) -> str:
        """获取服务的 base URL"""
        try:
            return self._endpoints[service_type]
        except KeyError:
            raise EndpointNotFoundError(service_type, self.region) from None

    def has_endpoint(self, service_type: str) -> bool:
        return service_type in self._endpoints

    def get(self, service_type: str, path: str, params: Optional[Dict[str, Any]] = None) -> bytes:
        """
        发送 GET 请求

        Args:
            service_type: 服务类型（'account', 'compute', 'databasehosting'）
            path: 相对 endpoint 的路径（如 '/servers'）
            params: 查询参数（可选）

        Returns:
            响应 body

        Raises:
            AuthError: token 续期失败
            TransportError: 网络错误或非 2xx 响应
        """
        url = self.endpoint(service_type) + path
        credential = self.token_manager.ensure_valid()

        logger.debug(f"GET {url} params={params}")
        try:
            response = self.session.get(
                url,
                params=params,
                headers={'X-Auth-Token': credential.token_id, 'Accept': 'application/json'},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise TransportError(f"请求失败: GET {url}: {e}", url=url) from e

        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"请求失败: GET {url}: HTTP {response.status_code}",
                url=url,
                status_code=response.status_code
            )

        return response.content

    def get_json(self, service_type: str, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        发送 GET 请求并解析 JSON

        Raises:
            DecodeError: 响应不是 JSON 对象
        """
        body = self.get(service_type, path, params=params)
        try:
            data = json.loads(body)
        except ValueError as e:
            raise DecodeError(f"响应不是合法 JSON: {service_type} {path}: {e}") from e

        if not isinstance(data, dict):
            raise DecodeError(f"响应不是 JSON 对象: {service_type} {path}")
        return data
