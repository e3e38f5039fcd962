# -*- coding: utf-8 -*-
"""
ConoHa Identity API Token 管理模块

功能：
- 通过 Identity API（password credentials）获取 token
- 在 token 过期前（默认提前 60 秒）自动重新获取
- 解析 serviceCatalog，供客户端解析各服务的 endpoint
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from provider.conoha.errors import AuthError, EndpointNotFoundError

logger = logging.getLogger(__name__)

IDENTITY_URL_TEMPLATE = 'https://identity.{region}.conoha.io/v2.0/tokens'


@dataclass(frozen=True)
class Credential:
    """当前使用的 token（只会被整体替换，不会原地修改）"""
    token_id: str
    expires_at: datetime

    def expires_within(self, margin: timedelta, now: datetime) -> bool:
        """判断 token 是否会在 margin 时间内过期"""
        return self.expires_at <= now + margin


@dataclass(frozen=True)
class CatalogEndpoint:
    """serviceCatalog 中某个区域的 endpoint"""
    region: str
    public_url: str


@dataclass(frozen=True)
class CatalogEntry:
    """serviceCatalog 中的单个服务"""
    type: str
    name: str
    endpoints: Tuple[CatalogEndpoint, ...]


@dataclass(frozen=True)
class ServiceCatalog:
    """服务目录：服务类型 -> 区域 endpoint"""
    entries: Tuple[CatalogEntry, ...]

    def resolve(self, service_type: str, region: str) -> str:
        """
        查找指定服务类型在指定区域的 publicURL

        Args:
            service_type: 服务类型（如 'account', 'compute', 'databasehosting'）
            region: 区域（如 'tyo1'）

        Returns:
            publicURL（去掉末尾的 '/'）

        Raises:
            EndpointNotFoundError: 服务目录中没有匹配的 endpoint
        """
        for entry in self.entries:
            if entry.type != service_type:
                continue
            for endpoint in entry.endpoints:
                if endpoint.region == region:
                    return endpoint.public_url.rstrip('/')
        raise EndpointNotFoundError(service_type, region)

    def service_types(self) -> List[str]:
        return [entry.type for entry in self.entries]


def parse_timestamp(value: Any) -> datetime:
    """
    解析 RFC3339 时间字符串（如 '2015-05-19T07:08:21Z'）

    没有时区信息时按 UTC 处理
    """
    if not isinstance(value, str) or not value:
        raise ValueError(f"时间格式错误: {value!r}")
    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_token_response(data: Any) -> Tuple[Credential, ServiceCatalog]:
    """
    解析 Identity API 的响应

    Args:
        data: 响应 JSON（已解码）

    Returns:
        (Credential, ServiceCatalog) 元组

    Raises:
        AuthError: 缺少字段或字段类型错误
    """
    try:
        access = data['access']
        token = access['token']
        token_id = token['id']
        if not isinstance(token_id, str) or not token_id:
            raise ValueError("access.token.id 必须是非空字符串")
        expires_at = parse_timestamp(token['expires'])

        raw_catalog = access.get('serviceCatalog', [])
        if not isinstance(raw_catalog, list):
            raise ValueError("access.serviceCatalog 必须是列表类型")

        entries = []
        for idx, service in enumerate(raw_catalog):
            if not isinstance(service, dict):
                raise ValueError(f"serviceCatalog[{idx}] 必须是字典类型")
            endpoints = []
            for endpoint in service.get('endpoints', []):
                endpoints.append(CatalogEndpoint(
                    region=str(endpoint['region']),
                    public_url=str(endpoint['publicURL'])
                ))
            entries.append(CatalogEntry(
                type=str(service['type']),
                name=str(service.get('name', '')),
                endpoints=tuple(endpoints)
            ))
    except (KeyError, TypeError, ValueError) as e:
        raise AuthError(f"Identity API 响应格式错误: {e}") from e

    return Credential(token_id=token_id, expires_at=expires_at), ServiceCatalog(entries=tuple(entries))


class TokenManager:
    """
    Token 管理器

    状态：Absent -> Valid -> Expiring -> Renewing -> Valid
    Renewing 失败时保留旧 token，抛出 AuthError，下次调用重新申请
    """

    def __init__(
        self,
        region: str,
        tenant_id: str,
        username: str,
        password: str,
        renewal_margin: float = 60,
        identity_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        初始化 Token 管理器

        Args:
            region: ConoHa 区域（如 'tyo1'）
            tenant_id: 租户 ID
            username: API 用户名
            password: API 密码
            renewal_margin: 提前续期时间（秒），默认 60
            identity_url: Identity API 地址（默认按区域拼接）
            session: requests.Session（可选，便于测试注入）
            timeout: 请求超时时间（秒）
            clock: 返回当前 UTC 时间的函数（可选，便于测试注入）
        """
        self.region = region
        self.tenant_id = tenant_id
        self.username = username
        self._password = password
        self.renewal_margin = timedelta(seconds=renewal_margin)
        self.identity_url = identity_url or IDENTITY_URL_TEMPLATE.format(region=region)
        self.session = session or requests.Session()
        self.timeout = timeout
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._lock = threading.Lock()
        self._credential: Optional[Credential] = None
        self._catalog: Optional[ServiceCatalog] = None

    @property
    def current(self) -> Optional[Credential]:
        """最近一次签发的 token（可能已过期），从未签发时为 None"""
        return self._credential

    @property
    def service_catalog(self) -> Optional[ServiceCatalog]:
        return self._catalog

    def needs_renewal(self, now: Optional[datetime] = None) -> bool:
        """判断是否需要重新获取 token"""
        credential = self._credential
        if credential is None:
            return True
        return credential.expires_within(self.renewal_margin, now or self._clock())

    def ensure_valid(self) -> Credential:
        """
        返回可用的 token，必要时重新获取

        Returns:
            当前有效的 Credential

        Raises:
            AuthError: Identity API 交换失败
        """
        with self._lock:
            if not self.needs_renewal():
                return self._credential

            if self._credential is None:
                logger.info(f"获取 token: region={self.region}, tenant_id={self.tenant_id}")
            else:
                logger.info(f"Token 即将过期（{self._credential.expires_at.isoformat()}），重新获取...")

            credential, catalog = self._request_new_token()
            self._credential = credential
            self._catalog = catalog
            logger.info(f"Token 获取成功，过期时间: {credential.expires_at.isoformat()}")
            return credential

    def _build_request_body(self) -> Dict[str, Any]:
        return {
            'auth': {
                'passwordCredentials': {
                    'username': self.username,
                    'password': self._password
                },
                'tenantId': self.tenant_id
            }
        }

    def _request_new_token(self) -> Tuple[Credential, ServiceCatalog]:
        try:
            response = self.session.post(
                self.identity_url,
                json=self._build_request_body(),
                headers={'Accept': 'application/json'},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Identity API 请求失败: url={self.identity_url}, error={e}")
            raise AuthError(f"Identity API 请求失败: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.error(f"Identity API 返回错误: status={response.status_code}")
            raise AuthError(f"Identity API 返回 HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise AuthError(f"Identity API 响应不是合法 JSON: {e}") from e

        return parse_token_response(data)
