# -*- coding: utf-8 -*-
"""
ConoHa API 错误定义模块

功能：
- 定义认证、传输、解析三类错误
- 采集循环根据错误类型统计失败次数
"""

from typing import Optional


class ConohaError(Exception):
    """ConoHa API 调用错误基类"""

    error_type = 'unknown'


class AuthError(ConohaError):
    """Identity API 交换 token 失败（网络错误、非 2xx 响应、响应无法解析）"""

    error_type = 'auth'


class TransportError(ConohaError):
    """
    资源 API 请求失败

    网络层错误时 status_code 为 None，非 2xx 响应时为 HTTP 状态码
    """

    error_type = 'transport'

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class DecodeError(ConohaError):
    """响应 JSON 与预期结构不一致（缺少字段或类型错误）"""

    error_type = 'decode'


class EndpointNotFoundError(ConohaError):
    """服务目录中找不到指定类型和区域的 endpoint"""

    error_type = 'endpoint'

    def __init__(self, service_type: str, region: str):
        super().__init__(f"服务目录中找不到 endpoint: type={service_type}, region={region}")
        self.service_type = service_type
        self.region = region
