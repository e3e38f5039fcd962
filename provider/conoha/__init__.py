# -*- coding: utf-8 -*-
"""
ConoHa Provider 模块

功能：
- Identity API token 获取和自动续期
- 带认证的 API 客户端
- 错误类型定义
"""

from .errors import ConohaError, AuthError, TransportError, DecodeError, EndpointNotFoundError
from .token_manager import TokenManager, Credential, ServiceCatalog
from .client import ConohaClient

__all__ = [
    'ConohaError',
    'AuthError',
    'TransportError',
    'DecodeError',
    'EndpointNotFoundError',
    'TokenManager',
    'Credential',
    'ServiceCatalog',
    'ConohaClient',
]
