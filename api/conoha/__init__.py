# -*- coding: utf-8 -*-
"""
ConoHa 资源 API 模块

功能：
- 按服务封装 Compute / Database Hosting / Account API
- 将响应解析为类型化的数据结构
"""

from .compute import ComputeAPI
from .database import DatabaseAPI
from .account import AccountAPI

__all__ = ['ComputeAPI', 'DatabaseAPI', 'AccountAPI']
