# -*- coding: utf-8 -*-
"""
配置验证模块

功能：
- 验证配置的完整性和正确性
- 检查必填字段
- 验证字段格式和取值范围
"""

from dataclasses import fields
from typing import Tuple

from config.loader import CollectorToggles, ExporterConfig

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'WARN', 'ERROR', 'CRITICAL']


def validate_config(config: ExporterConfig) -> Tuple[bool, str]:
    """
    验证配置对象

    Args:
        config: 配置对象

    Returns:
        (is_valid, error_message) 元组
    """
    for name in ('region', 'tenant_id', 'username', 'password'):
        if not getattr(config, name):
            return False, f"缺少必填配置: {name}"

    if not 1 <= config.port <= 65535:
        return False, f"port 必须在 1-65535 之间: {config.port}"

    if config.interval <= 0:
        return False, f"interval 必须大于 0: {config.interval}"

    if config.usage_offset < 1:
        return False, f"usage_offset 必须 >= 1: {config.usage_offset}"

    if config.renewal_margin < 0:
        return False, f"renewal_margin 不能为负数: {config.renewal_margin}"

    if config.request_timeout <= 0:
        return False, f"request_timeout 必须大于 0: {config.request_timeout}"

    if not isinstance(config.log_level, str) or config.log_level.upper() not in VALID_LOG_LEVELS:
        return False, f"log_level 必须是以下值之一: {', '.join(VALID_LOG_LEVELS)}"

    if not any(getattr(config.collectors, f.name) for f in fields(CollectorToggles)):
        return False, "至少需要启用一个采集模块"

    return True, ''
