# -*- coding: utf-8 -*-
"""
Exporter 配置加载模块

功能：
- 从 YAML 文件加载配置
- 环境变量覆盖 YAML 配置，命令行参数覆盖环境变量
- 定义清晰的数据结构（ExporterConfig / CollectorToggles）
- 读取失败时给出明确错误
"""

import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional

import yaml


@dataclass
class CollectorToggles:
    """各采集模块开关"""
    compute: bool = True
    database: bool = True
    object_storage: bool = True
    billing: bool = True


@dataclass
class ExporterConfig:
    """Exporter 配置的根数据结构"""
    region: str = 'tyo1'             # ConoHa 区域
    tenant_id: str = ''              # 租户 ID
    username: str = ''               # API 用户名
    password: str = ''               # API 密码
    port: int = 3000                 # HTTP 监听端口
    interval: float = 70             # 采集间隔（秒）
    usage_offset: int = 3            # 使用量从末尾往前取第几行
    inventory_ttl: float = 0         # 资源清单缓存时间（秒）
    renewal_margin: float = 60       # token 提前续期时间（秒）
    request_timeout: float = 30      # HTTP 请求超时时间（秒）
    identity_url: Optional[str] = None
    log_level: str = 'INFO'
    collectors: CollectorToggles = field(default_factory=CollectorToggles)


# 环境变量 -> 配置字段
ENV_MAPPING = {
    'CONOHA_REGION': 'region',
    'CONOHA_TENANT_ID': 'tenant_id',
    'CONOHA_USERNAME': 'username',
    'CONOHA_PASSWORD': 'password',
    'PORT': 'port',
    'CONOHA_INTERVAL': 'interval',
    'CONOHA_USAGE_OFFSET': 'usage_offset',
    'CONOHA_INVENTORY_TTL': 'inventory_ttl',
    'CONOHA_IDENTITY_URL': 'identity_url',
    'CONOHA_LOG_LEVEL': 'log_level',
}

_INT_FIELDS = {'port', 'usage_offset'}
_FLOAT_FIELDS = {'interval', 'inventory_ttl', 'renewal_margin', 'request_timeout'}
_STR_FIELDS = {'region', 'tenant_id', 'username', 'password', 'identity_url', 'log_level'}
_NULLABLE_FIELDS = {'identity_url'}


def load_exporter_config(
    config_path: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> ExporterConfig:
    """
    加载 Exporter 配置

    优先级：默认值 < YAML 文件 < 环境变量 < overrides（命令行参数）

    Args:
        config_path: YAML 配置文件路径（可选）
        env: 环境变量（默认 os.environ）
        overrides: 命令行参数，值为 None 的项会被忽略

    Returns:
        ExporterConfig 对象

    Raises:
        FileNotFoundError: 文件不存在
        yaml.YAMLError: YAML 解析错误
        ValueError: 配置格式错误
    """
    config = ExporterConfig()

    if config_path:
        _apply(config, _read_yaml(config_path), source=config_path)

    env = os.environ if env is None else env
    env_values = {}
    for env_name, field_name in ENV_MAPPING.items():
        value = env.get(env_name)
        if value not in (None, ''):
            env_values[field_name] = value
    _apply(config, env_values, source='环境变量')

    if overrides:
        _apply(config, {key: value for key, value in overrides.items() if value is not None}, source='命令行参数')

    return config


def _read_yaml(config_path: str) -> Dict[str, Any]:
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"配置文件不存在: {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            content = f.read()
    except IOError as e:
        raise IOError(f"无法读取配置文件 {config_path}: {e}")

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"YAML 解析失败: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("配置格式错误: 根节点必须是字典类型")
    return data


def _apply(config: ExporterConfig, values: Dict[str, Any], source: str):
    """将 values 写入 config，进行类型转换和检查"""
    known = {f.name for f in fields(ExporterConfig)}

    for key, value in values.items():
        if key not in known:
            raise ValueError(f"配置格式错误（{source}）: 未知字段 '{key}'")

        if key == 'collectors':
            config.collectors = _parse_collectors(value, config.collectors, source)
            continue

        try:
            setattr(config, key, _convert(key, value))
        except (TypeError, ValueError) as e:
            raise ValueError(f"配置格式错误（{source}）: '{key}': {e}")


def _convert(key: str, value: Any) -> Any:
    if key in _INT_FIELDS:
        if isinstance(value, bool):
            raise ValueError("必须是整数")
        if isinstance(value, float) and not value.is_integer():
            raise ValueError("必须是整数")
        return int(value)
    if key in _FLOAT_FIELDS:
        if isinstance(value, bool):
            raise ValueError("必须是数值")
        return float(value)
    if key in _STR_FIELDS:
        if value is None:
            if key in _NULLABLE_FIELDS:
                return None
            raise ValueError("不能为空")
        if isinstance(value, (dict, list)):
            raise ValueError("必须是字符串")
        return str(value)
    return value


def _parse_collectors(value: Any, current: CollectorToggles, source: str) -> CollectorToggles:
    if not isinstance(value, dict):
        raise ValueError(f"配置格式错误（{source}）: 'collectors' 必须是字典类型")

    known = {f.name for f in fields(CollectorToggles)}
    toggles = CollectorToggles(**{name: getattr(current, name) for name in known})
    for name, enabled in value.items():
        if name not in known:
            raise ValueError(f"配置格式错误（{source}）: 未知采集模块 'collectors.{name}'")
        if not isinstance(enabled, bool):
            raise ValueError(f"配置格式错误（{source}）: 'collectors.{name}' 必须是布尔值")
        setattr(toggles, name, enabled)
    return toggles


def print_exporter_config(config: ExporterConfig):
    """
    打印配置结构（用于调试和验证，不打印密码）

    Args:
        config: ExporterConfig 对象
    """
    print("=" * 60)
    print("Exporter 配置")
    print("=" * 60)
    print(f"  region: {config.region}")
    print(f"  tenant_id: {config.tenant_id}")
    print(f"  username: {config.username}")
    print(f"  password: {'******' if config.password else '(未设置)'}")
    print(f"  port: {config.port}")
    print(f"  interval: {config.interval} 秒")
    print(f"  usage_offset: {config.usage_offset}")
    print(f"  inventory_ttl: {config.inventory_ttl} 秒")
    print(f"  renewal_margin: {config.renewal_margin} 秒")
    print(f"  request_timeout: {config.request_timeout} 秒")
    enabled = [f.name for f in fields(CollectorToggles) if getattr(config.collectors, f.name)]
    print(f"  collectors: {enabled}")
    print("=" * 60)
