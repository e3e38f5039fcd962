# -*- coding: utf-8 -*-
"""
ConoHa API 响应数据结构

功能：
- 定义服务器、网卡、数据库、配额、使用量序列等数据结构
- 严格解析 JSON，缺少字段或类型错误时抛出 DecodeError
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from provider.conoha.errors import DecodeError

_NUMBER_TYPES = (int, float)


def _require(data: Any, key: str, expected, context: str):
    """取出必填字段并检查类型"""
    if not isinstance(data, dict):
        raise DecodeError(f"{context}: 必须是 JSON 对象")
    if key not in data:
        raise DecodeError(f"{context}: 缺少字段 {key}")
    value = data[key]
    # bool 是 int 的子类，数值字段不接受 bool
    if isinstance(value, bool) and expected is not bool:
        raise DecodeError(f"{context}.{key}: 类型错误 ({type(value).__name__})")
    if not isinstance(value, expected):
        raise DecodeError(f"{context}.{key}: 类型错误 ({type(value).__name__})")
    return value


def _optional_str(data: Dict[str, Any], key: str, context: str) -> str:
    value = data.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise DecodeError(f"{context}.{key}: 类型错误 ({type(value).__name__})")
    return value


@dataclass(frozen=True)
class Interface:
    """服务器网卡"""
    port_id: str
    mac_addr: str
    net_id: str = ''
    port_state: str = ''

    @classmethod
    def from_dict(cls, data: Any, context: str = 'interfaceAttachment') -> 'Interface':
        return cls(
            port_id=_require(data, 'port_id', str, context),
            mac_addr=_require(data, 'mac_addr', str, context),
            net_id=_optional_str(data, 'net_id', context),
            port_state=_optional_str(data, 'port_state', context)
        )


@dataclass(frozen=True)
class Server:
    """Compute 实例"""
    id: str
    name: str
    interfaces: Tuple[Interface, ...] = ()

    @classmethod
    def from_dict(cls, data: Any, context: str = 'server') -> 'Server':
        return cls(
            id=_require(data, 'id', str, context),
            name=_require(data, 'name', str, context)
        )


@dataclass(frozen=True)
class Database:
    """数据库（db_size 单位为 GB）"""
    database_id: str
    db_name: str
    db_size: float
    service_id: str
    status: str = ''
    type: str = ''
    charset: str = ''
    memo: str = ''
    internal_hostname: str = ''
    external_hostname: str = ''

    @classmethod
    def from_dict(cls, data: Any, context: str = 'database') -> 'Database':
        return cls(
            database_id=_require(data, 'database_id', str, context),
            db_name=_require(data, 'db_name', str, context),
            db_size=float(_require(data, 'db_size', _NUMBER_TYPES, context)),
            service_id=_require(data, 'service_id', str, context),
            status=_optional_str(data, 'status', context),
            type=_optional_str(data, 'type', context),
            charset=_optional_str(data, 'charset', context),
            memo=_optional_str(data, 'memo', context),
            internal_hostname=_optional_str(data, 'internal_hostname', context),
            external_hostname=_optional_str(data, 'external_hostname', context)
        )


@dataclass(frozen=True)
class DatabaseQuota:
    """数据库服务配额（GB）"""
    total_usage: float
    quota: float

    @classmethod
    def from_dict(cls, data: Any, context: str = 'quota') -> 'DatabaseQuota':
        return cls(
            total_usage=float(_require(data, 'total_usage', _NUMBER_TYPES, context)),
            quota=float(_require(data, 'quota', _NUMBER_TYPES, context))
        )


@dataclass(frozen=True)
class PaymentSummary:
    """账户充值汇总"""
    total_deposit_amount: float

    @classmethod
    def from_dict(cls, data: Any, context: str = 'payment_summary') -> 'PaymentSummary':
        return cls(
            total_deposit_amount=float(_require(data, 'total_deposit_amount', _NUMBER_TYPES, context))
        )


@dataclass(frozen=True)
class UsageSeries:
    """
    使用量时间序列

    schema 为字段名列表，rows 中每一行与 schema 对齐。
    最新的几行数据尚未汇总完成，取值时从末尾往前偏移 offset 行
    """
    schema: Tuple[str, ...]
    rows: Tuple[Tuple[float, ...], ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Any, context: str = 'usage') -> 'UsageSeries':
        raw_schema = _require(data, 'schema', list, context)
        raw_rows = _require(data, 'data', list, context)

        schema = []
        for idx, name in enumerate(raw_schema):
            if not isinstance(name, str):
                raise DecodeError(f"{context}.schema[{idx}]: 必须是字符串")
            schema.append(name)

        rows = []
        for row_idx, raw_row in enumerate(raw_rows):
            if not isinstance(raw_row, list) or len(raw_row) != len(schema):
                raise DecodeError(f"{context}.data[{row_idx}]: 列数与 schema 不一致")
            row = []
            for value in raw_row:
                if value is None:
                    # 上游用 null 表示尚未汇总的数据点
                    row.append(math.nan)
                elif isinstance(value, _NUMBER_TYPES) and not isinstance(value, bool):
                    row.append(float(value))
                else:
                    raise DecodeError(f"{context}.data[{row_idx}]: 非数值 {value!r}")
            rows.append(tuple(row))

        return cls(schema=tuple(schema), rows=tuple(rows))

    def sample(self, offset: int) -> Dict[str, float]:
        """
        取出 rows[len(rows) - offset] 并与 schema 组合

        Args:
            offset: 从末尾往前的行数（>= 1）

        Returns:
            {字段名: 值} 字典

        Raises:
            DecodeError: 数据行数不足
        """
        if offset < 1:
            raise ValueError("offset 必须 >= 1")
        if len(self.rows) < offset:
            raise DecodeError(f"使用量数据不足: rows={len(self.rows)}, offset={offset}")
        row = self.rows[len(self.rows) - offset]
        return dict(zip(self.schema, row))


def parse_list(data: Dict[str, Any], key: str, parser, context: Optional[str] = None) -> List[Any]:
    """解析响应中 key 对应的对象列表"""
    context = context or key
    items = _require(data, key, list, 'response')
    return [parser(item, f"{context}[{idx}]") for idx, item in enumerate(items)]


def parse_object(data: Dict[str, Any], key: str, parser) -> Any:
    """解析响应中 key 对应的单个对象"""
    return parser(_require(data, key, dict, 'response'), key)
