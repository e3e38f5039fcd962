# -*- coding: utf-8 -*-
"""
ConoHa 指标快照收集器实现模块

功能：
- 每个采集周期调用各资源 API，组装完整的指标快照
- 快照组装完成后在锁内替换引用（锁只覆盖引用替换）
- 向任意数量的并发读者提供最近一次完成的快照
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from api.conoha.account import AccountAPI
from api.conoha.compute import ComputeAPI
from api.conoha.database import DatabaseAPI
from api.conoha.models import Database, Server
from cache.cache import MemoryCache
from collector.snapshot import LabeledSample, MetricDescriptor, Snapshot
from provider.conoha.client import ConohaClient
from provider.conoha.errors import DecodeError
from scheduler.scheduler import RefreshScheduler

logger = logging.getLogger(__name__)

COMPUTE_METRICS = [
    MetricDescriptor('conoha_cpu', 'CPU usage of ConoHa instance', ('instance',)),
    MetricDescriptor('conoha_disk', 'Disk usage of ConoHa instance', ('instance', 'rw')),
    MetricDescriptor('conoha_interface', 'Interface usage of ConoHa instance', ('instance', 'mac', 'direction')),
]

DATABASE_METRICS = [
    MetricDescriptor('conoha_database_size', 'Size of ConoHa database in GB', ('database', 'database_id', 'service_id')),
    MetricDescriptor('conoha_database_quota', 'Quota of ConoHa database service in GB', ('service_id',)),
    MetricDescriptor('conoha_database_quota_usage', 'Total usage of ConoHa database service in GB', ('service_id',)),
]

OBJECT_STORAGE_METRICS = [
    MetricDescriptor('conoha_object_storage_requests', 'Requests to ConoHa object storage', ('method',)),
    MetricDescriptor('conoha_object_storage_usage', 'Usage of ConoHa object storage', ('type',)),
]

BILLING_METRICS = [
    MetricDescriptor('conoha_deposit', 'Total deposit amount of ConoHa account', ()),
]

# rrd 序列中的时间戳列，不作为指标输出
TIMESTAMP_FIELD = 'unixtime'

SERVERS_CACHE_KEY = 'inventory:servers'
DATABASES_CACHE_KEY = 'inventory:databases'


@dataclass
class CollectorSettings:
    """收集器配置"""
    usage_offset: int = 3        # 使用量从末尾往前取第几行
    inventory_ttl: float = 0     # 资源清单缓存时间（秒），0 每周期重新获取，负数只在启动时获取
    compute: bool = True
    database: bool = True
    object_storage: bool = True
    billing: bool = True


class ConohaCollector:
    """
    ConoHa 指标快照收集器

    功能：
    - refresh(): 执行一个采集周期并发布快照
    - current_snapshot(): 返回最近一次发布的快照
    - describe(): 返回启用的指标描述（构造时固定）
    """

    def __init__(
        self,
        client: ConohaClient,
        settings: Optional[CollectorSettings] = None,
        inventory_cache: Optional[MemoryCache] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        初始化收集器

        Args:
            client: ConoHa API 客户端
            settings: 收集器配置（默认全部启用）
            inventory_cache: 资源清单缓存（可选）
            clock: 返回当前 Unix 时间的函数（可选，便于测试注入）
        """
        self.client = client
        self.settings = settings or CollectorSettings()
        self.inventory_cache = inventory_cache or MemoryCache()
        self._clock = clock or time.time

        self.compute_api = ComputeAPI(client)
        self.database_api = DatabaseAPI(client)
        self.account_api = AccountAPI(client)

        self._lock = threading.Lock()
        self._snapshot = Snapshot.empty()

        self._descriptors: List[MetricDescriptor] = []
        if self.settings.compute:
            self._descriptors.extend(COMPUTE_METRICS)
        if self.settings.database:
            self._descriptors.extend(DATABASE_METRICS)
        if self.settings.object_storage:
            self._descriptors.extend(OBJECT_STORAGE_METRICS)
        if self.settings.billing:
            self._descriptors.extend(BILLING_METRICS)

    def describe(self) -> List[MetricDescriptor]:
        """返回指标描述列表（副本）"""
        return list(self._descriptors)

    def current_snapshot(self) -> Snapshot:
        """返回最近一次完成的快照，首次采集完成前返回空快照"""
        with self._lock:
            return self._snapshot

    def load_inventory(self, force: bool = False):
        """
        获取服务器和数据库清单（启动时调用，失败视为致命错误）

        Args:
            force: 忽略缓存强制重新获取
        """
        if force:
            self.inventory_cache.delete(SERVERS_CACHE_KEY)
            self.inventory_cache.delete(DATABASES_CACHE_KEY)

        if self.settings.compute:
            servers = self._servers()
            logger.info(f"服务器清单: {len(servers)} 台 {[server.name for server in servers]}")
        if self.settings.database:
            databases = self._databases()
            logger.info(f"数据库清单: {len(databases)} 个 {[database.db_name for database in databases]}")

    def refresh(self) -> Snapshot:
        """
        执行一个采集周期

        所有样本先写入局部列表，全部成功后才发布。
        任何异常都会直接抛出，当前快照保持不变

        Returns:
            新发布的快照
        """
        samples: List[LabeledSample] = []

        if self.settings.compute:
            samples.extend(self._collect_compute())
        if self.settings.database:
            samples.extend(self._collect_database())
        if self.settings.object_storage:
            samples.extend(self._collect_object_storage())
        if self.settings.billing:
            samples.extend(self._collect_billing())

        _warn_duplicates(samples)
        return self._publish(samples)

    def run(
        self,
        interval: float = 70,
        stop_event: Optional[threading.Event] = None,
        max_cycles: Optional[int] = None,
        on_success: Optional[Callable] = None,
        on_error: Optional[Callable] = None
    ):
        """
        阻塞运行采集循环（正常情况下不会返回）

        Args:
            interval: 采集间隔（秒），默认 70（与上游数据的采样间隔一致）
            stop_event: 停止信号（可选）
            max_cycles: 最多执行的周期数（可选，用于测试）
            on_success: 周期成功回调 (snapshot, duration)
            on_error: 周期失败回调 (exc, duration)
        """
        scheduler = RefreshScheduler(
            refresh_func=self.refresh,
            interval=interval,
            on_success=on_success,
            on_error=on_error,
            stop_event=stop_event
        )
        scheduler.run(max_cycles=max_cycles)

    def _publish(self, samples: List[LabeledSample]) -> Snapshot:
        collected_at = self._clock()
        with self._lock:
            snapshot = Snapshot(
                samples=tuple(samples),
                generation=self._snapshot.generation + 1,
                collected_at=collected_at
            )
            self._snapshot = snapshot
        return snapshot

    def _servers(self) -> List[Server]:
        return self.inventory_cache.get_or_load(
            SERVERS_CACHE_KEY, self.compute_api.list_servers, self.settings.inventory_ttl
        )

    def _databases(self) -> List[Database]:
        return self.inventory_cache.get_or_load(
            DATABASES_CACHE_KEY, self.database_api.list_databases, self.settings.inventory_ttl
        )

    def _collect_compute(self) -> List[LabeledSample]:
        offset = self.settings.usage_offset
        samples = []

        for server in self._servers():
            cpu = self.compute_api.cpu_usage(server, offset)
            samples.append(LabeledSample.of('conoha_cpu', _pick(cpu, 'value', 'cpu'), instance=server.name))

            disk = self.compute_api.disk_usage(server, offset)
            for rw in ('read', 'write'):
                samples.append(LabeledSample.of('conoha_disk', _pick(disk, rw, 'disk'), instance=server.name, rw=rw))

            for interface in server.interfaces:
                usage = self.compute_api.interface_usage(server, interface, offset)
                for direction in ('rx', 'tx'):
                    samples.append(LabeledSample.of(
                        'conoha_interface', _pick(usage, direction, 'interface'),
                        instance=server.name, mac=interface.mac_addr, direction=direction
                    ))

        return samples

    def _collect_database(self) -> List[LabeledSample]:
        samples = []
        service_ids = []
        seen = set()

        for database in self._databases():
            detail = self.database_api.database_info(database.database_id)
            samples.append(LabeledSample.of(
                'conoha_database_size', detail.db_size,
                database=detail.db_name, database_id=detail.database_id, service_id=detail.service_id
            ))
            if detail.service_id not in seen:
                seen.add(detail.service_id)
                service_ids.append(detail.service_id)

        # 同一服务下的多个数据库共用配额，每个 service_id 只查询一次
        for service_id in service_ids:
            quota = self.database_api.database_quota(service_id)
            samples.append(LabeledSample.of('conoha_database_quota', quota.quota, service_id=service_id))
            samples.append(LabeledSample.of('conoha_database_quota_usage', quota.total_usage, service_id=service_id))

        return samples

    def _collect_object_storage(self) -> List[LabeledSample]:
        offset = self.settings.usage_offset
        samples = []

        requests_usage = self.account_api.object_storage_requests(offset)
        for method, value in requests_usage.items():
            if method != TIMESTAMP_FIELD:
                samples.append(LabeledSample.of('conoha_object_storage_requests', value, method=method))

        size_usage = self.account_api.object_storage_usage(offset)
        for usage_type, value in size_usage.items():
            if usage_type != TIMESTAMP_FIELD:
                samples.append(LabeledSample.of('conoha_object_storage_usage', value, type=usage_type))

        return samples

    def _collect_billing(self) -> List[LabeledSample]:
        summary = self.account_api.payment_summary()
        return [LabeledSample.of('conoha_deposit', summary.total_deposit_amount)]


def _pick(usage, field, context: str) -> float:
    """从使用量字典中取字段，缺少时视为响应格式错误"""
    try:
        return usage[field]
    except KeyError:
        raise DecodeError(f"{context} 使用量缺少字段 {field}: {sorted(usage)}") from None


def _warn_duplicates(samples: List[LabeledSample]):
    """同一周期内出现相同的指标名和标签组合时输出警告（如服务器重名）"""
    seen = set()
    for sample in samples:
        key = (sample.metric_name, sample.labels)
        if key in seen:
            logger.warning(f"重复的时间序列: {sample.metric_name}{sample.label_dict()}")
        seen.add(key)
