# -*- coding: utf-8 -*-
"""
Prometheus 导出模块

功能：
- 将最近一次完成的快照转换为 Prometheus 指标
- 维护 Exporter 自身指标（刷新耗时、错误次数、快照代数）
- 提供指标数据供 /metrics 端点使用
"""

import logging
from typing import Dict, Iterator, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest
from prometheus_client.core import GaugeMetricFamily

from collector.collector import ConohaCollector
from collector.snapshot import MetricDescriptor, Snapshot

logger = logging.getLogger(__name__)


class SnapshotExporter:
    """
    快照导出器（prometheus_client 自定义 Collector）

    功能：
    - describe(): 只输出指标描述，不读取快照
    - collect(): 按快照中的样本生成 GaugeMetricFamily
    """

    def __init__(self, collector: ConohaCollector, registry: Optional[CollectorRegistry] = None):
        """
        初始化导出器并注册到 registry

        Args:
            collector: 快照收集器
            registry: Prometheus registry（默认新建，避免与全局 REGISTRY 冲突）
        """
        self.collector = collector
        self.registry = registry or CollectorRegistry()
        self._descriptors = collector.describe()

        # Exporter 自身指标
        self.refresh_errors_total = Counter(
            'conoha_exporter_refresh_errors_total',
            'Total number of failed refresh cycles',
            ['error_type'],
            registry=self.registry
        )

        self.refresh_duration_seconds = Histogram(
            'conoha_exporter_refresh_duration_seconds',
            'Duration of refresh cycles in seconds',
            buckets=[0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0],
            registry=self.registry
        )

        self.snapshot_generation = Gauge(
            'conoha_exporter_snapshot_generation',
            'Generation of the currently published snapshot (0 before the first refresh)',
            registry=self.registry
        )

        self.last_refresh_timestamp = Gauge(
            'conoha_exporter_last_refresh_timestamp_seconds',
            'Unix time of the last successful refresh',
            registry=self.registry
        )

        self.registry.register(self)

    def describe(self) -> Iterator[GaugeMetricFamily]:
        for descriptor in self._descriptors:
            yield self._family(descriptor)

    def collect(self) -> Iterator[GaugeMetricFamily]:
        snapshot = self.collector.current_snapshot()

        families: Dict[str, GaugeMetricFamily] = {}
        for descriptor in self._descriptors:
            families[descriptor.name] = self._family(descriptor)

        label_names = {descriptor.name: descriptor.label_names for descriptor in self._descriptors}
        for sample in snapshot.samples:
            family = families.get(sample.metric_name)
            if family is None:
                logger.debug(f"快照中存在未描述的指标: {sample.metric_name}")
                continue
            labels = sample.label_dict()
            family.add_metric([labels.get(name, '') for name in label_names[sample.metric_name]], sample.value)

        for family in families.values():
            yield family

    def record_success(self, snapshot: Snapshot, duration: float):
        """刷新成功回调（供 Scheduler 调用）"""
        self.refresh_duration_seconds.observe(duration)
        self.snapshot_generation.set(snapshot.generation)
        if snapshot.collected_at is not None:
            self.last_refresh_timestamp.set(snapshot.collected_at)
        logger.info(f"快照已发布: generation={snapshot.generation}, samples={len(snapshot)}")

    def record_failure(self, exc: Exception, duration: float):
        """刷新失败回调（供 Scheduler 调用）"""
        self.refresh_duration_seconds.observe(duration)
        error_type = getattr(exc, 'error_type', 'unknown')
        self.refresh_errors_total.labels(error_type=error_type).inc()

    def render(self) -> bytes:
        """
        获取 Prometheus 格式的指标数据

        Returns:
            Prometheus text format
        """
        return generate_latest(self.registry)

    def get_summary(self) -> dict:
        """
        获取当前快照的汇总信息

        Returns:
            汇总信息字典
        """
        snapshot = self.collector.current_snapshot()
        by_metric = {}
        for sample in snapshot.samples:
            by_metric[sample.metric_name] = by_metric.get(sample.metric_name, 0) + 1

        return {
            'generation': snapshot.generation,
            'collected_at': snapshot.collected_at,
            'samples': len(snapshot),
            'by_metric': by_metric
        }

    @staticmethod
    def _family(descriptor: MetricDescriptor) -> GaugeMetricFamily:
        return GaugeMetricFamily(descriptor.name, descriptor.documentation, labels=list(descriptor.label_names))
