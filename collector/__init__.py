# -*- coding: utf-8 -*-
"""
Prometheus Collector 模块

功能：
- 定期调用各资源 API 组装完整的指标快照
- 原子地发布快照，供并发读者读取
- 暴露 Prometheus 格式的指标
"""

from .snapshot import LabeledSample, MetricDescriptor, Snapshot
from .collector import ConohaCollector, CollectorSettings
from .exporter import SnapshotExporter
