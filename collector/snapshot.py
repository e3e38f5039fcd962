# -*- coding: utf-8 -*-
"""
指标快照数据结构

功能：
- 定义单个带标签的样本（LabeledSample）
- 定义一次完整采集周期产生的快照（Snapshot）
- 定义指标描述（MetricDescriptor）
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class MetricDescriptor:
    """指标描述（名称、帮助文本、标签名）"""
    name: str
    documentation: str
    label_names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class LabeledSample:
    """带标签的单个样本"""
    metric_name: str
    labels: Tuple[Tuple[str, str], ...]
    value: float

    @classmethod
    def of(cls, metric_name: str, value: float, **labels: str) -> 'LabeledSample':
        return cls(
            metric_name=metric_name,
            labels=tuple((name, str(label_value)) for name, label_value in labels.items()),
            value=float(value)
        )

    def label_dict(self) -> Dict[str, str]:
        return dict(self.labels)

    def label_values(self) -> Tuple[str, ...]:
        return tuple(value for _, value in self.labels)


@dataclass(frozen=True)
class Snapshot:
    """
    一次完整采集周期的指标快照

    generation 从 1 开始递增，0 表示尚未完成任何采集
    """
    samples: Tuple[LabeledSample, ...] = ()
    generation: int = 0
    collected_at: Optional[float] = None

    @classmethod
    def empty(cls) -> 'Snapshot':
        return cls()

    def is_empty(self) -> bool:
        return self.generation == 0

    def __len__(self) -> int:
        return len(self.samples)

    def by_metric(self, metric_name: str) -> Tuple[LabeledSample, ...]:
        return tuple(sample for sample in self.samples if sample.metric_name == metric_name)
