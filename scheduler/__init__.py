# -*- coding: utf-8 -*-
"""
定时任务模块

功能：
- 按 interval 定时刷新指标快照
- 在后台线程中运行，不阻塞主程序
"""

from scheduler.scheduler import RefreshScheduler

__all__ = ['RefreshScheduler']
