# -*- coding: utf-8 -*-
"""
定时任务实现模块

功能：
- 按固定间隔调用采集函数刷新快照
- 不直接操作 Prometheus metrics
- 只负责"什么时候刷新"
"""

import threading
import time
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """
    快照刷新调度器

    职责：
    1. 每 interval 秒调用一次 refresh_func（立即执行第一次）
    2. 刷新失败时记录日志并继续循环，已发布的快照保持不变
    3. 通过 stop() 或 stop_event 随时停止
    """

    def __init__(
        self,
        refresh_func: Callable,
        interval: float = 70,
        on_success: Optional[Callable] = None,
        on_error: Optional[Callable] = None,
        stop_event: Optional[threading.Event] = None
    ):
        """
        初始化调度器

        Args:
            refresh_func: 采集函数，返回新发布的快照
            interval: 刷新间隔（秒），默认 70
            on_success: 刷新成功回调 (result, duration)
            on_error: 刷新失败回调 (exc, duration)
            stop_event: 停止信号（可选，默认内部创建）
        """
        if interval <= 0:
            raise ValueError("interval 必须大于 0")

        self.refresh_func = refresh_func
        self.interval = interval
        self.on_success = on_success
        self.on_error = on_error

        self._stop_event = stop_event or threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._running = False

        self.cycles = 0
        self.failures = 0
        self.last_error: Optional[str] = None

        logger.info(f"RefreshScheduler 初始化完成: interval={interval}s")

    def start(self):
        """在后台线程中启动刷新循环"""
        if self._thread and self._thread.is_alive():
            logger.warning("定时任务已在运行")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run,
            name="SnapshotRefreshThread",
            daemon=True
        )
        self._thread.start()
        logger.info("快照刷新线程已启动")

    def stop(self, timeout: float = 5):
        """停止刷新循环，最多等待 timeout 秒"""
        self._stop_event.set()
        logger.info("停止定时任务调度器...")

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)

        logger.info("定时任务调度器已停止")

    def run(self, max_cycles: Optional[int] = None):
        """
        阻塞运行刷新循环

        Args:
            max_cycles: 最多执行的周期数，None 表示一直运行直到停止
        """
        logger.info(f"[Scheduler] 刷新循环启动，间隔: {self.interval} 秒")
        self._running = True
        executed = 0

        try:
            while not self._stop_event.is_set():
                self.run_once()
                executed += 1

                if max_cycles is not None and executed >= max_cycles:
                    break

                # 等待期间收到停止信号会立即返回
                if self._stop_event.wait(self.interval):
                    break
        finally:
            self._running = False

        logger.info("[Scheduler] 刷新循环已退出")

    def run_once(self) -> bool:
        """
        执行一次刷新

        Returns:
            True 表示刷新成功
        """
        start_time = time.monotonic()
        self.cycles += 1

        try:
            result = self.refresh_func()
        except Exception as e:
            duration = time.monotonic() - start_time
            self.failures += 1
            self.last_error = f"{type(e).__name__}: {e}"
            # 捕获异常，打印日志，不退出循环
            logger.error(f"[Scheduler] 刷新失败（继续使用上一次的快照）: {e}", exc_info=True)
            if self.on_error:
                self.on_error(e, duration)
            return False

        duration = time.monotonic() - start_time
        self.last_error = None
        logger.info(f"[Scheduler] 刷新完成，耗时 {duration:.2f} 秒")
        if self.on_success:
            self.on_success(result, duration)
        return True

    def get_status(self) -> dict:
        """
        获取定时任务状态

        Returns:
            状态信息字典
        """
        return {
            'running': self._running,
            'interval': self.interval,
            'thread_alive': self._thread.is_alive() if self._thread else False,
            'cycles': self.cycles,
            'failures': self.failures,
            'last_error': self.last_error
        }
