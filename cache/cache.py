# -*- coding: utf-8 -*-
"""
缓存实现模块

功能：
- 内存缓存实现（带 TTL）
- 用于缓存服务器、数据库清单
"""

import time
import threading
from typing import Any, Callable, Dict, Optional, Tuple


class MemoryCache:
    """
    内存缓存实现

    TTL 约定：
    - ttl > 0: 缓存 ttl 秒
    - ttl == 0: 不缓存（每次都重新加载）
    - ttl < 0: 永不过期
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        """
        初始化内存缓存

        Args:
            clock: 返回当前时间（秒）的函数，默认 time.monotonic
        """
        self._cache: Dict[str, Tuple[Any, Optional[float]]] = {}  # key -> (value, expiration_time)
        self._lock = threading.RLock()
        self._clock = clock or time.monotonic

    def get(self, key: str) -> Tuple[Optional[Any], bool]:
        """
        获取缓存值

        Returns:
            (value, exists) 元组，exists=True 表示缓存命中且未过期
        """
        with self._lock:
            if key not in self._cache:
                return None, False

            value, expiration_time = self._cache[key]
            if expiration_time is not None and self._clock() >= expiration_time:
                del self._cache[key]
                return None, False

            return value, True

    def set(self, key: str, value: Any, ttl: float):
        """
        设置缓存值

        Args:
            key: 缓存键
            value: 缓存值
            ttl: 生存时间（秒），0 表示不缓存，负数表示永不过期
        """
        if ttl == 0:
            return
        with self._lock:
            expiration_time = None if ttl < 0 else self._clock() + ttl
            self._cache[key] = (value, expiration_time)

    def get_or_load(self, key: str, loader: Callable[[], Any], ttl: float) -> Any:
        """
        缓存命中时返回缓存值，否则调用 loader 加载并缓存

        loader 抛出异常时不写入缓存
        """
        value, exists = self.get(key)
        if exists:
            return value
        value = loader()
        self.set(key, value, ttl)
        return value

    def delete(self, key: str):
        """删除缓存值"""
        with self._lock:
            self._cache.pop(key, None)

    def clear(self):
        """清空所有缓存"""
        with self._lock:
            self._cache.clear()
