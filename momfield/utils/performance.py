# utils/performance.py
"""
性能监控模块

记录场采样、电流重建、导出等步骤的耗时。
"""

import time
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """
    按名称记录耗时的计时器集合

    同一监控器可被多个线程共用，内部状态的读写由锁保护。
    """

    def __init__(self):
        self._running: Dict[str, float] = {}
        self._timings: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def start_timer(self, name: str) -> None:
        """启动名为 name 的计时器（重复启动会覆盖起点）"""
        with self._lock:
            self._running[name] = time.perf_counter()

    def end_timer(self, name: str) -> float:
        """
        停止计时器并记录本次耗时

        Returns:
            耗时（秒）；计时器未启动时返回0且不记录
        """
        stop = time.perf_counter()
        with self._lock:
            start = self._running.pop(name, None)
            if start is None:
                return 0.0
            elapsed = stop - start
            self._timings.setdefault(name, []).append(elapsed)
        return elapsed

    @contextmanager
    def timer(self, name: str) -> Iterator[None]:
        """计时上下文管理器"""
        self.start_timer(name)
        try:
            yield
        finally:
            elapsed = self.end_timer(name)
            logger.debug(f"⏱ {name}: {elapsed * 1000:.2f} ms")

    def last_time(self, name: str) -> float:
        """最近一次耗时（秒），无记录时为0"""
        with self._lock:
            samples = self._timings.get(name)
            return samples[-1] if samples else 0.0

    def get_performance_summary(self) -> Dict[str, Dict[str, float]]:
        """各计时器的次数、总耗时与最小/平均/最大耗时"""
        with self._lock:
            snapshot = {name: list(samples) for name, samples in self._timings.items()}

        return {
            name: {
                'count': len(samples),
                'total_time': sum(samples),
                'avg_time': sum(samples) / len(samples),
                'min_time': min(samples),
                'max_time': max(samples)
            }
            for name, samples in snapshot.items()
        }

    def clear(self) -> None:
        with self._lock:
            self._running.clear()
            self._timings.clear()
