# core/engine.py
"""
场采样计算引擎

设计目标：
1. 将任意嵌套的几何单元集合展平为有序序列（保持遇到的先后顺序）
2. 在每个几何单元的形心处计算激励源的电场与磁场
3. 数据并行：预分配输出数组，按下标区间静态划分给工作线程，
   每个线程只写自己区间内的下标，因此无需加锁
4. 返回统一的 FieldData（或旧接口 ExcitationFieldData）

调度模型：
  [0, N) --静态分块--> [s0, e0) [s1, e1) ... --ThreadPoolExecutor--> 写入各自切片
输出顺序与展平顺序一致，与线程完成的先后无关。
"""

import logging
import os
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from itertools import chain
from typing import Any, Callable, Iterable, Iterator, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from .data_schema import (
    E_INC, H_INC,
    GeometryElement, GeometryContractError, SourceContractError,
    EvaluationMetadata
)
from .field_data import FieldData, ExcitationFieldData
from ..configs import SimulationConfig, get_active_config, get_config
from ..utils.performance import PerformanceMonitor

# 配置日志
logger = logging.getLogger(__name__)


# ============================================================================ #
# 几何集合展平
# ============================================================================ #

def _is_element(obj: Any) -> bool:
    return isinstance(obj, GeometryElement)


def _is_group(obj: Any) -> bool:
    """可展开的子集合（字符串与几何单元本身除外）"""
    if isinstance(obj, (str, bytes)) or _is_element(obj):
        return False
    return isinstance(obj, (Sequence, np.ndarray))


def _iter_flat(items: Iterable[Any]) -> Iterator[Any]:
    for item in items:
        if _is_group(item):
            yield from _iter_flat(item)
        else:
            yield item


def flatten_geometries(collection: Iterable[Any]) -> Sequence[Any]:
    """
    将几何单元集合展平为有序序列

    三种输入形状：
    1. 几何单元的平坦序列：原样返回（不复制）
    2. 由几何单元序列组成的序列：按顺序拼接
    3. 其他可迭代对象：逐项遍历，遇到子序列递归展开，其余元素直接追加

    Args:
        collection: 几何单元集合，可任意嵌套

    Returns:
        展平后的有序序列
    """
    if _is_element(collection):
        return [collection]

    items = collection if isinstance(collection, Sequence) else list(collection)

    if all(_is_element(item) for item in items):
        logger.debug(f"展平: 平坦序列 ({len(items)} 个单元)")
        return items

    if all(_is_group(group) and all(_is_element(g) for g in group) for group in items):
        flat = list(chain.from_iterable(items))
        logger.debug(f"展平: {len(items)} 个分组 -> {len(flat)} 个单元")
        return flat

    flat = list(_iter_flat(items))
    logger.debug(f"展平: 通用遍历 -> {len(flat)} 个单元")
    return flat


def select_sampleable(elements: Iterable[Any]) -> List[Any]:
    """
    过滤出提供形心 center 的几何单元

    在调用 evaluate_incident_fields 前使用，使输出点数等于实际采样的单元数。
    """
    flat = flatten_geometries(elements)
    selected = [geo for geo in flat if _is_element(geo)]
    skipped = len(flat) - len(selected)
    if skipped:
        logger.info(f"已过滤 {skipped} 个不提供形心的单元")
    return selected


# ============================================================================ #
# 数据并行工具
# ============================================================================ #

def resolve_workers(max_workers: Optional[int] = None) -> int:
    """
    确定并行线程数

    优先使用显式参数；否则读取引擎配置 parallel 段。
    并行关闭或后端为 serial 时返回 1。
    """
    if max_workers is not None:
        if max_workers < 1:
            raise ValueError(f"max_workers 必须为正整数，得到 {max_workers}")
        return int(max_workers)

    parallel = get_config('engine').get('parallel', {})
    if not parallel.get('enabled', True) or parallel.get('backend', 'threading') == 'serial':
        return 1

    configured = parallel.get('max_workers')
    return int(configured) if configured else (os.cpu_count() or 1)


def partition_range(n: int, n_workers: int, min_chunk_size: int = 1) -> List[Tuple[int, int]]:
    """
    将 [0, n) 划分为至多 n_workers 个连续区间

    区间数受 min_chunk_size 限制（n < min_chunk_size 时只有一个区间），
    区间互不重叠且按顺序覆盖全部下标。
    """
    if n <= 0:
        return []
    n_blocks = max(1, min(n_workers, n // max(1, min_chunk_size)))
    bounds = np.linspace(0, n, n_blocks + 1).astype(int)
    return [(int(bounds[i]), int(bounds[i + 1])) for i in range(n_blocks)]


def parallel_for(
        n: int,
        kernel: Callable[[int, int], None],
        max_workers: Optional[int] = None,
        min_chunk_size: Optional[int] = None
) -> int:
    """
    静态分块的并行 for 循环

    kernel(start, stop) 负责处理下标区间 [start, stop)，只允许写入该区间对应的输出。
    任一区间抛出的异常会传递给调用方。

    Returns:
        实际使用的区间（线程）数
    """
    n_workers = resolve_workers(max_workers)
    if min_chunk_size is None:
        min_chunk_size = get_config('engine').get('parallel', {}).get('min_chunk_size', 1)

    blocks = partition_range(n, n_workers, min_chunk_size)
    if len(blocks) <= 1:
        for start, stop in blocks:
            kernel(start, stop)
        return len(blocks)

    with ThreadPoolExecutor(max_workers=len(blocks), thread_name_prefix="momfield") as pool:
        futures = [pool.submit(kernel, start, stop) for start, stop in blocks]
        for future in futures:
            future.result()

    return len(blocks)


# ============================================================================ #
# 场采样引擎
# ============================================================================ #

def _ensure_source(source: Any) -> None:
    if not (callable(getattr(source, 'efield', None)) and callable(getattr(source, 'hfield', None))):
        raise SourceContractError(source)


class FieldEvaluationEngine:
    """
    场采样引擎 - 在几何单元形心处计算激励源的入射场

    负责：
    1. 几何集合展平与契约检查
    2. 输出数组预分配与并行采样
    3. 组装 FieldData 及元数据
    4. 性能计时
    """

    def __init__(
            self,
            config: Optional[SimulationConfig] = None,
            max_workers: Optional[int] = None,
            min_chunk_size: Optional[int] = None
    ):
        """
        初始化场采样引擎

        Args:
            config: 计算配置（精度、频率），None 表示使用当前运行配置
            max_workers: 并行线程数，None 表示读取引擎配置
            min_chunk_size: 每个线程的最小点数，None 表示读取引擎配置
        """
        self.config: SimulationConfig = config if config is not None else get_active_config()
        self.max_workers = max_workers
        self.min_chunk_size = min_chunk_size
        self.monitor = PerformanceMonitor()

    def _sample(self, geometries: Iterable[Any], source: Any) -> Tuple[NDArray, NDArray, NDArray, EvaluationMetadata]:
        """展平、检查契约并并行采样，返回 (positions, E, H, metadata)"""
        _ensure_source(source)
        geos = flatten_geometries(geometries)

        for i, geo in enumerate(geos):
            if not _is_element(geo):
                raise GeometryContractError(i, geo)

        npoints = len(geos)
        ft = self.config.real_dtype
        ct = self.config.complex_dtype

        positions = np.empty((npoints, 3), dtype=ft)
        E = np.empty((npoints, 3), dtype=ct)
        H = np.empty((npoints, 3), dtype=ct)

        def kernel(start: int, stop: int) -> None:
            for i in range(start, stop):
                positions[i] = geos[i].center
            r = positions[start:stop]
            E[start:stop] = source.efield(r)
            H[start:stop] = source.hfield(r)

        with self.monitor.timer('sample_fields'):
            n_blocks = parallel_for(npoints, kernel, self.max_workers, self.min_chunk_size)
        elapsed = self.monitor.last_time('sample_fields')

        describe = getattr(source, 'describe', None)
        metadata: EvaluationMetadata = {
            'source': describe() if callable(describe) else type(source).__name__,
            'frequency': self.config.frequency,
            'precision': self.config.precision,
            'n_workers': n_blocks,
            'elapsed_s': elapsed
        }
        logger.info(
            f"✅ 入射场采样完成: {npoints} 个点, {n_blocks} 个线程分块, "
            f"耗时 {elapsed * 1000:.2f} ms"
        )
        return positions, E, H, metadata

    def evaluate_incident_fields(self, geometries: Iterable[Any], source: Any) -> FieldData:
        """
        计算几何单元形心处的入射电场与磁场

        Args:
            geometries: 几何单元集合（可嵌套）
            source: 激励源，须实现 efield / hfield

        Returns:
            FieldData: 含 E_inc 与 H_inc 两个场量

        Raises:
            GeometryContractError: 某单元不提供 center
            SourceContractError: 激励源不满足契约
        """
        positions, E, H, metadata = self._sample(geometries, source)
        data = FieldData(positions, dtype=self.config.real_dtype, metadata=dict(metadata))
        data[E_INC] = E
        data[H_INC] = H
        return data

    def evaluate_excitation_fields(self, geometries: Iterable[Any], source: Any) -> ExcitationFieldData:
        """
        计算入射场（旧接口），返回固定双场量的 ExcitationFieldData

        采样过程与 evaluate_incident_fields 完全相同。
        """
        positions, E, H, _ = self._sample(geometries, source)
        for array in (positions, E, H):
            array.setflags(write=False)
        return ExcitationFieldData(npoints=positions.shape[0], positions=positions, E=E, H=H)


def evaluate_incident_fields(
        geometries: Iterable[Any],
        source: Any,
        config: Optional[SimulationConfig] = None,
        max_workers: Optional[int] = None
) -> FieldData:
    """在几何单元形心处计算入射场，返回 FieldData（E_inc / H_inc）"""
    engine = FieldEvaluationEngine(config=config, max_workers=max_workers)
    return engine.evaluate_incident_fields(geometries, source)


def evaluate_excitation_fields(
        geometries: Iterable[Any],
        source: Any,
        config: Optional[SimulationConfig] = None,
        max_workers: Optional[int] = None
) -> ExcitationFieldData:
    """在几何单元形心处计算入射场，返回 ExcitationFieldData"""
    engine = FieldEvaluationEngine(config=config, max_workers=max_workers)
    return engine.evaluate_excitation_fields(geometries, source)


# 旧接口名称
calculate_incident_fields = evaluate_incident_fields
calculate_excitation_fields = evaluate_excitation_fields
