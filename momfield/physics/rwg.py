# physics/rwg.py
"""
RWG（Rao-Wilton-Glisson）基函数求值

在三角形 T± 上，与公共边 l 关联的半基函数为
  f(r) = ± l / (2A±) · (r - r_free)
其中 r_free 为公共边对边的自由顶点，符号由 T 是正/负三角形决定。
求值是纯函数，可以在任意多个线程中并发调用。
"""

import logging
from typing import Mapping, Optional, Sequence

import numpy as np
from numpy.typing import NDArray, ArrayLike

from .mesh import TriangleInfo, RWGBasis
from ..configs import SimulationConfig, get_active_config
from ..core.data_schema import J_SURF
from ..core.engine import parallel_for
from ..core.field_data import FieldData

logger = logging.getLogger(__name__)


def rwg_value_at(r: ArrayLike, bf: RWGBasis, tri: TriangleInfo, idx_in_geo: int) -> NDArray:
    """
    在三角形 tri 上计算 RWG 基函数 bf 于点 r 处的矢量值

    Args:
        r: 求值点 (3,) 或点数组 (N, 3)
        bf: 基函数记录（提供公共边长）
        tri: 三角形面元（提供面积、带符号边长与自由顶点）
        idx_in_geo: 公共边在 tri 中的局部编号 (0..2)

    Returns:
        与 r 同形状的实矢量
    """
    sgn = np.sign(tri.edgel[idx_in_geo])
    scale = sgn * bf.edgel / (2.0 * tri.area)
    return scale * (np.asarray(r) - tri.free_vertex(idx_in_geo))


def rwg_divergence(bf: RWGBasis, tri: TriangleInfo, idx_in_geo: int) -> float:
    """面散度 ∇·f = ± l / A（在三角形内为常数）"""
    return float(np.sign(tri.edgel[idx_in_geo]) * bf.edgel / tri.area)


def _basis_for(tri: TriangleInfo, idx: int,
               bases: Optional[Mapping[int, RWGBasis]]) -> RWGBasis:
    bf_id = int(tri.in_bfs_id[idx])
    if bases is not None:
        return bases[bf_id]
    return RWGBasis(bf_id, abs(float(tri.edgel[idx])))


def reconstruct_surface_currents(
        triangles: Sequence[TriangleInfo],
        coefficients: ArrayLike,
        bases: Optional[Mapping[int, RWGBasis]] = None,
        name: str = J_SURF,
        config: Optional[SimulationConfig] = None,
        max_workers: Optional[int] = None
) -> FieldData:
    """
    由基函数系数重建各三角形形心处的表面电流密度

    J(r_c) = Σ_i I[bf_i] · f_i(r_c)，对三角形三条边求和，编号为负的边跳过。

    Args:
        triangles: 三角形面元列表
        coefficients: 按全局基函数编号索引的复系数
        bases: 可选的 bf_id -> RWGBasis 映射；缺省时公共边长取自面元 edgel
        name: 输出场量名称
        config: 计算配置（决定精度）
        max_workers: 并行线程数

    Returns:
        FieldData: 采样点为各三角形形心，含一个名为 name 的场量

    Raises:
        IndexError: 面元引用的基函数编号超出系数范围
    """
    config = config if config is not None else get_active_config()
    coeffs = np.asarray(coefficients, dtype=config.complex_dtype).reshape(-1)
    tris = list(triangles)
    npoints = len(tris)

    positions = np.empty((npoints, 3), dtype=config.real_dtype)
    currents = np.zeros((npoints, 3), dtype=config.complex_dtype)

    def kernel(start: int, stop: int) -> None:
        for i in range(start, stop):
            tri = tris[i]
            rc = tri.center
            positions[i] = rc
            for idx in range(3):
                bf_id = int(tri.in_bfs_id[idx])
                if bf_id < 0:
                    continue
                bf = _basis_for(tri, idx, bases)
                currents[i] += coeffs[bf_id] * rwg_value_at(rc, bf, tri, idx)

    parallel_for(npoints, kernel, max_workers=max_workers)

    data = FieldData(positions, dtype=config.real_dtype, metadata={
        'source': 'RWG current reconstruction',
        'precision': config.precision
    })
    data[name] = currents
    logger.info(f"✅ 表面电流已重建: {npoints} 个面元, 场量 '{name}'")
    return data
