# physics/mesh.py
"""
三角形面元与 RWG 基函数记录

网格拓扑（邻接关系、全局基函数编号、阻抗分配）由外部网格子系统完成，
本模块只定义场计算所需读取的记录结构。

局部编号约定：
- vertices 的第 i 行为顶点 i
- 边 i 为顶点 i 的对边，即顶点 i 是边 i 对应 RWG 基函数在本三角形上的自由顶点
- edgel[i] 的符号表示本三角形是该基函数的正(+)三角形还是负(-)三角形
"""

import logging
from dataclasses import dataclass, field
from typing import Sequence, Tuple

import numpy as np
from numpy.typing import NDArray, ArrayLike

from ..configs import get_config_value

logger = logging.getLogger(__name__)


# ==================== 三角形面元 ====================

class TriangleInfo:
    """
    三角形面元（支持阻抗边界条件 IBC）

    Attributes:
        tri_id (int): 面元编号
        vertices (NDArray): 顶点坐标 (3, 3)，每行一个顶点
        area (float): 面积
        edgel (NDArray): 三条边带符号的边长 (3,)
        in_bfs_id (NDArray): 三条边对应的全局基函数编号 (3,)，-1 表示该边无基函数
        center (NDArray): 形心 (3,)
        zs (complex): 表面阻抗 Zs，默认为0；仅供矩阵装配阶段使用，不影响场采样
    """

    def __init__(self, tri_id: int, dtype=np.float64):
        """
        创建空面元，几何数据由网格子系统填充

        Args:
            tri_id: 面元编号
            dtype: 实数类型 FT
        """
        self.tri_id = int(tri_id)
        self.vertices: NDArray = np.zeros((3, 3), dtype=dtype)
        self.area: float = 0.0
        self.edgel: NDArray = np.zeros(3, dtype=dtype)
        self.in_bfs_id: NDArray[np.int64] = np.full(3, -1, dtype=np.int64)
        self.center: NDArray = np.zeros(3, dtype=dtype)
        self.zs: complex = complex(0.0)

    @classmethod
    def from_vertices(
            cls,
            tri_id: int,
            vertices: ArrayLike,
            edge_signs: Sequence[float] = (1.0, 1.0, 1.0),
            in_bfs_id: Sequence[int] = (-1, -1, -1),
            zs: complex = 0.0,
            dtype=np.float64
    ) -> 'TriangleInfo':
        """
        由顶点坐标构建面元，计算面积、形心与边长

        Args:
            tri_id: 面元编号
            vertices: 三个顶点坐标 (3, 3)
            edge_signs: 三条边的符号（+1 / -1）
            in_bfs_id: 三条边对应的全局基函数编号
            zs: 表面阻抗
            dtype: 实数类型 FT

        Raises:
            ValueError: 顶点形状不是 (3, 3)，或三角形退化
        """
        verts = np.array(vertices, dtype=dtype)
        if verts.shape != (3, 3):
            raise ValueError(f"三角形顶点形状必须为 (3, 3)，得到 {verts.shape}")
        if len(edge_signs) != 3 or len(in_bfs_id) != 3:
            raise ValueError("edge_signs 与 in_bfs_id 必须各有3个元素")

        area = 0.5 * float(np.linalg.norm(np.cross(verts[1] - verts[0], verts[2] - verts[0])))
        min_area = get_config_value('physics', 'tolerances.degenerate_area', 1.0e-30)
        if area <= min_area:
            raise ValueError(f"三角形 #{tri_id} 退化（面积 {area:.3e}）")

        # 边 i 为顶点 i 的对边
        lengths = np.array([
            np.linalg.norm(verts[(i + 2) % 3] - verts[(i + 1) % 3]) for i in range(3)
        ], dtype=dtype)

        tri = cls(tri_id, dtype=dtype)
        tri.vertices = verts
        tri.area = area
        tri.edgel = np.sign(np.asarray(edge_signs, dtype=dtype)) * lengths
        tri.in_bfs_id = np.asarray(in_bfs_id, dtype=np.int64)
        tri.center = verts.mean(axis=0)
        tri.zs = complex(zs)
        return tri

    def free_vertex(self, idx: int) -> NDArray:
        """边 idx 对应的自由顶点"""
        return self.vertices[idx]

    @property
    def normal(self) -> NDArray:
        """单位法向量（右手顺序 v0 -> v1 -> v2）"""
        n = np.cross(self.vertices[1] - self.vertices[0], self.vertices[2] - self.vertices[0])
        return n / np.linalg.norm(n)

    def __repr__(self) -> str:
        return (f"TriangleInfo(tri_id={self.tri_id}, area={self.area:.4e}, "
                f"center={np.round(self.center, 6).tolist()}, Zs={self.zs})")


# ==================== RWG 基函数记录 ====================

@dataclass(frozen=True)
class RWGBasis:
    """
    RWG 基函数

    Attributes:
        bf_id: 全局基函数编号
        edgel: 公共边长度
        in_geo: (正三角形编号, 负三角形编号)
        in_geo_id: 公共边在正/负三角形中的局部编号 (0..2)
    """
    bf_id: int
    edgel: float
    in_geo: Tuple[int, int] = field(default=(-1, -1))
    in_geo_id: Tuple[int, int] = field(default=(-1, -1))


def build_rwg_bases(triangles: Sequence[TriangleInfo]) -> dict:
    """
    根据面元上的 in_bfs_id / edgel 汇总基函数记录

    正三角形为 edgel > 0 的一侧。

    Returns:
        dict: bf_id -> RWGBasis
    """
    plus: dict = {}
    minus: dict = {}
    lengths: dict = {}

    for tri in triangles:
        for idx in range(3):
            bf_id = int(tri.in_bfs_id[idx])
            if bf_id < 0:
                continue
            lengths[bf_id] = abs(float(tri.edgel[idx]))
            side = plus if tri.edgel[idx] > 0 else minus
            side[bf_id] = (tri.tri_id, idx)

    bases = {}
    for bf_id, length in lengths.items():
        p_tri, p_idx = plus.get(bf_id, (-1, -1))
        m_tri, m_idx = minus.get(bf_id, (-1, -1))
        bases[bf_id] = RWGBasis(bf_id, length, (p_tri, m_tri), (p_idx, m_idx))

    logger.debug(f"已汇总 {len(bases)} 个 RWG 基函数")
    return bases
