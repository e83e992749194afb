"""
物理模型包
包含激励源、三角形面元与 RWG 基函数的实现
"""

from .sources import ExcitingSource, PlaneWave
from .mesh import TriangleInfo, RWGBasis, build_rwg_bases
from .rwg import rwg_value_at, rwg_divergence, reconstruct_surface_currents

__all__ = [
    'ExcitingSource',
    'PlaneWave',
    'TriangleInfo',
    'RWGBasis',
    'build_rwg_bases',
    'rwg_value_at',
    'rwg_divergence',
    'reconstruct_surface_currents'
]
