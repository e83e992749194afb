"""
momfield - 矩量法（MoM）场采样与场数据层

在几何单元形心处并行计算激励源的入射场，以统一的 FieldData 容器
保存、合并任意命名场量，并导出为文本或二进制格式。
"""

from .configs import SimulationConfig, get_config, get_active_config, set_active_config
from .core import (
    FieldData,
    ExcitationFieldData,
    merge_field_data,
    FieldEvaluationEngine,
    evaluate_incident_fields,
    evaluate_excitation_fields,
    save_field_data,
    export_field_data,
    load_field_data
)
from .physics import PlaneWave, TriangleInfo, RWGBasis, rwg_value_at, reconstruct_surface_currents

__version__ = "0.1.0"

__all__ = [
    'SimulationConfig',
    'get_config',
    'get_active_config',
    'set_active_config',
    'FieldData',
    'ExcitationFieldData',
    'merge_field_data',
    'FieldEvaluationEngine',
    'evaluate_incident_fields',
    'evaluate_excitation_fields',
    'save_field_data',
    'export_field_data',
    'load_field_data',
    'PlaneWave',
    'TriangleInfo',
    'RWGBasis',
    'rwg_value_at',
    'reconstruct_surface_currents',
    '__version__'
]
