# core/__init__.py
"""
核心模块

包含场数据容器、场采样引擎与场数据导出。
"""

from .data_schema import (
    E_INC,
    H_INC,
    J_SURF,
    POSITIONS_KEY,
    GeometryElement,
    FieldSource,
    ValidationResult,
    EvaluationMetadata,
    FieldDataError,
    FieldCountMismatchError,
    FieldShapeError,
    GeometryContractError,
    SourceContractError,
    FieldExportError
)
from .field_data import FieldData, ExcitationFieldData, merge_field_data
from .engine import (
    FieldEvaluationEngine,
    flatten_geometries,
    select_sampleable,
    parallel_for,
    partition_range,
    resolve_workers,
    evaluate_incident_fields,
    evaluate_excitation_fields,
    calculate_incident_fields,
    calculate_excitation_fields
)
from .field_io import (
    save_field_data,
    export_field_data,
    load_field_data,
    save_incident_fields,
    save_excitation_fields,
    save_surface_currents
)

__all__ = [
    'E_INC',
    'H_INC',
    'J_SURF',
    'POSITIONS_KEY',
    'GeometryElement',
    'FieldSource',
    'ValidationResult',
    'EvaluationMetadata',
    'FieldDataError',
    'FieldCountMismatchError',
    'FieldShapeError',
    'GeometryContractError',
    'SourceContractError',
    'FieldExportError',
    'FieldData',
    'ExcitationFieldData',
    'merge_field_data',
    'FieldEvaluationEngine',
    'flatten_geometries',
    'select_sampleable',
    'parallel_for',
    'partition_range',
    'resolve_workers',
    'evaluate_incident_fields',
    'evaluate_excitation_fields',
    'calculate_incident_fields',
    'calculate_excitation_fields',
    'save_field_data',
    'export_field_data',
    'load_field_data',
    'save_incident_fields',
    'save_excitation_fields',
    'save_surface_currents'
]
