# utils/__init__.py
"""
实用工具模块

包含电磁常数、性能监控和日志配置。
"""

from .constants import (
    VACUUM_PERMITTIVITY,
    VACUUM_PERMEABILITY,
    SPEED_OF_LIGHT,
    FREE_SPACE_IMPEDANCE,
    validate_constants
)
from .performance import PerformanceMonitor
from .logging_config import setup_logging

__all__ = [
    'VACUUM_PERMITTIVITY',
    'VACUUM_PERMEABILITY',
    'SPEED_OF_LIGHT',
    'FREE_SPACE_IMPEDANCE',
    'validate_constants',
    'PerformanceMonitor',
    'setup_logging'
]
