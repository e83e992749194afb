# configs/__init__.py
"""
场计算配置加载系统

提供类型安全的配置访问，支持用户配置文件与环境变量覆盖。
运行期的工作频率与数值精度由 SimulationConfig 表示，作为显式依赖
注入到激励源和场计算引擎中；每次运行只有一个"当前"配置。
"""

import math
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Union, List, Optional
import logging
from dataclasses import dataclass, replace

import numpy as np

from ..utils.constants import VACUUM_PERMITTIVITY, VACUUM_PERMEABILITY

logger = logging.getLogger(__name__)

# 配置存储
_CONFIG_CACHE: Dict[str, Dict[str, Any]] = {}

# 配置文件路径
_CONFIG_DIR = Path(__file__).parent
_CONFIG_FILES = {
    'physics': _CONFIG_DIR / 'physics.yaml',
    'engine': _CONFIG_DIR / 'engine.yaml'
}

# 用户配置目录
_USER_CONFIG_DIR = Path.home() / '.momfield'
_USER_CONFIG_FILE = _USER_CONFIG_DIR / 'config.yaml'

# 环境变量前缀，嵌套键之间用双下划线分隔
_ENV_PREFIX = 'MOMFIELD'
_ENV_SEPARATOR = '__'

SUPPORTED_PRECISIONS = ('float32', 'float64')
SUPPORTED_BACKENDS = ('threading', 'serial')


@dataclass
class ConfigSource:
    """配置源信息"""
    name: str
    path: Path
    exists: bool
    type: str = "file"


class ConfigValidationError(Exception):
    """配置验证异常"""
    pass


def load_yaml_config(file_path: Path) -> Dict[str, Any]:
    """
    加载YAML配置文件

    Args:
        file_path: YAML文件路径

    Returns:
        配置字典

    Raises:
        FileNotFoundError: 文件不存在
        yaml.YAMLError: YAML格式错误
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)

        if config is None:
            logger.warning(f"配置文件为空: {file_path}")
            return {}

        logger.debug(f"配置已加载: {Path(file_path).name}")
        return config

    except FileNotFoundError:
        logger.error(f"配置文件未找到: {file_path}")
        raise
    except yaml.YAMLError as e:
        logger.error(f"YAML解析错误: {file_path} - {e}")
        raise


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    递归合并配置字典

    用override中的值覆盖base中的值，保留未覆盖的项

    Args:
        base: 基础配置
        override: 覆盖配置

    Returns:
        合并后的配置
    """
    merged = base.copy()

    for key, value in override.items():
        if (key in merged and
                isinstance(merged[key], dict) and
                isinstance(value, dict)):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def get_config(config_type: str, reload: bool = False) -> Dict[str, Any]:
    """
    获取指定类型的配置

    Args:
        config_type: 配置类型 ('physics', 'engine')
        reload: 是否强制重新加载（跳过缓存）

    Returns:
        配置字典

    Raises:
        ValueError: 配置类型不支持
        ConfigValidationError: 配置内容无效
    """
    if config_type not in _CONFIG_FILES:
        raise ValueError(
            f"不支持的配置类型: {config_type}. "
            f"可选类型: {list(_CONFIG_FILES.keys())}"
        )

    # 从缓存返回（除非强制重载）
    if not reload and config_type in _CONFIG_CACHE:
        return _CONFIG_CACHE[config_type]

    config = _load_default_config(config_type)

    # 合并用户自定义配置（如果存在）
    if _USER_CONFIG_FILE.exists():
        try:
            user_config_all = load_yaml_config(_USER_CONFIG_FILE)
            user_config = user_config_all.get(config_type, {})

            if user_config:
                config = merge_configs(config, user_config)
                logger.info(f"合并用户配置: {config_type}")
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"用户配置加载失败: {e}")

    # 应用环境变量覆盖（最高优先级）
    config = _apply_environment_overrides(config_type, config)

    # 验证配置
    _validate_configuration(config_type, config)

    # 缓存配置
    _CONFIG_CACHE[config_type] = config

    return config


def _load_default_config(config_type: str) -> Dict[str, Any]:
    """加载随包发布的默认配置，文件缺失时使用内嵌默认值"""
    config_path = _CONFIG_FILES[config_type]
    if config_path.exists():
        return load_yaml_config(config_path)

    logger.warning(f"默认配置缺失: {config_path.name}，使用内嵌默认值")
    return yaml.safe_load(_DEFAULT_CONFIGS[config_type]) or {}


def _apply_environment_overrides(config_type: str, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    应用环境变量覆盖

    环境变量命名规则：
    - MOMFIELD_{TYPE}__{KEY}__{SUBKEY}=value

    例如：
    - MOMFIELD_ENGINE__SIMULATION__FREQUENCY=3e9
    - MOMFIELD_ENGINE__PARALLEL__MAX_WORKERS=8
    """
    prefix = f"{_ENV_PREFIX}_{config_type.upper()}{_ENV_SEPARATOR}"
    overrides: Dict[str, Any] = {}

    for env_key, env_value in os.environ.items():
        if env_key.startswith(prefix):
            # 解析嵌套键
            key_parts = env_key[len(prefix):].lower().split(_ENV_SEPARATOR)

            # 构建嵌套字典
            current = overrides
            for part in key_parts[:-1]:
                current = current.setdefault(part, {})

            # 转换值类型
            current[key_parts[-1]] = _parse_environment_value(env_value)

    if overrides:
        config = merge_configs(config, overrides)
        logger.info(f"应用环境变量覆盖: {config_type}")

    return config


def _parse_environment_value(value: str) -> Union[str, float, int, bool, None]:
    """
    转换环境变量字符串到适当类型

    优先级：
    1. None (null/none)
    2. bool (true/false/yes/no)
    3. int (纯数字)
    4. float (科学计数法或小数)
    5. str (原始字符串)
    """
    value_lower = value.lower().strip()

    if value_lower in ('null', 'none'):
        return None

    # bool
    if value_lower in ('true', 'yes'):
        return True
    if value_lower in ('false', 'no'):
        return False

    # int
    try:
        return int(value)
    except ValueError:
        pass

    # float
    try:
        return float(value)
    except ValueError:
        pass

    # str
    return value


def _validate_configuration(config_type: str, config: Dict[str, Any]) -> None:
    """
    验证配置有效性

    根据配置类型执行不同的验证规则
    """
    validators = {
        'physics': _validate_physics_config,
        'engine': _validate_engine_config
    }

    if validator := validators.get(config_type):
        validator(config)


def _validate_physics_config(config: Dict[str, Any]) -> None:
    """
    验证物理配置

    检查：
    - 基本电磁常数存在且为正数
    """
    constants = config.get('constants', {})

    required_constants = ['epsilon_0', 'mu_0', 'speed_of_light']
    for const_name in required_constants:
        if const_name not in constants:
            raise ConfigValidationError(f"缺少必需物理常数: {const_name}")

        value = constants[const_name]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ConfigValidationError(f"物理常数必须为正数: {const_name} = {value}")


def _validate_engine_config(config: Dict[str, Any]) -> None:
    """
    验证引擎配置

    检查：
    - 工作频率为正的有限数
    - 数值精度受支持
    - 并行参数合理
    """
    simulation = config.get('simulation', {})

    frequency = simulation.get('frequency', 1e8)
    if (isinstance(frequency, bool) or not isinstance(frequency, (int, float))
            or not math.isfinite(frequency) or frequency <= 0):
        raise ConfigValidationError(f"工作频率必须为正的有限数: frequency = {frequency}")

    precision = simulation.get('precision', 'float64')
    if precision not in SUPPORTED_PRECISIONS:
        raise ConfigValidationError(
            f"不支持的数值精度: {precision}. 可选: {list(SUPPORTED_PRECISIONS)}"
        )

    parallel = config.get('parallel', {})

    max_workers = parallel.get('max_workers')
    if max_workers is not None and (
            isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1):
        raise ConfigValidationError(
            f"max_workers无效: {max_workers} (应为正整数或null)"
        )

    backend = parallel.get('backend', 'threading')
    if backend not in SUPPORTED_BACKENDS:
        raise ConfigValidationError(
            f"不支持的并行后端: {backend}. 可选: {list(SUPPORTED_BACKENDS)}"
        )

    min_chunk = parallel.get('min_chunk_size', 1)
    if isinstance(min_chunk, bool) or not isinstance(min_chunk, int) or min_chunk < 1:
        raise ConfigValidationError(f"min_chunk_size无效: {min_chunk} (应 >= 1)")


def list_config_sources() -> List[ConfigSource]:
    """
    列出所有配置源

    Returns:
        配置源信息列表
    """
    sources = []

    for name, path in _CONFIG_FILES.items():
        sources.append(ConfigSource(
            name=f"{name}_default",
            path=path,
            exists=path.exists(),
            type="file"
        ))

    sources.append(ConfigSource(
        name="user_config",
        path=_USER_CONFIG_FILE,
        exists=_USER_CONFIG_FILE.exists(),
        type="file"
    ))

    sources.append(ConfigSource(
        name="environment_variables",
        path=Path(f"{_ENV_PREFIX}_*"),
        exists=True,
        type="env"
    ))

    return sources


def clear_config_cache() -> None:
    """清除配置缓存"""
    _CONFIG_CACHE.clear()
    logger.debug("配置缓存已清除")


def get_config_value(config_type: str, key_path: str, default: Any = None) -> Any:
    """
    获取配置值

    Args:
        config_type: 配置类型
        key_path: 键路径，用点号分隔 (如 'simulation.frequency')
        default: 默认值（如果键不存在）

    Returns:
        配置值
    """
    config = get_config(config_type)

    current = config
    for key in key_path.split('.'):
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return default

    return current


def set_config_value(config_type: str, key_path: str, value: Any) -> None:
    """
    设置配置值（仅影响当前运行实例）

    Args:
        config_type: 配置类型
        key_path: 键路径，用点号分隔
        value: 要设置的值
    """
    if config_type not in _CONFIG_CACHE:
        get_config(config_type)  # 确保配置已加载

    config = _CONFIG_CACHE[config_type]
    keys = key_path.split('.')
    current = config

    for key in keys[:-1]:
        current = current.setdefault(key, {})

    current[keys[-1]] = value


# ============================================================================ #
# 运行期计算配置（频率 / 精度）
# ============================================================================ #

@dataclass(frozen=True)
class SimulationConfig:
    """
    单次运行的计算配置

    频率决定角波数 k₀ = ω√(μ₀ε₀)，精度决定实数类型 FT 与复数类型 CT。
    实例不可变，修改请使用 with_frequency / with_precision。
    """
    frequency: float = 1.0e8
    precision: str = 'float64'
    epsilon_0: float = VACUUM_PERMITTIVITY
    mu_0: float = VACUUM_PERMEABILITY

    def __post_init__(self):
        if not math.isfinite(self.frequency) or self.frequency <= 0:
            raise ConfigValidationError(f"工作频率必须为正的有限数: frequency = {self.frequency}")
        if self.precision not in SUPPORTED_PRECISIONS:
            raise ConfigValidationError(
                f"不支持的数值精度: {self.precision}. 可选: {list(SUPPORTED_PRECISIONS)}"
            )
        if self.epsilon_0 <= 0 or self.mu_0 <= 0:
            raise ConfigValidationError("ε₀ 与 μ₀ 必须为正数")

    @classmethod
    def from_config(cls, reload: bool = False) -> 'SimulationConfig':
        """从 YAML 配置（含用户配置与环境变量覆盖）构建"""
        physics = get_config('physics', reload=reload)
        engine = get_config('engine', reload=reload)
        simulation = engine.get('simulation', {})
        constants = physics['constants']
        return cls(
            frequency=float(simulation.get('frequency', 1.0e8)),
            precision=simulation.get('precision', 'float64'),
            epsilon_0=float(constants['epsilon_0']),
            mu_0=float(constants['mu_0'])
        )

    @property
    def omega(self) -> float:
        """角频率 ω = 2πf"""
        return 2.0 * math.pi * self.frequency

    @property
    def k0(self) -> float:
        """自由空间角波数 k₀ = ω√(μ₀ε₀)"""
        return self.omega * math.sqrt(self.mu_0 * self.epsilon_0)

    @property
    def eta0(self) -> float:
        """自由空间波阻抗 η₀ = √(μ₀/ε₀)"""
        return math.sqrt(self.mu_0 / self.epsilon_0)

    @property
    def wavelength(self) -> float:
        """自由空间波长 λ₀ = 2π/k₀"""
        return 2.0 * math.pi / self.k0

    @property
    def real_dtype(self) -> np.dtype:
        """实数类型 FT"""
        return np.dtype(self.precision)

    @property
    def complex_dtype(self) -> np.dtype:
        """复数类型 CT = Complex{FT}"""
        return np.dtype(np.complex64 if self.precision == 'float32' else np.complex128)

    def with_frequency(self, frequency: float) -> 'SimulationConfig':
        return replace(self, frequency=float(frequency))

    def with_precision(self, precision: str) -> 'SimulationConfig':
        return replace(self, precision=precision)


_ACTIVE_CONFIG: Optional[SimulationConfig] = None


def get_active_config() -> SimulationConfig:
    """获取当前运行的计算配置，首次调用时从 YAML 配置构建"""
    global _ACTIVE_CONFIG
    if _ACTIVE_CONFIG is None:
        _ACTIVE_CONFIG = SimulationConfig.from_config()
        logger.info(
            f"计算配置已建立: f={_ACTIVE_CONFIG.frequency:.6e} Hz, "
            f"precision={_ACTIVE_CONFIG.precision}"
        )
    return _ACTIVE_CONFIG


def set_active_config(config: Optional[SimulationConfig]) -> None:
    """设置当前运行的计算配置（None 表示下次访问时重新从 YAML 构建）"""
    global _ACTIVE_CONFIG
    _ACTIVE_CONFIG = config


def input_basic_parameters(frequency: Optional[float] = None,
                           precision: Optional[str] = None) -> SimulationConfig:
    """
    设置基本计算参数并返回新的当前配置

    Args:
        frequency: 工作频率 (Hz)，None 表示保持不变
        precision: 'float32' | 'float64'，None 表示保持不变
    """
    config = get_active_config()
    if frequency is not None:
        config = config.with_frequency(frequency)
    if precision is not None:
        config = config.with_precision(precision)
    set_active_config(config)
    logger.info(f"基本参数已更新: f={config.frequency:.6e} Hz, precision={config.precision}")
    return config


def set_precision(precision: str) -> SimulationConfig:
    """设置当前配置的数值精度"""
    return input_basic_parameters(precision=precision)


# ============================================================================ #
# 内嵌默认配置（随包文件缺失时使用）
# ============================================================================ #

_DEFAULT_PHYSICS_CONFIG = """# 电磁常数配置

constants:
  epsilon_0: 8.8541878128e-12     # 真空介电常数 (F/m)
  mu_0: 1.25663706212e-6          # 真空磁导率 (H/m)
  speed_of_light: 2.99792458e+8    # 光速 (m/s)

tolerances:
  degenerate_area: 1.0e-30
"""

_DEFAULT_ENGINE_CONFIG = """# 场计算引擎配置

simulation:
  frequency: 1.0e+8
  precision: "float64"

parallel:
  enabled: true
  max_workers: null
  backend: "threading"
  min_chunk_size: 256

export:
  text_digits: 6
"""

_DEFAULT_CONFIGS = {
    'physics': _DEFAULT_PHYSICS_CONFIG,
    'engine': _DEFAULT_ENGINE_CONFIG
}


__all__ = [
    'ConfigSource',
    'ConfigValidationError',
    'SimulationConfig',
    'load_yaml_config',
    'merge_configs',
    'get_config',
    'get_config_value',
    'set_config_value',
    'clear_config_cache',
    'list_config_sources',
    'get_active_config',
    'set_active_config',
    'input_basic_parameters',
    'set_precision',
    'SUPPORTED_PRECISIONS',
    'SUPPORTED_BACKENDS'
]
