# physics/sources.py
"""
激励源模型

所有激励源继承 ExcitingSource，并实现两个纯函数接口：
  efield(points) -> 电场复矢量
  hfield(points) -> 磁场复矢量
points 可以是单点 (3,) 或点数组 (N, 3)，返回值形状与输入一致。
接口为纯函数（无内部可变状态），可以在多个线程中同时调用。

平面波（时谐，e^{jωt} 约定）：
  k̂ = (sinθ cosφ, sinθ sinφ, cosθ)           传播方向
  ê = cosα θ̂ + sinα φ̂                          极化方向
  E(r) = V · ê · exp(-j k₀ k̂·r)
  H(r) = k̂ × E(r) / η₀
其中 θ̂ = (cosθ cosφ, cosθ sinφ, -sinθ)，φ̂ = (-sinφ, cosφ, 0)。
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np
from numpy.typing import NDArray, ArrayLike

from ..configs import SimulationConfig, get_active_config
from ..core.data_schema import ValidationResult, as_points, create_validation_result

logger = logging.getLogger(__name__)


# ============================================================================ #
# 激励源抽象基类
# ============================================================================ #

class ExcitingSource(ABC):
    """
    激励源抽象基类

    子类必须实现：
    - _efield: 在 (N, 3) 点数组上计算电场
    - _hfield: 在 (N, 3) 点数组上计算磁场

    频率与精度来自构造时注入的 SimulationConfig，未注入时使用当前运行配置。
    """

    def __init__(self, config: Optional[SimulationConfig] = None):
        self._config: SimulationConfig = config if config is not None else get_active_config()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    def efield(self, points: ArrayLike) -> NDArray[np.complexfloating]:
        """
        计算电场

        Args:
            points: 单个点 [x,y,z] 或点数组 N×3

        Returns:
            电场复矢量，单点返回 (3,)，多点返回 (N, 3)
        """
        pts = as_points(points, dtype=self._config.real_dtype)
        return self._shape_like(points, self._efield(pts))

    def hfield(self, points: ArrayLike) -> NDArray[np.complexfloating]:
        """
        计算磁场

        Args:
            points: 单个点 [x,y,z] 或点数组 N×3

        Returns:
            磁场复矢量，单点返回 (3,)，多点返回 (N, 3)
        """
        pts = as_points(points, dtype=self._config.real_dtype)
        return self._shape_like(points, self._hfield(pts))

    @abstractmethod
    def _efield(self, points: NDArray) -> NDArray[np.complexfloating]:
        pass

    @abstractmethod
    def _hfield(self, points: NDArray) -> NDArray[np.complexfloating]:
        pass

    @abstractmethod
    def validate_parameters(self) -> ValidationResult:
        """验证激励源参数的有效性"""
        pass

    @staticmethod
    def _shape_like(points: ArrayLike, values: NDArray) -> NDArray:
        return values[0] if np.ndim(points) == 1 else values

    def describe(self) -> str:
        """用于日志与元数据的简短描述"""
        return self.__class__.__name__


# ============================================================================ #
# 平面波
# ============================================================================ #

class PlaneWave(ExcitingSource):
    """
    时谐平面波激励源

    Attributes:
        theta (float): 传播方向极角 θ (rad)
        phi (float): 传播方向方位角 φ (rad)
        alpha (float): 极化角 α (rad)，从 θ̂ 向 φ̂ 旋转
        amplitude (float): 电场幅值 V

    Examples:
        >>> pw = PlaneWave(np.pi / 2, 0.0, 0.0, 1.0)
        >>> e = pw.efield([0.0, 0.0, 0.0])
        >>> bool(np.linalg.norm(e) > 0)
        True
    """

    def __init__(
            self,
            theta: float,
            phi: float,
            alpha: float = 0.0,
            amplitude: float = 1.0,
            config: Optional[SimulationConfig] = None
    ):
        """
        初始化平面波

        Args:
            theta: 传播方向极角 (rad)
            phi: 传播方向方位角 (rad)
            alpha: 极化角 (rad)
            amplitude: 电场幅值
            config: 计算配置（频率、精度），None 表示使用当前运行配置

        Raises:
            ValueError: 参数不是有限数
        """
        super().__init__(config)

        for name, value in (('theta', theta), ('phi', phi), ('alpha', alpha), ('amplitude', amplitude)):
            if not math.isfinite(value):
                raise ValueError(f"平面波参数必须是有限数: {name} = {value}")

        self._theta = float(theta)
        self._phi = float(phi)
        self._alpha = float(alpha)
        self._amplitude = float(amplitude)

        st, ct = math.sin(self._theta), math.cos(self._theta)
        sp, cp = math.sin(self._phi), math.cos(self._phi)

        # 预计算方向矢量
        self._k_hat = np.array([st * cp, st * sp, ct])
        theta_hat = np.array([ct * cp, ct * sp, -st])
        phi_hat = np.array([-sp, cp, 0.0])
        self._e_hat = math.cos(self._alpha) * theta_hat + math.sin(self._alpha) * phi_hat
        self._h_hat = np.cross(self._k_hat, self._e_hat)

        for vec in (self._k_hat, self._e_hat, self._h_hat):
            vec.setflags(write=False)

        logger.debug(
            f"平面波已创建 (θ={self._theta:.4f}, φ={self._phi:.4f}, "
            f"α={self._alpha:.4f}, V={self._amplitude:.3e})"
        )

    @property
    def theta(self) -> float:
        return self._theta

    @property
    def phi(self) -> float:
        return self._phi

    @property
    def alpha(self) -> float:
        return self._alpha

    @property
    def amplitude(self) -> float:
        return self._amplitude

    @property
    def k_hat(self) -> NDArray[np.float64]:
        """传播方向单位矢量"""
        return self._k_hat

    @property
    def polarization(self) -> NDArray[np.float64]:
        """电场极化单位矢量"""
        return self._e_hat

    def _phase(self, points: NDArray) -> NDArray:
        """相位因子 exp(-j k₀ k̂·r)，形状 (N, 1)"""
        kr = self._config.k0 * (points @ self._k_hat)
        return np.exp(-1j * kr)[:, np.newaxis]

    def _efield(self, points: NDArray) -> NDArray[np.complexfloating]:
        field = self._amplitude * self._phase(points) * self._e_hat
        return field.astype(self._config.complex_dtype, copy=False)

    def _hfield(self, points: NDArray) -> NDArray[np.complexfloating]:
        # H = k̂ × E / η₀
        field = (self._amplitude / self._config.eta0) * self._phase(points) * self._h_hat
        return field.astype(self._config.complex_dtype, copy=False)

    def validate_parameters(self) -> ValidationResult:
        if self._amplitude == 0.0:
            return create_validation_result(False, "平面波幅值为0，场处处为零")
        return create_validation_result(
            True, "平面波参数有效",
            {'k0': self._config.k0, 'eta0': self._config.eta0}
        )

    def describe(self) -> str:
        return (f"PlaneWave(theta={self._theta:.6g}, phi={self._phi:.6g}, "
                f"alpha={self._alpha:.6g}, amplitude={self._amplitude:.6g})")

    def __repr__(self) -> str:
        return self.describe()

