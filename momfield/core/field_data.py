# core/field_data.py
"""
统一场数据容器

FieldData 将任意数量的命名场量（入射场、表面电流、散射场等）与一组共享的
有序采样点关联。每个场量数组形状为 (npoints, 3)，与 positions 按下标对齐。

约定：
- positions 在构造时确定，之后不再改变长度
- 场量数组插入后只读，因此合并时可以直接共享（不复制）
- 合并要求点数一致；不校验两者的 positions 是否逐点相同，
  调用方负责只合并基于同一组采样点计算的数据
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Any, Iterator, Mapping, Optional

import numpy as np
from numpy.typing import NDArray, ArrayLike

from .data_schema import (
    E_INC, H_INC,
    FieldCountMismatchError, FieldShapeError,
    as_points
)

logger = logging.getLogger(__name__)


def _complex_dtype_for(real_dtype: np.dtype) -> np.dtype:
    """FT -> Complex{FT}"""
    return np.result_type(real_dtype, np.complex64)


def _freeze(array: NDArray) -> NDArray:
    array.setflags(write=False)
    return array


class FieldData:
    """
    多场量采样数据

    Attributes:
        npoints (int): 采样点数
        positions (NDArray): 采样点坐标 (npoints, 3)，实数类型 FT
        fields (Mapping[str, NDArray]): 场量名 -> (npoints, 3) 复数数组（只读视图）
        metadata (dict): 计算元数据

    Examples:
        >>> fd = FieldData(np.zeros((2, 3)))
        >>> fd["J"] = [[1, 0, 0], [0, 1, 0]]
        >>> sorted(fd.keys())
        ['J']
    """

    def __init__(
            self,
            positions: ArrayLike,
            fields: Optional[Mapping[str, ArrayLike]] = None,
            dtype: Any = np.float64,
            metadata: Optional[Dict[str, Any]] = None
    ):
        """
        Args:
            positions: 采样点坐标，(N, 3)
            fields: 可选的初始场量
            dtype: 实数类型 FT，复数类型 CT 由其导出
            metadata: 可选元数据
        """
        real_dtype = np.dtype(dtype)
        if np.size(positions) == 0:
            pos = np.empty((0, 3), dtype=real_dtype)
        else:
            pos = as_points(positions, dtype=real_dtype).copy()

        self._positions: NDArray = _freeze(pos)
        self._fields: Dict[str, NDArray] = {}
        self.real_dtype: np.dtype = real_dtype
        self.complex_dtype: np.dtype = _complex_dtype_for(real_dtype)
        self.metadata: Dict[str, Any] = dict(metadata or {})

        for name, values in (fields or {}).items():
            self[name] = values

    # ------------------------------------------------------------------ #
    # 基本属性
    # ------------------------------------------------------------------ #

    @property
    def npoints(self) -> int:
        return self._positions.shape[0]

    @property
    def positions(self) -> NDArray:
        return self._positions

    @property
    def fields(self) -> Mapping[str, NDArray]:
        return MappingProxyType(self._fields)

    def field_names(self) -> list[str]:
        """按字典序排列的场量名称"""
        return sorted(self._fields)

    # ------------------------------------------------------------------ #
    # 映射接口
    # ------------------------------------------------------------------ #

    def __setitem__(self, name: str, values: ArrayLike) -> None:
        """插入或覆盖一个场量"""
        if not isinstance(name, str) or not name:
            raise FieldShapeError(f"场量名称必须是非空字符串，得到 {name!r}")

        array = np.array(values, dtype=self.complex_dtype)
        if self.npoints == 0 and array.size == 0:
            array = array.reshape(0, 3)
        if array.shape != (self.npoints, 3):
            raise FieldShapeError(
                f"场量 '{name}' 形状应为 ({self.npoints}, 3)，得到 {array.shape}"
            )
        self._fields[name] = _freeze(array)

    def __getitem__(self, name: str) -> NDArray:
        return self._fields[name]

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def keys(self):
        return self._fields.keys()

    def items(self):
        return self._fields.items()

    # ------------------------------------------------------------------ #
    # 合并
    # ------------------------------------------------------------------ #

    def merge(self, source: 'FieldData') -> 'FieldData':
        """
        将 source 的全部场量合并到本对象（同名场量以 source 为准）

        Args:
            source: 基于同一组采样点计算的另一份数据

        Returns:
            self

        Raises:
            FieldCountMismatchError: 点数不一致，此时两个对象都不会被修改
        """
        if self.npoints != source.npoints:
            raise FieldCountMismatchError(self.npoints, source.npoints)

        overwritten = [name for name in source.keys() if name in self._fields]
        if overwritten:
            logger.debug(f"合并时覆盖场量: {overwritten}")

        for name, values in source.items():
            if values.dtype == self.complex_dtype:
                # 只读数组直接共享
                self._fields[name] = values
            else:
                self[name] = values
        return self

    def copy(self) -> 'FieldData':
        """浅拷贝：新容器，共享只读数组"""
        other = FieldData(self._positions, dtype=self.real_dtype, metadata=self.metadata)
        other._fields.update(self._fields)
        return other

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(npoints={self.npoints}, "
                f"fields={self.field_names()}, dtype={self.real_dtype.name})")


def merge_field_data(target: FieldData, source: FieldData) -> FieldData:
    """
    合并 source 的场量到 target，返回 target

    要求两者点数一致；不校验 positions 是否逐点相同。
    """
    return target.merge(source)


# ============================================================================ #
# 兼容旧接口的固定双场量形式
# ============================================================================ #

@dataclass
class ExcitationFieldData:
    """
    激励场数据（旧接口）

    只包含入射电场 E 与入射磁场 H 的 FieldData 特化形式。
    """
    npoints: int
    positions: NDArray
    E: NDArray
    H: NDArray

    def __post_init__(self):
        for name in ('positions', 'E', 'H'):
            shape = np.shape(getattr(self, name))
            if shape != (self.npoints, 3):
                raise FieldShapeError(f"{name} 形状应为 ({self.npoints}, 3)，得到 {shape}")

    def to_field_data(self) -> FieldData:
        """转换为通用 FieldData（键名 E_inc / H_inc）"""
        return FieldData(
            self.positions,
            fields={E_INC: self.E, H_INC: self.H},
            dtype=np.result_type(np.asarray(self.positions).dtype, np.float32)
        )

    @classmethod
    def from_field_data(cls, data: FieldData) -> 'ExcitationFieldData':
        """从包含 E_inc / H_inc 的 FieldData 构建"""
        missing = [key for key in (E_INC, H_INC) if key not in data]
        if missing:
            raise KeyError(f"FieldData 缺少入射场量: {missing}")
        return cls(
            npoints=data.npoints,
            positions=data.positions,
            E=data[E_INC],
            H=data[H_INC]
        )
