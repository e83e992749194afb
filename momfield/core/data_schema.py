# core/data_schema.py
"""
核心数据契约定义模块
本模块定义了场采样、合并与导出各模块之间必须遵守的统一接口与数据格式。

设计原则：
1. 3D表示：所有空间坐标与场矢量均为3分量，批量数据形状为 (N, 3)
2. 不可变性：插入 FieldData 的数组在插入后只读
3. 显式契约：几何单元与激励源通过 Protocol 声明能力，运行期违反契约时报告错误
4. 开放字段名：场量名称由调用方自定义，不固定为结构体字段
"""

from typing import TypedDict, Optional, Literal, Any, Protocol, runtime_checkable
import numpy as np
from numpy.typing import NDArray, ArrayLike


# ============================================================================ #
# 规范场量名称
# ============================================================================ #

E_INC = "E_inc"    # 入射电场
H_INC = "H_inc"    # 入射磁场
J_SURF = "J"       # 表面电流密度
POSITIONS_KEY = "positions"  # 二进制导出中的位置数组键名

PrecisionType = Literal["float32", "float64"]


# ============================================================================ #
# 能力契约
# ============================================================================ #

@runtime_checkable
class GeometryElement(Protocol):
    """
    可采样几何单元契约

    任何提供形心 center（3分量坐标）的对象都可以作为场采样点的来源。
    """
    center: Any


@runtime_checkable
class FieldSource(Protocol):
    """
    激励源能力契约：在空间点上计算电场和磁场

    points 可以是单点 (3,) 或点数组 (N, 3)，返回同形状的复数矢量。
    """
    def efield(self, points: ArrayLike) -> NDArray[np.complexfloating]: ...

    def hfield(self, points: ArrayLike) -> NDArray[np.complexfloating]: ...


# ============================================================================ #
# 结果契约
# ============================================================================ #

class ValidationResult(TypedDict):
    """
    验证结果格式

    所有validate函数的标准返回值。
    """
    is_valid: bool
    message: str
    detail: Optional[dict[str, Any]]


class EvaluationMetadata(TypedDict, total=False):
    """
    场采样元数据

    由计算引擎写入 FieldData.metadata，记录计算信息。
    """
    source: str  # 激励源描述
    frequency: float  # 工作频率 (Hz)
    precision: PrecisionType  # 数值精度
    n_workers: int  # 并行线程数
    elapsed_s: float  # 采样耗时（秒）


# ============================================================================ #
# 异常
# ============================================================================ #

class FieldDataError(ValueError):
    """FieldData 相关错误的基类"""
    pass


class FieldCountMismatchError(FieldDataError):
    """合并两个点数不同的 FieldData"""

    def __init__(self, target_npoints: int, source_npoints: int):
        self.target_npoints = target_npoints
        self.source_npoints = source_npoints
        super().__init__(
            f"无法合并 FieldData：点数不一致 "
            f"(target: {target_npoints}, source: {source_npoints})"
        )


class FieldShapeError(FieldDataError):
    """插入的场量数组形状与 (npoints, 3) 不符"""
    pass


class GeometryContractError(TypeError):
    """几何单元不提供形心 center"""

    def __init__(self, index: int, element: Any):
        self.index = index
        self.element_type = type(element).__name__
        super().__init__(
            f"几何单元 #{index} ({self.element_type}) 不提供 center 属性，无法采样；"
            f"请在调用前用 select_sampleable 过滤"
        )


class SourceContractError(TypeError):
    """激励源未实现 efield/hfield"""

    def __init__(self, source: Any):
        self.source_type = type(source).__name__
        super().__init__(
            f"不支持的激励源类型: {self.source_type}（必须同时实现 efield 与 hfield）"
        )


class FieldExportError(OSError):
    """场数据导出失败"""
    pass


# ============================================================================ #
# 工具函数
# ============================================================================ #

def as_vec3(value: ArrayLike, dtype: Any = np.float64) -> NDArray:
    """
    转换为只读3分量矢量

    Raises:
        ValueError: 分量数不是3
    """
    vec = np.array(value, dtype=dtype).reshape(-1)
    if vec.shape != (3,):
        raise ValueError(f"矢量必须有3个分量，得到形状 {np.shape(value)}")
    vec.setflags(write=False)
    return vec


def as_points(points: ArrayLike, dtype: Any = np.float64) -> NDArray:
    """转换为 (N, 3) 点数组，单点视为 N=1"""
    arr = np.atleast_2d(np.asarray(points, dtype=dtype))
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"点数组形状必须为 (N, 3)，得到 {arr.shape}")
    return arr


def create_validation_result(is_valid: bool, message: str,
                             detail: Optional[dict[str, Any]] = None) -> ValidationResult:
    """创建标准验证结果"""
    return {'is_valid': is_valid, 'message': message, 'detail': detail}
