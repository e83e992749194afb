# core/field_io.py
"""
场数据导出与读取

按文件后缀选择格式：
- .npz：命名数组的二进制格式，键 "positions" 为 (N, 3) 实数组，
        每个场量一个 (N, 3) 复数组，键顺序不固定
- 其他（通常为 .csv）：按行的文本格式
      rx,ry,rz,<name>x_real,<name>x_imag,<name>y_real,<name>y_imag,<name>z_real,<name>z_imag,...
  场量按名称字典序排列，每个数值以科学计数法输出（默认小数点后6位），
  共 N+1 行（含表头），行尾为换行符
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import numpy as np
from numpy.typing import NDArray

from .data_schema import POSITIONS_KEY, FieldExportError
from .engine import evaluate_incident_fields
from .field_data import FieldData, ExcitationFieldData
from ..configs import SimulationConfig, get_config_value

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
BINARY_SUFFIX = '.npz'
TEXT_SUFFIX = '.csv'
_COMPONENT_SUFFIXES = ('x_real', 'x_imag', 'y_real', 'y_imag', 'z_real', 'z_imag')


def _as_field_data(data: Union[FieldData, ExcitationFieldData]) -> FieldData:
    if isinstance(data, ExcitationFieldData):
        return data.to_field_data()
    return data


def _is_binary(path: Path) -> bool:
    return path.suffix.lower() == BINARY_SUFFIX


# ============================================================================ #
# 写入
# ============================================================================ #

def text_header(data: FieldData) -> str:
    """文本格式的表头行（不含换行符）"""
    columns = ['rx', 'ry', 'rz']
    for name in data.field_names():
        columns.extend(f"{name}{suffix}" for suffix in _COMPONENT_SUFFIXES)
    return ','.join(columns)


def text_table(data: FieldData) -> NDArray:
    """
    文本格式的数值表 (N, 3 + 6m)

    每个场量占6列：x/y/z 分量各自的实部、虚部。
    """
    n = data.npoints
    blocks = [np.asarray(data.positions, dtype=np.float64)]
    for name in data.field_names():
        values = data[name]
        blocks.append(np.stack([values.real, values.imag], axis=2).reshape(n, 6))
    return np.hstack(blocks)


def _write_text(path: Path, data: FieldData, digits: int) -> None:
    with open(path, 'w', encoding='utf-8', newline='\n') as f:
        np.savetxt(
            f, text_table(data),
            fmt=f'%.{digits}e', delimiter=',',
            header=text_header(data), comments=''
        )


def _write_binary(path: Path, data: FieldData) -> None:
    if POSITIONS_KEY in data:
        raise FieldExportError(f"场量名称 '{POSITIONS_KEY}' 与位置数组键名冲突")

    arrays: Dict[str, NDArray] = {POSITIONS_KEY: np.asarray(data.positions)}
    for name, values in data.items():
        arrays[name] = np.asarray(values)
    # 经由文件句柄写入，np.savez 不会再追加后缀
    with open(path, 'wb') as f:
        np.savez(f, **arrays)


def save_field_data(
        filename: PathLike,
        data: Union[FieldData, ExcitationFieldData],
        digits: Optional[int] = None
) -> Path:
    """
    保存场数据，格式由后缀决定（.npz 为二进制，其余为文本）

    Args:
        filename: 输出文件路径
        data: 场数据
        digits: 文本格式科学计数法的小数位数，None 表示读取引擎配置 export.text_digits

    Returns:
        写入的文件路径

    Raises:
        FieldExportError: 写入失败
    """
    path = Path(filename)
    fd = _as_field_data(data)

    try:
        if _is_binary(path):
            _write_binary(path, fd)
        else:
            if digits is None:
                digits = int(get_config_value('engine', 'export.text_digits', 6))
            _write_text(path, fd, digits)
    except FieldExportError:
        raise
    except (OSError, ValueError) as e:
        raise FieldExportError(f"场数据导出失败: {path} - {e}") from e

    logger.info(f"场数据已导出: {path} ({fd.npoints} 个点, 场量 {fd.field_names()})")
    return path


def export_field_data(
        stem: PathLike,
        data: Union[FieldData, ExcitationFieldData],
        binary: bool = True,
        binary_optional: bool = True
) -> Dict[str, Optional[Path]]:
    """
    同时导出文本（主格式）与二进制（可选格式）

    文本导出失败总是抛出；binary_optional 为 True 时二进制导出失败
    只记录警告，对应结果为 None。

    Args:
        stem: 不含后缀的输出路径
        data: 场数据
        binary: 是否导出二进制格式
        binary_optional: 二进制导出失败是否可忽略

    Returns:
        {'text': 文本路径, 'binary': 二进制路径或None}
    """
    stem = Path(stem)
    written: Dict[str, Optional[Path]] = {
        'text': save_field_data(stem.with_suffix(TEXT_SUFFIX), data),
        'binary': None
    }

    if binary:
        try:
            written['binary'] = save_field_data(stem.with_suffix(BINARY_SUFFIX), data)
        except FieldExportError as e:
            if not binary_optional:
                raise
            logger.warning(f"二进制导出失败，已跳过: {e}")

    return written


# ============================================================================ #
# 读取
# ============================================================================ #

def _field_names_from_header(header: str, path: Path) -> list:
    columns = header.strip().split(',')
    if columns[:3] != ['rx', 'ry', 'rz'] or (len(columns) - 3) % 6 != 0:
        raise ValueError(f"无法识别的场数据表头: {path}")

    names = []
    for start in range(3, len(columns), 6):
        group = columns[start:start + 6]
        name = group[0][:-len(_COMPONENT_SUFFIXES[0])]
        if [f"{name}{s}" for s in _COMPONENT_SUFFIXES] != group:
            raise ValueError(f"场量列名不完整: {group}")
        names.append(name)
    return names


def _read_text(path: Path, dtype: Any) -> FieldData:
    with open(path, 'r', encoding='utf-8') as f:
        lines = f.read().splitlines()
    if not lines:
        raise ValueError(f"空文件: {path}")

    names = _field_names_from_header(lines[0], path)
    rows = [line for line in lines[1:] if line.strip()]
    ncols = 3 + 6 * len(names)
    table = (np.loadtxt(rows, delimiter=',', ndmin=2) if rows
             else np.empty((0, ncols)))

    fields = {}
    for j, name in enumerate(names):
        block = table[:, 3 + 6 * j: 9 + 6 * j]
        fields[name] = block[:, 0::2] + 1j * block[:, 1::2]
    return FieldData(table[:, :3], fields=fields, dtype=dtype)


def _read_binary(path: Path, dtype: Optional[Any]) -> FieldData:
    with np.load(path) as archive:
        positions = archive[POSITIONS_KEY]
        fields = {key: archive[key] for key in archive.files if key != POSITIONS_KEY}
    return FieldData(positions, fields=fields, dtype=dtype or positions.dtype)


def load_field_data(filename: PathLike, dtype: Optional[Any] = None) -> FieldData:
    """
    读取 save_field_data 写出的文件

    Args:
        filename: 文件路径（.npz 或文本）
        dtype: 实数类型 FT；None 时二进制按文件保存的类型，文本按 float64

    Returns:
        FieldData
    """
    path = Path(filename)
    if _is_binary(path):
        data = _read_binary(path, dtype)
    else:
        data = _read_text(path, dtype or np.float64)
    logger.debug(f"场数据已读取: {path} ({data.npoints} 个点)")
    return data


# ============================================================================ #
# 便捷封装
# ============================================================================ #

def save_incident_fields(
        filename: PathLike,
        geometries: Iterable[Any],
        source: Any,
        config: Optional[SimulationConfig] = None
) -> FieldData:
    """计算几何单元形心处的入射场并保存，返回计算结果"""
    data = evaluate_incident_fields(geometries, source, config=config)
    save_field_data(filename, data)
    return data


def save_excitation_fields(
        filename: PathLike,
        data_or_geometries: Any,
        source: Any = None,
        config: Optional[SimulationConfig] = None
) -> Union[FieldData, ExcitationFieldData]:
    """
    保存激励场（旧接口）

    source 为 None 时 data_or_geometries 视为已计算的 FieldData / ExcitationFieldData；
    否则视为几何集合，先计算入射场再保存。

    Raises:
        TypeError: source 为 None 且 data_or_geometries 不是场数据
    """
    if source is None:
        if not isinstance(data_or_geometries, (FieldData, ExcitationFieldData)):
            raise TypeError(
                f"save_excitation_fields 需要 FieldData / ExcitationFieldData，"
                f"或同时提供几何集合与激励源，得到 {type(data_or_geometries).__name__}"
            )
        save_field_data(filename, data_or_geometries)
        return data_or_geometries
    return save_incident_fields(filename, data_or_geometries, source, config=config)


def save_surface_currents(filename: PathLike, data: FieldData) -> Path:
    """保存表面电流数据"""
    return save_field_data(filename, data)
