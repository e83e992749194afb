# utils/constants.py
"""
电磁学物理常数定义模块

数值取自 scipy.constants（CODATA 推荐值），所有常量均为双精度浮点数。
- 真空介电常数、真空磁导率、光速：直接引用
- 自由空间波阻抗：η₀ = √(μ₀/ε₀)
"""

from math import sqrt

from scipy import constants as _codata

# 真空介电常数
# ε₀ ≈ 8.8541878128×10⁻¹² F/m
VACUUM_PERMITTIVITY: float = float(_codata.epsilon_0)  # 单位：F·m⁻¹

# 真空磁导率
# μ₀ ≈ 1.25663706212×10⁻⁶ N/A²
VACUUM_PERMEABILITY: float = float(_codata.mu_0)  # 单位：N·A⁻²

# 光速
# c = 299792458 m/s，c² = 1/(ε₀μ₀)
SPEED_OF_LIGHT: float = float(_codata.c)  # 单位：m·s⁻¹

# 自由空间波阻抗 η₀ ≈ 376.73 Ω
FREE_SPACE_IMPEDANCE: float = sqrt(VACUUM_PERMEABILITY / VACUUM_PERMITTIVITY)  # 单位：Ω


def validate_constants() -> bool:
    """
    验证麦克斯韦关系式：c²·ε₀·μ₀ = 1

    Returns:
        bool: 验证是否通过（相对误差 < 1e-9）
    """
    product = SPEED_OF_LIGHT ** 2 * VACUUM_PERMITTIVITY * VACUUM_PERMEABILITY
    return abs(product - 1.0) < 1e-9


# ==================== 导出控制 ====================
__all__ = [
    'VACUUM_PERMITTIVITY',   # 真空介电常数ε₀
    'VACUUM_PERMEABILITY',   # 真空磁导率μ₀
    'SPEED_OF_LIGHT',        # 光速c
    'FREE_SPACE_IMPEDANCE',  # 波阻抗η₀
    'validate_constants'     # 验证函数
]

# ==================== 模块自检 ====================
if __name__ == "__main__":
    print("=" * 60)
    print("电磁常数自检")
    print("=" * 60)
    print(f"  ε₀ = {VACUUM_PERMITTIVITY:.10e} F/m")
    print(f"  μ₀ = {VACUUM_PERMEABILITY:.10e} N/A²")
    print(f"  c  = {SPEED_OF_LIGHT:.1f} m/s")
    print(f"  η₀ = {FREE_SPACE_IMPEDANCE:.6f} Ω")
    print(f"  一致性: {'✓ 通过' if validate_constants() else '✗ 失败'}")
