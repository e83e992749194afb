import os

import numpy as np
import pytest
from dataclasses import dataclass, field

import momfield.configs as configs
from momfield.configs import SimulationConfig, clear_config_cache, set_active_config
from momfield.physics import PlaneWave, TriangleInfo


@dataclass
class CentroidGeo:
    """只提供形心的最小几何单元"""
    center: np.ndarray = field(default_factory=lambda: np.zeros(3))


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """每个测试使用干净的配置：无用户配置文件、无环境变量覆盖、无当前配置"""
    monkeypatch.setattr(configs, "_USER_CONFIG_FILE", tmp_path / "missing.yaml")
    for key in list(os.environ):
        if key.startswith("MOMFIELD_"):
            monkeypatch.delenv(key)
    clear_config_cache()
    set_active_config(None)
    yield
    clear_config_cache()
    set_active_config(None)


@pytest.fixture
def sim_config():
    return SimulationConfig(frequency=3.0e8, precision="float64")


@pytest.fixture
def plane_wave(sim_config):
    return PlaneWave(np.pi / 2, 0.0, 0.0, 1.0, config=sim_config)


@pytest.fixture
def make_geo():
    def _make(x, y=0.0, z=0.0):
        return CentroidGeo(np.array([x, y, z], dtype=float))
    return _make


@pytest.fixture
def triangle_pair():
    """共享边 (1,0,0)-(0,1,0) 的两个三角形，边编号0，正/负各一"""
    plus = TriangleInfo.from_vertices(
        0, [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]],
        edge_signs=(1, 1, 1), in_bfs_id=(0, -1, -1)
    )
    minus = TriangleInfo.from_vertices(
        1, [[1.0, 1.0, 0.0], [0.0, 1.0, 0.0], [1.0, 0.0, 0.0]],
        edge_signs=(-1, 1, 1), in_bfs_id=(0, -1, -1)
    )
    return plus, minus
