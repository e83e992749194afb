import logging

import numpy as np

from momfield.utils import (
    VACUUM_PERMITTIVITY, VACUUM_PERMEABILITY, FREE_SPACE_IMPEDANCE,
    validate_constants, PerformanceMonitor, setup_logging
)
from momfield.configs import SimulationConfig


def test_constants_consistent():
    assert validate_constants()
    assert np.isclose(FREE_SPACE_IMPEDANCE, 376.730313, rtol=1e-6)


def test_simulation_config_uses_codata_constants():
    config = SimulationConfig()
    assert config.epsilon_0 == VACUUM_PERMITTIVITY
    assert config.mu_0 == VACUUM_PERMEABILITY


def test_performance_monitor_records_timings():
    monitor = PerformanceMonitor()
    with monitor.timer("step"):
        sum(range(1000))
    with monitor.timer("step"):
        pass

    summary = monitor.get_performance_summary()
    assert summary["step"]["count"] == 2
    assert monitor.last_time("step") >= 0.0
    assert monitor.end_timer("never-started") == 0.0

    monitor.clear()
    assert monitor.get_performance_summary() == {}


def test_setup_logging_is_idempotent(tmp_path):
    log_file = tmp_path / "momfield.log"
    logger = setup_logging(logging.DEBUG, log_file=str(log_file))
    logger = setup_logging(logging.DEBUG, log_file=str(log_file))

    assert logger.name == "momfield"
    assert len(logger.handlers) == 2
    logging.getLogger("momfield.core").debug("child message")
    for handler in logger.handlers:
        handler.flush()
    assert "child message" in log_file.read_text(encoding="utf-8")

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
