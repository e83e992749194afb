import numpy as np
import pytest

from momfield.core import (
    FieldEvaluationEngine, FieldData, ExcitationFieldData,
    flatten_geometries, select_sampleable, partition_range, parallel_for, resolve_workers,
    evaluate_incident_fields, evaluate_excitation_fields, calculate_excitation_fields,
    GeometryContractError, SourceContractError, E_INC, H_INC
)
from momfield.configs import set_config_value


class Bare:
    """不提供 center 的对象"""
    pass


class FieldlessSource:
    def efield(self, points):
        return np.zeros((len(points), 3), dtype=complex)


def test_flatten_flat_sequence_returned_as_is(make_geo):
    geos = [make_geo(0), make_geo(1)]
    assert flatten_geometries(geos) is geos


def test_flatten_groups_preserves_order(make_geo):
    a, b, c = make_geo(0), make_geo(1), make_geo(2)
    assert flatten_geometries([[a, b], [c]]) == [a, b, c]


def test_flatten_generic_nesting(make_geo):
    a, b, c, d = make_geo(0), make_geo(1), make_geo(2), make_geo(3)
    flat = flatten_geometries([a, [b, [c]], (d,)])
    assert [g.center[0] for g in flat] == [0, 1, 2, 3]


def test_flatten_accepts_generators(make_geo):
    flat = flatten_geometries(make_geo(i) for i in range(4))
    assert len(flat) == 4


def test_select_sampleable_drops_elements_without_center(make_geo):
    a, b = make_geo(0), make_geo(1)
    assert select_sampleable([a, Bare(), [b]]) == [a, b]


def test_partition_range_covers_all_indices():
    blocks = partition_range(10, 3)
    assert blocks[0][0] == 0 and blocks[-1][1] == 10
    for (_, stop), (start, _) in zip(blocks, blocks[1:]):
        assert stop == start
    assert len(blocks) == 3


def test_partition_range_respects_min_chunk():
    assert partition_range(10, 8, min_chunk_size=256) == [(0, 10)]
    assert partition_range(0, 4) == []


def test_resolve_workers_serial_backend():
    set_config_value("engine", "parallel.backend", "serial")
    assert resolve_workers() == 1
    assert resolve_workers(3) == 3
    with pytest.raises(ValueError):
        resolve_workers(0)


def test_parallel_for_writes_each_index_once():
    out = np.zeros(100, dtype=int)

    def kernel(start, stop):
        out[start:stop] += np.arange(start, stop)

    n_blocks = parallel_for(100, kernel, max_workers=4, min_chunk_size=1)
    assert n_blocks == 4
    assert np.array_equal(out, np.arange(100))


def test_parallel_for_propagates_errors():
    def kernel(start, stop):
        if start > 0:
            raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        parallel_for(10, kernel, max_workers=2, min_chunk_size=1)


def test_concrete_scenario(make_geo, plane_wave, sim_config):
    data = evaluate_incident_fields([make_geo(0), make_geo(1)], plane_wave, config=sim_config)

    assert isinstance(data, FieldData)
    assert data.npoints == 2
    assert np.allclose(data.positions, [[0, 0, 0], [1, 0, 0]])
    assert {E_INC, H_INC} <= set(data.keys())
    for name in (E_INC, H_INC):
        assert np.all(np.linalg.norm(data[name], axis=1) > 0)


def test_point_count_for_nested_collection(make_geo, plane_wave, sim_config):
    nested = [[make_geo(i) for i in range(5)], [make_geo(10 + i) for i in range(7)]]
    data = evaluate_incident_fields(nested, plane_wave, config=sim_config)
    assert data.npoints == 12
    assert data.positions.shape == (12, 3)
    assert data.positions[5, 0] == 10


def test_samples_match_direct_source_evaluation(make_geo, plane_wave, sim_config):
    geos = [make_geo(0.1 * i, 0.2, -0.3) for i in range(20)]
    data = evaluate_incident_fields(geos, plane_wave, config=sim_config)
    points = np.array([g.center for g in geos])
    assert np.allclose(data[E_INC], plane_wave.efield(points))
    assert np.allclose(data[H_INC], plane_wave.hfield(points))


def test_threaded_equals_serial(make_geo, plane_wave, sim_config):
    geos = [make_geo(0.05 * i, 0.01 * i, 0.0) for i in range(200)]
    serial = FieldEvaluationEngine(config=sim_config, max_workers=1).evaluate_incident_fields(geos, plane_wave)
    threaded = FieldEvaluationEngine(
        config=sim_config, max_workers=4, min_chunk_size=1
    ).evaluate_incident_fields(geos, plane_wave)

    assert threaded.metadata["n_workers"] == 4
    assert np.array_equal(serial.positions, threaded.positions)
    assert np.allclose(serial[E_INC], threaded[E_INC], rtol=1e-12, atol=1e-15)
    assert np.allclose(serial[H_INC], threaded[H_INC], rtol=1e-12, atol=1e-15)


def test_excitation_fields_identical_to_incident(make_geo, plane_wave, sim_config):
    geos = [[make_geo(0), make_geo(0.5)], [make_geo(2.0)]]
    generic = evaluate_incident_fields(geos, plane_wave, config=sim_config)
    legacy = evaluate_excitation_fields(geos, plane_wave, config=sim_config)

    assert isinstance(legacy, ExcitationFieldData)
    assert legacy.npoints == generic.npoints
    assert np.array_equal(legacy.E, generic[E_INC])
    assert np.array_equal(legacy.H, generic[H_INC])
    assert not legacy.E.flags.writeable
    assert calculate_excitation_fields is evaluate_excitation_fields


def test_metadata_recorded(make_geo, plane_wave, sim_config):
    data = evaluate_incident_fields([make_geo(0)], plane_wave, config=sim_config)
    assert data.metadata["frequency"] == sim_config.frequency
    assert data.metadata["precision"] == "float64"
    assert data.metadata["source"].startswith("PlaneWave")


def test_empty_collection(plane_wave, sim_config):
    data = evaluate_incident_fields([], plane_wave, config=sim_config)
    assert data.npoints == 0
    assert data[E_INC].shape == (0, 3)


def test_missing_center_is_reported(make_geo, plane_wave, sim_config):
    with pytest.raises(GeometryContractError) as excinfo:
        evaluate_incident_fields([make_geo(0), Bare()], plane_wave, config=sim_config)
    assert excinfo.value.index == 1
    assert excinfo.value.element_type == "Bare"


def test_unsupported_source_is_reported(make_geo, sim_config):
    with pytest.raises(SourceContractError):
        evaluate_incident_fields([make_geo(0)], FieldlessSource(), config=sim_config)


def test_single_precision_output(make_geo, plane_wave, sim_config):
    config32 = sim_config.with_precision("float32")
    data = evaluate_incident_fields([make_geo(0), make_geo(1)], plane_wave, config=config32)
    assert data.positions.dtype == np.float32
    assert data[E_INC].dtype == np.complex64
