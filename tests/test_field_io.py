import numpy as np
import pytest

from momfield.core import (
    FieldData, ExcitationFieldData, FieldExportError, E_INC, H_INC, J_SURF,
    save_field_data, export_field_data, load_field_data,
    save_incident_fields, save_excitation_fields, save_surface_currents,
    evaluate_excitation_fields
)


@pytest.fixture
def sample_data():
    rng = np.random.default_rng(42)
    positions = rng.normal(size=(4, 3))
    fd = FieldData(positions)
    fd["b_field"] = rng.normal(size=(4, 3)) + 1j * rng.normal(size=(4, 3))
    fd["a_field"] = rng.normal(size=(4, 3)) + 1j * rng.normal(size=(4, 3))
    return fd


def read_lines(path):
    with open(path, "r", encoding="utf-8") as f:
        return f.read().splitlines()


def test_text_layout(tmp_path, sample_data):
    path = save_field_data(tmp_path / "fields.csv", sample_data)
    lines = read_lines(path)

    assert len(lines) == sample_data.npoints + 1
    header = lines[0].split(",")
    assert header[:3] == ["rx", "ry", "rz"]
    assert len(header) == 3 + 6 * 2
    # 场量按名称排序
    assert header[3] == "a_fieldx_real"
    assert header[8] == "a_fieldz_imag"
    assert header[9] == "b_fieldx_real"
    for line in lines[1:]:
        assert len(line.split(",")) == len(header)


def test_text_values_are_scientific(tmp_path, sample_data):
    path = save_field_data(tmp_path / "fields.csv", sample_data)
    first = read_lines(path)[1].split(",")
    assert "e" in first[0]
    assert np.isclose(float(first[3]), sample_data["a_field"][0, 0].real, rtol=1e-6)
    assert np.isclose(float(first[4]), sample_data["a_field"][0, 0].imag, rtol=1e-6)
    assert np.isclose(float(first[5]), sample_data["a_field"][0, 1].real, rtol=1e-6)


def test_text_round_trip(tmp_path, sample_data):
    path = save_field_data(tmp_path / "fields.csv", sample_data)
    loaded = load_field_data(path)
    assert loaded.npoints == sample_data.npoints
    assert loaded.field_names() == sample_data.field_names()
    assert np.allclose(loaded.positions, sample_data.positions, rtol=1e-6)
    for name in sample_data.keys():
        assert np.allclose(loaded[name], sample_data[name], rtol=1e-6, atol=1e-12)


def test_custom_digits(tmp_path, sample_data):
    path = save_field_data(tmp_path / "fields.txt", sample_data, digits=3)
    value = read_lines(path)[1].split(",")[0]
    mantissa = value.split("e")[0].lstrip("-")
    assert len(mantissa.split(".")[1]) == 3


def test_binary_round_trip_is_exact(tmp_path, sample_data):
    path = save_field_data(tmp_path / "fields.npz", sample_data)
    with np.load(path) as archive:
        assert set(archive.files) == {"positions", "a_field", "b_field"}
        assert archive["a_field"].shape == (4, 3)

    loaded = load_field_data(path)
    assert np.array_equal(loaded.positions, sample_data.positions)
    for name in sample_data.keys():
        assert np.array_equal(loaded[name], sample_data[name])


def test_empty_data_export(tmp_path):
    fd = FieldData(np.empty((0, 3)))
    path = save_field_data(tmp_path / "empty.csv", fd)
    assert read_lines(path) == ["rx,ry,rz"]
    assert load_field_data(path).npoints == 0


def test_text_export_error_is_raised(tmp_path, sample_data):
    with pytest.raises(FieldExportError):
        save_field_data(tmp_path / "missing_dir" / "fields.csv", sample_data)


def test_optional_binary_failure_is_tolerated(tmp_path, sample_data, caplog):
    sample_data["positions"] = np.zeros((4, 3))
    written = export_field_data(tmp_path / "fields", sample_data)

    assert written["text"].exists()
    assert written["binary"] is None
    assert "二进制导出失败" in caplog.text


def test_required_binary_failure_is_raised(tmp_path, sample_data):
    sample_data["positions"] = np.zeros((4, 3))
    with pytest.raises(FieldExportError):
        export_field_data(tmp_path / "fields", sample_data, binary_optional=False)


def test_export_writes_both_formats(tmp_path, sample_data):
    written = export_field_data(tmp_path / "fields", sample_data)
    assert written["text"].suffix == ".csv"
    assert written["binary"].suffix == ".npz"
    assert written["binary"].exists()


def test_concrete_scenario_export(tmp_path, make_geo, plane_wave, sim_config):
    path = tmp_path / "incident.csv"
    data = save_incident_fields(path, [make_geo(0), make_geo(1)], plane_wave, config=sim_config)
    lines = read_lines(path)

    assert data.npoints == 2
    assert len(lines) == 3
    assert lines[0].startswith("rx,ry,rz")
    assert E_INC in lines[0] and H_INC in lines[0]


def test_save_excitation_fields_legacy_forms(tmp_path, make_geo, plane_wave, sim_config):
    geos = [make_geo(0), make_geo(0.5), make_geo(1)]

    computed = save_excitation_fields(tmp_path / "a.csv", geos, plane_wave, config=sim_config)
    legacy = evaluate_excitation_fields(geos, plane_wave, config=sim_config)
    returned = save_excitation_fields(tmp_path / "b.csv", legacy)

    assert isinstance(returned, ExcitationFieldData)
    assert read_lines(tmp_path / "a.csv") == read_lines(tmp_path / "b.csv")
    assert computed.npoints == 3


def test_save_surface_currents(tmp_path):
    fd = FieldData(np.zeros((2, 3)), fields={J_SURF: np.ones((2, 3))})
    path = save_surface_currents(tmp_path / "currents.npz", fd)
    assert np.array_equal(load_field_data(path)[J_SURF], fd[J_SURF])


def test_uppercase_binary_suffix(tmp_path, sample_data):
    path = save_field_data(tmp_path / "fields.NPZ", sample_data)

    assert path.exists()
    assert sorted(p.name for p in tmp_path.iterdir()) == ["fields.NPZ"]
    loaded = load_field_data(path)
    assert np.array_equal(loaded["a_field"], sample_data["a_field"])


def test_save_excitation_fields_requires_data_or_source(tmp_path, make_geo):
    with pytest.raises(TypeError):
        save_excitation_fields(tmp_path / "bad.csv", [make_geo(0), make_geo(1)])
    assert not (tmp_path / "bad.csv").exists()
