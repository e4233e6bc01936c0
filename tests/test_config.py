import json

import pytest
import yaml

from spherical_sfm.pipeline import (
    RansacConfig,
    SphericalPoseConfig,
    TriangulationConfig,
    compute_adaptive_params,
    get_default_config,
    get_noisy_config,
    load_config,
)


def test_defaults():
    config = get_default_config()
    assert config.ransac.threshold_deg is None
    assert config.ransac.confidence == 0.999
    assert config.ransac.seed == 0
    assert config.triangulation.min_triang_angle_deg == 1.0
    assert config.verbose is True


def test_adaptive_threshold_from_panorama_size():
    # 3600 px span 360 degrees: 0.1 deg per pixel, 2 px default
    assert compute_adaptive_params(3600, 1800)["threshold_deg"] == pytest.approx(0.2)
    # never below the floor
    assert compute_adaptive_params(100000, 50000)["threshold_deg"] == pytest.approx(0.05)


def test_apply_adaptive_keeps_explicit_values():
    config = SphericalPoseConfig()
    config.apply_adaptive_params(3600, 1800)
    assert config.ransac.threshold_deg == pytest.approx(0.2)

    config = SphericalPoseConfig(ransac=RansacConfig(threshold_deg=0.7))
    config.apply_adaptive_params(3600, 1800)
    assert config.ransac.threshold_deg == 0.7


def test_dict_round_trip():
    config = get_noisy_config()
    assert SphericalPoseConfig.from_dict(config.to_dict()) == config


def test_from_dict_partial():
    config = SphericalPoseConfig.from_dict({"ransac": {"threshold_deg": 0.3}, "verbose": False})
    assert config.ransac.threshold_deg == 0.3
    assert config.ransac.max_iterations == RansacConfig().max_iterations
    assert config.triangulation == TriangulationConfig()
    assert config.verbose is False


def test_unknown_keys_are_rejected():
    with pytest.raises(TypeError):
        SphericalPoseConfig.from_dict({"ransac": {"threshold": 0.3}})
    with pytest.raises(TypeError):
        SphericalPoseConfig.from_dict({"bundle_adjustment": True})


def test_load_yaml_and_json(tmp_path):
    d = {"ransac": {"threshold_deg": 0.15, "seed": 3}, "triangulation": {"max_distance": 50.0}}

    p_yaml = tmp_path / "pose.yaml"
    p_yaml.write_text(yaml.safe_dump(d))
    p_json = tmp_path / "pose.json"
    p_json.write_text(json.dumps(d))

    for p in (p_yaml, p_json):
        config = load_config(p)
        assert config.ransac.threshold_deg == 0.15
        assert config.ransac.seed == 3
        assert config.triangulation.max_distance == 50.0


def test_load_config_requires_mapping(tmp_path):
    p = tmp_path / "bad.yaml"
    p.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError):
        load_config(p)


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")
