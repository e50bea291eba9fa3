import numpy as np
import pytest

from planarslam.config import Config, load_opencv_yaml

CAM = """%YAML:1.0
---
image_height: 480
image_width: 640
camera_matrix: !!opencv-matrix
   rows: 3
   cols: 3
   dt: d
   data: [ 400., 0., 320., 0., 410., 240., 0., 0., 1. ]
distortion_coefficients: !!opencv-matrix
   rows: 1
   cols: 5
   dt: d
   data: [ 0., 0., 0., 0., 0. ]
rvec_b_c: !!opencv-matrix
   rows: 3
   cols: 1
   dt: d
   data: [ 0.1, -0.2, 0.3 ]
tvec_b_c: !!opencv-matrix
   rows: 3
   cols: 1
   dt: d
   data: [ 0.5, 0.25, 1.0 ]
"""

SETTINGS = """%YAML:1.0
---
img_num: 100
upper_depth: 10.0
lower_depth: 0.5
scale_facotr: 1.2
max_level: 5
max_feature_num: 500
th_huber2: 5.991
global_iter: {global_iter}
local_verbose: 1
fps: 30
write_traj_file_name: traj.txt
gm_vcl_ratio_min_match_kp: 0.25
{extra}
"""


def _write(tmp_path, global_iter=0, extra=""):
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir()
    (cfg_dir / "CamConfig.yml").write_text(CAM)
    (cfg_dir / "Settings.yml").write_text(SETTINGS.format(global_iter=global_iter, extra=extra))
    return tmp_path


def test_load_opencv_yaml_matrix(tmp_path):
    path = tmp_path / "m.yml"
    path.write_text(CAM)
    data = load_opencv_yaml(path)
    assert data["image_width"] == 640
    assert data["camera_matrix"].shape == (3, 3)
    assert data["rvec_b_c"].shape == (3, 1)


def test_camera_values(tmp_path):
    cfg = Config.from_directory(_write(tmp_path))
    assert cfg.fx_cam == 400.0
    assert cfg.fy_cam == 410.0
    assert cfg.img_size == (640, 480)
    assert np.allclose(cfg.btc[:3, 3], [0.5, 0.25, 1.0])
    assert np.allclose(cfg.btc @ cfg.ctb, np.eye(4))
    assert np.allclose(cfg.prj_mtrx_eye[:, :3], cfg.kcam)
    assert np.allclose(cfg.prj_mtrx_eye[:, 3], 0.0)


def test_settings_values(tmp_path):
    cfg = Config.from_directory(_write(tmp_path))
    assert cfg.img_index == 100
    assert cfg.max_level == 5
    assert cfg.th_huber ** 2 == pytest.approx(5.991)
    assert cfg.local_verbose is True
    assert cfg.global_verbose is False
    assert cfg.write_traj_file_name == "traj.txt"
    assert cfg.gm_vcl_ratio_min_match_mp == pytest.approx(0.25)


def test_missing_entries_read_as_zero(tmp_path):
    cfg = Config.from_directory(_write(tmp_path))
    assert cfg.mappub_scale_ratio == 0
    assert cfg.read_map_file_name == ""
    assert cfg.local_iter == 0


def test_plane_motion_defaults_and_overrides(tmp_path):
    cfg = Config.from_directory(_write(tmp_path))
    assert cfg.planemotion_xrot_info == 1e6
    assert cfg.planemotion_z_info == 1.0


def test_plane_motion_override(tmp_path):
    cfg = Config.from_directory(_write(tmp_path, extra="plane_motion_z_info: 7.5"))
    assert cfg.planemotion_z_info == 7.5


def test_global_iter_keeps_default_when_zero(tmp_path):
    cfg = Config.from_directory(_write(tmp_path, global_iter=0))
    assert cfg.global_iter == 15


def test_global_iter_set(tmp_path):
    cfg = Config.from_directory(_write(tmp_path, global_iter=40))
    assert cfg.global_iter == 40


def test_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        Config.from_directory(tmp_path / "nowhere")


def test_accept_depth_bounds():
    cfg = Config(lower_depth=0.5, upper_depth=10.0)
    assert cfg.accept_depth(0.5)
    assert cfg.accept_depth(10.0)
    assert not cfg.accept_depth(0.49)
    assert not cfg.accept_depth(10.01)