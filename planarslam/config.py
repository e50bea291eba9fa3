"""System settings read from a data directory's camera and settings files."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import yaml

from planarslam.geometry import invert_se3, rodrigues


class _OpenCVLoader(yaml.SafeLoader):
    """YAML loader that understands OpenCV matrix nodes."""


def _construct_matrix(loader: yaml.SafeLoader, node: yaml.Node) -> np.ndarray:
    mapping = loader.construct_mapping(node, deep=True)
    rows, cols = int(mapping["rows"]), int(mapping["cols"])
    data = np.asarray(mapping.get("data", []), dtype=float)
    if data.size == rows * cols:
        return data.reshape(rows, cols)
    return data.reshape(rows, cols, -1)


_OpenCVLoader.add_constructor("tag:yaml.org,2002:opencv-matrix", _construct_matrix)


def load_opencv_yaml(path) -> dict[str, Any]:
    """Read an OpenCV-style YAML file into a dictionary."""
    text = Path(path).read_text()
    lines = [line for line in text.splitlines() if not line.startswith("%YAML")]
    data = yaml.load("\n".join(lines), Loader=_OpenCVLoader)
    return data or {}


def _int(settings: dict, key: str) -> int:
    value = settings.get(key)
    return 0 if value is None else int(value)


def _float(settings: dict, key: str) -> float:
    value = settings.get(key)
    return 0.0 if value is None else float(value)


def _bool(settings: dict, key: str) -> bool:
    return _int(settings, key) != 0


def _str(settings: dict, key: str) -> str:
    value = settings.get(key)
    return "" if value is None else str(value)


def _require(data: dict, key: str, path: Path) -> Any:
    if key not in data or data[key] is None:
        raise KeyError(f"{path}: missing entry {key!r}")
    return data[key]


@dataclass
class Config:
    """Camera calibration and tuning parameters of the system."""

    data_path: str = ""
    img_index: int = 0
    img_index_local_st: int = 0
    img_size: tuple[int, int] = (0, 0)
    btc: np.ndarray = field(default_factory=lambda: np.eye(4))
    ctb: np.ndarray = field(default_factory=lambda: np.eye(4))
    kcam: np.ndarray = field(default_factory=lambda: np.eye(3))
    fx_cam: float = 1.0
    fy_cam: float = 1.0
    dcam: np.ndarray = field(default_factory=lambda: np.zeros(5))
    prj_mtrx_eye: np.ndarray = field(default_factory=lambda: np.eye(3, 4))

    upper_depth: float = 0.0
    lower_depth: float = 0.0
    num_filter_last_several_mu: int = 0
    filter_converge_continue_count: int = 0
    depth_filter_threshold: float = 0.0

    scale_factor: float = 1.2
    max_level: int = 1
    max_ftr_number: int = 0
    feature_sigma: float = 0.0

    odo_x_uncertain: float = 0.0
    odo_y_uncertain: float = 0.0
    odo_t_uncertain: float = 0.0
    odo_x_noise: float = 0.0
    odo_y_noise: float = 0.0
    odo_t_noise: float = 0.0

    planemotion_xrot_info: float = 1e6
    planemotion_yrot_info: float = 1e6
    planemotion_z_info: float = 1.0

    local_frames_num: int = 0
    th_huber: float = 0.0
    local_iter: int = 0
    local_verbose: bool = False
    global_iter: int = 15
    global_verbose: bool = False
    local_print: bool = False
    global_print: bool = False

    fps: int = 0

    use_prev_map: bool = False
    localization_only: bool = False
    save_new_map: bool = False
    read_map_file_name: str = ""
    read_map_file_path: str = ""
    write_map_file_name: str = "se2lam.map"
    write_map_file_path: str = "/home/se2lam/"
    write_traj_file_name: str = ""
    write_traj_file_path: str = ""

    mappub_scale_ratio: int = 300

    gm_vcl_num_min_match_mp: int = 15
    gm_vcl_num_min_match_kp: int = 30
    gm_vcl_ratio_min_match_mp: float = 0.05
    gm_dcl_min_kfid_offset: int = 20
    gm_dcl_min_score_best: float = 0.005

    @classmethod
    def from_directory(cls, path) -> Config:
        """Load ``config/CamConfig.yml`` and ``config/Settings.yml`` under ``path``."""
        root = Path(path)
        cam_path = root / "config" / "CamConfig.yml"
        cam = load_opencv_yaml(cam_path)

        kcam = np.asarray(_require(cam, "camera_matrix", cam_path), dtype=float).reshape(3, 3)
        dcam = np.asarray(_require(cam, "distortion_coefficients", cam_path), dtype=float).ravel()
        rvec = np.asarray(_require(cam, "rvec_b_c", cam_path), dtype=float).ravel()
        tvec = np.asarray(_require(cam, "tvec_b_c", cam_path), dtype=float).ravel()
        height = float(_require(cam, "image_height", cam_path))
        width = float(_require(cam, "image_width", cam_path))

        btc = np.eye(4)
        btc[:3, :3] = rodrigues(rvec)
        btc[:3, 3] = tvec

        settings_path = root / "config" / "Settings.yml"
        s = load_opencv_yaml(settings_path)

        cfg = cls(
            data_path=str(path),
            img_size=(int(width), int(height)),
            btc=btc,
            ctb=invert_se3(btc),
            kcam=kcam,
            fx_cam=float(kcam[0, 0]),
            fy_cam=float(kcam[1, 1]),
            dcam=dcam,
            prj_mtrx_eye=kcam @ np.eye(3, 4),
            img_index=_int(s, "img_num"),
            img_index_local_st=_int(s, "img_id_local_st"),
            upper_depth=_float(s, "upper_depth"),
            lower_depth=_float(s, "lower_depth"),
            num_filter_last_several_mu=_int(s, "depth_filter_avrg_count"),
            filter_converge_continue_count=_int(s, "depth_filter_converge_count"),
            depth_filter_threshold=_float(s, "depth_filter_thresh"),
            scale_factor=_float(s, "scale_facotr"),
            max_level=_int(s, "max_level"),
            max_ftr_number=_int(s, "max_feature_num"),
            feature_sigma=_float(s, "feature_sigma"),
            odo_x_uncertain=_float(s, "odo_x_uncertain"),
            odo_y_uncertain=_float(s, "odo_y_uncertain"),
            odo_t_uncertain=_float(s, "odo_theta_uncertain"),
            odo_x_noise=_float(s, "odo_x_steady_noise"),
            odo_y_noise=_float(s, "odo_y_steady_noise"),
            odo_t_noise=_float(s, "odo_theta_steady_noise"),
            local_frames_num=_int(s, "frame_num"),
            th_huber=math.sqrt(_float(s, "th_huber2")),
            local_iter=_int(s, "local_iter"),
            local_verbose=_bool(s, "local_verbose"),
            local_print=_bool(s, "local_print"),
            global_verbose=_bool(s, "global_verbose"),
            global_print=_bool(s, "global_print"),
            fps=_int(s, "fps"),
            use_prev_map=_bool(s, "use_prev_map"),
            save_new_map=_bool(s, "save_new_map"),
            localization_only=_bool(s, "localization_only"),
            read_map_file_name=_str(s, "read_map_file_name"),
            write_map_file_name=_str(s, "write_map_file_name"),
            read_map_file_path=_str(s, "read_map_file_path"),
            write_map_file_path=_str(s, "write_map_file_path"),
            write_traj_file_name=_str(s, "write_traj_file_name"),
            write_traj_file_path=_str(s, "write_traj_file_path"),
            mappub_scale_ratio=_int(s, "mappub_scale_ratio"),
            gm_vcl_num_min_match_mp=_int(s, "gm_vcl_num_min_match_mp"),
            gm_vcl_num_min_match_kp=_int(s, "gm_vcl_num_min_match_kp"),
            gm_vcl_ratio_min_match_mp=_float(s, "gm_vcl_ratio_min_match_kp"),
            gm_dcl_min_kfid_offset=_int(s, "gm_dcl_min_kfid_offset"),
            gm_dcl_min_score_best=_float(s, "gm_dcl_min_score_best"),
        )
        for key, attr in (
            ("plane_motion_xrot_info", "planemotion_xrot_info"),
            ("plane_motion_yrot_info", "planemotion_yrot_info"),
            ("plane_motion_z_info", "planemotion_z_info"),
        ):
            if s.get(key) is not None:
                setattr(cfg, attr, float(s[key]))
        if _int(s, "global_iter"):
            cfg.global_iter = _int(s, "global_iter")
        return cfg

    def accept_depth(self, depth: float) -> bool:
        return self.lower_depth <= depth <= self.upper_depth