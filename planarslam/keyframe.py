"""Keyframes: frames promoted into the map, with observations and graph links."""

from __future__ import annotations

import copy
import itertools
import threading
from dataclasses import dataclass, field
from typing import Any, Protocol

import numpy as np

from planarslam.frame import Frame
from planarslam.geometry import Se2, invert_se3


class MapPointLike(Protocol):
    """What a keyframe needs from the map points it observes."""

    def is_null(self) -> bool: ...

    def is_good_prl(self) -> bool: ...

    def erase_observation(self, keyframe: KeyFrame) -> None: ...


class Vocabulary(Protocol):
    """A bag-of-words vocabulary able to turn descriptors into word vectors."""

    def transform(self, descriptors: list, levels_up: int) -> tuple[dict, dict]: ...


@dataclass
class SE3Constraint:
    """A relative 3D pose measurement and its 6x6 information matrix."""

    measure: np.ndarray = field(default_factory=lambda: np.eye(4))
    info: np.ndarray = field(default_factory=lambda: np.zeros((6, 6)))


class KeyFrame(Frame):
    """A frame kept in the map, linked to map points and other keyframes."""

    _next_kf_id = itertools.count(1)

    def __init__(self, frame: Frame, ctb=None) -> None:
        for name, value in vars(frame).items():
            setattr(self, name, copy.deepcopy(value))
        self.ctb = np.eye(4) if ctb is None else np.asarray(ctb, dtype=float)
        self.id_kf = next(KeyFrame._next_kf_id)
        self.null = False

        count = len(self.keypoints)
        self.view_mps = np.full((count, 3), -1.0)
        self.view_mps_info = [-np.eye(3) for _ in range(count)]

        self.bow_vec: dict = {}
        self.feat_vec: dict = {}
        self.bow_vec_exist = False

        self.observations: dict[Any, int] = {}
        self.dual_observations: dict[int, Any] = {}
        self.covisible: set[KeyFrame] = set()
        self.ftr_measure_from: dict[KeyFrame, SE3Constraint] = {}
        self.ftr_measure_to: dict[KeyFrame, SE3Constraint] = {}
        self.odo_measure_from: tuple[KeyFrame | None, SE3Constraint] = (None, SE3Constraint())
        self.odo_measure_to: tuple[KeyFrame | None, SE3Constraint] = (None, SE3Constraint())

        self._obs_lock = threading.RLock()
        self._pose_lock = threading.RLock()
        self._des_lock = threading.RLock()

    def is_null(self) -> bool:
        return self.null

    # Observations of map points

    def add_observation(self, map_point, idx: int) -> None:
        with self._obs_lock:
            if map_point.is_null():
                return
            self.observations[map_point] = idx
            self.dual_observations[idx] = map_point

    def erase_observation(self, map_point) -> None:
        with self._obs_lock:
            idx = self.observations.pop(map_point, None)
            if idx is not None:
                self.dual_observations.pop(idx, None)

    def erase_observation_at(self, idx: int) -> None:
        with self._obs_lock:
            map_point = self.dual_observations.pop(idx, None)
            if map_point is not None:
                self.observations.pop(map_point, None)

    def has_observation(self, map_point) -> bool:
        with self._obs_lock:
            return map_point in self.observations

    def has_observation_at(self, idx: int) -> bool:
        with self._obs_lock:
            return idx in self.dual_observations

    def get_observation(self, idx: int):
        """Map point observed at keypoint ``idx``, or None."""
        with self._obs_lock:
            return self.dual_observations.get(idx)

    def get_ftr_idx(self, map_point) -> int:
        """Keypoint index of an observed map point, or -1."""
        with self._obs_lock:
            return self.observations.get(map_point, -1)

    def set_observation(self, map_point, idx: int) -> None:
        """Replace the map point seen at an already observed keypoint."""
        with self._obs_lock:
            old = self.dual_observations.get(idx)
            if idx not in self.dual_observations:
                return
            self.observations.pop(old, None)
            self.observations[map_point] = idx
            self.dual_observations[idx] = map_point

    def observed_map_points(self, check_parallax: bool = False) -> set:
        with self._obs_lock:
            return {
                mp
                for mp in self.observations
                if not mp.is_null() and (not check_parallax or mp.is_good_prl())
            }

    def map_point_matches(self) -> list:
        """Per keypoint, the observed map point or None."""
        with self._obs_lock:
            return [self.dual_observations.get(i) for i in range(len(self.keypoints_un))]

    def size_obs_mp(self) -> int:
        with self._obs_lock:
            return len(self.observations)

    def set_view_mp(self, point, idx: int, info) -> None:
        with self._obs_lock:
            self.view_mps[idx] = np.asarray(point, dtype=float).reshape(3)
            self.view_mps_info[idx] = np.asarray(info, dtype=float).reshape(3, 3)

    # Covisibility and constraints

    def add_covisible(self, other: KeyFrame) -> None:
        self.covisible.add(other)

    def erase_covisible(self, other: KeyFrame) -> None:
        self.covisible.discard(other)

    def covisible_keyframes(self) -> set[KeyFrame]:
        return set(self.covisible)

    def add_ftr_measure_from(self, other: KeyFrame, measure, info) -> None:
        self.ftr_measure_from.setdefault(other, SE3Constraint(np.asarray(measure), np.asarray(info)))

    def erase_ftr_measure_from(self, other: KeyFrame) -> None:
        self.ftr_measure_from.pop(other, None)

    def add_ftr_measure_to(self, other: KeyFrame, measure, info) -> None:
        self.ftr_measure_to.setdefault(other, SE3Constraint(np.asarray(measure), np.asarray(info)))

    def erase_ftr_measure_to(self, other: KeyFrame) -> None:
        self.ftr_measure_to.pop(other, None)

    def set_odo_measure_from(self, other: KeyFrame, measure, info) -> None:
        self.odo_measure_from = (other, SE3Constraint(np.asarray(measure), np.asarray(info)))

    def set_odo_measure_to(self, other: KeyFrame, measure, info) -> None:
        self.odo_measure_to = (other, SE3Constraint(np.asarray(measure), np.asarray(info)))

    # Pose

    def get_pose(self) -> np.ndarray:
        with self._pose_lock:
            return self.tcw.copy()

    def set_pose(self, tcw) -> None:
        """Set the world-to-camera transform and derive the body pose."""
        with self._pose_lock:
            self.tcw = np.array(tcw, dtype=float)
            self.twb = Se2.from_se3(invert_se3(self.tcw) @ self.ctb)

    def set_pose_se2(self, twb: Se2) -> None:
        """Set the planar body pose and derive the camera transform."""
        with self._pose_lock:
            self.twb = twb
            self.tcw = self.ctb @ twb.inv().to_se3()

    # Lifetime

    def set_null(self) -> None:
        """Detach this keyframe from the graph; odometry links are left to the caller."""
        with self._obs_lock, self._pose_lock, self._des_lock:
            self.null = True
            self.descriptors = np.zeros((0,) + tuple(np.shape(self.descriptors)[1:]), np.uint8)
            self.image = None
            self.keypoints = []
            self.keypoints_un = []

            for other in self.ftr_measure_from:
                other.ftr_measure_to.pop(self, None)
            for other in self.ftr_measure_to:
                other.ftr_measure_from.pop(self, None)
            self.ftr_measure_from.clear()
            self.ftr_measure_to.clear()

            for map_point in list(self.observations):
                map_point.erase_observation(self)
            for other in list(self.covisible):
                other.erase_covisible(self)

            self.observations.clear()
            self.dual_observations.clear()
            self.view_mps = np.zeros((0, 3))
            self.view_mps_info = []
            self.covisible.clear()

    def compute_bow(self, vocabulary: Vocabulary) -> None:
        """Compute bag-of-words vectors once, four levels up from the leaves."""
        with self._des_lock:
            if not self.bow_vec or not self.feat_vec:
                rows = [row for row in np.asarray(self.descriptors)]
                self.bow_vec, self.feat_vec = vocabulary.transform(rows, 4)
            self.bow_vec_exist = True