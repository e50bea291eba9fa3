"""Planar rigid-body transforms and the SE2-pose / 3D-point projection edge."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np


def normalize_angle(theta: float) -> float:
    """Wrap an angle into the half-open interval [-pi, pi)."""
    if -math.pi <= theta < math.pi:
        return float(theta)
    two_pi = 2.0 * math.pi
    theta = theta - math.floor(theta / two_pi) * two_pi
    if theta >= math.pi:
        theta -= two_pi
    if theta < -math.pi:
        theta += two_pi
    return float(theta)


@dataclass(frozen=True)
class Se2:
    """A planar pose: translation (x, y) and heading theta."""

    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "theta", normalize_angle(self.theta))

    def inv(self) -> Se2:
        c, s = math.cos(self.theta), math.sin(self.theta)
        return Se2(-c * self.x - s * self.y, s * self.x - c * self.y, -self.theta)

    def __add__(self, other: Se2) -> Se2:
        c, s = math.cos(self.theta), math.sin(self.theta)
        return Se2(
            self.x + other.x * c - other.y * s,
            self.y + other.x * s + other.y * c,
            normalize_angle(self.theta + other.theta),
        )

    def __sub__(self, other: Se2) -> Se2:
        """Pose of ``self`` expressed in the frame of ``other``."""
        dx = self.x - other.x
        dy = self.y - other.y
        dth = normalize_angle(self.theta - other.theta)
        c, s = math.cos(other.theta), math.sin(other.theta)
        return Se2(c * dx + s * dy, -s * dx + c * dy, dth)

    def to_se3(self) -> np.ndarray:
        """Homogeneous 4x4 transform of this pose."""
        c, s = math.cos(self.theta), math.sin(self.theta)
        return np.array(
            [
                [c, -s, 0.0, self.x],
                [s, c, 0.0, self.y],
                [0.0, 0.0, 1.0, 0.0],
                [0.0, 0.0, 0.0, 1.0],
            ]
        )

    @classmethod
    def from_se3(cls, mat) -> Se2:
        mat = np.asarray(mat, dtype=float)
        yaw = math.atan2(mat[1, 0], mat[0, 0])
        return cls(float(mat[0, 3]), float(mat[1, 3]), yaw)


def rodrigues(rvec) -> np.ndarray:
    """Rotation matrix of a rotation vector (axis times angle)."""
    r = np.asarray(rvec, dtype=float).reshape(3)
    angle = float(np.linalg.norm(r))
    if angle < 1e-12:
        return np.eye(3)
    k = r / angle
    kx = skew(k)
    return np.eye(3) + math.sin(angle) * kx + (1.0 - math.cos(angle)) * (kx @ kx)


def invert_se3(mat) -> np.ndarray:
    """Inverse of a rigid 4x4 transform."""
    mat = np.asarray(mat, dtype=float)
    rot_t = mat[:3, :3].T
    out = np.eye(4)
    out[:3, :3] = rot_t
    out[:3, 3] = -rot_t @ mat[:3, 3]
    return out


def skew(v) -> np.ndarray:
    """Cross-product matrix of a 3-vector."""
    x, y, z = np.asarray(v, dtype=float).reshape(3)
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])


def d_inv_d_se2(pose: Se2) -> np.ndarray:
    """Jacobian of the inverse pose vector with respect to the pose vector."""
    c, s = math.cos(pose.theta), math.sin(pose.theta)
    x, y = pose.x, pose.y
    return np.array(
        [
            [-c, -s, s * x - c * y],
            [s, -c, c * x + s * y],
            [0.0, 0.0, -1.0],
        ]
    )


def se2_to_se3(pose: Se2) -> np.ndarray:
    """Lift a planar pose to a 3D rigid transform about the z axis."""
    return pose.to_se3()


def se3_to_se2(mat) -> Se2:
    """Project a 3D rigid transform onto the plane, keeping its yaw."""
    return Se2.from_se3(mat)


@dataclass
class EdgeSE2XYZ:
    """Reprojection error of a world point seen from a planar body pose."""

    tcb: np.ndarray = field(default_factory=lambda: np.eye(4))
    focal_length: float = 1.0
    principal_point: tuple[float, float] = (0.0, 0.0)
    measurement: tuple[float, float] = (0.0, 0.0)

    def _tcw(self, pose: Se2) -> np.ndarray:
        return np.asarray(self.tcb, dtype=float) @ se2_to_se3(pose.inv())

    def _cam_map(self, pc: np.ndarray) -> np.ndarray:
        u = pc[0] / pc[2] * self.focal_length + self.principal_point[0]
        v = pc[1] / pc[2] * self.focal_length + self.principal_point[1]
        return np.array([u, v])

    def compute_error(self, pose: Se2, point) -> np.ndarray:
        tcw = self._tcw(pose)
        lw = np.asarray(point, dtype=float).reshape(3)
        lc = tcw[:3, :3] @ lw + tcw[:3, 3]
        return self._cam_map(lc) - np.asarray(self.measurement, dtype=float)

    def linearize(self, pose: Se2, point) -> tuple[np.ndarray, np.ndarray]:
        """Jacobians of the error with respect to the pose and to the point."""
        tcw = self._tcw(pose)
        rcw = tcw[:3, :3]
        lw = np.asarray(point, dtype=float).reshape(3)
        lc = rcw @ lw + tcw[:3, 3]
        zc_inv = 1.0 / lc[2]
        zc_inv2 = zc_inv * zc_inv
        fx = self.focal_length
        j_pi = np.array(
            [
                [fx * zc_inv, 0.0, -fx * lc[0] * zc_inv2],
                [0.0, fx * zc_inv, -fx * lc[1] * zc_inv2],
            ]
        )
        j_pi_rcw = j_pi @ rcw
        jac_pose = np.zeros((2, 3))
        jac_pose[:, :2] = -j_pi_rcw[:, :2]
        p_body = np.array([pose.x, pose.y, 0.0])
        jac_pose[:, 2] = (j_pi_rcw @ skew(lw - p_body))[:, 2]
        return jac_pose, j_pi_rcw