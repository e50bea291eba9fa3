"""3D point measurements of map points from keyframes, and match filtering."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, Mapping

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_CHI2_THRESHOLD = 5.0


@dataclass
class MeasSE3XYZ:
    """A point seen from a keyframe, in that keyframe's camera frame."""

    id_kf: int
    id_mp: int
    z: np.ndarray = field(default_factory=lambda: np.zeros(3))
    info: np.ndarray = field(default_factory=lambda: np.eye(3))


def measurements_between(keyframes, map_points) -> list[MeasSE3XYZ]:
    """Measurements of every map point observed by each keyframe, by list position."""
    points = list(map_points)
    result = []
    for i, kf in enumerate(keyframes):
        for j, mp in enumerate(points):
            if not kf.has_observation(mp):
                continue
            idx = kf.get_ftr_idx(mp)
            result.append(
                MeasSE3XYZ(
                    i,
                    j,
                    np.array(kf.view_mps[idx], dtype=float),
                    np.array(kf.view_mps_info[idx], dtype=float),
                )
            )
    return result


def match_measurements(kf_from, kf_to, matches: Mapping[int, int]) -> list[MeasSE3XYZ]:
    """Paired measurements of matched keypoints, keyframe 0 then 1, in key order."""
    result = []
    for count, (idx_from, idx_to) in enumerate(sorted(matches.items())):
        pair = (
            MeasSE3XYZ(
                0,
                count,
                np.array(kf_from.view_mps[idx_from], dtype=float),
                np.array(kf_from.view_mps_info[idx_from], dtype=float),
            ),
            MeasSE3XYZ(
                1,
                count,
                np.array(kf_to.view_mps[idx_to], dtype=float),
                np.array(kf_to.view_mps_info[idx_to], dtype=float),
            ),
        )
        for meas in pair:
            if math.isnan(meas.info[0, 0]):
                logger.error("measurement %d of keyframe %d has NaN information", count, meas.id_kf)
        result.extend(pair)
    return result


def remove_kp_match(kf_curr, kf_loop, matches: Mapping[int, int]) -> dict[int, int]:
    """Only the matches whose keypoints both observe a map point."""
    return {
        idx_curr: idx_loop
        for idx_curr, idx_loop in sorted(matches.items())
        if kf_curr.has_observation_at(idx_curr) and kf_loop.has_observation_at(idx_loop)
    }


def drop_outlier_matches(
    matches: Mapping[int, int],
    chi2_by_key,
    threshold: float = DEFAULT_CHI2_THRESHOLD,
) -> dict[int, int]:
    """Matches without any residual above ``threshold``.

    ``chi2_by_key`` maps a match key to its chi-square value, or is an
    iterable of ``(key, chi2)`` pairs when a key has several residuals.
    """
    pairs: Iterable = chi2_by_key.items() if isinstance(chi2_by_key, Mapping) else chi2_by_key
    outliers = {key for key, chi2 in pairs if chi2 > threshold}
    return {k: v for k, v in sorted(matches.items()) if k not in outliers}