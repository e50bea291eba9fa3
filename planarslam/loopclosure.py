"""Loop closure candidate search and acceptance rules."""

from __future__ import annotations

import math
from typing import Callable, Iterable


def detect_loop_close(
    current,
    keyframes: Iterable,
    score: Callable[[dict, dict], float],
    min_kfid_offset: int = 0,
    min_score: float = 0.0,
):
    """Best-scoring keyframe away from ``current``, or None if none scores high enough."""
    if current is None:
        return None
    best = None
    best_score = 0.0
    for kf in keyframes:
        if abs(kf.id_kf - current.id_kf) < min_kfid_offset:
            continue
        value = score(current.bow_vec, kf.bow_vec)
        if value > best_score:
            best_score = value
            best = kf
    if best is not None and best_score > min_score:
        return best
    return None


def loop_close_accepted(num_good_mp: int, num_good_kp: int, num_mps_current: int, config) -> bool:
    """Whether enough map point and keypoint matches support a loop closure."""
    if num_mps_current:
        ratio = num_good_mp / num_mps_current
    else:
        ratio = math.inf if num_good_mp else math.nan
    return (
        num_good_mp >= config.gm_vcl_num_min_match_mp
        and num_good_kp >= config.gm_vcl_num_min_match_kp
        and ratio >= config.gm_vcl_ratio_min_match_mp
    )


def verify_match_count(num_good_match: int, minimum: int = 45) -> bool:
    """Whether the number of good matches reaches ``minimum``."""
    return num_good_match >= minimum