import math

import numpy as np
import pytest

from planarslam.frame import Frame, KeyPoint
from planarslam.geometry import Se2, rodrigues
from planarslam.keyframe import KeyFrame, SE3Constraint


class FakeMapPoint:
    def __init__(self, null=False, good=True):
        self.null = null
        self.good = good
        self.erased = []

    def is_null(self):
        return self.null

    def is_good_prl(self):
        return self.good

    def erase_observation(self, kf):
        self.erased.append(kf)


def make_kf(ctb=None, n=4):
    kps = [KeyPoint(10.0 * (i + 1), 20.0 * (i + 1)) for i in range(n)]
    frame = Frame(kps, (640, 480), Se2(1.0, 2.0, 0.3), descriptors=np.ones((n, 32), np.uint8))
    return KeyFrame(frame, ctb)


def test_ids_increase():
    a, b = make_kf(), make_kf()
    assert b.id_kf == a.id_kf + 1


def test_initial_views():
    kf = make_kf()
    assert kf.view_mps.shape == (4, 3)
    assert np.all(kf.view_mps == -1)
    assert np.allclose(kf.view_mps_info[0], -np.eye(3))
    assert kf.odom == Se2(1.0, 2.0, 0.3)


def test_observation_roundtrip():
    kf = make_kf()
    mp = FakeMapPoint()
    kf.add_observation(mp, 2)
    assert kf.has_observation(mp)
    assert kf.has_observation_at(2)
    assert kf.get_observation(2) is mp
    assert kf.get_ftr_idx(mp) == 2
    assert kf.size_obs_mp() == 1


def test_missing_observation():
    kf = make_kf()
    assert kf.get_ftr_idx(FakeMapPoint()) == -1
    assert kf.get_observation(1) is None


def test_null_map_point_ignored():
    kf = make_kf()
    kf.add_observation(FakeMapPoint(null=True), 0)
    assert kf.size_obs_mp() == 0


def test_erase_observation():
    kf = make_kf()
    a, b = FakeMapPoint(), FakeMapPoint()
    kf.add_observation(a, 0)
    kf.add_observation(b, 1)
    kf.erase_observation(a)
    assert not kf.has_observation(a)
    assert not kf.has_observation_at(0)
    kf.erase_observation_at(1)
    assert not kf.has_observation(b)
    assert kf.size_obs_mp() == 0


def test_set_observation():
    kf = make_kf()
    a, b = FakeMapPoint(), FakeMapPoint()
    kf.set_observation(a, 1)
    assert not kf.has_observation_at(1)
    kf.add_observation(a, 1)
    kf.set_observation(b, 1)
    assert kf.get_observation(1) is b
    assert not kf.has_observation(a)


def test_observed_map_points_filters():
    kf = make_kf()
    good, poor, dead = FakeMapPoint(), FakeMapPoint(good=False), FakeMapPoint()
    kf.add_observation(good, 0)
    kf.add_observation(poor, 1)
    kf.add_observation(dead, 2)
    dead.null = True
    assert kf.observed_map_points() == {good, poor}
    assert kf.observed_map_points(True) == {good}


def test_map_point_matches():
    kf = make_kf()
    mp = FakeMapPoint()
    kf.add_observation(mp, 3)
    assert kf.map_point_matches() == [None, None, None, mp]


def test_set_view_mp():
    kf = make_kf()
    kf.set_view_mp((1.0, 2.0, 3.0), 1, np.eye(3) * 2)
    assert np.allclose(kf.view_mps[1], [1.0, 2.0, 3.0])
    assert np.allclose(kf.view_mps_info[1], 2 * np.eye(3))


def test_covisibility():
    a, b = make_kf(), make_kf()
    a.add_covisible(b)
    assert a.covisible_keyframes() == {b}
    a.erase_covisible(b)
    assert a.covisible_keyframes() == set()


def test_ftr_measure_not_overwritten():
    a, b = make_kf(), make_kf()
    a.add_ftr_measure_from(b, np.eye(4), np.eye(6))
    a.add_ftr_measure_from(b, 2 * np.eye(4), np.eye(6))
    assert np.allclose(a.ftr_measure_from[b].measure, np.eye(4))
    a.erase_ftr_measure_from(b)
    assert b not in a.ftr_measure_from
    a.add_ftr_measure_to(b, np.eye(4), np.eye(6))
    a.erase_ftr_measure_to(b)
    assert a.ftr_measure_to == {}


def test_odo_measure():
    a, b = make_kf(), make_kf()
    a.set_odo_measure_from(b, np.eye(4), np.eye(6))
    b.set_odo_measure_to(a, np.eye(4), np.eye(6))
    assert a.odo_measure_from[0] is b
    assert b.odo_measure_to[0] is a
    assert isinstance(a.odo_measure_to[1], SE3Constraint) and a.odo_measure_to[0] is None


def test_pose_se2_roundtrip():
    kf = make_kf()
    kf.set_pose_se2(Se2(1.0, 2.0, 0.5))
    assert np.allclose(kf.get_pose(), Se2(1.0, 2.0, 0.5).inv().to_se3())
    pose = kf.get_pose()
    pose[0, 3] = 99.0
    assert kf.get_pose()[0, 3] != 99.0


def test_pose_matrix_roundtrip_with_extrinsic():
    btc = np.eye(4)
    btc[:3, :3] = rodrigues([-math.pi / 2, 0.0, 0.0])
    btc[:3, 3] = [0.1, 0.0, 0.2]
    ctb = np.linalg.inv(btc)
    kf = make_kf(ctb)
    kf.set_pose_se2(Se2(3.0, -1.0, 1.2))
    kf.set_pose(kf.get_pose())
    assert kf.twb.x == pytest.approx(3.0)
    assert kf.twb.y == pytest.approx(-1.0)
    assert kf.twb.theta == pytest.approx(1.2)


def test_set_null_detaches():
    a, b, c = make_kf(), make_kf(), make_kf()
    mp = FakeMapPoint()
    a.add_observation(mp, 0)
    a.add_ftr_measure_from(b, np.eye(4), np.eye(6))
    b.add_ftr_measure_to(a, np.eye(4), np.eye(6))
    c.add_ftr_measure_from(a, np.eye(4), np.eye(6))
    a.add_ftr_measure_to(c, np.eye(4), np.eye(6))
    a.add_covisible(b)
    b.add_covisible(a)
    a.set_null()
    assert a.is_null()
    assert mp.erased == [a]
    assert a not in b.ftr_measure_to
    assert a not in c.ftr_measure_from
    assert a not in b.covisible_keyframes()
    assert a.size_obs_mp() == 0
    assert a.keypoints == []


def test_compute_bow_once():
    calls = []

    class Voc:
        def transform(self, rows, levels_up):
            calls.append((len(rows), levels_up))
            return {1: 0.5}, {0: [0]}

    kf = make_kf()
    kf.compute_bow(Voc())
    kf.compute_bow(Voc())
    assert calls == [(4, 4)]
    assert kf.bow_vec == {1: 0.5}
    assert kf.bow_vec_exist