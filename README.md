# planarslam

Building blocks for visual SLAM of a robot that moves on a plane, with a
camera fixed to its body and wheel odometry alongside.

## Modules

- `planarslam.geometry`: `Se2` planar poses (compose with `+`, relative pose
  with `-`, `inv()`, `to_se3()` and `Se2.from_se3()` for 4x4 homogeneous
  matrices; the heading is always wrapped by `normalize_angle` into
  [-pi, pi)). Also `rodrigues`, `invert_se3`, `skew`, `se2_to_se3`,
  `se3_to_se2`, `d_inv_d_se2`, and `EdgeSE2XYZ`, which gives the reprojection
  error of a world point seen from a planar body pose (`compute_error`) and
  its Jacobians with respect to the pose and the point (`linearize`).
- `planarslam.config`: `Config.from_directory(path)` reads
  `config/CamConfig.yml` and `config/Settings.yml` under `path`
  (OpenCV-style YAML, loaded by `load_opencv_yaml`), builds the camera
  intrinsics and the body-to-camera extrinsic `btc` and its inverse `ctb`,
  and fills in the tuning parameters. A missing camera entry raises
  `KeyError`; missing settings fall back to zero or empty values.
  `Config.accept_depth(depth)` checks a depth against `lower_depth` and
  `upper_depth`.
- `planarslam.frame`: `KeyPoint`, `scale_pyramid(levels, factor)` and
  `Frame`, which indexes its keypoints in a 64 x 48 grid and answers
  `pos_in_grid`, `features_in_area(x, y, r, min_level, max_level)` and
  `in_img_bound`.
- `planarslam.keyframe`: `KeyFrame`, made from a `Frame`, holding map-point
  observations (both by point and by keypoint index), covisible keyframes,
  odometry and feature constraints (`SE3Constraint`), its pose (`get_pose`,
  `set_pose`, `set_pose_se2`), `set_null` to detach it from the graph, and
  `compute_bow` to fill its bag-of-words vectors from a vocabulary object with
  a `transform(descriptors, levels_up)` method.
- `planarslam.loopclosure`: `detect_loop_close` picks the best-scoring
  keyframe far enough from the current one; `loop_close_accepted` and
  `verify_match_count` decide whether a candidate has enough matches.
- `planarslam.covisgraph`: `connected_keyframes`,
  `connected_keyframes_layers` and `select_keyframe_pairs`, the latter picking
  covisible keyframes that are too far away in the constraint graph to be
  linked by a new feature constraint.
- `planarslam.measurements`: `MeasSE3XYZ` point measurements built by
  `measurements_between` and `match_measurements`, and match filters
  `remove_kp_match` and `drop_outlier_matches`.

## Installation

```
pip install .
```

Add the `test` extra to run the test suite with `pytest`.

## Examples

```python
import math
from planarslam.geometry import Se2

a = Se2(1.0, 0.0, math.pi / 2)
b = Se2(0.5, 0.0, 0.0)
c = a + b          # b expressed in a's frame, composed
assert abs(c.y - 0.5) < 1e-6
rel = c - a        # back to b
assert abs(rel.x - 0.5) < 1e-6
```

Searching features near an image position:

```python
from planarslam.frame import Frame, KeyPoint

frame = Frame([KeyPoint(10.0, 10.0), KeyPoint(100.0, 50.0, octave=1)], (640, 480))
assert frame.features_in_area(12.0, 12.0, 5.0) == [0]
```

Loading a dataset configuration:

```python
from planarslam.config import Config

config = Config.from_directory("/path/to/dataset")
print(config.fx_cam, config.accept_depth(2.0))
```

## What this package does not do

It is a library of pieces, not a running SLAM system. There is no command to
start, and it does not read images or odometry from sensors, extract ORB
features, undistort images, run bundle adjustment or pose-graph optimisation,
hold a map of keyframes and map points, run mapping or localization threads,
draw match images, or save and load maps or trajectories. Bag-of-words
scoring and vocabularies are supplied by the caller.