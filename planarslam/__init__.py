"""Planar visual SLAM pieces: SE(2) geometry, configuration, frames, keyframes, loop closure rules and graph neighbourhoods."""

__version__ = "0.1.0"