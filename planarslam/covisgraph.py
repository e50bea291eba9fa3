"""Neighbourhoods of keyframes in the pose graph, used to pick feature-edge pairs."""

from __future__ import annotations

from typing import Iterable

DEFAULT_GRAPH_DISTANCE = 5


def _order(keyframes: Iterable) -> list:
    """Keyframes in a stable order: by keyframe id."""
    return sorted(keyframes, key=lambda kf: getattr(kf, "id_kf", 0))


def connected_keyframes(kf, selected: Iterable = ()) -> set:
    """Keyframes joined to ``kf`` by odometry or feature constraints, plus ``selected``."""
    connected = set()
    odo_child = kf.odo_measure_from[0]
    if odo_child is not None:
        connected.add(odo_child)
    odo_parent = kf.odo_measure_to[0]
    if odo_parent is not None:
        connected.add(odo_parent)
    connected.update(kf.ftr_measure_from)
    connected.update(kf.ftr_measure_to)
    connected.update(selected)
    return connected


def connected_keyframes_layers(kf, num_layers: int, selected: Iterable = ()) -> set:
    """Keyframes reached from ``kf`` within ``num_layers`` constraint hops."""
    selected = set(selected)
    local: set = set()
    active = {kf}
    for _ in range(num_layers):
        fresh = set()
        for current in active:
            fresh.update(n for n in connected_keyframes(current, selected) if n not in local)
        local |= fresh
        active = fresh
    return local


def select_keyframe_pairs(kf, layers: int = DEFAULT_GRAPH_DISTANCE) -> list[tuple]:
    """Pairs ``(kf, other)`` for covisible keyframes too far away in the graph.

    A covisible keyframe is picked when it is not within ``layers`` hops of
    ``kf``; every pick is treated as connected when judging the ones after it.
    """
    selected: set = set()
    local = connected_keyframes_layers(kf, layers, selected)
    for candidate in _order(kf.covisible_keyframes()):
        if candidate not in local:
            selected.add(candidate)
            local = connected_keyframes_layers(kf, layers, selected)
    return [(kf, other) for other in _order(selected)]