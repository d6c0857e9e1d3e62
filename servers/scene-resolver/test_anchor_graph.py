"""Reference graph construction, cycle detection and transform composition."""

import pytest

from models import Euler, PartialVec3, Point3D, ResolvedTransform, SpatialObject
from solvers.anchor_graph import (
    build_reference_graph, compose_with_parent, find_cycles, resolution_order,
)


def obj(object_id, parent=None, **kwargs):
    return SpatialObject(id=object_id, parent=parent, **kwargs)


def test_edges_point_from_child_to_parent():
    ref = build_reference_graph([obj("table"), obj("lamp", parent="table")])
    assert ref.graph.has_edge(1, 0)
    assert ref.parent_of(1) == 0
    assert ref.parent_of(0) is None
    assert ref.children_of(0) == [1]
    assert ref.object_id(1) == "lamp"


def test_missing_parent_is_recorded_as_dangling():
    ref = build_reference_graph([obj("a", parent="ghost")])
    assert ref.dangling == [0]
    assert ref.graph.number_of_edges() == 0


def test_mutual_parents_form_one_cycle():
    ref = build_reference_graph([obj("a", parent="b"), obj("b", parent="a"), obj("c")])
    assert find_cycles(ref.graph) == [(0, 1)]


def test_self_reference_is_a_cycle():
    ref = build_reference_graph([obj("a", parent="a")])
    assert find_cycles(ref.graph) == [(0,)]


def test_cycle_members_exclude_the_tail_leading_into_it():
    ref = build_reference_graph([
        obj("x", parent="a"),
        obj("a", parent="b"),
        obj("b", parent="c"),
        obj("c", parent="a"),
    ])
    assert find_cycles(ref.graph) == [(1, 2, 3)]


def test_acyclic_graph_has_no_cycles():
    ref = build_reference_graph([obj("a"), obj("b", parent="a"), obj("c", parent="b")])
    assert find_cycles(ref.graph) == []


def test_resolution_order_puts_parents_first():
    ref = build_reference_graph([obj("lamp", parent="table"), obj("table"), obj("rug")])
    order = resolution_order(ref, set())
    assert sorted(order) == [0, 1, 2]
    assert order.index(1) < order.index(0)


def test_resolution_order_skips_cycle_and_roots_its_children():
    ref = build_reference_graph([obj("a", parent="b"), obj("b", parent="a"), obj("c", parent="a")])
    cyclic = {n for cycle in find_cycles(ref.graph) for n in cycle}
    assert cyclic == {0, 1}
    assert resolution_order(ref, cyclic) == [2]


def test_deep_chain_is_ordered_without_recursion():
    n = 5000
    objects = [obj("n0")] + [obj(f"n{i}", parent=f"n{i - 1}") for i in range(1, n)]
    ref = build_reference_graph(objects)
    assert find_cycles(ref.graph) == []
    assert resolution_order(ref, set()) == list(range(n))


def test_compose_with_raw_offset_ignores_parent_rotation():
    parent = ResolvedTransform(Point3D(1.0, 0.5, 0.0), Euler(0.0, 90.0, 0.0))
    child = compose_with_parent(parent, Point3D(0.5, 0.0, 0.0), None, Euler(0.0, 10.0, 0.0))
    assert child.position == Point3D(1.5, 0.5, 0.0)
    assert child.rotation == Euler(0.0, 100.0, 0.0)


def test_compose_with_anchor_rotates_into_parent_frame():
    parent = ResolvedTransform(Point3D(1.0, 0.5, 0.0), Euler(0.0, 90.0, 0.0))
    child = compose_with_parent(parent, Point3D(0.5, 0.0, 0.0), Point3D(0.0, 0.375, 0.0), Euler())
    assert child.position.x == pytest.approx(1.0, abs=1e-9)
    assert child.position.y == pytest.approx(0.875)
    assert child.position.z == pytest.approx(-0.5)
    assert child.rotation == Euler(0.0, 90.0, 0.0)


def test_anchor_reference_defaults_missing_offset_axes():
    lamp = obj("lamp", parent="table", anchor="top_center", offset=PartialVec3(y=0.2))
    ref = lamp.anchor_reference()
    assert ref.parent_id == "table"
    assert ref.anchor == "top_center"
    assert ref.offset == Point3D(0.0, 0.2, 0.0)
    assert obj("rug").anchor_reference() is None
