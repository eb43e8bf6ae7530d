"""Tests for the service network store."""

import pytest

from transit_graph.transform.service_network import ServiceNetwork


def test_one_node_per_stop(service_network: ServiceNetwork) -> None:
    """Test nodes are created once per stop id."""
    node_a = service_network.get_or_create_service_node("A")

    assert service_network.get_or_create_service_node("A") is node_a
    assert service_network.get_service_node("A") is node_a
    assert service_network.get_service_node("B") is None
    assert len(service_network.nodes) == 1


def test_segment_created_once(service_network: ServiceNetwork) -> None:
    """Test repeated lookups return the same segment."""
    node_a = service_network.get_or_create_service_node("A")
    node_b = service_network.get_or_create_service_node("B")

    segment = service_network.get_or_create_leg_segment(node_a, node_b)

    assert service_network.get_or_create_leg_segment(node_a, node_b) is segment
    assert segment.upstream_node is node_a
    assert segment.downstream_node is node_b
    assert segment.external_id == "A_B"
    assert segment.parent.external_id == "A_B"
    assert service_network.stats == {
        "service_nodes": 2,
        "service_legs": 1,
        "service_leg_segments": 1,
    }


def test_opposite_direction_reuses_leg(service_network: ServiceNetwork) -> None:
    """Test B->A reuses the leg created for A->B."""
    node_a = service_network.get_or_create_service_node("A")
    node_b = service_network.get_or_create_service_node("B")

    segment_ab = service_network.get_or_create_leg_segment(node_a, node_b)
    segment_ba = service_network.get_or_create_leg_segment(node_b, node_a)

    assert segment_ba is not segment_ab
    assert segment_ba.parent is segment_ab.parent
    assert segment_ba.upstream_node is node_b
    assert segment_ba.downstream_node is node_a
    assert segment_ba.external_id == "B_A"
    # Leg keeps the id of the direction that created it
    assert segment_ba.parent.external_id == "A_B"
    assert len(service_network.legs) == 1
    assert len(service_network.leg_segments) == 2


def test_get_leg_is_unordered(service_network: ServiceNetwork) -> None:
    """Test legs are found regardless of node order."""
    node_a = service_network.get_or_create_service_node("A")
    node_b = service_network.get_or_create_service_node("B")
    node_c = service_network.get_or_create_service_node("C")
    segment = service_network.get_or_create_leg_segment(node_a, node_b)

    assert service_network.get_leg(node_b, node_a) is segment.parent
    assert service_network.get_leg(node_a, node_c) is None
    assert service_network.get_leg_segment(node_b, node_a) is None


def test_remove_service_node(service_network: ServiceNetwork) -> None:
    """Test only nodes without legs can be removed."""
    node_a = service_network.get_or_create_service_node("A")
    node_b = service_network.get_or_create_service_node("B")
    lonely = service_network.get_or_create_service_node("Z")
    service_network.get_or_create_leg_segment(node_a, node_b)

    service_network.remove_service_node(lonely)
    assert service_network.get_service_node("Z") is None

    with pytest.raises(ValueError):
        service_network.remove_service_node(node_a)
