"""Service network: nodes, legs and leg segments between consecutive stops."""

import itertools
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ServiceNode:
    """Graph vertex for one distinct GTFS stop id."""

    node_id: int
    external_id: str  # GTFS stop_id
    physical_node: Any = None  # bound later when stitching to a physical network
    legs: list["ServiceLeg"] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"ServiceNode({self.node_id}, {self.external_id!r})"


@dataclass(eq=False)
class ServiceLeg:
    """Undirected connection between two service nodes, anchored node_a -> node_b."""

    leg_id: int
    node_a: ServiceNode
    node_b: ServiceNode
    segment_ab: "ServiceLegSegment | None" = None
    segment_ba: "ServiceLegSegment | None" = None

    @property
    def external_id(self) -> str:
        return f"{self.node_a.external_id}_{self.node_b.external_id}"

    @property
    def segments(self) -> list["ServiceLegSegment"]:
        return [s for s in (self.segment_ab, self.segment_ba) if s is not None]

    def __repr__(self) -> str:
        return f"ServiceLeg({self.leg_id}, {self.external_id!r})"


@dataclass(eq=False)
class ServiceLegSegment:
    """Directed traversal of a service leg, direction fixed at creation."""

    segment_id: int
    parent: ServiceLeg
    direction_ab: bool

    @property
    def upstream_node(self) -> ServiceNode:
        return self.parent.node_a if self.direction_ab else self.parent.node_b

    @property
    def downstream_node(self) -> ServiceNode:
        return self.parent.node_b if self.direction_ab else self.parent.node_a

    @property
    def external_id(self) -> str:
        return f"{self.upstream_node.external_id}_{self.downstream_node.external_id}"

    def __repr__(self) -> str:
        return f"ServiceLegSegment({self.segment_id}, {self.external_id!r})"


class ServiceNetwork:
    """
    Store of service nodes, legs and leg segments.

    Nodes are indexed by GTFS stop id and segments by their (upstream,
    downstream) node pair. All creation goes through the get-or-create
    operations so no node, leg or segment is ever duplicated. The store
    assumes a single writer.
    """

    def __init__(self) -> None:
        self._node_ids = itertools.count()
        self._leg_ids = itertools.count()
        self._segment_ids = itertools.count()

        self._nodes: dict[str, ServiceNode] = {}
        self._legs: list[ServiceLeg] = []
        self._segments: dict[tuple[int, int], ServiceLegSegment] = {}

    # Nodes

    def get_service_node(self, stop_id: str) -> ServiceNode | None:
        return self._nodes.get(stop_id)

    def get_or_create_service_node(self, stop_id: str) -> ServiceNode:
        """Find the service node for a stop id, creating it on first reference."""
        node = self._nodes.get(stop_id)
        if node is None:
            node = ServiceNode(node_id=next(self._node_ids), external_id=stop_id)
            self._nodes[stop_id] = node
        return node

    def remove_service_node(self, node: ServiceNode) -> None:
        """Remove a node that no leg references."""
        if node.legs:
            raise ValueError(f"Cannot remove {node}, it is used by {len(node.legs)} legs")
        del self._nodes[node.external_id]

    @property
    def nodes(self) -> list[ServiceNode]:
        return list(self._nodes.values())

    # Legs and segments

    def get_leg_segment(
        self, from_node: ServiceNode, to_node: ServiceNode
    ) -> ServiceLegSegment | None:
        return self._segments.get((from_node.node_id, to_node.node_id))

    def get_or_create_leg_segment(
        self, from_node: ServiceNode, to_node: ServiceNode
    ) -> ServiceLegSegment:
        """
        Find or create the segment from_node -> to_node.

        When only the opposite direction exists, its leg is reused so both
        directions share a single leg. Otherwise a new leg anchored
        from_node -> to_node is created along with its first segment.
        """
        segment = self.get_leg_segment(from_node, to_node)
        if segment is not None:
            return segment

        opposite = self.get_leg_segment(to_node, from_node)
        if opposite is None:
            leg = ServiceLeg(leg_id=next(self._leg_ids), node_a=from_node, node_b=to_node)
            self._legs.append(leg)
            from_node.legs.append(leg)
            if to_node is not from_node:
                to_node.legs.append(leg)
            direction_ab = True
        else:
            leg = opposite.parent
            direction_ab = leg.node_a is from_node

        segment = ServiceLegSegment(
            segment_id=next(self._segment_ids), parent=leg, direction_ab=direction_ab
        )
        if direction_ab:
            leg.segment_ab = segment
        else:
            leg.segment_ba = segment
        self._segments[(from_node.node_id, to_node.node_id)] = segment

        logger.debug(f"Created {segment} on {leg}")
        return segment

    def get_leg(self, node_1: ServiceNode, node_2: ServiceNode) -> ServiceLeg | None:
        """Leg between two nodes regardless of direction."""
        segment = self.get_leg_segment(node_1, node_2) or self.get_leg_segment(node_2, node_1)
        return segment.parent if segment is not None else None

    @property
    def legs(self) -> list[ServiceLeg]:
        return list(self._legs)

    @property
    def leg_segments(self) -> list[ServiceLegSegment]:
        return list(self._segments.values())

    def iter_nodes(self) -> Iterator[ServiceNode]:
        return iter(self._nodes.values())

    @property
    def stats(self) -> dict[str, int]:
        return {
            "service_nodes": len(self._nodes),
            "service_legs": len(self._legs),
            "service_leg_segments": len(self._segments),
        }
