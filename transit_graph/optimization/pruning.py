"""Pruning of service network entities that no scheduled trip can use."""

import logging

from transit_graph.transform.service_network import ServiceNetwork

logger = logging.getLogger(__name__)


def prune_dangling_service_nodes(service_network: ServiceNetwork) -> int:
    """
    Remove service nodes without any leg.

    Such nodes stem from trips whose only valid stop time is the first one,
    they carry a departure but are never traversed. Returns the number of
    removed nodes.
    """
    logger.info("Pruning dangling service nodes")

    dangling = [node for node in service_network.iter_nodes() if not node.legs]
    for node in dangling:
        logger.debug(f"Removing dangling {node}")
        service_network.remove_service_node(node)

    logger.info(f"Pruned {len(dangling)} dangling service nodes")
    return len(dangling)
