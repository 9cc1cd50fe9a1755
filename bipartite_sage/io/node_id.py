import logging
from typing import Iterable, List

logger = logging.getLogger(__name__)

# The namespace tag lives in the high 16 bits of a 64-bit node id.
NS_SHIFT = 48
MAX_NS_ID = (1 << 16) - 1
LOCAL_MASK = (1 << NS_SHIFT) - 1


def make_node_id(ns_id: int, local_id: int) -> int:
    """Packs a namespace tag and a local id into one node id."""
    if not 0 <= ns_id <= MAX_NS_ID:
        raise ValueError(f"ns_id must be in [0, {MAX_NS_ID}], got {ns_id}")
    if not 0 <= local_id <= LOCAL_MASK:
        raise ValueError(f"local_id must fit in {NS_SHIFT} bits, got {local_id}")
    return (ns_id << NS_SHIFT) | local_id


def get_node_type(node: int) -> int:
    return (int(node) >> NS_SHIFT) & MAX_NS_ID


def get_local_id(node: int) -> int:
    return int(node) & LOCAL_MASK


def parse_user_and_item(
    nodes: Iterable[int],
    user_group: int,
    item_group: int,
    user_nodes: List[int],
    item_nodes: List[int],
) -> None:
    """
    Appends every node to user_nodes or item_nodes according to its namespace tag.

    Nodes tagged with neither group are logged and left out of both lists;
    the caller keeps going with the rest of the batch.
    """
    for node in nodes:
        group = get_node_type(node)
        if group == user_group:
            user_nodes.append(node)
        elif group == item_group:
            item_nodes.append(node)
        else:
            logger.error(
                "Invalid node: %d (local id %d) with ns_id: %d, expect %d or %d.",
                node, get_local_id(node), group, user_group, item_group
            )
