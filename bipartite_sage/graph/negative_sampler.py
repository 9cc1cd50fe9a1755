from typing import Dict, List, Mapping, Optional, Protocol, Sequence

import numpy as np

from bipartite_sage.errors import NegativeSamplingError
from bipartite_sage.io.node_id import get_node_type


class NegativeSampler(Protocol):
    def sample_negative(
        self, count: int, population: Sequence[int], queries: Sequence[int]
    ) -> List[List[int]]:
        """Returns exactly count negative candidates for every query node."""
        ...


class _Domain:
    """Distinct candidate nodes plus their positions, for O(1) self lookup."""

    def __init__(self, nodes: Sequence[int]):
        self.nodes = list(dict.fromkeys(nodes))
        self.position = {node: i for i, node in enumerate(self.nodes)}

    def __len__(self):
        return len(self.nodes)


class SharedNegativeSampler:
    """
    Draws negatives for each query uniformly (with replacement) from the
    distinct nodes of a shared population, usually the batch destinations.

    With exclude_self=True a query never receives itself as a negative. When
    the shared population holds no other node (a batch whose destinations
    are all the same node), the query falls back to fallback_domain: every
    known node sharing its namespace tag. NegativeSamplingError is raised
    only when that domain has no other node either.
    """

    def __init__(
        self,
        rng: np.random.Generator,
        exclude_self: bool = True,
        fallback_domain: Optional[Mapping[int, Sequence[int]]] = None,
    ):
        self.rng = rng
        self.exclude_self = exclude_self
        self._fallback: Dict[int, _Domain] = {
            ns_id: _Domain(nodes) for ns_id, nodes in (fallback_domain or {}).items()
        }

    def _draw(self, domain: _Domain, query: int, count: int) -> Optional[List[int]]:
        n = len(domain)
        self_pos = domain.position.get(query) if self.exclude_self else None
        if self_pos is None:
            if n == 0:
                return None
            picks = self.rng.integers(0, n, size=count)
        else:
            if n < 2:
                return None
            # Draw from n-1 slots and skip over the query's own slot.
            picks = self.rng.integers(0, n - 1, size=count)
            picks[picks >= self_pos] += 1
        return [domain.nodes[i] for i in picks]

    def sample_negative(
        self, count: int, population: Sequence[int], queries: Sequence[int]
    ) -> List[List[int]]:
        if count <= 0:
            raise ValueError(f"count must be positive, got {count}")

        shared = _Domain(population)
        neg_nodes_list = []
        for query in queries:
            negs = self._draw(shared, query, count)
            if negs is None:
                fallback = self._fallback.get(get_node_type(query))
                if fallback is not None:
                    negs = self._draw(fallback, query, count)
            if negs is None:
                raise NegativeSamplingError(f"No negative candidate for node {query}")
            neg_nodes_list.append(negs)
        return neg_nodes_list
