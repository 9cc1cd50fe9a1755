from typing import Dict, List, Sequence

import numpy as np
import pandas as pd
import scipy.sparse as sp

from bipartite_sage.io.node_id import get_node_type, make_node_id


def U(i: int) -> int:
    return make_node_id(0, i)


def I(i: int) -> int:
    return make_node_id(1, i)


class FakeGraph:
    """Returns the first `count` neighbors of every node, no randomness."""

    def __init__(self, adjacency: Dict[int, List[int]], feature_dim: int = 2):
        self.adjacency = adjacency
        self.feature_dim = feature_dim
        self.sample_calls = []

    def sample_neighbors(self, count, nodes, rng):
        self.sample_calls.append((count, list(nodes)))
        return [list(self.adjacency.get(n, []))[:count] for n in nodes]

    def lookup_node_feature(self, nodes: Sequence[int]) -> sp.csr_matrix:
        return sp.csr_matrix(np.ones((len(nodes), self.feature_dim), dtype=np.float32))

    def lookup_neigh_feature(self, nodes: Sequence[int]) -> sp.csr_matrix:
        return sp.csr_matrix(np.full((len(nodes), self.feature_dim), 0.5, dtype=np.float32))

    def nodes_by_type(self):
        groups = {}
        for node in self.adjacency:
            groups.setdefault(get_node_type(node), []).append(node)
        return groups


class RecordingSampler:
    """Each query gets the next population node (cyclic) that is not itself."""

    def __init__(self):
        self.calls = []

    def sample_negative(self, count, population, queries):
        self.calls.append((count, list(population), list(queries)))
        distinct = list(dict.fromkeys(population))
        result = []
        for q in queries:
            others = [n for n in distinct if n != q]
            result.append([others[i % len(others)] for i in range(count)])
        return result


class ExplodingSampler:
    def sample_negative(self, count, population, queries):
        raise AssertionError("negative sampler must not be called")


def edges_df(pairs) -> pd.DataFrame:
    return pd.DataFrame({"src_node": [s for s, _ in pairs], "dst_node": [d for _, d in pairs]})
