"""
Sampling and block-building steps shared by GraphSAGE style instance readers.

Level 0 holds the distinct seed nodes. Level k+1 holds level k followed by
every newly seen neighbor sampled for level k, so each level is a prefix of
the next and the deepest level is the union of all sampled nodes.
"""
import logging
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

import numpy as np
import scipy.sparse as sp

from bipartite_sage.errors import IndexMissError
from bipartite_sage.io.indexing import Indexing
from bipartite_sage.io.node_id import get_node_type
from bipartite_sage.model.instance import Instance

logger = logging.getLogger(__name__)

LevelNodes = List[List[int]]
LevelNeighs = List[Dict[int, List[int]]]
IndexFn = Callable[[int], int]


class GraphClient(Protocol):
    def sample_neighbors(self, count: int, nodes: Sequence[int], rng: np.random.Generator) -> List[List[int]]:
        ...

    def lookup_node_feature(self, nodes: Sequence[int]) -> sp.csr_matrix:
        ...

    def lookup_neigh_feature(self, nodes: Sequence[int]) -> sp.csr_matrix:
        ...

    def nodes_by_type(self) -> Dict[int, List[int]]:
        ...


def one_hot_rows(indices: Sequence[int], num_cols: int) -> sp.csr_matrix:
    """One row per index with a single entry of weight 1."""
    n = len(indices)
    return sp.csr_matrix(
        (np.ones(n, dtype=np.float32), (np.arange(n), np.asarray(indices, dtype=np.int64))),
        shape=(n, num_cols),
    )


def _index_in(indexing: Indexing, node: int) -> int:
    idx = indexing.get(node)
    if idx < 0:
        raise IndexMissError(node, get_node_type(node))
    return idx


class NeighborAggregationFlow:
    def __init__(self, graph_client: GraphClient, rng: np.random.Generator):
        self.graph_client = graph_client
        self.rng = rng

    def sample_subgraph(self, nodes: Sequence[int], num_neighbors: Sequence[int]) -> Tuple[LevelNodes, LevelNeighs]:
        level_nodes: LevelNodes = [list(dict.fromkeys(nodes))]
        level_neighs: LevelNeighs = []

        for count in num_neighbors:
            cur_nodes = level_nodes[-1]
            neighbors_list = self.graph_client.sample_neighbors(count, cur_nodes, self.rng)

            neighs = {}
            next_nodes = dict.fromkeys(cur_nodes)
            for node, sampled in zip(cur_nodes, neighbors_list):
                neighs[node] = list(sampled)
                next_nodes.update(dict.fromkeys(sampled))

            level_neighs.append(neighs)
            level_nodes.append(list(next_nodes))

        logger.debug("Sampled levels: %s", [len(nodes) for nodes in level_nodes])
        return level_nodes, level_neighs

    def fill_level_node_feature(self, inst: Instance, name: str, level_nodes: LevelNodes) -> None:
        inst.set(name, [self.graph_client.lookup_node_feature(nodes) for nodes in level_nodes])

    def fill_level_neigh_feature(self, inst: Instance, name: str, level_nodes: LevelNodes) -> None:
        inst.set(name, [self.graph_client.lookup_neigh_feature(nodes) for nodes in level_nodes])

    def fill_self_and_neigh_graph_block(
        self,
        inst: Instance,
        self_name: str,
        neigh_name: str,
        level_nodes: LevelNodes,
        level_neighs: LevelNeighs,
        indexings: Sequence[Indexing],
        directed: bool,
    ) -> None:
        """
        For every hop k, a self block and a neighbor block of shape
        (|level k|, |level k+1|). Self rows point at the node itself; neighbor
        rows spread weight 1/deg over its sampled neighbors. Nodes without
        neighbors keep an empty neighbor row.
        """
        self_blocks, neigh_blocks = [], []
        for k, neighs in enumerate(level_neighs):
            cur_nodes = level_nodes[k]
            cur_indexing, next_indexing = indexings[k], indexings[k + 1]

            row_neighs = {node: list(neighs.get(node, ())) for node in cur_nodes}
            if not directed:
                for node in cur_nodes:
                    for neigh in neighs.get(node, ()):
                        reverse = row_neighs.get(neigh)
                        if reverse is not None and node not in reverse:
                            reverse.append(node)

            self_cols = [_index_in(next_indexing, node) for node in cur_nodes]
            self_blocks.append(one_hot_rows(self_cols, next_indexing.size()))

            rows, cols, vals = [], [], []
            for node in cur_nodes:
                node_neighs = row_neighs[node]
                if not node_neighs:
                    continue
                row = _index_in(cur_indexing, node)
                weight = 1.0 / len(node_neighs)
                for neigh in node_neighs:
                    rows.append(row)
                    cols.append(_index_in(next_indexing, neigh))
                    vals.append(weight)
            neigh_blocks.append(sp.csr_matrix(
                (np.asarray(vals, dtype=np.float32), (rows, cols)),
                shape=(cur_indexing.size(), next_indexing.size()),
            ))

        inst.set(self_name, self_blocks)
        inst.set(neigh_name, neigh_blocks)

    def fill_edge_and_label(
        self,
        inst: Instance,
        src_name: str,
        dst_name: str,
        label_name: str,
        src_nodes: Sequence[int],
        dst_nodes: Sequence[int],
        neg_nodes_list: Sequence[Sequence[int]],
        src_index_fn: IndexFn,
        dst_index_fn: IndexFn,
        num_cols: Optional[int] = None,
    ) -> None:
        """
        Per record: one positive row (src, dst, 1) followed by one negative
        row (src, neg, 0) for each of its negatives.
        """
        if not len(src_nodes) == len(dst_nodes) == len(neg_nodes_list):
            raise ValueError("src_nodes, dst_nodes and neg_nodes_list must be parallel")

        src_idx, dst_idx, labels = [], [], []
        for src, dst, negs in zip(src_nodes, dst_nodes, neg_nodes_list):
            s = src_index_fn(src)
            src_idx.append(s)
            dst_idx.append(dst_index_fn(dst))
            labels.append(1.0)
            for neg in negs:
                src_idx.append(s)
                dst_idx.append(dst_index_fn(neg))
                labels.append(0.0)

        if num_cols is None:
            num_cols = max(src_idx + dst_idx, default=-1) + 1

        inst.set(src_name, one_hot_rows(src_idx, num_cols))
        inst.set(dst_name, one_hot_rows(dst_idx, num_cols))
        inst.set(label_name, np.asarray(labels, dtype=np.float32).reshape(-1, 1))
