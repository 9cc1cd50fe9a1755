"""
In-memory bipartite graph used as the graph-sampling backend.

Edges are stored undirected: every (user, item) record is reachable from
both endpoints. Node features are kept as one sparse CSR matrix whose rows
are addressed through an Indexing over the featured nodes.
"""
import logging
import os
from collections import defaultdict
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
import scipy.sparse as sp

from bipartite_sage.io.indexing import Indexing
from bipartite_sage.io.node_id import get_node_type

logger = logging.getLogger(__name__)


def _read_table(path: str, names: List[str]) -> pd.DataFrame:
    if path.endswith(".parquet"):
        return pd.read_parquet(path)
    return pd.read_csv(path, sep=r"\s+", header=None, names=names, comment="#")


class GraphStore:
    def __init__(
        self,
        edges: pd.DataFrame,
        node_features: Optional[Mapping[int, Sequence[float]]] = None,
        feature_dim: Optional[int] = None,
    ):
        """
        Args:
            edges: DataFrame with 'src_node', 'dst_node' and optional 'weight'.
            node_features: node id -> dense feature vector.
            feature_dim: width of the feature space; inferred from node_features
                when omitted, 0 when there are no features.
        """
        required = {"src_node", "dst_node"}
        missing = required - set(edges.columns)
        if missing:
            raise ValueError(f"edges missing columns: {missing}")

        weights = edges["weight"] if "weight" in edges.columns else np.ones(len(edges))

        neighbors: Dict[int, List[int]] = defaultdict(list)
        neighbor_weights: Dict[int, List[float]] = defaultdict(list)
        for src, dst, w in zip(edges["src_node"], edges["dst_node"], weights):
            src, dst, w = int(src), int(dst), float(w)
            if w <= 0:
                raise ValueError(f"Edge ({src}, {dst}) has non-positive weight {w}")
            neighbors[src].append(dst)
            neighbor_weights[src].append(w)
            if src != dst:
                neighbors[dst].append(src)
                neighbor_weights[dst].append(w)

        self._neighbors = dict(neighbors)
        self._weights = {node: np.asarray(ws, dtype=np.float64) for node, ws in neighbor_weights.items()}
        self.num_edges = len(edges)

        self._build_features(node_features or {}, feature_dim)
        logger.info(
            "Graph loaded: %d nodes, %d edges, %d featured nodes (dim %d)",
            self.num_nodes, self.num_edges, self._feature_index.size(), self.feature_dim
        )

    def _build_features(self, node_features: Mapping[int, Sequence[float]], feature_dim: Optional[int]):
        self._feature_index = Indexing.build(int(node) for node in node_features)
        if feature_dim is None:
            feature_dim = len(next(iter(node_features.values()))) if node_features else 0
        self.feature_dim = feature_dim

        if not node_features:
            self._features = sp.csr_matrix((0, feature_dim), dtype=np.float32)
            return

        rows = []
        for node, vec in node_features.items():
            vec = np.asarray(vec, dtype=np.float32).ravel()
            if vec.shape[0] != feature_dim:
                raise ValueError(f"Node {node} feature has dim {vec.shape[0]}, expected {feature_dim}")
            rows.append(vec)
        self._features = sp.csr_matrix(np.stack(rows))

    @classmethod
    def from_files(cls, edge_path: str, feature_path: Optional[str] = None) -> "GraphStore":
        """
        Loads edges from "src dst [weight]" text (or parquet) and, optionally,
        features from a parquet file with 'node' and 'feature' columns.
        """
        edges = _read_table(edge_path, ["src_node", "dst_node", "weight"])
        if "weight" in edges.columns and edges["weight"].isna().all():
            edges = edges.drop(columns=["weight"])

        node_features = None
        if feature_path and os.path.exists(feature_path):
            feat_df = pd.read_parquet(feature_path)
            if "node" not in feat_df.columns or "feature" not in feat_df.columns:
                raise ValueError("Feature file must contain 'node' and 'feature' columns")
            node_features = dict(zip(feat_df["node"].astype("uint64"), feat_df["feature"]))
        return cls(edges, node_features=node_features)

    @property
    def num_nodes(self) -> int:
        return len(self._neighbors)

    def nodes_by_type(self) -> Dict[int, List[int]]:
        """Every node with at least one edge, grouped by namespace tag."""
        groups: Dict[int, List[int]] = defaultdict(list)
        for node in self._neighbors:
            groups[get_node_type(node)].append(node)
        return dict(groups)

    def sample_neighbors(
        self, count: int, nodes: Sequence[int], rng: np.random.Generator
    ) -> List[List[int]]:
        """
        Samples up to count distinct neighbor slots per node, weighted by edge
        weight. count <= 0 returns every neighbor. Unknown nodes get [].
        """
        result = []
        for node in nodes:
            neighs = self._neighbors.get(node)
            if not neighs:
                result.append([])
                continue
            if count <= 0 or count >= len(neighs):
                result.append(list(neighs))
                continue
            w = self._weights[node]
            picked = rng.choice(len(neighs), size=count, replace=False, p=w / w.sum())
            result.append([neighs[i] for i in picked])
        return result

    def lookup_node_feature(self, nodes: Sequence[int]) -> sp.csr_matrix:
        """Feature rows for nodes; nodes without features get an empty row."""
        rows, picks = [], []
        for row, node in enumerate(nodes):
            idx = self._feature_index.get(node)
            if idx >= 0:
                rows.append(row)
                picks.append(idx)
        selector = sp.csr_matrix(
            (np.ones(len(rows), dtype=np.float32), (rows, picks)),
            shape=(len(nodes), self._feature_index.size()),
        )
        return (selector @ self._features).tocsr().astype(np.float32)

    def lookup_neigh_feature(self, nodes: Sequence[int]) -> sp.csr_matrix:
        """Edge-weighted mean of the neighbors' feature rows, one row per node."""
        rows, picks, vals = [], [], []
        for row, node in enumerate(nodes):
            neighs = self._neighbors.get(node, ())
            if not neighs:
                continue
            w = self._weights[node]
            total = w.sum()
            for neigh, weight in zip(neighs, w):
                idx = self._feature_index.get(neigh)
                if idx >= 0:
                    rows.append(row)
                    picks.append(idx)
                    vals.append(weight / total)
        selector = sp.csr_matrix(
            (np.asarray(vals, dtype=np.float32), (rows, picks)),
            shape=(len(nodes), self._feature_index.size()),
        )
        return (selector @ self._features).tocsr().astype(np.float32)
