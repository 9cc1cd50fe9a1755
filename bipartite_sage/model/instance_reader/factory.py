from enum import Enum
from typing import Optional

import numpy as np

from bipartite_sage.errors import ConfigError
from bipartite_sage.graph.negative_sampler import NegativeSampler, SharedNegativeSampler
from bipartite_sage.io.line_parser import BatchSource
from bipartite_sage.model.data_flow.neighbor_aggregation_flow import GraphClient, NeighborAggregationFlow
from bipartite_sage.model.instance import SlotNames
from bipartite_sage.model.instance_reader.config import InstanceReaderConfig
from bipartite_sage.model.instance_reader.unsup_bipartite_reader import UnsupBipartiteInstReader


class ReaderKind(Enum):
    UNSUP_BIPARTITE_GRAPHSAGE = "unsup_bipartite_graphsage"

    @classmethod
    def parse(cls, name: str) -> "ReaderKind":
        aliases = {
            "unsup_bipartite_graphsage": cls.UNSUP_BIPARTITE_GRAPHSAGE,
            "UnsupBipartiteInstReader": cls.UNSUP_BIPARTITE_GRAPHSAGE,
        }
        try:
            return aliases[name]
        except KeyError:
            raise ConfigError(f"Unknown instance reader: {name}. Allowed: {sorted(aliases)}") from None


def new_instance_reader(
    kind: ReaderKind,
    config: InstanceReaderConfig,
    graph_client: GraphClient,
    source: BatchSource,
    negative_sampler: Optional[NegativeSampler] = None,
    slot_names: SlotNames = SlotNames(),
) -> UnsupBipartiteInstReader:
    """
    Builds a reader with its own RNG. When no sampler is given, negatives are
    shared within the batch and never equal their own positive; a query with
    no other candidate in its batch draws from the graph's nodes of its type.
    """
    rng = np.random.default_rng(config.seed)
    if negative_sampler is None:
        negative_sampler = SharedNegativeSampler(
            rng, exclude_self=True, fallback_domain=graph_client.nodes_by_type()
        )

    if kind is ReaderKind.UNSUP_BIPARTITE_GRAPHSAGE:
        flow = NeighborAggregationFlow(graph_client, rng)
        return UnsupBipartiteInstReader(config, flow, source, negative_sampler, slot_names)
    raise ConfigError(f"Unsupported reader kind: {kind}")
