"""
Instance reader for unsupervised GraphSAGE over a user/item bipartite graph.

Users and items are encoded by two separate encoders, so every batch samples
and compacts each group on its own. Edges and predict rows address nodes in
one flat space: users occupy [0, |users|), items follow at an offset of
|users|.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List

from bipartite_sage.errors import IndexMissError
from bipartite_sage.graph.negative_sampler import NegativeSampler
from bipartite_sage.io.indexing import Indexing, create_indexings
from bipartite_sage.io.line_parser import BatchSource
from bipartite_sage.io.node_id import get_node_type, parse_user_and_item
from bipartite_sage.io.value import EdgeValue, NodeValue, collect
from bipartite_sage.model.data_flow.neighbor_aggregation_flow import (
    NeighborAggregationFlow,
    one_hot_rows,
)
from bipartite_sage.model.instance import EncoderSlots, Instance, SlotNames
from bipartite_sage.model.instance_reader.config import InstanceReaderConfig

logger = logging.getLogger(__name__)


def compose_index(node: int, user_group: int, user_indexing: Indexing, item_indexing: Indexing) -> int:
    """Flat index of node: user index, or item index shifted past all users."""
    group = get_node_type(node)
    if group == user_group:
        index = user_indexing.get(node)
        if index < 0:
            raise IndexMissError(node, group)
        return index
    index = item_indexing.get(node)
    if index < 0:
        raise IndexMissError(node, group)
    return index + user_indexing.size()


@dataclass
class _BatchContext:
    """Working buffers for a single get_batch call."""

    src_nodes: List[int] = field(default_factory=list)
    dst_nodes: List[int] = field(default_factory=list)
    neg_nodes_list: List[List[int]] = field(default_factory=list)
    user_nodes: List[int] = field(default_factory=list)
    item_nodes: List[int] = field(default_factory=list)
    user_indexings: List[Indexing] = field(default_factory=list)
    item_indexings: List[Indexing] = field(default_factory=list)

    def index_fn(self, user_group: int) -> Callable[[int], int]:
        user_indexing, item_indexing = self.user_indexings[0], self.item_indexings[0]
        return lambda node: compose_index(node, user_group, user_indexing, item_indexing)

    @property
    def num_flat_nodes(self) -> int:
        return self.user_indexings[0].size() + self.item_indexings[0].size()


class UnsupBipartiteInstReader:
    def __init__(
        self,
        config: InstanceReaderConfig,
        flow: NeighborAggregationFlow,
        source: BatchSource,
        negative_sampler: NegativeSampler,
        slot_names: SlotNames = SlotNames(),
    ):
        self.config = config
        self.flow = flow
        self.source = source
        self.negative_sampler = negative_sampler
        self.slot_names = slot_names
        self.user_slots = slot_names.user
        self.item_slots = slot_names.item

    def get_batch(self, inst: Instance) -> bool:
        """
        Fills inst with the next batch. inst is empty whenever this returns
        False or raises: neither the previous batch nor a partly built one
        is left behind.
        """
        inst.clear_batch()
        try:
            if self.config.is_train:
                return self.get_train_batch(inst)
            return self.get_predict_batch(inst)
        except Exception:
            inst.clear_batch()
            raise

    def _next_values(self, value_type):
        values = self.source.next_batch(self.config.batch, value_type)
        if not values:
            self.source.close()
            return None
        return values

    def _partition(self, ctx: _BatchContext, nodes: List[int]) -> None:
        parse_user_and_item(nodes, self.config.user_ns_id, self.config.item_ns_id, ctx.user_nodes, ctx.item_nodes)

    def get_train_batch(self, inst: Instance) -> bool:
        values = self._next_values(EdgeValue)
        if values is None:
            return False

        ctx = _BatchContext()
        ctx.src_nodes = collect(values, lambda v: v.src_node)
        ctx.dst_nodes = collect(values, lambda v: v.dst_node)
        ctx.neg_nodes_list = self.negative_sampler.sample_negative(
            self.config.num_neg, ctx.dst_nodes, ctx.dst_nodes
        )

        # Sources, positives and negatives can each hold either node type
        self._partition(ctx, ctx.src_nodes)
        self._partition(ctx, ctx.dst_nodes)
        for neg_nodes in ctx.neg_nodes_list:
            self._partition(ctx, neg_nodes)

        ctx.user_indexings = self.fill_instance(inst, self.user_slots, ctx.user_nodes)
        ctx.item_indexings = self.fill_instance(inst, self.item_slots, ctx.item_nodes)

        index_fn = ctx.index_fn(self.config.user_ns_id)
        self.flow.fill_edge_and_label(
            inst,
            self.slot_names.src_id,
            self.slot_names.dst_id,
            self.slot_names.label,
            ctx.src_nodes,
            ctx.dst_nodes,
            ctx.neg_nodes_list,
            index_fn,
            index_fn,
            num_cols=ctx.num_flat_nodes,
        )

        logger.debug(
            "Train batch: %d edges, %d user nodes, %d item nodes",
            len(ctx.src_nodes), ctx.user_indexings[0].size(), ctx.item_indexings[0].size()
        )
        inst.set_batch(len(ctx.src_nodes))
        return True

    def get_predict_batch(self, inst: Instance) -> bool:
        values = self._next_values(NodeValue)
        if values is None:
            return False

        ctx = _BatchContext()
        ctx.src_nodes = collect(values, lambda v: v.node)
        self._partition(ctx, ctx.src_nodes)

        ctx.user_indexings = self.fill_instance(inst, self.user_slots, ctx.user_nodes)
        ctx.item_indexings = self.fill_instance(inst, self.item_slots, ctx.item_nodes)

        index_fn = ctx.index_fn(self.config.user_ns_id)
        src_index = [index_fn(node) for node in ctx.src_nodes]
        inst.set(self.slot_names.src_id, one_hot_rows(src_index, ctx.num_flat_nodes))

        predict_nodes = inst.get_or_insert(self.slot_names.predict_node, list)
        predict_nodes[:] = ctx.src_nodes

        inst.set_batch(len(ctx.src_nodes))
        return True

    def fill_instance(self, inst: Instance, slots: EncoderSlots, nodes: List[int]) -> List[Indexing]:
        """Samples the subgraph around nodes and fills one encoder's slots."""
        level_nodes, level_neighs = self.flow.sample_subgraph(nodes, self.config.num_neighbors)

        self.flow.fill_level_node_feature(inst, slots.node_feature, level_nodes)
        if self.config.use_neigh_feat:
            self.flow.fill_level_neigh_feature(inst, slots.neigh_feature, level_nodes)

        indexings = create_indexings(level_nodes)
        self.flow.fill_self_and_neigh_graph_block(
            inst, slots.self_block, slots.neigh_block, level_nodes, level_neighs, indexings, False
        )
        return indexings

    def close(self) -> None:
        self.source.close()
