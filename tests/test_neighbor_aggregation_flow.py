import numpy as np
import pytest

from bipartite_sage.errors import IndexMissError
from bipartite_sage.io.indexing import Indexing, create_indexings
from bipartite_sage.model.data_flow.neighbor_aggregation_flow import NeighborAggregationFlow, one_hot_rows
from bipartite_sage.model.instance import Instance
from helpers import FakeGraph, I, U


def make_flow(adjacency):
    graph = FakeGraph(adjacency)
    return NeighborAggregationFlow(graph, np.random.default_rng(0)), graph


def test_sample_subgraph_levels_are_prefix_extended():
    flow, graph = make_flow({
        U(1): [I(1), I(2)],
        U(2): [I(2)],
        I(1): [U(1), U(3)],
        I(2): [U(1), U(2)],
    })
    level_nodes, level_neighs = flow.sample_subgraph([U(1), U(2), U(1)], [2, 1])

    assert level_nodes[0] == [U(1), U(2)]
    assert level_nodes[1] == [U(1), U(2), I(1), I(2)]
    assert level_nodes[2] == [U(1), U(2), I(1), I(2)]
    assert level_neighs[0] == {U(1): [I(1), I(2)], U(2): [I(2)]}
    assert level_neighs[1][I(1)] == [U(1)]
    assert graph.sample_calls[0] == (2, [U(1), U(2)])


def test_sample_subgraph_empty_seeds():
    flow, _ = make_flow({})
    level_nodes, level_neighs = flow.sample_subgraph([], [3, 2])
    assert level_nodes == [[], [], []]
    assert level_neighs == [{}, {}]


def test_sample_subgraph_without_fanout_keeps_seeds_only():
    flow, _ = make_flow({U(1): [I(1)]})
    level_nodes, level_neighs = flow.sample_subgraph([U(1)], [])
    assert level_nodes == [[U(1)]]
    assert level_neighs == []


def test_self_and_neigh_blocks():
    flow, _ = make_flow({U(1): [I(1), I(2)]})
    level_nodes, level_neighs = flow.sample_subgraph([U(1), U(2)], [2])
    indexings = create_indexings(level_nodes)
    inst = Instance()
    flow.fill_self_and_neigh_graph_block(inst, "SELF", "NEIGH", level_nodes, level_neighs, indexings, True)

    (self_block,) = inst["SELF"]
    (neigh_block,) = inst["NEIGH"]
    assert self_block.shape == (2, 4)
    np.testing.assert_array_equal(self_block.toarray(), [[1, 0, 0, 0], [0, 1, 0, 0]])
    np.testing.assert_allclose(neigh_block.toarray(), [[0, 0, 0.5, 0.5], [0, 0, 0, 0]])
    # U(2) has no neighbors: a self entry but an empty neighbor row
    assert neigh_block[1].nnz == 0


def test_undirected_blocks_add_reverse_neighbors_within_level():
    flow, _ = make_flow({U(1): [I(1)]})
    level_nodes, level_neighs = flow.sample_subgraph([U(1), I(1)], [1])
    indexings = create_indexings(level_nodes)

    directed, undirected = Instance(), Instance()
    flow.fill_self_and_neigh_graph_block(directed, "S", "N", level_nodes, level_neighs, indexings, True)
    flow.fill_self_and_neigh_graph_block(undirected, "S", "N", level_nodes, level_neighs, indexings, False)

    assert directed["N"][0][1].nnz == 0
    np.testing.assert_allclose(undirected["N"][0].toarray(), [[0, 1], [1, 0]])


def test_empty_seed_blocks_are_empty():
    flow, _ = make_flow({})
    level_nodes, level_neighs = flow.sample_subgraph([], [2])
    inst = Instance()
    flow.fill_level_node_feature(inst, "FEAT", level_nodes)
    flow.fill_self_and_neigh_graph_block(
        inst, "S", "N", level_nodes, level_neighs, create_indexings(level_nodes), False
    )
    assert [f.shape[0] for f in inst["FEAT"]] == [0, 0]
    assert inst["S"][0].shape == (0, 0)
    assert inst["N"][0].nnz == 0


def test_fill_level_features_one_matrix_per_level():
    flow, _ = make_flow({U(1): [I(1)]})
    level_nodes, _ = flow.sample_subgraph([U(1)], [1])
    inst = Instance()
    flow.fill_level_node_feature(inst, "NODE", level_nodes)
    flow.fill_level_neigh_feature(inst, "NEIGH", level_nodes)
    assert [m.shape for m in inst["NODE"]] == [(1, 2), (2, 2)]
    assert inst["NEIGH"][1].toarray()[0, 0] == pytest.approx(0.5)


def test_fill_edge_and_label_emits_positive_then_negatives():
    flow, _ = make_flow({})
    index = {U(1): 0, U(2): 1, I(1): 2, I(2): 3}
    inst = Instance()
    flow.fill_edge_and_label(
        inst, "SRC", "DST", "Y",
        [U(1), U(2)], [I(1), I(2)], [[I(2)], [I(1)]],
        index.__getitem__, index.__getitem__,
        num_cols=4,
    )
    assert inst["SRC"].indices.tolist() == [0, 0, 1, 1]
    assert inst["DST"].indices.tolist() == [2, 3, 3, 2]
    assert inst["Y"].ravel().tolist() == [1.0, 0.0, 1.0, 0.0]
    assert inst["Y"].shape == (4, 1)
    assert inst["SRC"].shape == (4, 4)


def test_fill_edge_and_label_rejects_ragged_inputs():
    flow, _ = make_flow({})
    with pytest.raises(ValueError):
        flow.fill_edge_and_label(Instance(), "S", "D", "Y", [1], [2, 3], [[4]], int, int)


def test_block_index_miss_is_fatal():
    flow, _ = make_flow({})
    level_nodes = [[U(1)], [U(1)]]
    level_neighs = [{U(1): [I(9)]}]
    indexings = [Indexing.build([U(1)]), Indexing.build([U(1)])]
    with pytest.raises(IndexMissError):
        flow.fill_self_and_neigh_graph_block(Instance(), "S", "N", level_nodes, level_neighs, indexings, True)


def test_one_hot_rows():
    mat = one_hot_rows([2, 0], 3)
    np.testing.assert_array_equal(mat.toarray(), [[0, 0, 1], [1, 0, 0]])
