import pandas as pd
import pytest

from bipartite_sage.io.line_parser import DataFrameSource, LineParser
from bipartite_sage.io.value import EdgeValue, NodeValue


def test_line_parser_batches_across_files(tmp_path):
    a = tmp_path / "a.txt"
    b = tmp_path / "b.txt"
    a.write_text("# header\n1 2\n\n3\t4 0.5\n")
    b.write_text("5 6\n")

    parser = LineParser([str(a), str(b)])
    assert parser.next_batch(2, EdgeValue) == [EdgeValue(1, 2), EdgeValue(3, 4, 0.5)]
    assert parser.next_batch(2, EdgeValue) == [EdgeValue(5, 6)]
    assert parser.next_batch(2, EdgeValue) is None
    assert parser.next_batch(2, EdgeValue) is None


def test_line_parser_reports_exhausted_after_close(tmp_path):
    path = tmp_path / "nodes.txt"
    path.write_text("1\n2\n3\n")
    parser = LineParser(str(path))
    assert parser.next_batch(1, NodeValue) == [NodeValue(1)]
    parser.close()
    assert parser.next_batch(1, NodeValue) is None


def test_line_parser_bad_line_names_location(tmp_path):
    path = tmp_path / "edges.txt"
    path.write_text("1 2\n1 2 3 4\n")
    parser = LineParser(str(path))
    with pytest.raises(ValueError, match="edges.txt:2"):
        parser.next_batch(10, EdgeValue)


def test_dataframe_source_edges_and_nodes():
    edges = DataFrameSource(pd.DataFrame({"src_node": [1, 3], "dst_node": [2, 4], "weight": [1.0, 2.0]}))
    assert edges.next_batch(5, EdgeValue) == [EdgeValue(1, 2, 1.0), EdgeValue(3, 4, 2.0)]
    assert edges.next_batch(5, EdgeValue) is None

    nodes = DataFrameSource(pd.DataFrame({"node": [7, 8, 9]}))
    assert nodes.next_batch(2, NodeValue) == [NodeValue(7), NodeValue(8)]
    nodes.close()
    assert nodes.next_batch(2, NodeValue) is None
