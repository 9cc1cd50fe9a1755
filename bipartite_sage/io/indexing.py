from typing import Dict, Iterable, List, Sequence


class Indexing:
    """
    Maps node ids to a contiguous range [0, N-1] in first-seen order.

    Duplicates keep the index of their first occurrence. An instance belongs
    to a single batch and node group; build a new one for every batch.
    """

    def __init__(self):
        self._node_to_idx: Dict[int, int] = {}
        self._idx_to_node: List[int] = []

    @classmethod
    def build(cls, nodes: Iterable[int]) -> "Indexing":
        indexing = cls()
        for node in nodes:
            indexing.add(node)
        return indexing

    def add(self, node: int) -> int:
        idx = self._node_to_idx.get(node)
        if idx is None:
            idx = len(self._idx_to_node)
            self._node_to_idx[node] = idx
            self._idx_to_node.append(node)
        return idx

    def get(self, node: int) -> int:
        """Returns the index of node, or -1 if it was never added."""
        return self._node_to_idx.get(node, -1)

    def size(self) -> int:
        return len(self._idx_to_node)

    def __len__(self):
        return len(self._idx_to_node)

    def __contains__(self, node: int) -> bool:
        return node in self._node_to_idx

    def __repr__(self):
        return f"{self.__class__.__name__}(size={self.size()})"


def create_indexings(level_nodes: Sequence[Sequence[int]]) -> List[Indexing]:
    """One Indexing per sampled level."""
    return [Indexing.build(nodes) for nodes in level_nodes]
