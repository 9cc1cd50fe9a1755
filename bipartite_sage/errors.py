class ConfigError(ValueError):
    """Unknown or out-of-range instance reader option."""


class IndexMissError(KeyError):
    """A node referenced by an edge/label or predict row has no compacted index."""

    def __init__(self, node: int, group: int):
        super().__init__(node)
        self.node = node
        self.group = group

    def __str__(self):
        return f"Node {self.node} (ns_id {self.group}) is missing from the batch indexing"


class NegativeSamplingError(RuntimeError):
    """The negative sampler could not produce candidates for a query node."""
