import logging
from typing import IO, Iterator, List, Optional, Protocol, Sequence, Type, TypeVar, Union

import pandas as pd

from bipartite_sage.io.value import EdgeValue, NodeValue

logger = logging.getLogger(__name__)

Value = TypeVar("Value", EdgeValue, NodeValue)


class BatchSource(Protocol):
    def next_batch(self, batch_size: int, value_type: Type[Value]) -> Optional[List[Value]]:
        """Returns up to batch_size records, or None once the input is exhausted."""
        ...

    def close(self) -> None:
        ...


class LineParser:
    """
    Streams EdgeValue/NodeValue records out of one or more text files.

    Blank lines and lines starting with '#' are skipped. Once every file has
    been read (or close() was called) next_batch keeps returning None.
    """

    def __init__(self, paths: Union[str, Sequence[str]]):
        self.paths = [paths] if isinstance(paths, str) else list(paths)
        self._path_iter = iter(self.paths)
        self._current: Optional[IO[str]] = None
        self._current_path: Optional[str] = None
        self._lineno = 0
        self._closed = False

    def _next_line(self) -> Optional[str]:
        while not self._closed:
            if self._current is None:
                path = next(self._path_iter, None)
                if path is None:
                    return None
                logger.info("Opening input file %s", path)
                self._current = open(path, "r", encoding="utf-8")
                self._current_path = path
                self._lineno = 0

            line = self._current.readline()
            if not line:
                self._current.close()
                self._current = None
                continue

            self._lineno += 1
            line = line.strip()
            if line and not line.startswith("#"):
                return line
        return None

    def next_batch(self, batch_size: int, value_type: Type[Value]) -> Optional[List[Value]]:
        values = []
        while len(values) < batch_size:
            line = self._next_line()
            if line is None:
                break
            try:
                values.append(value_type.parse(line))
            except ValueError as e:
                raise ValueError(f"{self._current_path}:{self._lineno}: {e}") from e
        return values or None

    def close(self) -> None:
        if self._current is not None:
            self._current.close()
            self._current = None
        self._closed = True


class DataFrameSource:
    """
    Serves records from a DataFrame with 'src_node'/'dst_node'[/'weight']
    columns (edges) or a 'node' column (nodes).
    """

    def __init__(self, df: pd.DataFrame):
        self.df = df.reset_index(drop=True)
        self._pos = 0
        self._closed = False

    def _rows(self, start: int, end: int, value_type: Type[Value]) -> Iterator[Value]:
        chunk = self.df.iloc[start:end]
        if value_type is EdgeValue:
            weights = chunk["weight"] if "weight" in chunk.columns else [1.0] * len(chunk)
            for src, dst, w in zip(chunk["src_node"], chunk["dst_node"], weights):
                yield EdgeValue(int(src), int(dst), float(w))
        else:
            for node in chunk["node"]:
                yield NodeValue(int(node))

    def next_batch(self, batch_size: int, value_type: Type[Value]) -> Optional[List[Value]]:
        if self._closed or self._pos >= len(self.df):
            return None
        end = min(self._pos + batch_size, len(self.df))
        values = list(self._rows(self._pos, end, value_type))
        self._pos = end
        return values

    def close(self) -> None:
        self._closed = True
