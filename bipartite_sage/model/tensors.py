from typing import Any, Dict

import numpy as np
import scipy.sparse as sp
import torch
from torch import Tensor

from bipartite_sage.model.instance import Instance


def csr_to_torch(mat: sp.csr_matrix) -> Tensor:
    coo = mat.tocoo()
    indices = torch.from_numpy(np.vstack([coo.row, coo.col]).astype(np.int64))
    values = torch.from_numpy(coo.data.astype(np.float32))
    return torch.sparse_coo_tensor(indices, values, size=coo.shape).coalesce()


def _convert(value: Any, device: torch.device) -> Any:
    if sp.issparse(value):
        return csr_to_torch(value.tocsr()).to(device)
    if isinstance(value, np.ndarray):
        return torch.from_numpy(value).to(device)
    if isinstance(value, list):
        if value and all(sp.issparse(v) for v in value):
            return [_convert(v, device) for v in value]
        # Raw node ids; uint64 ids above int64 range keep their bit pattern.
        ids = np.asarray(value, dtype=np.uint64).view(np.int64)
        return torch.from_numpy(ids).to(device)
    return value


def instance_to_tensors(inst: Instance, device: str = "cpu") -> Dict[str, Any]:
    """
    Converts every slot for the encoder: CSR -> sparse COO tensor, numpy ->
    dense tensor, lists of CSR -> lists of sparse tensors, node lists ->
    LongTensor.
    """
    device = torch.device(device)
    return {name: _convert(inst[name], device) for name in inst}
