import hydra
from omegaconf import DictConfig
from tqdm import tqdm
import torch
import os

from bipartite_sage.graph.graph_store import GraphStore
from bipartite_sage.io.line_parser import LineParser
from bipartite_sage.logger.logger import ExperimentLogger
from bipartite_sage.model.instance import Instance
from bipartite_sage.model.instance_reader.config import InstanceReaderConfig
from bipartite_sage.model.instance_reader.factory import ReaderKind, new_instance_reader
from bipartite_sage.model.tensors import instance_to_tensors


@hydra.main(config_path="../configs", config_name="build_batches", version_base="1.3")
def main(cfg: DictConfig):
    edge_path = hydra.utils.to_absolute_path(cfg.graph.edge_path)
    feature_path = None
    if cfg.graph.get('feature_path'):
        feature_path = hydra.utils.to_absolute_path(cfg.graph.feature_path)

    print(f"Loading graph from {edge_path}...")
    graph = GraphStore.from_files(edge_path, feature_path)
    print(f"Graph stats: Nodes={graph.num_nodes}, Edges={graph.num_edges}, FeatureDim={graph.feature_dim}")

    reader_config = InstanceReaderConfig.from_dictconfig(cfg.reader, overrides=cfg.get('reader_args'))
    kind = ReaderKind.parse(cfg.reader_name)
    input_paths = [hydra.utils.to_absolute_path(p) for p in cfg.input.paths]
    source = LineParser(input_paths)
    reader = new_instance_reader(kind, reader_config, graph, source)

    mode = "train" if reader_config.is_train else "predict"
    print(f"Reader: {kind.value} | Mode: {mode} | Batch: {reader_config.batch} | Fan-out: {reader_config.num_neighbors}")

    exp_logger = ExperimentLogger(cfg) if cfg.get("clearml") else None

    output_dir = cfg.get('output_dir')
    if output_dir:
        output_dir = hydra.utils.to_absolute_path(output_dir)
        os.makedirs(output_dir, exist_ok=True)

    inst = Instance()
    step = 0
    total_records = 0
    pbar = tqdm(desc=f"Building {mode} batches", unit="batch")
    try:
        while reader.get_batch(inst):
            step += 1
            total_records += inst.batch

            if exp_logger is not None:
                exp_logger.log_batch(inst)

            if output_dir:
                torch.save(instance_to_tensors(inst), os.path.join(output_dir, f"batch_{step:06d}.pt"))

            pbar.update(1)
            pbar.set_postfix({'records': total_records})
    finally:
        pbar.close()
        reader.close()
        if exp_logger is not None:
            exp_logger.close()

    print(f"Done: {step} batches, {total_records} records.")


if __name__ == "__main__":
    main()
