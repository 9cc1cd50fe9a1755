from collections import Counter
from typing import Dict

from clearml import Task, Logger as ClearMLLogger
from omegaconf import DictConfig, OmegaConf

from bipartite_sage.model.instance import Instance, SlotNames


def batch_stats(inst: Instance, slot_names: SlotNames = SlotNames()) -> Dict[str, float]:
    """
    Sizes of a finished batch, keyed as 'Title/series'.
    """
    stats = {'Batch/size': float(inst.batch)}
    for title, slots in (('User', slot_names.user), ('Item', slot_names.item)):
        features = inst.get(slots.node_feature, [])
        if features:
            stats[f'{title}/seed_nodes'] = float(features[0].shape[0])
            stats[f'{title}/sampled_nodes'] = float(features[-1].shape[0])
        neigh_blocks = inst.get(slots.neigh_block, [])
        stats[f'{title}/neighbor_edges'] = float(sum(b.nnz for b in neigh_blocks))

    labels = inst.get(slot_names.label)
    if labels is not None:
        stats['Batch/positives'] = float((labels > 0).sum())
        stats['Batch/negatives'] = float((labels == 0).sum())
    return stats


class ExperimentLogger:
    """
    Reports batch-building progress to a ClearML task.

    Every batch goes through log_batch; per-batch sizes are sent as scalars
    every log_interval batches, and run totals are published on close.
    """

    # batch_stats key -> name of the run total
    _TOTALS = {'Batch/size': 'records', 'Batch/positives': 'positives', 'Batch/negatives': 'negatives'}

    def __init__(self, config: DictConfig, slot_names: SlotNames = SlotNames()):
        self.slot_names = slot_names
        self.log_interval = max(int(config.get('log_interval', 50)), 1)
        self.steps = 0
        self.totals: Counter = Counter()

        self.task = Task.init(
            project_name=config.clearml.project_name,
            task_name=config.experiment_name,
            tags=list(config.clearml.get('tags', [])),
        )
        self.task.connect(OmegaConf.to_container(config.reader, resolve=True), name='reader')
        self.logger = ClearMLLogger.current_logger()

    def log_batch(self, inst: Instance):
        self.steps += 1
        stats = batch_stats(inst, self.slot_names)
        for key, total in self._TOTALS.items():
            self.totals[total] += stats.get(key, 0.0)

        if self.steps % self.log_interval == 0:
            self._report(stats, self.steps)

    def _report(self, metrics: Dict[str, float], step: int):
        for name, value in metrics.items():
            title, series = name.split('/', 1)
            self.logger.report_scalar(title=title, series=series, value=value, iteration=step)

    def close(self):
        self.logger.report_single_value('batches', self.steps)
        for total in self._TOTALS.values():
            self.logger.report_single_value(total, self.totals[total])
        self.task.close()
