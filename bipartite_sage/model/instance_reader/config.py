import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from omegaconf import DictConfig, OmegaConf

from bipartite_sage.errors import ConfigError
from bipartite_sage.io.node_id import MAX_NS_ID

logger = logging.getLogger(__name__)


def _parse_int(k: str, v: Any) -> int:
    if isinstance(v, bool):
        return int(v)
    try:
        return int(str(v).strip())
    except ValueError:
        raise ConfigError(f"Invalid integer for {k}: {v!r}") from None


def _parse_flag(k: str, v: Any) -> bool:
    val = _parse_int(k, v)
    if val not in (0, 1):
        raise ConfigError(f"{k} must be 0 or 1, got {v!r}")
    return bool(val)


def _parse_int_list(k: str, v: Any) -> List[int]:
    if isinstance(v, (list, tuple)):
        items = [str(x) for x in v]
    else:
        items = [x for x in str(v).split(",") if x.strip()]
    return [_parse_int(k, x) for x in items]


def parse_kv_string(text: str) -> List[Tuple[str, str]]:
    """Splits "k1=v1;k2=v2" reader arguments into (key, value) pairs."""
    items = []
    for part in text.split(";"):
        part = part.strip()
        if not part:
            continue
        if "=" not in part:
            raise ConfigError(f"Expected key=value, got {part!r}")
        k, v = part.split("=", 1)
        items.append((k.strip(), v.strip()))
    return items


@dataclass
class InstanceReaderConfig:
    # base reader
    batch: int = 32
    seed: int = 0

    # unsupervised bipartite GraphSAGE
    is_train: bool = True
    num_neg: int = 5
    num_neighbors: List[int] = field(default_factory=list)
    use_neigh_feat: bool = False
    user_ns_id: int = 0
    item_ns_id: int = 1

    def init_config_kv(self, k: str, v: Any) -> None:
        if k == "batch":
            self.batch = _parse_int(k, v)
            if self.batch <= 0:
                raise ConfigError(f"batch must be positive, got {v!r}")
        elif k == "seed":
            self.seed = _parse_int(k, v)
        elif k == "is_train":
            self.is_train = _parse_flag(k, v)
        elif k == "num_neg":
            self.num_neg = _parse_int(k, v)
            if self.num_neg <= 0:
                raise ConfigError(f"num_neg must be positive, got {v!r}")
        elif k == "num_neighbors":
            self.num_neighbors = _parse_int_list(k, v)
        elif k == "use_neigh_feat":
            self.use_neigh_feat = _parse_flag(k, v)
        elif k == "user_ns_id":
            self.user_ns_id = self._parse_ns_id(k, v)
        elif k == "item_ns_id":
            self.item_ns_id = self._parse_ns_id(k, v)
        else:
            raise ConfigError(f"Unexpected config: {k} = {v}.")

        logger.info("Instance reader argument: %s = %s.", k, v)

    @staticmethod
    def _parse_ns_id(k: str, v: Any) -> int:
        ns_id = _parse_int(k, v)
        if not 0 <= ns_id <= MAX_NS_ID:
            raise ConfigError(f"{k} must be in [0, {MAX_NS_ID}], got {v!r}")
        return ns_id

    def validate(self) -> "InstanceReaderConfig":
        if self.user_ns_id == self.item_ns_id:
            raise ConfigError(f"user_ns_id and item_ns_id must differ, both are {self.user_ns_id}")
        return self

    @classmethod
    def from_kv(cls, items: Iterable[Tuple[str, Any]]) -> "InstanceReaderConfig":
        config = cls()
        for k, v in items:
            config.init_config_kv(k, v)
        return config.validate()

    @classmethod
    def from_mapping(cls, kv: Mapping[str, Any]) -> "InstanceReaderConfig":
        return cls.from_kv(kv.items())

    @classmethod
    def from_dictconfig(cls, cfg: DictConfig, overrides: Optional[str] = None) -> "InstanceReaderConfig":
        """Reader section of a Hydra config; keys in overrides win."""
        items = list(OmegaConf.to_container(cfg, resolve=True).items())
        return cls.from_kv(items + parse_kv_string(overrides or ""))
