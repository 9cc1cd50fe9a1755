from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar

T = TypeVar("T")

# Global slot names
X_SRC_ID_NAME = "X_SRC_ID"
X_DST_ID_NAME = "X_DST_ID"
Y_NAME = "Y"
X_PREDICT_NODE_NAME = "X_PREDICT_NODE"

# Per-encoder slot prefixes, suffixed with the encoder name
X_NODE_FEATURE_NAME = "X_NODE_FEATURE"
X_NEIGH_FEATURE_NAME = "X_NEIGH_FEATURE"
X_SELF_BLOCK_NAME = "X_SELF_BLOCK"
X_NEIGH_BLOCK_NAME = "X_NEIGH_BLOCK"

USER_ENCODER_NAME = "USER_ENCODER_NAME"
ITEM_ENCODER_NAME = "ITEM_ENCODER_NAME"


@dataclass(frozen=True)
class EncoderSlots:
    encoder_name: str
    node_feature: str
    neigh_feature: str
    self_block: str
    neigh_block: str


@dataclass(frozen=True)
class SlotNames:
    """Slot names used by a reader, resolved once when the reader is built."""

    src_id: str = X_SRC_ID_NAME
    dst_id: str = X_DST_ID_NAME
    label: str = Y_NAME
    predict_node: str = X_PREDICT_NODE_NAME
    user_encoder: str = USER_ENCODER_NAME
    item_encoder: str = ITEM_ENCODER_NAME

    def encoder(self, encoder_name: str) -> EncoderSlots:
        return EncoderSlots(
            encoder_name=encoder_name,
            node_feature=X_NODE_FEATURE_NAME + encoder_name,
            neigh_feature=X_NEIGH_FEATURE_NAME + encoder_name,
            self_block=X_SELF_BLOCK_NAME + encoder_name,
            neigh_block=X_NEIGH_BLOCK_NAME + encoder_name,
        )

    @property
    def user(self) -> EncoderSlots:
        return self.encoder(self.user_encoder)

    @property
    def item(self) -> EncoderSlots:
        return self.encoder(self.item_encoder)


@dataclass
class Instance:
    """
    Output batch: a string-keyed bag of slots handed to the encoder.

    Slots are overwritten in place on every batch; clear_batch() empties
    everything, including the batch size.
    """

    slots: Dict[str, Any] = field(default_factory=dict)
    batch: int = 0

    def get_or_insert(self, name: str, factory: Callable[[], T]) -> T:
        if name not in self.slots:
            self.slots[name] = factory()
        return self.slots[name]

    def set(self, name: str, value: Any) -> None:
        self.slots[name] = value

    def get(self, name: str, default: Optional[Any] = None) -> Any:
        return self.slots.get(name, default)

    def set_batch(self, batch: int) -> None:
        self.batch = batch

    def clear_batch(self) -> None:
        self.slots.clear()
        self.batch = 0

    def __contains__(self, name: str) -> bool:
        return name in self.slots

    def __getitem__(self, name: str) -> Any:
        return self.slots[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.slots)

    def __len__(self):
        return len(self.slots)
