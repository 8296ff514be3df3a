"""Decoded contract events as handed to the projection handlers."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from quest_indexer.utils import _hex, _parse_int


@dataclass(frozen=True)
class Event:
    name: str
    contract: str
    args: Dict[str, Any] = field(default_factory=dict)
    block_number: int = 0
    block_timestamp: int = 0
    transaction_hash: str = "0x"
    transaction_index: int = 0
    log_index: int = 0

    @property
    def position(self) -> Tuple[int, int, int]:
        """Ledger ordering key: (block number, transaction index, log index)."""
        return (self.block_number, self.transaction_index, self.log_index)

    def arg(self, name: str, default: Any = None) -> Any:
        return self.args.get(name, default)

    def int_arg(self, name: str) -> int:
        return _parse_int(self.args[name])

    def addr_arg(self, name: str) -> str:
        return _hex(self.args[name])


def make_event(
    contract: str,
    name: str,
    args: Optional[Dict[str, Any]] = None,
    block_number: int = 0,
    block_timestamp: int = 0,
    transaction_hash: str = "0x",
    transaction_index: int = 0,
    log_index: int = 0,
) -> Event:
    return Event(
        name=name,
        contract=contract,
        args=dict(args or {}),
        block_number=block_number,
        block_timestamp=block_timestamp,
        transaction_hash=_hex(transaction_hash),
        transaction_index=transaction_index,
        log_index=log_index,
    )
