"""Ordered delivery of events to the projection handlers.

Each event is applied in a single store transaction together with its raw
log row and the checkpoint advance, so a crash mid-event leaves neither a
half-applied projection nor a checkpoint that points past unapplied work.
Events at or before the checkpoint are skipped, which makes replaying from
any earlier block safe.
"""

from typing import Iterable, Optional

from quest_indexer.errors import MissingParent
from quest_indexer.events import Event
from quest_indexer.handlers import resolve
from quest_indexer.store import Checkpoint, EntityStore
from quest_indexer.utils import _log

APPLIED = "applied"
DROPPED = "dropped"
SKIPPED = "skipped"
UNHANDLED = "unhandled"


def is_processed(checkpoint: Optional[Checkpoint], event: Event) -> bool:
    if checkpoint is None:
        return False
    block, log_index = checkpoint
    if event.block_number != block:
        return event.block_number < block
    return log_index is None or event.log_index <= log_index


class Dispatcher:
    def __init__(self, store: EntityStore, record_events: bool = True):
        self.store = store
        self.record_events = record_events
        self.counts = {APPLIED: 0, DROPPED: 0, SKIPPED: 0, UNHANDLED: 0}

    def dispatch(self, event: Event) -> str:
        """Apply one event. Returns what happened to it."""
        if is_processed(self.store.checkpoint(), event):
            self.counts[SKIPPED] += 1
            return SKIPPED

        handler = resolve(event.contract, event.name)
        outcome = APPLIED
        with self.store.transaction():
            if self.record_events:
                self.store.record_event(event)
            if handler is None:
                outcome = UNHANDLED
            else:
                try:
                    with self.store.savepoint():
                        handler(self.store, event)
                except MissingParent as exc:
                    _log(
                        f"WARN: dropped {event.contract}.{event.name} "
                        f"at {event.block_number}/{event.log_index}: {exc}"
                    )
                    self.store.record_dropped(event, str(exc))
                    outcome = DROPPED
            self.store.set_checkpoint(event.block_number, event.log_index, event.block_timestamp)
        self.counts[outcome] += 1
        return outcome

    def dispatch_all(self, events: Iterable[Event]) -> None:
        last = None
        for event in events:
            if last is not None and event.position < last:
                raise ValueError(
                    f"events out of order: {event.position} delivered after {last}"
                )
            last = event.position
            self.dispatch(event)

    def complete_block(self, block_number: int, block_timestamp: Optional[int] = None) -> None:
        """Mark every log up to and including ``block_number`` as processed."""
        checkpoint = self.store.checkpoint()
        if checkpoint is not None and checkpoint[0] > block_number:
            return
        self.store.set_checkpoint(block_number, None, block_timestamp)


def replay(source: EntityStore, target: EntityStore, to_block: Optional[int] = None) -> Dispatcher:
    """Rebuild ``target`` from the raw event log held in ``source``."""
    dispatcher = Dispatcher(target)
    dispatcher.dispatch_all(source.iter_events(to_block))
    return dispatcher
