"""Role and pause audit trail.

Every role grant, revoke, admin change and every pause toggle from any of
the platform contracts becomes its own fact keyed by ledger position. No
current-membership state is derived here; readers scan the trail.
"""

from functools import partial

from quest_indexer.entities import PauseEvent, RoleEvent, RoleEventKind
from quest_indexer.events import Event
from quest_indexer.handlers.registry import CONTRACTS, handles
from quest_indexer.ids import event_id
from quest_indexer.store import EntityStore
from quest_indexer.utils import _hex


def _role_fact(event: Event, kind: RoleEventKind) -> RoleEvent:
    return RoleEvent(
        id=event_id(event.transaction_hash, event.log_index),
        contract=event.contract,
        role=_hex(event.arg("role")),
        account="",
        kind=kind,
        block_number=event.block_number,
        block_timestamp=event.block_timestamp,
        transaction_hash=event.transaction_hash,
    )


def handle_role_granted(store: EntityStore, event: Event) -> None:
    fact = _role_fact(event, RoleEventKind.GRANTED)
    fact.account = event.addr_arg("account")
    fact.sender = event.addr_arg("sender") if event.arg("sender") is not None else None
    store.put(fact)


def handle_role_revoked(store: EntityStore, event: Event) -> None:
    fact = _role_fact(event, RoleEventKind.REVOKED)
    fact.account = event.addr_arg("account")
    fact.sender = event.addr_arg("sender") if event.arg("sender") is not None else None
    store.put(fact)


def handle_role_admin_changed(store: EntityStore, event: Event) -> None:
    fact = _role_fact(event, RoleEventKind.ADMIN_CHANGED)
    # The subject of an admin change is the new admin role.
    fact.account = _hex(event.arg("newAdminRole"))
    if event.arg("previousAdminRole") is not None:
        fact.previous_admin_role = _hex(event.arg("previousAdminRole"))
    store.put(fact)


def _handle_pause(store: EntityStore, event: Event, paused: bool) -> None:
    store.put(
        PauseEvent(
            id=event_id(event.transaction_hash, event.log_index),
            contract=event.contract,
            account=event.addr_arg("account"),
            is_paused=paused,
            block_number=event.block_number,
            block_timestamp=event.block_timestamp,
            transaction_hash=event.transaction_hash,
        )
    )


handle_paused = partial(_handle_pause, paused=True)
handle_unpaused = partial(_handle_pause, paused=False)

for _contract in CONTRACTS:
    handles(_contract, "RoleGranted")(handle_role_granted)
    handles(_contract, "RoleRevoked")(handle_role_revoked)
    handles(_contract, "RoleAdminChanged")(handle_role_admin_changed)
    handles(_contract, "Paused")(handle_paused)
    handles(_contract, "Unpaused")(handle_unpaused)
