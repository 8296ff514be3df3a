"""Event handlers, one per (contract, event name).

Importing this package registers every handler in ``HANDLERS``.
"""

from quest_indexer.handlers import (  # noqa: F401
    access,
    collaboration_manager,
    quest_board,
    reward_manager,
    submission_manager,
    user_profile,
)
from quest_indexer.handlers.registry import CONTRACTS, HANDLERS, resolve

__all__ = ["CONTRACTS", "HANDLERS", "resolve"]
