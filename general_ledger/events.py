"""
Ledger change notifications.

Dashboards and cached summaries need to know when balances move.
The posting engine marks the session it wrote through; once that
session commits, every registered listener is called. A rolled
back session notifies nobody, so listeners never see postings
that did not happen.
"""

import logging
from typing import Callable

from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_LEDGER_CHANGED_KEY = "ledger_changed"

_listeners: list[Callable[[], None]] = []


def on_ledger_changed(listener: Callable[[], None]) -> Callable[[], None]:
    """Register a callback fired after a commit that touched the ledger."""
    _listeners.append(listener)
    return listener


def remove_listener(listener: Callable[[], None]) -> None:
    if listener in _listeners:
        _listeners.remove(listener)


def mark_ledger_changed(session: Session) -> None:
    """Flag a session as having posted or removed journal entries."""
    session.info[_LEDGER_CHANGED_KEY] = True


@event.listens_for(Session, "after_commit")
def _notify_after_commit(session: Session) -> None:
    if not session.info.pop(_LEDGER_CHANGED_KEY, False):
        return
    for listener in list(_listeners):
        try:
            listener()
        except Exception:
            # Already committed; listener failures are logged only
            logger.exception("Ledger change listener %r failed", listener)


@event.listens_for(Session, "after_rollback")
def _discard_after_rollback(session: Session) -> None:
    session.info.pop(_LEDGER_CHANGED_KEY, None)
