"""Label modification as a closed set of actions.

``LabelAction`` is matched exhaustively, so an unknown action cannot reach
the remote call.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum
from typing import assert_never

from pydantic import BaseModel, ConfigDict

from mailthread.email.models import UNREAD_LABEL


class LabelAction(StrEnum):
    """What to do with a set of label ids."""

    ADD = "add"
    REMOVE = "remove"


class LabelModification(BaseModel):
    """Label ids to add and remove in one modify call."""

    model_config = ConfigDict(frozen=True)

    add_label_ids: tuple[str, ...] = ()
    remove_label_ids: tuple[str, ...] = ()


def label_modification(action: LabelAction, label_ids: Iterable[str]) -> LabelModification:
    """Translate *action* on *label_ids* into a :class:`LabelModification`."""
    ids = tuple(label_ids)
    match action:
        case LabelAction.ADD:
            return LabelModification(add_label_ids=ids)
        case LabelAction.REMOVE:
            return LabelModification(remove_label_ids=ids)
        case _:
            assert_never(action)


def read_state_modification(read: bool) -> LabelModification:
    """Marking read removes ``UNREAD``; marking unread adds it."""
    action = LabelAction.REMOVE if read else LabelAction.ADD
    return label_modification(action, [UNREAD_LABEL])
