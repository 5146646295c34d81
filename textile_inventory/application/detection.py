"""Decide whether a source-event update should put stock into inventory."""

from dataclasses import dataclass

from textile_inventory.core import get_logger
from textile_inventory.domain.models import DyeingResultStatus, ProductionStatus, SourceKind
from textile_inventory.infrastructure.repository import InventoryRepository

logger = get_logger(__name__)


def is_complete(kind: SourceKind, source) -> bool:
    kind = SourceKind(kind)
    if kind == SourceKind.THREAD_PURCHASE:
        return bool(source.received)
    if kind == SourceKind.DYEING_PROCESS:
        return source.result_status == DyeingResultStatus.COMPLETED.value
    return source.status == ProductionStatus.COMPLETED.value


@dataclass
class Detection:
    fire: bool
    reason: str


class SourceEventDetector:
    """
    Fires on a transition into the completion state when the client opted
    in, nothing has been minted for the source yet and no sync task for it is
    still open. It has no side effects of its own.
    """

    def __init__(self, repo: InventoryRepository):
        self.repo = repo

    def evaluate(self, kind: SourceKind, source, *, was_complete: bool, add_to_inventory: bool) -> Detection:
        kind = SourceKind(kind)
        if not add_to_inventory:
            detection = Detection(False, "not requested")
        elif was_complete:
            detection = Detection(False, "already complete before this update")
        elif not is_complete(kind, source):
            detection = Detection(False, "not complete")
        elif self.repo.inbound_transaction_for_source(kind, source.id) is not None:
            detection = Detection(False, "already in inventory")
        elif self.repo.open_sync_task(kind, source.id) is not None:
            detection = Detection(False, "sync task already open")
        else:
            detection = Detection(True, "completed")

        logger.info(
            f"{kind.value} #{source.id}: inventory sync {'triggered' if detection.fire else 'skipped'} ({detection.reason})"
        )
        return detection
