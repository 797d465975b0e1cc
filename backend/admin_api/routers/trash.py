"""Trash endpoints: list, restore, purge, empty and the retention sweep."""
from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_job_queue, get_trash_store
from ..schemas import (
    JobModel,
    TrashActionResult,
    TrashItemModel,
    TrashKind,
    TrashSelection,
    TrashSweepResult,
)
from ..services.queue import JobQueueError, JobQueueService
from ..stores.trash_store import TrashStore

router = APIRouter(prefix="/trash", tags=["trash"])


@router.post("/sweep", response_model=TrashSweepResult)
def sweep_trash(store: TrashStore = Depends(get_trash_store)) -> TrashSweepResult:
    """Purge every row whose retention window has elapsed."""

    return TrashSweepResult(purged=store.sweep())


@router.post("/sweep/job", response_model=JobModel, status_code=201)
def queue_trash_sweep(
    queue: JobQueueService = Depends(get_job_queue),
) -> JobModel:
    """Run the retention sweep on the background worker."""

    try:
        return queue.submit("trash_sweep")
    except JobQueueError as exc:  # pragma: no cover - queue failures
        raise HTTPException(status_code=503, detail=str(exc)) from exc


@router.get("/{kind}", response_model=list[TrashItemModel])
def list_trash(kind: TrashKind, store: TrashStore = Depends(get_trash_store)) -> list[TrashItemModel]:
    """Return trashed rows of a kind with the days left before they are purged."""

    return store.list(kind)


@router.post("/{kind}/restore", response_model=TrashActionResult)
def restore_trash(
    kind: TrashKind, selection: TrashSelection, store: TrashStore = Depends(get_trash_store)
) -> TrashActionResult:
    return TrashActionResult(kind=kind, affected=store.restore(kind, selection.ids))


@router.post("/{kind}/purge", response_model=TrashActionResult)
def purge_trash(
    kind: TrashKind, selection: TrashSelection, store: TrashStore = Depends(get_trash_store)
) -> TrashActionResult:
    """Permanently delete selected trashed rows."""

    return TrashActionResult(kind=kind, affected=store.purge(kind, selection.ids))


@router.delete("/{kind}", response_model=TrashActionResult)
def empty_trash(kind: TrashKind, store: TrashStore = Depends(get_trash_store)) -> TrashActionResult:
    """Permanently delete every trashed row of a kind."""

    return TrashActionResult(kind=kind, affected=store.empty(kind))
