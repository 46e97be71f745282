"""
Journal API endpoints.

The API layer is thin: it owns the transaction boundary
(commit on success, rollback on any ledger error) and delegates
all accounting rules to JournalService.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from general_ledger.errors import LedgerError
from general_ledger.models.base import get_db
from general_ledger.services.journal_service import JournalService
from general_ledger.schemas.common import ActionResult
from general_ledger.schemas.journal import (
    JournalEntryCreate,
    JournalBatchCreate,
    JournalEntryUpdate,
    JournalEntryResponse,
    JournalEntryUpdateResponse,
    ReverseEntryRequest,
    IntegrityReport,
)

router = APIRouter(prefix="/journal", tags=["Journal"])


@router.get("", response_model=list[JournalEntryResponse])
def list_entries(
    fiscal_year_id: int | None = None,
    db: Session = Depends(get_db),
):
    """List entries of a fiscal year (default: the current one), newest first."""
    return JournalService(db).list_entries(fiscal_year_id)


@router.post("", response_model=JournalEntryResponse, status_code=201)
def post_entry(
    request: JournalEntryCreate,
    db: Session = Depends(get_db),
):
    """
    Post a single entry.

    Debits one account and credits another for the same amount.
    The entry and both balance changes commit together.
    """
    service = JournalService(db)
    try:
        entry = service.post(request)
        db.commit()
        return entry
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/batch", response_model=list[JournalEntryResponse], status_code=201)
def post_batch(
    request: JournalBatchCreate,
    db: Session = Depends(get_db),
):
    """
    Post all entries of one business document.

    Either every entry is recorded or none is.
    """
    service = JournalService(db)
    try:
        entries = service.post_batch(request.entries)
        db.commit()
        return entries
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/integrity", response_model=IntegrityReport)
def check_integrity(db: Session = Depends(get_db)):
    """Compare stored balances with balances rebuilt from the journal."""
    return JournalService(db).check_integrity()


@router.get("/{entry_id}", response_model=JournalEntryResponse)
def get_entry(
    entry_id: int,
    db: Session = Depends(get_db),
):
    service = JournalService(db)
    try:
        return service.get_entry(entry_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post(
    "/{entry_id}/reverse",
    response_model=JournalEntryResponse,
    status_code=201,
)
def reverse_entry(
    entry_id: int,
    request: ReverseEntryRequest,
    db: Session = Depends(get_db),
):
    """Post the mirror image of an entry, undoing its balance impact."""
    service = JournalService(db)
    try:
        reversal = service.reverse(entry_id, request)
        db.commit()
        return reversal
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.put("/{entry_id}", response_model=JournalEntryUpdateResponse)
def update_entry(
    entry_id: int,
    request: JournalEntryUpdate,
    db: Session = Depends(get_db),
):
    """
    Administrative edit of an entry's date and description.

    Requires confirm=true. Balances are not changed.
    """
    service = JournalService(db)
    try:
        entry, warning = service.update_entry(entry_id, request)
        db.commit()
        return JournalEntryUpdateResponse(
            entry=JournalEntryResponse.model_validate(entry),
            warning=warning,
        )
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.delete("/{entry_id}", response_model=ActionResult)
def delete_entry(
    entry_id: int,
    confirm: bool = Query(default=False),
    db: Session = Depends(get_db),
):
    """
    Administrative removal of an entry.

    Requires confirm=true. The entry's balance impact is NOT
    reversed; use POST /journal/{entry_id}/reverse for that.
    """
    service = JournalService(db)
    try:
        warning = service.delete_entry(entry_id, confirm)
        db.commit()
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return ActionResult(
        success=True,
        message=f"Journal entry {entry_id} deleted",
        warning=warning,
    )
