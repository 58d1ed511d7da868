# Overview: Allocation of human-readable document numbers (orders, purchase orders).

from __future__ import annotations

from datetime import date

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence
from g24pos.time_utils import today


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _bump(document_type: str, period: str) -> int | None:
    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.period == period,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    db.session.flush()
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type, period=period)
        .scalar()
    )
    return current - 1


def next_document_number(
    *,
    document_type: str,
    prefix: str,
    business_date: date | None = None,
    pad: int = 3,
) -> str:
    """
    Allocate the next number for (document_type, business date), formatted
    as <prefix><YYYYMMDD><seq>, e.g. DH20250110001.

    Runs inside the caller's transaction (flush only, no commit) so the
    number is released again if the document insert rolls back. A
    concurrent first insert for the same period is resolved through a
    savepoint.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    period = (business_date or today()).strftime("%Y%m%d")

    next_num = _bump(document_type, period)
    if next_num is None:
        try:
            with db.session.begin_nested():
                db.session.add(DocumentSequence(document_type=document_type, period=period, next_number=2))
            next_num = 1
        except IntegrityError:
            next_num = _bump(document_type, period)
            if next_num is None:
                raise DocumentSequenceError(f"could not allocate {document_type} number")

    return f"{prefix}{period}{next_num:0{pad}d}"
