# Overview: Atomic allocation of human-readable order numbers.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..models import OrderSequence


class SequenceError(Exception):
    """Raised when sequence operations fail."""
    pass


def next_sequence_number(session, *, prefix: str) -> int:
    """
    Atomically allocate the next number for a prefix.

    Does not commit: the allocation belongs to the caller's transaction, so a
    rolled-back order does not consume a number. Call it before any other
    write in the transaction (the first-row race path rolls back).
    """
    if not prefix:
        raise SequenceError("prefix is required")

    stmt = (
        update(OrderSequence)
        .where(OrderSequence.prefix == prefix)
        .values(next_number=OrderSequence.next_number + 1)
    )

    result = session.execute(stmt)
    if result.rowcount:
        session.flush()
        current = session.query(OrderSequence.next_number).filter_by(prefix=prefix).scalar()
        return current - 1

    seq = OrderSequence(prefix=prefix, next_number=2)
    session.add(seq)
    try:
        session.flush()
        return 1
    except IntegrityError:
        # Another transaction created the row first
        session.rollback()
        result = session.execute(stmt)
        if not result.rowcount:
            raise
        session.flush()
        current = session.query(OrderSequence.next_number).filter_by(prefix=prefix).scalar()
        return current - 1


def format_order_number(prefix: str, number: int, pad: int = 6) -> str:
    return f"{prefix}-{number:0{pad}d}"
