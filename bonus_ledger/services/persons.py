"""
Persons: the account holders who claim offers on the operator's behalf.

Listing and detail views return plain dicts; create/update/delete return
or remove ORM rows and commit their own work.
"""

import logging
from typing import Dict, List

from sqlalchemy.orm import Session, selectinload

from bonus_ledger.models import STATUS_CANCELLED, STATUS_COMPLETED, Operation, Person
from bonus_ledger.schemas import PersonCreate, PersonUpdate
from bonus_ledger.services.summary import money_in_bookmaker

logger = logging.getLogger(__name__)


class PersonNotFoundError(LookupError):
    pass


class PersonHasOperationsError(RuntimeError):
    """A person with operations on record cannot be deleted."""


def get_person(db: Session, person_id: int) -> Person:
    person = db.get(Person, person_id)
    if person is None:
        raise PersonNotFoundError(f"Person {person_id} not found")
    return person


def _profit(operation: Operation) -> float:
    return sum(b.actual_profit or 0.0 for b in operation.bets)


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------

def list_persons(db: Session) -> List[Dict]:
    """
    Every person with their cash position, by name.

    ``balance = bizum_sent - money_returned - commission_paid`` over all
    their operations.  Positive means the person owes the operator.
    """
    persons = (
        db.query(Person)
        .options(selectinload(Person.operations).selectinload(Operation.bets))
        .order_by(Person.name.asc())
        .all()
    )

    rows = []
    for person in persons:
        ops = person.operations
        sent = sum(op.bizum_sent or 0.0 for op in ops)
        returned = sum(op.money_returned or 0.0 for op in ops)
        paid = sum(op.commission_paid or 0.0 for op in ops)
        rows.append({
            "id": person.id,
            "name": person.name,
            "phone": person.phone,
            "notes": person.notes,
            "commission": person.commission,
            "commission_paid": person.commission_paid,
            "total_bizum_sent": sent,
            "total_money_returned": returned,
            "total_commission_paid": paid,
            "balance": sent - returned - paid,
            "total_profit": sum(_profit(op) for op in ops),
            "operations_count": len(ops),
        })
    return rows


def person_detail(db: Session, person_id: int) -> Dict:
    """One person with their operations, newest first, and debt totals.

    ``remaining_debt`` of an operation is what is still in the bookmaker
    account and not yet returned, floored at zero.
    """
    person = get_person(db, person_id)
    ops = sorted(person.operations, key=lambda op: op.created_at, reverse=True)

    operations = []
    for op in ops:
        in_bookmaker = money_in_bookmaker(op)
        operations.append({
            "id": op.id,
            "bookmaker_name": op.bookmaker.name,
            "status": op.status,
            "bizum_sent": op.bizum_sent,
            "money_returned": op.money_returned,
            "money_in_bookmaker": in_bookmaker,
            "remaining_debt": max(0.0, in_bookmaker - (op.money_returned or 0.0)),
            "total_profit": _profit(op),
            "pending_bets": sum(1 for b in op.bets if b.result is None),
            "created_at": op.created_at.isoformat() if op.created_at else None,
        })

    return {
        "id": person.id,
        "name": person.name,
        "phone": person.phone,
        "notes": person.notes,
        "commission": person.commission,
        "commission_paid": person.commission_paid,
        "operations": operations,
        "totals": {
            "total_debt": sum(o["remaining_debt"] for o in operations),
            "total_profit": sum(o["total_profit"] for o in operations),
            "total_bizum_sent": sum(op.bizum_sent or 0.0 for op in ops),
            "total_money_returned": sum(op.money_returned or 0.0 for op in ops),
            "completed_operations": sum(1 for op in ops if op.status == STATUS_COMPLETED),
            "pending_operations": sum(
                1 for op in ops if op.status not in (STATUS_COMPLETED, STATUS_CANCELLED)
            ),
            "total_operations": len(ops),
        },
    }


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def create_person(db: Session, payload: PersonCreate) -> Person:
    person = Person(**payload.model_dump())
    db.add(person)
    db.commit()
    db.refresh(person)
    logger.info("Person %d created: %s", person.id, person.name)
    return person


def update_person(db: Session, person_id: int, payload: PersonUpdate) -> Person:
    person = get_person(db, person_id)
    for field_name, value in payload.model_dump(exclude_none=True).items():
        setattr(person, field_name, value)
    db.commit()
    db.refresh(person)
    return person


def delete_person(db: Session, person_id: int) -> None:
    """Delete a person who has no operations on record."""
    person = get_person(db, person_id)
    count = len(person.operations)
    if count:
        raise PersonHasOperationsError(
            f"Person {person_id} has {count} operation(s); delete or reassign them first"
        )
    db.delete(person)
    db.commit()
    logger.info("Person %d deleted", person_id)
