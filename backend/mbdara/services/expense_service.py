# Overview: Service-layer operations for expenses; org-scoped CRUD with search and date filters.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Expense
from mbdara.time_utils import utcnow
from .tenant_service import get_scoped, scoped_query

EXPENSE_MUTABLE_FIELDS = {"amount", "description", "date", "category", "payment_method"}


def _apply(expense: Expense, patch: dict) -> None:
    for k, v in patch.items():
        if k in EXPENSE_MUTABLE_FIELDS:
            setattr(expense, k, v)


def create_expense(*, patch: dict, org_id: int) -> dict:
    expense = Expense(org_id=org_id)
    _apply(expense, patch)
    if expense.date is None:
        expense.date = utcnow()
    db.session.add(expense)
    db.session.commit()
    return expense.to_dict()


def list_expenses(
    *,
    org_id: int,
    offset: int = 0,
    limit: int = 100,
    search: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> list[dict]:
    query = scoped_query(Expense, org_id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(db.or_(Expense.description.ilike(pattern), Expense.category.ilike(pattern)))
    if start_date is not None:
        query = query.filter(Expense.date >= start_date)
    if end_date is not None:
        query = query.filter(Expense.date <= end_date)

    expenses = query.order_by(Expense.date.desc(), Expense.id.desc()).offset(offset).limit(limit).all()
    return [e.to_dict() for e in expenses]


def get_expense(*, expense_id: int, org_id: int) -> dict | None:
    expense = get_scoped(Expense, expense_id, org_id)
    return expense.to_dict() if expense else None


def update_expense(*, expense_id: int, patch: dict, org_id: int) -> dict | None:
    expense = get_scoped(Expense, expense_id, org_id)
    if not expense:
        return None
    _apply(expense, patch)
    db.session.commit()
    return expense.to_dict()


def delete_expense(*, expense_id: int, org_id: int) -> bool:
    expense = get_scoped(Expense, expense_id, org_id)
    if not expense:
        return False
    db.session.delete(expense)
    db.session.commit()
    return True
