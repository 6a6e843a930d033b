"""Persistence layer for saved calculations.

Visitors can save the inputs and headline results of any calculator so they
can come back to them later. Only the inputs and summary figures are kept;
per-period schedules are always recomputed from the inputs. The store
defaults to SQLite for local development, but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL).
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine, delete, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

Base = declarative_base()

CALCULATION_TYPES = (
    "schedule",
    "additional-payment",
    "bond-repayment",
    "affordability",
    "deposit-savings",
    "transfer-costs",
    "terms",
)


class CalculationResultModel(Base):
    __tablename__ = "calculation_results"

    id = Column(String(64), primary_key=True)
    user_token = Column(String(64), index=True, nullable=False)
    calculation_type = Column(String(32), nullable=False)
    input_json = Column(Text, nullable=False)
    result_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "calculation_type": self.calculation_type,
            "input": json.loads(self.input_json),
            "result": json.loads(self.result_json),
            "created_at": self.created_at.isoformat(),
        }


def _owned_by(user_token: str):
    return CalculationResultModel.user_token == user_token


class CalculationStore:
    """Database-backed store of saved calculations, scoped per visitor.

    Every public method is a no-op (or returns an empty result) without a
    visitor token. Each call runs in its own transaction.
    """

    def __init__(self, url: str, *, max_per_user: int = 20) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._sessions = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_per_user = max_per_user

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        with self._sessions() as session, session.begin():
            yield session

    def list_calculations(self, user_token: Optional[str]) -> List[Dict[str, Any]]:
        if not user_token:
            return []
        query = (
            select(CalculationResultModel)
            .where(_owned_by(user_token))
            .order_by(CalculationResultModel.created_at)
        )
        with self._sessions() as session:
            return [row.as_dict() for row in session.execute(query).scalars()]

    def add_calculation(
        self,
        user_token: Optional[str],
        calculation_id: str,
        calculation_type: str,
        inputs: dict,
        result: dict,
    ) -> None:
        """Save a calculation, dropping the visitor's oldest ones past the cap.

        Per-period schedules are stripped from ``result`` before saving.
        """
        if not user_token:
            return
        if calculation_type not in CALCULATION_TYPES:
            raise ValueError(f"Unknown calculation type: {calculation_type}")
        summary = {key: value for key, value in result.items() if key != "schedule"}
        with self._transaction() as session:
            session.add(
                CalculationResultModel(
                    id=calculation_id,
                    user_token=user_token,
                    calculation_type=calculation_type,
                    input_json=json.dumps(inputs),
                    result_json=json.dumps(summary),
                )
            )
            session.flush()
            if self._max_per_user and self._max_per_user > 0:
                stale = (
                    select(CalculationResultModel.id)
                    .where(_owned_by(user_token))
                    .order_by(CalculationResultModel.created_at.desc())
                    .offset(self._max_per_user)
                )
                stale_ids = session.execute(stale).scalars().all()
                if stale_ids:
                    session.execute(
                        delete(CalculationResultModel).where(
                            CalculationResultModel.id.in_(stale_ids)
                        )
                    )

    def remove_calculation(self, user_token: Optional[str], calculation_id: str) -> bool:
        """Delete one saved calculation; ``False`` if the visitor has no such row."""
        if not user_token:
            return False
        with self._transaction() as session:
            deleted = session.execute(
                delete(CalculationResultModel).where(
                    _owned_by(user_token), CalculationResultModel.id == calculation_id
                )
            )
            return deleted.rowcount > 0

    def clear_calculations(self, user_token: Optional[str]) -> None:
        if not user_token:
            return
        with self._transaction() as session:
            session.execute(delete(CalculationResultModel).where(_owned_by(user_token)))


def create_store(url: Optional[str], max_per_user: int = 20) -> CalculationStore:
    return CalculationStore(url or "sqlite:///bond_calc.sqlite3", max_per_user=max_per_user)
