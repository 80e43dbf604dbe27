"""Persistence layer for finalized simulations.

The calculation engine never touches storage. Once a caller accepts a result,
the web app hands the finalized record (client reference, property snapshot,
the inputs actually used including the applied periodic rate, indicators and
full schedule) to this store, which keeps it verbatim as JSON. It defaults to
SQLite for local development but accepts any SQLAlchemy-compatible URL.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SimulationModel(Base):
    __tablename__ = "simulations"

    id = Column(String(64), primary_key=True)
    user_token = Column(String(64), index=True, nullable=False)
    client_id = Column(String(64), index=True, nullable=False)
    property_json = Column(Text, nullable=False)
    input_json = Column(Text, nullable=False)
    output_json = Column(Text, nullable=False)
    schedule_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class SimulationStore:
    """Database-backed store of simulation records."""

    def __init__(self, url: str, *, max_per_user: int = 50) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_per_user = max_per_user

    def save_simulation(
        self,
        user_token: str,
        simulation_id: str,
        client_id: str,
        property_snapshot: Optional[dict],
        input_data: dict,
        output_summary: dict,
        schedule: list,
    ) -> Dict[str, Any]:
        row = SimulationModel(
            id=simulation_id,
            user_token=user_token,
            client_id=str(client_id),
            property_json=json.dumps(property_snapshot or {}),
            input_json=json.dumps(input_data),
            output_json=json.dumps(output_summary),
            schedule_json=json.dumps(schedule),
            created_at=_utcnow(),
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
            record = self._to_dict(row)
        self._trim_user(user_token)
        return record

    def get_simulation(self, simulation_id: str) -> Optional[Dict[str, Any]]:
        with self._session_factory() as session:
            row = session.get(SimulationModel, simulation_id)
            return self._to_dict(row) if row else None

    def list_simulations(self, user_token: str) -> List[Dict[str, Any]]:
        if not user_token:
            return []
        with self._session_factory() as session:
            rows: Iterable[SimulationModel] = session.execute(
                select(SimulationModel)
                .where(SimulationModel.user_token == user_token)
                .order_by(SimulationModel.created_at.desc())
            ).scalars()
            return [self._to_dict(row) for row in rows]

    def _trim_user(self, user_token: str) -> None:
        if not self._max_per_user or self._max_per_user < 0:
            return
        with self._session_factory() as session:
            rows = session.execute(
                select(SimulationModel)
                .where(SimulationModel.user_token == user_token)
                .order_by(SimulationModel.created_at.desc())
            ).scalars().all()
            if len(rows) <= self._max_per_user:
                return
            for row in rows[self._max_per_user :]:
                session.delete(row)
            session.commit()

    @staticmethod
    def _to_dict(row: SimulationModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "user_token": row.user_token,
            "client_id": row.client_id,
            "property_snapshot": json.loads(row.property_json),
            "input_data": json.loads(row.input_json),
            "output_summary": json.loads(row.output_json),
            "schedule": json.loads(row.schedule_json),
            "created_at": row.created_at.isoformat(),
        }


def create_store(url: Optional[str], max_per_user: int = 50) -> SimulationStore:
    return SimulationStore(url or "sqlite:///simulations.sqlite3", max_per_user=max_per_user)
