"""Persistence layer for saved loan scenarios.

Each scenario is a session envelope (loan parameters, display settings and
loan updates) stored under a per-browser user token. The derived schedule is
not stored; it is regenerated when a scenario is opened. The store defaults
to SQLite for local development but accepts any SQLAlchemy-compatible URL.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from amortizer.data_models import SessionData
from amortizer.session import session_from_dict

Base = declarative_base()


class SavedScenarioModel(Base):
    __tablename__ = "saved_scenarios"

    id = Column(String(64), primary_key=True)
    user_token = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    session_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    seq = Column(Integer, nullable=False, default=0)


class ScenarioStore:
    """Database-backed scenario store."""

    def __init__(self, url: str, *, max_per_user: int = 10) -> None:
        engine_kwargs: Dict[str, Any] = {"future": True}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # Share one connection so every session sees the same in-memory database.
            engine_kwargs.update(
                connect_args={"check_same_thread": False}, poolclass=StaticPool
            )
        self._engine = create_engine(url, **engine_kwargs)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_per_user = max_per_user

    def list_scenarios(self, user_token: str) -> List[Dict[str, Any]]:
        if not user_token:
            return []
        with self._session_factory() as session:
            rows: Iterable[SavedScenarioModel] = session.execute(
                select(SavedScenarioModel)
                .where(SavedScenarioModel.user_token == user_token)
                .order_by(SavedScenarioModel.seq.asc())
            ).scalars()
            return [self._to_dict(row) for row in rows]

    def get_scenario(self, user_token: str, scenario_id: str) -> Optional[SessionData]:
        if not user_token:
            return None
        with self._session_factory() as session:
            row = session.get(SavedScenarioModel, scenario_id)
            if row is None or row.user_token != user_token:
                return None
            return session_from_dict(json.loads(row.session_json))

    def add_scenario(self, user_token: str, scenario_id: str, name: str, data: SessionData) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            last = session.execute(
                select(SavedScenarioModel.seq)
                .where(SavedScenarioModel.user_token == user_token)
                .order_by(SavedScenarioModel.seq.desc())
                .limit(1)
            ).scalar()
            payload = SavedScenarioModel(
                id=scenario_id,
                user_token=user_token,
                name=name,
                session_json=json.dumps(data.to_dict()),
                seq=(last or 0) + 1,
            )
            session.add(payload)
            session.commit()
        self._trim_user(user_token)

    def remove_scenario(self, user_token: str, scenario_id: str) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            row = session.get(SavedScenarioModel, scenario_id)
            if row and row.user_token == user_token:
                session.delete(row)
                session.commit()

    def clear_scenarios(self, user_token: str) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            session.execute(
                SavedScenarioModel.__table__.delete().where(
                    SavedScenarioModel.user_token == user_token
                )
            )
            session.commit()

    def _trim_user(self, user_token: str) -> None:
        if not self._max_per_user or self._max_per_user < 0:
            return
        with self._session_factory() as session:
            rows = session.execute(
                select(SavedScenarioModel)
                .where(SavedScenarioModel.user_token == user_token)
                .order_by(SavedScenarioModel.seq.desc())
            ).scalars().all()
            if len(rows) <= self._max_per_user:
                return
            for row in rows[self._max_per_user :]:
                session.delete(row)
            session.commit()

    @staticmethod
    def _to_dict(row: SavedScenarioModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "session": json.loads(row.session_json),
            "created_at": row.created_at.isoformat(),
        }


def create_store_from_env(url: Optional[str], max_per_user: int = 10) -> ScenarioStore:
    return ScenarioStore(url or "sqlite:///scenario_data.sqlite3", max_per_user=max_per_user)
