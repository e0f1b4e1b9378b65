"""Generic persistence scaffold for rating repositories."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

SystemModelT = TypeVar("SystemModelT")
EntityModelT = TypeVar("EntityModelT")


class BaseRatingRepository(Generic[SystemModelT, EntityModelT]):
    """Reusable persistence operations shared across rating repositories."""

    def __init__(
        self,
        *,
        system_model: type[SystemModelT],
        entity_model: type[EntityModelT],
        dependent_models: Sequence[type[Any]] = (),
    ) -> None:
        self.system_model = system_model
        self.entity_model = entity_model
        self.dependent_models = tuple(dependent_models)

    def ensure_schema(self, engine: Engine) -> None:
        """Create required tables and indexes when missing."""
        with engine.begin() as connection:
            for model in (self.system_model, self.entity_model, *self.dependent_models):
                table = getattr(model, "__table__")
                table.create(bind=connection, checkfirst=True)

    def upsert_system(
        self,
        session: Session,
        *,
        name: str,
        description: str | None,
        config_json: dict[str, Any],
    ) -> SystemModelT:
        """Create or update the system metadata row."""
        name_column = getattr(self.system_model, "name")
        system = session.execute(select(self.system_model).where(name_column == name)).scalar_one_or_none()
        if system is None:
            system = self.system_model(  # type: ignore[call-arg]
                name=name,
                description=description,
                config_json=config_json,
            )
            session.add(system)
        else:
            setattr(system, "description", description)
            setattr(system, "config_json", config_json)
            if hasattr(system, "updated_at"):
                setattr(system, "updated_at", datetime.now(UTC).replace(tzinfo=None))
        session.flush()
        return system

    def count_entities(self, session: Session) -> int:
        id_column = getattr(self.entity_model, "id")
        result = session.scalar(select(func.count(id_column)))
        return int(result or 0)
