"""
Record source: bounded reads for the statistics pipelines.

Every read returns one of two normalized shapes: ``RecordPage`` for
listings and ``CountResult`` for counts. Callers never inspect raw query
results.
"""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from servicehub.models import db
from servicehub.models.appointment import Appointment
from servicehub.models.auth import User
from servicehub.models.customer import Customer
from servicehub.models.service_request import ContactRequest

logger = logging.getLogger(__name__)

ENTITY_MODELS = {
    "customers": Customer,
    "requests": ContactRequest,
    "appointments": Appointment,
    "users": User,
}


@dataclass(frozen=True)
class RecordPage:
    data: list = field(default_factory=list)
    total: int = 0
    limit: int = 0


@dataclass(frozen=True)
class CountResult:
    count: int = 0


class RecordSource(Protocol):
    def find_all(self, entity: str, limit: int) -> RecordPage: ...

    def count(self, entity: str) -> CountResult: ...


def _model_for(entity: str):
    try:
        return ENTITY_MODELS[entity]
    except KeyError:
        raise ValueError(f"Unknown entity: {entity!r}") from None


class DatabaseRecordSource:
    """Reads entity rows newest first, capped at *limit*."""

    def find_all(self, entity: str, limit: int) -> RecordPage:
        model = _model_for(entity)
        total = db.session.query(db.func.count(model.id)).scalar() or 0
        rows = (
            model.query
            .order_by(model.created_at.desc(), model.id.desc())
            .limit(limit)
            .all()
        )
        if total > limit:
            logger.warning(
                "Record fetch truncated",
                extra={"entity": entity, "total": total, "limit": limit},
            )
        return RecordPage(data=rows, total=total, limit=limit)

    def count(self, entity: str) -> CountResult:
        model = _model_for(entity)
        return CountResult(count=db.session.query(db.func.count(model.id)).scalar() or 0)


def count_records(entity: str, source: RecordSource | None = None) -> CountResult:
    return (source or DatabaseRecordSource()).count(entity)
