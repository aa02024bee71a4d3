"""Filtered battle retrieval with nearest-record fallback.

When the requested window is empty the caller still gets something to look
at: first the latest battle from the start of the window onwards, then the
earliest battle at or before the start. ``forced`` tells the caller that
the records are a substitute for what was asked.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from backend.battlelog import crud
from backend.battlelog.filters import FilterSpec
from backend.battlelog.query import Attempt, StoreQuery, attempt_query, compose_query


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetrievalResult:
    query: StoreQuery            # 最后一次执行的查询
    records: List[Dict[str, Any]]
    attempt: Attempt
    requested_limit: int

    @property
    def forced(self) -> bool:
        return self.attempt is not Attempt.EXACT

    @property
    def count(self) -> int:
        return len(self.records)


def retrieve(db: Session, spec: FilterSpec) -> RetrievalResult:
    original = compose_query(spec)
    query = original
    attempt = Attempt.EXACT
    records: List[Dict[str, Any]] = []
    # 三次尝试严格顺序执行，前一次为空才继续
    for step in (Attempt.EXACT, Attempt.FORWARD, Attempt.BACKWARD):
        candidate = attempt_query(original, step)
        if candidate is None:
            logger.debug("skipping %s attempt: no lower epoch bound", step.value)
            break
        query, attempt = candidate, step
        records = crud.find_records(db, query)
        if records:
            break
    if attempt is not Attempt.EXACT:
        logger.info("retrieval forced (%s): %d record(s)", attempt.value, len(records))
    return RetrievalResult(query=query, records=records, attempt=attempt, requested_limit=spec.limit)
