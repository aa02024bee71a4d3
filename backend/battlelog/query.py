"""Composition of store queries from a FilterSpec, and their relaxations."""
import enum
from dataclasses import dataclass, replace
from typing import Any, Dict, NamedTuple, Optional, Tuple

from backend.battlelog.filters import FilterSpec
from backend.battlelog.schemas import RANKED_TYPE


# 文档字段路径
EPOCH = "epoch"
BATTLE_TYPE = "battle.type"
BATTLE_MODE = "battle.mode"
PLAYER = "player"
BRAWLER_NAME = "extracted.player.brawler.name"


class Clause(NamedTuple):
    field: str
    op: str       # $gte / $lte / $eq / $ne / $in
    value: Any


@dataclass(frozen=True)
class StoreQuery:
    clauses: Tuple[Clause, ...] = ()
    sort: Tuple[Tuple[str, int], ...] = ((EPOCH, -1),)
    projection: Tuple[Tuple[str, int], ...] = ()
    limit: int = 0

    def bound(self, field: str, op: str) -> Optional[Any]:
        for clause in self.clauses:
            if clause.field == field and clause.op == op:
                return clause.value
        return None

    def without(self, field: str, op: str) -> Tuple[Clause, ...]:
        return tuple(c for c in self.clauses if not (c.field == field and c.op == op))

    def describe(self) -> Dict[str, Dict[str, Any]]:
        """Render the filter the way a document store would spell it."""
        doc: Dict[str, Dict[str, Any]] = {}
        for clause in self.clauses:
            value = list(clause.value) if clause.op == "$in" else clause.value
            doc.setdefault(clause.field, {})[clause.op] = value
        return doc


class Attempt(str, enum.Enum):
    EXACT = "exact"
    FORWARD = "forward"
    BACKWARD = "backward"


def compose_query(spec: FilterSpec) -> StoreQuery:
    clauses = []
    if spec.start_time is not None:
        clauses.append(Clause(EPOCH, "$gte", spec.start_time))
    if spec.end_time is not None:
        clauses.append(Clause(EPOCH, "$lte", spec.end_time))
    if spec.ranked is not None:
        clauses.append(Clause(BATTLE_TYPE, "$eq" if spec.ranked else "$ne", RANKED_TYPE))
    if spec.need_player is not None:
        clauses.append(Clause(PLAYER, "$ne" if spec.need_player else "$eq", None))
    if spec.brawlers is not None:
        clauses.append(Clause(BRAWLER_NAME, "$in", spec.brawlers))
    if spec.modes is not None:
        clauses.append(Clause(BATTLE_MODE, "$in", spec.modes))
    return StoreQuery(
        clauses=tuple(clauses),
        sort=spec.sort,
        projection=spec.projection,
        limit=spec.limit,
    )


def attempt_query(original: StoreQuery, attempt: Attempt) -> Optional[StoreQuery]:
    """Query to run for ``attempt``, derived from the exact query.

    Returns None when the attempt does not apply: the backward step needs a
    lower epoch bound to turn around.
    """
    if attempt is Attempt.EXACT:
        return original
    if attempt is Attempt.FORWARD:
        # 去掉结束时间，取一条
        return replace(original, clauses=original.without(EPOCH, "$lte"), sort=((EPOCH, -1),), limit=1)
    lower = original.bound(EPOCH, "$gte")
    if lower is None:
        return None
    # 以开始时间为上界向前找
    clauses = tuple(c for c in original.clauses if c.field != EPOCH) + (Clause(EPOCH, "$lte", lower),)
    return replace(original, clauses=clauses, sort=((EPOCH, 1),), limit=1)
