import copy
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import select, func, asc, desc, or_

from backend.battlelog.models import BattleRecord, day_bucket
from backend.battlelog.query import StoreQuery, Clause
from backend.battlelog.schemas import SOLO_MODE


# 文档字段路径 -> 列
FIELD_COLUMNS = {
    "epoch": BattleRecord.epoch,
    "battleTime": BattleRecord.battle_time,
    "battle.mode": BattleRecord.mode,
    "battle.type": BattleRecord.battle_type,
    "battle.rank": BattleRecord.rank,
    "battle.trophyChange": BattleRecord.trophy_change,
    "player": BattleRecord.player,
    "extracted.player": BattleRecord.extracted_player,
    "extracted.player.brawler.name": BattleRecord.extracted_player[("brawler", "name")].as_string(),
}

# JSON 列不参与排序
SORTABLE_FIELDS = ("epoch", "battleTime", "battle.mode", "battle.type", "battle.rank", "battle.trophyChange")


def _clause_condition(clause: Clause):
    col = FIELD_COLUMNS[clause.field]
    if clause.op == "$gte":
        return col >= clause.value
    if clause.op == "$lte":
        return col <= clause.value
    if clause.op == "$eq":
        return col.is_(None) if clause.value is None else col == clause.value
    if clause.op == "$ne":
        if clause.value is None:
            return col.is_not(None)
        # 与文档库一致：字段缺失也算不等
        return or_(col.is_(None), col != clause.value)
    if clause.op == "$in":
        return col.in_(list(clause.value))
    raise ValueError(f"unsupported operator {clause.op!r}")


def _order_by(sort: Tuple[Tuple[str, int], ...]) -> List:
    orders = []
    for field, direction in sort:
        if field not in SORTABLE_FIELDS:
            continue
        col = FIELD_COLUMNS[field]
        # 空值视为最小
        orders.append(asc(col).nulls_first() if direction == 1 else desc(col).nulls_last())
    orders.append(asc(BattleRecord.id))
    return orders


def _get_path(doc: Dict[str, Any], path: List[str]) -> Tuple[bool, Any]:
    cur: Any = doc
    for part in path:
        if not isinstance(cur, dict) or part not in cur:
            return False, None
        cur = cur[part]
    return True, cur


def _set_path(doc: Dict[str, Any], path: List[str], value: Any) -> None:
    cur = doc
    for part in path[:-1]:
        cur = cur.setdefault(part, {})
    cur[path[-1]] = value


def _drop_path(doc: Dict[str, Any], path: List[str]) -> None:
    cur: Any = doc
    for part in path[:-1]:
        if not isinstance(cur, dict) or part not in cur:
            return
        cur = cur[part]
    if isinstance(cur, dict):
        cur.pop(path[-1], None)


def apply_projection(doc: Dict[str, Any], projection: Tuple[Tuple[str, int], ...]) -> Dict[str, Any]:
    if not projection:
        return doc
    doc = copy.deepcopy(doc)
    fields = dict(projection)
    keep_id = fields.pop("_id", 1)
    # 只有 {"_id": 1} 也算包含模式
    inclusion = any(fields.values()) if fields else bool(keep_id)
    if inclusion:
        out: Dict[str, Any] = {}
        if keep_id:
            out["_id"] = doc["_id"]
        for field, flag in fields.items():
            if not flag:
                continue
            path = field.split(".")
            found, value = _get_path(doc, path)
            if found:
                _set_path(out, path, value)
        return out
    # 排除模式
    for field in fields:
        _drop_path(doc, field.split("."))
    if not keep_id:
        doc.pop("_id", None)
    return doc


def find_records(db: Session, query: StoreQuery) -> List[Dict[str, Any]]:
    q = select(BattleRecord)
    for clause in query.clauses:
        q = q.where(_clause_condition(clause))
    q = q.order_by(*_order_by(query.sort))
    if query.limit:
        q = q.limit(query.limit)
    rows = db.execute(q).scalars().all()
    return [apply_projection(r.to_document(), query.projection) for r in rows]


def query_rank_distribution(db: Session):
    """单人模式下每天各名次的场次，按日期倒序、名次正序。"""
    day = day_bucket(BattleRecord.epoch).label('day')
    battle_count = func.count().label('battle_count')
    q = (select(day, BattleRecord.rank, battle_count)
         .where(BattleRecord.epoch.is_not(None))
         .where(BattleRecord.mode == SOLO_MODE)
         .group_by(day, BattleRecord.rank)
         .order_by(desc(day), asc(BattleRecord.rank)))
    return db.execute(q).all()


def query_solo_daily_summary(db: Session):
    day = day_bucket(BattleRecord.epoch).label('day')
    average_rank = func.avg(BattleRecord.rank).label('average_rank')
    total_tr_change = func.sum(BattleRecord.trophy_change).label('total_tr_change')
    q = (select(day, average_rank, total_tr_change)
         .where(BattleRecord.epoch.is_not(None))
         .where(BattleRecord.mode == SOLO_MODE)
         .group_by(day)
         .order_by(desc(day)))
    return db.execute(q).all()


def query_daily_trophy_summary(db: Session):
    day = day_bucket(BattleRecord.epoch).label('day')
    total_tr_change = func.sum(BattleRecord.trophy_change).label('total_tr_change')
    q = (select(day, total_tr_change)
         .where(BattleRecord.epoch.is_not(None))
         .group_by(day)
         .order_by(desc(day)))
    return db.execute(q).all()


def query_epoch_interval(db: Session) -> Tuple[Optional[int], Optional[int]]:
    """Earliest and latest backfilled epoch; (None, None) when nothing is enriched."""
    q = select(func.min(BattleRecord.epoch), func.max(BattleRecord.epoch)).where(BattleRecord.epoch.is_not(None))
    first, last = db.execute(q).one()
    return first, last


def query_latest_player(db: Session) -> Optional[Dict[str, Any]]:
    q = (select(BattleRecord.player)
         .where(BattleRecord.player.is_not(None))
         .order_by(desc(BattleRecord.epoch).nulls_last(), desc(BattleRecord.id))
         .limit(1))
    return db.execute(q).scalar_one_or_none()
