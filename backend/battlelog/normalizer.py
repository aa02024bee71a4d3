"""Backfill of derived fields on raw battle records.

Run as a one-shot job after imports: fills ``epoch`` from ``battleTime``
and copies the tracked player's entry into ``extracted.player``. Records
that already carry a value are never revisited. Do not run two instances
at once; there is no compare-and-set on the update.
"""
import argparse
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from backend.battlelog.database import SessionLocal, engine, Base
from backend.battlelog.logging_config import setup_logging
from backend.battlelog.models import BattleRecord


logger = logging.getLogger(__name__)


def parse_battle_time(raw: str) -> Optional[int]:
    """``20201013T171244.000Z`` -> epoch milliseconds (UTC); None if unparseable."""
    if not raw or len(raw) < 15:
        return None
    try:
        dt = datetime.strptime(raw[:15], "%Y%m%dT%H%M%S")
    except ValueError:
        return None
    return int(dt.replace(tzinfo=timezone.utc).timestamp() * 1000)


def _battle_players(battle: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
    # 有 players 时以 players 为准，否则展开 teams
    if "players" in battle:
        return battle.get("players") or []
    source: List[Dict[str, Any]] = []
    for team in battle.get("teams") or []:
        source.extend(team)
    return source


def extract_player(battle: Optional[Dict[str, Any]], player_tag: str) -> Dict[str, Any]:
    """Entry of ``player_tag`` in the battle payload, or {} when absent."""
    found: Dict[str, Any] = {}
    for entry in _battle_players(battle or {}):
        if isinstance(entry, dict) and entry.get("tag") == player_tag:
            found = entry
    return found


def backfill_epochs(db: Session, batch_size: int = 500) -> int:
    rows = db.execute(
        select(BattleRecord.id, BattleRecord.battle_time).where(BattleRecord.epoch.is_(None))
    ).all()
    updated = 0
    for i, (record_id, battle_time) in enumerate(rows, start=1):
        epoch = parse_battle_time(battle_time)
        if epoch is None:
            logger.warning("record %s: cannot parse battleTime %r", record_id, battle_time)
            continue
        db.execute(update(BattleRecord).where(BattleRecord.id == record_id).values(epoch=epoch))
        logger.debug("Updating %s", record_id)
        updated += 1
        if i % batch_size == 0:
            db.commit()
    db.commit()
    return updated


def backfill_players(db: Session, player_tag: str, batch_size: int = 500) -> int:
    rows = db.execute(
        select(BattleRecord.id, BattleRecord.battle).where(BattleRecord.extracted_player.is_(None))
    ).all()
    updated = 0
    for i, (record_id, battle) in enumerate(rows, start=1):
        db.execute(
            update(BattleRecord)
            .where(BattleRecord.id == record_id)
            .values(extracted_player=extract_player(battle, player_tag))
        )
        logger.debug("Updating %s", record_id)
        updated += 1
        if i % batch_size == 0:
            db.commit()
    db.commit()
    return updated


def run_normalizer(db: Session, player_tag: str, batch_size: int = 500) -> Dict[str, int]:
    epochs = backfill_epochs(db, batch_size)
    players = backfill_players(db, player_tag, batch_size)
    logger.info("normalizer: %d epoch(s), %d player(s) backfilled", epochs, players)
    return {"epoch": epochs, "extracted_player": players}


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument('--player-tag', type=str, default=os.environ.get('PLAYER_TAG'))
    parser.add_argument('--batch-size', type=int, default=500)
    args = parser.parse_args()
    if not args.player_tag:
        parser.error("--player-tag or PLAYER_TAG is required")

    setup_logging()
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        counts = run_normalizer(db, args.player_tag, args.batch_size)
    print(f"Backfilled {counts['epoch']} epochs and {counts['extracted_player']} players.")


if __name__ == '__main__':
    main()
