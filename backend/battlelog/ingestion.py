import argparse
import json
import logging
import os
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session
from backend.battlelog.database import SessionLocal, engine, Base
from backend.battlelog.logging_config import setup_logging
from backend.battlelog.models import BattleRecord


logger = logging.getLogger(__name__)


def ensure_tables():
    Base.metadata.create_all(bind=engine)


def _robust_json_load(line: str) -> Optional[dict]:
    try:
        obj = json.loads(line)
    except ValueError:
        return None
    return obj if isinstance(obj, dict) else None


def _as_int(value) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def to_record(obj: dict) -> Optional[BattleRecord]:
    """Map one raw battle-log document to a row; None if it is not a battle."""
    battle = obj.get("battle")
    battle_time = obj.get("battleTime")
    if not isinstance(battle, dict) or not isinstance(battle_time, str):
        return None
    event = obj.get("event") or None
    # battle.mode 缺失时退回 event.mode
    mode = battle.get("mode") or (event or {}).get("mode")
    return BattleRecord(
        battle_time=battle_time,
        event=event,
        battle=battle,
        player=obj.get("player") or None,
        mode=mode,
        battle_type=battle.get("type"),
        rank=_as_int(battle.get("rank")),
        trophy_change=_as_int(battle.get("trophyChange")),
    )


def iter_jsonl(path: str) -> Iterable[Tuple[int, Optional[dict]]]:
    with open(path, 'r', encoding='utf-8') as fp:
        for lineno, line in enumerate(fp, start=1):
            line = line.strip()
            if not line:
                continue
            yield lineno, _robust_json_load(line)


def list_jsonl_files(logs_dir: str) -> List[str]:
    paths = []
    for root, _, files in os.walk(logs_dir):
        for f in sorted(files):
            if f.endswith('.jsonl'):
                paths.append(os.path.join(root, f))
    return sorted(paths)


def import_file(db: Session, path: str, batch_size: int = 2000) -> Tuple[int, int]:
    """Insert every battle in ``path``; returns (imported, skipped)."""
    imported = skipped = 0
    buf: List[BattleRecord] = []
    for lineno, obj in iter_jsonl(path):
        record = to_record(obj) if obj is not None else None
        if record is None:
            logger.warning("%s:%d: skipped, not a battle document", path, lineno)
            skipped += 1
            continue
        buf.append(record)
        if len(buf) >= batch_size:
            db.add_all(buf)
            db.commit()
            imported += len(buf)
            buf.clear()
    if buf:
        db.add_all(buf)
        db.commit()
        imported += len(buf)
    return imported, skipped


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument('--logs_dir', type=str, default=os.environ.get('IMPORT_DIR', 'data_logs'))
    args = parser.parse_args()

    setup_logging()
    ensure_tables()
    imported = skipped = 0
    with SessionLocal() as db:
        for path in list_jsonl_files(args.logs_dir):
            n, s = import_file(db, path)
            logger.info("%s: %d imported, %d skipped", path, n, s)
            imported += n
            skipped += s
    print(f"Imported {imported} battles ({skipped} lines skipped).")


if __name__ == '__main__':
    main()
