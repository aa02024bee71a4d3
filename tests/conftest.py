import os

# 测试不连接 PostgreSQL
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.battlelog.database import Base, get_db
from backend.battlelog.main import app
from backend.battlelog.models import BattleRecord

PLAYER_TAG = "#2PP"


@pytest.fixture
def db():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False)
    with Session() as session:
        yield session
    engine.dispose()


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def add_battle(db):
    """Insert an already-enriched battle and return it."""
    def _add(epoch, mode="brawlBall", battle_type="ranked", rank=None, trophy_change=0,
             brawler="COLT", player=None, battle_time="20240301T000000.000Z"):
        battle = {"mode": mode, "type": battle_type, "trophyChange": trophy_change}
        if rank is not None:
            battle["rank"] = rank
        entry = {"tag": PLAYER_TAG, "name": "me", "brawler": {"name": brawler}}
        battle["players" if mode == "soloShowdown" else "teams"] = (
            [entry] if mode == "soloShowdown" else [[entry], []]
        )
        record = BattleRecord(
            battle_time=battle_time,
            event={"mode": mode},
            battle=battle,
            player=player,
            mode=mode,
            battle_type=battle_type,
            rank=rank,
            trophy_change=trophy_change,
            epoch=epoch,
            extracted_player=entry if epoch is not None else None,
        )
        db.add(record)
        db.commit()
        return record
    return _add
