import os
import json
import random
import time
from datetime import datetime, timezone


PLAYER_TAG = os.environ.get("PLAYER_TAG", "#2PP")

BRAWLERS = [
    "SHELLY", "COLT", "BULL", "BROCK", "RICO", "SPIKE", "BARLEY", "JESSIE",
    "NITA", "DYNAMIKE", "EL PRIMO", "MORTIS", "CROW", "POCO", "BO", "PIPER",
]

TEAM_MODES = ["gemGrab", "brawlBall", "heist", "bounty", "hotZone", "knockout"]
SOLO_MODE = "soloShowdown"


def _entry(tag: str, name: str) -> dict:
    return {
        "tag": tag,
        "name": name,
        "brawler": {"id": 16000000 + BRAWLERS.index(name), "name": name,
                     "power": random.randint(1, 11), "trophies": random.randint(0, 750)},
    }


def _battle_time(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y%m%dT%H%M%S.000Z")


def random_battle(now_ts: int) -> dict:
    # 时间分布：近30天任意秒
    ts = now_ts - random.randint(0, 30*24*3600)
    own = _entry(PLAYER_TAG, random.choice(BRAWLERS))
    if random.random() < 0.4:
        rank = random.randint(1, 10)
        players = [own] + [_entry(f"#BOT{i}", random.choice(BRAWLERS)) for i in range(9)]
        random.shuffle(players)
        battle = {
            "mode": SOLO_MODE,
            "type": "ranked",
            "rank": rank,
            "trophyChange": 10 - 2 * rank,
            "players": players,
        }
        event = {"id": 15000000, "mode": SOLO_MODE, "map": "Skull Creek"}
    else:
        mode = random.choice(TEAM_MODES)
        allies = [own] + [_entry(f"#ALLY{i}", random.choice(BRAWLERS)) for i in range(2)]
        enemies = [_entry(f"#ENEMY{i}", random.choice(BRAWLERS)) for i in range(3)]
        result = random.choice(["victory", "defeat", "draw"])
        battle = {
            "mode": mode,
            "type": random.choice(["ranked", "friendly"]),
            "result": result,
            "duration": random.randint(60, 180),
            "trophyChange": {"victory": 8, "defeat": -4, "draw": 0}[result],
            "teams": [allies, enemies],
        }
        event = {"id": 15000001, "mode": mode, "map": "Hard Rock Mine"}

    doc = {"battleTime": _battle_time(ts), "event": event, "battle": battle}
    # 约一半记录附带玩家快照
    if random.random() < 0.5:
        doc["player"] = {"tag": PLAYER_TAG, "brawlers": [{"name": n} for n in BRAWLERS]}
    return doc


def main():
    out_dir = os.path.join(os.getcwd(), 'data_logs')
    os.makedirs(out_dir, exist_ok=True)
    now = int(time.time())
    total = 2000
    out_path = os.path.join(out_dir, 'sample.jsonl')
    with open(out_path, 'w', encoding='utf-8') as fp:
        for _ in range(total):
            fp.write(json.dumps(random_battle(now), ensure_ascii=False) + '\n')
    print(f"Generated {total} battles at {out_path}")


if __name__ == '__main__':
    main()
