from backend.battlelog.filters import FilterSpec, parse_filter_params
from backend.battlelog.query import Attempt
from backend.battlelog.retrieval import retrieve


def _epochs(result):
    return [r["epoch"] for r in result.records]


def test_empty_spec_returns_everything_newest_first(db, add_battle):
    for epoch in (3000, 1000, 2000):
        add_battle(epoch)
    add_battle(None)

    result = retrieve(db, FilterSpec())
    assert _epochs(result) == [3000, 2000, 1000, None]
    assert result.forced is False
    assert result.attempt is Attempt.EXACT
    assert result.count == 4


def test_exact_results_satisfy_every_constraint(db, add_battle):
    add_battle(1000, mode="gemGrab", brawler="COLT")
    add_battle(1500, mode="gemGrab", brawler="BULL")
    add_battle(1800, mode="brawlBall", brawler="COLT")
    add_battle(2500, mode="gemGrab", brawler="COLT")

    spec, _ = parse_filter_params({
        "start_time": "1000", "end_time": "2000",
        "mode": '["gemGrab"]', "brawler": '["COLT"]',
    })
    result = retrieve(db, spec)
    assert result.forced is False
    assert _epochs(result) == [1000]
    record = result.records[0]
    assert record["battle"]["mode"] == "gemGrab"
    assert record["extracted"]["player"]["brawler"]["name"] == "COLT"


def test_limit_and_sort_override(db, add_battle):
    for epoch in (1000, 2000, 3000):
        add_battle(epoch)
    result = retrieve(db, FilterSpec(limit=2, sort=(("epoch", 1),)))
    assert _epochs(result) == [1000, 2000]


def test_forward_relaxation_returns_one_record_after_start(db, add_battle):
    add_battle(500)
    add_battle(3000)
    add_battle(5000)

    result = retrieve(db, FilterSpec(start_time=1000, end_time=2000, limit=10))
    assert result.forced is True
    assert result.attempt is Attempt.FORWARD
    assert result.count == 1
    assert result.records[0]["epoch"] >= 1000
    # 按时间倒序取一条
    assert _epochs(result) == [5000]
    assert result.query.describe() == {"epoch": {"$gte": 1000}}
    assert result.requested_limit == 10


def test_forward_relaxation_keeps_other_constraints(db, add_battle):
    add_battle(3000, mode="gemGrab")
    add_battle(4000, mode="brawlBall")

    result = retrieve(db, FilterSpec(start_time=1000, end_time=2000, modes=("gemGrab",)))
    assert result.attempt is Attempt.FORWARD
    assert _epochs(result) == [3000]


def test_backward_relaxation_returns_one_record_before_start(db, add_battle):
    add_battle(100)
    add_battle(500)

    result = retrieve(db, FilterSpec(start_time=1000, end_time=2000))
    assert result.forced is True
    assert result.attempt is Attempt.BACKWARD
    assert result.count == 1
    assert result.records[0]["epoch"] <= 1000
    assert _epochs(result) == [100]
    assert result.query.describe() == {"epoch": {"$lte": 1000}}


def test_empty_after_every_attempt(db, add_battle):
    add_battle(500, mode="brawlBall")

    result = retrieve(db, FilterSpec(start_time=1000, end_time=2000, modes=("gemGrab",)))
    assert result.records == []
    assert result.forced is True
    assert result.attempt is Attempt.BACKWARD


def test_backward_is_skipped_without_lower_bound(db, add_battle):
    add_battle(500, brawler="COLT")

    result = retrieve(db, FilterSpec(end_time=2000, brawlers=("NOBODY",)))
    assert result.records == []
    assert result.forced is True
    assert result.attempt is Attempt.FORWARD


def test_unranked_filter_includes_battles_without_type(db, add_battle):
    add_battle(1000, battle_type="ranked")
    add_battle(2000, battle_type="friendly")
    add_battle(3000, battle_type=None)

    spec, _ = parse_filter_params({"ranked": "0"})
    assert _epochs(retrieve(db, spec)) == [3000, 2000]

    spec, _ = parse_filter_params({"ranked": "1"})
    assert _epochs(retrieve(db, spec)) == [1000]


def test_need_player_filter(db, add_battle):
    add_battle(1000, player={"tag": "#2PP", "brawlers": []})
    add_battle(2000, player=None)

    spec, _ = parse_filter_params({"need_player": "1"})
    assert _epochs(retrieve(db, spec)) == [1000]

    spec, _ = parse_filter_params({"need_player": "0"})
    assert _epochs(retrieve(db, spec)) == [2000]


def test_projection_applies_to_records(db, add_battle):
    add_battle(1000, mode="gemGrab")

    spec, _ = parse_filter_params({"project": '{"epoch": 1, "battle.mode": 1}'})
    record = retrieve(db, spec).records[0]
    assert set(record) == {"_id", "epoch", "battle"}
    assert record["battle"] == {"mode": "gemGrab"}

    spec, _ = parse_filter_params({"project": '{"battle": 0, "event": 0, "_id": 0}'})
    record = retrieve(db, spec).records[0]
    assert set(record) == {"battleTime", "epoch", "player", "extracted"}


def test_projection_survives_fallback(db, add_battle):
    add_battle(3000)

    spec, _ = parse_filter_params({"start_time": "1000", "end_time": "2000", "project": '{"epoch": 1}'})
    result = retrieve(db, spec)
    assert result.forced is True
    assert set(result.records[0]) == {"_id", "epoch"}


def test_projection_of_id_alone_returns_only_id(db, add_battle):
    add_battle(1000)

    spec, _ = parse_filter_params({"project": '{"_id": 1}'})
    record = retrieve(db, spec).records[0]
    assert set(record) == {"_id"}

    spec, _ = parse_filter_params({"project": '{"_id": 0}'})
    record = retrieve(db, spec).records[0]
    assert "_id" not in record
    assert "battle" in record

    spec, _ = parse_filter_params({"project": '{"battle": 0, "_id": 1}'})
    record = retrieve(db, spec).records[0]
    assert "battle" not in record
    assert {"_id", "epoch", "event"} <= set(record)
