from datetime import datetime, timezone
from typing import Any, List, Optional
import logging
import os

from fastapi import FastAPI, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from backend.battlelog.database import engine, Base, get_db, check_connection
from backend.battlelog import crud
from backend.battlelog.client_state import (
    BRAWLER_COOKIE, TIME_COOKIE, ClientState, decode_state, encode_state,
)
from backend.battlelog.filters import parse_filter_params
from backend.battlelog.logging_config import setup_logging
from backend.battlelog.retrieval import retrieve
from backend.battlelog.schemas import (
    ClientStateResponse, DailyTrophySummary, IntervalResponse, RankCount,
    RetrievalResponse, SoloDailySummary, StatsResponse,
)


logger = logging.getLogger(__name__)

COOKIE_DOMAIN = os.environ.get("COOKIE_DOMAIN") or None

app = FastAPI(default_response_class=JSONResponse)


@app.on_event("startup")
def _check_store():
    setup_logging()
    # 启动时连不上存储直接退出
    try:
        check_connection()
        Base.metadata.create_all(bind=engine)
    except Exception:
        logger.critical("cannot reach the battle store at startup", exc_info=True)
        raise


@app.exception_handler(OperationalError)
@app.exception_handler(InterfaceError)
@app.exception_handler(PoolTimeoutError)
async def _store_unavailable(request: Request, exc: Exception):
    logger.warning("store unavailable while serving %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "store unavailable"})


def _set_client_state(response: Response, state: ClientState) -> None:
    time_value, brawler_value = encode_state(state)
    response.set_cookie(TIME_COOKIE, time_value, domain=COOKIE_DOMAIN, path="/")
    response.set_cookie(BRAWLER_COOKIE, brawler_value, domain=COOKIE_DOMAIN, path="/")


def _to_datetime(epoch_ms: Optional[int]) -> Optional[datetime]:
    if epoch_ms is None:
        return None
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)


@app.get("/api/health")
def health():
    return {"status": "ok"}


@app.api_route("/api", methods=["GET", "POST"], response_model=RetrievalResponse)
def retrieve_battles(request: Request, response: Response, db: Session = Depends(get_db)):
    spec, _ = parse_filter_params(request.query_params)
    result = retrieve(db, spec)
    # 回写实际请求的时间窗口与英雄选择
    _set_client_state(response, ClientState.from_spec(spec))
    return RetrievalResponse(
        result_count=result.count,
        applied_filter=result.query.describe(),
        flags={"provenance": result.attempt.value},
        limit=result.requested_limit,
        records=result.records,
        forced=result.forced,
    )


@app.get("/api/client_state", response_model=ClientStateResponse)
def client_state(request: Request, response: Response):
    state, valid = decode_state(request.cookies.get(TIME_COOKIE), request.cookies.get(BRAWLER_COOKIE))
    if not valid:
        _set_client_state(response, state)
    return ClientStateResponse(
        start_time=state.time_payload()["startTime"],
        stop_time=state.time_payload()["stopTime"],
        brawlers=state.brawler_payload(),
    )


@app.api_route("/api/stats", methods=["GET", "POST"], response_model=StatsResponse)
@app.api_route("/ranks", methods=["POST"], response_model=StatsResponse, include_in_schema=False)
def stats(db: Session = Depends(get_db)):
    rank_distribution = [
        RankCount(date=r[0], rank=r[1], count=int(r[2] or 0))
        for r in crud.query_rank_distribution(db)
    ]
    solo_daily = [
        SoloDailySummary(
            date=r[0],
            average_rank=float(r[1]) if r[1] is not None else None,
            total_trophy_change=int(r[2] or 0),
        )
        for r in crud.query_solo_daily_summary(db)
    ]
    daily = [
        DailyTrophySummary(date=r[0], total_trophy_change=int(r[1] or 0))
        for r in crud.query_daily_trophy_summary(db)
    ]
    return StatsResponse(
        rank_distribution=rank_distribution,
        solo_daily_summary=solo_daily,
        overall_daily_trophy_summary=daily,
    )


@app.api_route("/api/interval", methods=["GET", "POST"], response_model=IntervalResponse)
@app.api_route("/interval", methods=["POST"], response_model=IntervalResponse, include_in_schema=False)
def interval(db: Session = Depends(get_db)):
    first, last = crud.query_epoch_interval(db)
    return IntervalResponse(start=_to_datetime(first), end=_to_datetime(last))


@app.api_route("/api/brawlers", methods=["GET", "POST"], response_model=List[Any])
@app.api_route("/brawlers", methods=["POST"], response_model=List[Any], include_in_schema=False)
def brawlers(db: Session = Depends(get_db)):
    player = crud.query_latest_player(db)
    if not isinstance(player, dict):
        return []
    return player.get("brawlers") or []
