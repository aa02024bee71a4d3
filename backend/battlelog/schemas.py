from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# 模式 / 类型常量（与对战日志接口的取值一致）
SOLO_MODE = "soloShowdown"
RANKED_TYPE = "ranked"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RetrievalResponse(CamelModel):
    result_count: int
    applied_filter: Dict[str, Any]
    flags: Dict[str, Any]
    limit: int
    records: List[Dict[str, Any]]
    forced: bool


class RankCount(CamelModel):
    date: str
    rank: Optional[int] = None
    count: int


class SoloDailySummary(CamelModel):
    date: str
    average_rank: Optional[float] = None
    total_trophy_change: int


class DailyTrophySummary(CamelModel):
    date: str
    total_trophy_change: int


class StatsResponse(CamelModel):
    rank_distribution: List[RankCount]
    solo_daily_summary: List[SoloDailySummary]
    overall_daily_trophy_summary: List[DailyTrophySummary]


class IntervalResponse(CamelModel):
    """Bounds of the enriched history; both ``None`` while no record is enriched."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class ClientStateResponse(CamelModel):
    start_time: int
    stop_time: int
    brawlers: List[str]
