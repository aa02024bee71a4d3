from sqlalchemy import Column, Integer, BigInteger, String, JSON
from sqlalchemy import Index
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.expression import FunctionElement

from backend.battlelog.database import Base


class BattleRecord(Base):
    __tablename__ = "battle_records"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    # 原始数据
    battle_time = Column(String(32), nullable=False)   # 形如 20201013T171244.000Z
    event = Column(JSON(none_as_null=True), nullable=True)
    battle = Column(JSON, nullable=False)
    player = Column(JSON(none_as_null=True), nullable=True)  # 玩家快照，可能为空

    # 导入时从 battle 中复制出的标量字段，只读
    mode = Column(String(64), nullable=True)
    battle_type = Column(String(64), nullable=True)
    rank = Column(Integer, nullable=True)
    trophy_change = Column(Integer, nullable=True)

    # 由 normalizer 回填
    epoch = Column(BigInteger, nullable=True)  # 毫秒级时间戳 (UTC)
    extracted_player = Column(JSON(none_as_null=True), nullable=True)

    def to_document(self) -> dict:
        return {
            "_id": str(self.id),
            "battleTime": self.battle_time,
            "epoch": self.epoch,
            "event": self.event,
            "battle": self.battle,
            "player": self.player,
            "extracted": {"player": self.extracted_player},
        }


Index("ix_battle_records_epoch", BattleRecord.epoch)
Index("ix_battle_records_mode", BattleRecord.mode)
Index("ix_battle_records_type", BattleRecord.battle_type)


class day_bucket(FunctionElement):
    """UTC calendar day (YYYY-MM-DD) of a millisecond epoch column."""
    type = String()
    inherit_cache = True
    name = "day_bucket"


@compiles(day_bucket)
def _day_bucket_default(element, compiler, **kw):
    col = compiler.process(element.clauses, **kw)
    return f"to_char(to_timestamp({col} / 1000.0) AT TIME ZONE 'UTC', 'YYYY-MM-DD')"


@compiles(day_bucket, "sqlite")
def _day_bucket_sqlite(element, compiler, **kw):
    col = compiler.process(element.clauses, **kw)
    return f"strftime('%Y-%m-%d', {col} / 1000, 'unixepoch')"
