from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, DeclarativeBase
import os


DB_USER = os.getenv("POSTGRES_USER", "app")
DB_PASS = os.getenv("POSTGRES_PASSWORD", "app")
DB_HOST = os.getenv("POSTGRES_HOST", "localhost")
DB_PORT = os.getenv("POSTGRES_PORT", "5432")
DB_NAME = os.getenv("POSTGRES_DB", "stats")

try:
    STORE_TIMEOUT_MS = int(os.getenv("STORE_TIMEOUT_MS", "5000"))
except ValueError:
    STORE_TIMEOUT_MS = 5000


def _build_url() -> str:
    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit
    # 若传入UNIX Socket路径，则使用host=/socket的连接方式
    if DB_HOST.startswith('/'):
        if DB_PASS:
            return f"postgresql+psycopg2://{DB_USER}:{DB_PASS}@/{DB_NAME}?host={DB_HOST}"
        else:
            return f"postgresql+psycopg2://{DB_USER}@/{DB_NAME}?host={DB_HOST}"
    # 否则走TCP
    if DB_PASS:
        return f"postgresql+psycopg2://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
    else:
        return f"postgresql+psycopg2://{DB_USER}@{DB_HOST}:{DB_PORT}/{DB_NAME}"


def _connect_args(url: str) -> dict:
    # 单条语句超时，超时按存储不可用处理
    if url.startswith("postgresql") and STORE_TIMEOUT_MS > 0:
        return {"options": f"-c statement_timeout={STORE_TIMEOUT_MS}"}
    return {}


DATABASE_URL = _build_url()

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=_connect_args(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_connection(bind=None) -> None:
    """Round-trip a trivial statement; raises if the store cannot be reached."""
    with (bind or engine).connect() as conn:
        conn.execute(text("SELECT 1"))
