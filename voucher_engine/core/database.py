from sqlalchemy import create_engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from voucher_engine.core.settings import settings

SQLALCHEMY_DATABASE_URL = settings.database_url


def _connect_args(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    try:
        url = make_url(database_url)
    except Exception:
        return {}
    if (url.drivername or "").startswith("postgresql"):
        # Blocked row locks surface as OperationalError instead of hanging the request.
        return {
            "options": (
                f"-c statement_timeout={int(settings.db_statement_timeout_ms)} "
                f"-c lock_timeout={int(settings.db_lock_timeout_ms)}"
            )
        }
    return {}


engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=_connect_args(SQLALCHEMY_DATABASE_URL), pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
