import os

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from .core.config import settings

# Base para modelos (lo importa agritrack.main)
Base = declarative_base()

# Ruta absoluta al agritrack.db (raíz del proyecto)
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
DB_FILE = os.path.join(BASE_DIR, "agritrack.db")
ABS_URL = "sqlite:///" + DB_FILE.replace("\\", "/")

SQLALCHEMY_DATABASE_URL = settings.database_url or ABS_URL
IS_SQLITE = SQLALCHEMY_DATABASE_URL.startswith("sqlite")

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 60} if IS_SQLITE else {},
    pool_pre_ping=True,
)


if IS_SQLITE:

    # PRAGMAs por conexión; foreign_keys hace efectivo el ON DELETE SET NULL
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _):
        cur = dbapi_conn.cursor()
        try:
            cur.execute("PRAGMA busy_timeout=60000;")
            cur.execute("PRAGMA foreign_keys=ON;")
        finally:
            cur.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db():
    # importa modelos antes de create_all
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


# Dependencia FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
