from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker
from app.core.config import settings


def configure_sqlite(engine: Engine) -> None:
    """
    Let SQLAlchemy own BEGIN on pysqlite so SAVEPOINTs behave.

    Conflict recovery relies on nested transactions; the stock pysqlite
    driver issues its own BEGIN and breaks them.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


backend = make_url(settings.DATABASE_URL).get_backend_name()

connect_args = {}
if backend.startswith("postgresql"):
    connect_args["options"] = "-c timezone=utc"
elif backend == "sqlite":
    connect_args["check_same_thread"] = False

engine = create_engine(
    settings.DATABASE_URL, pool_pre_ping=True, connect_args=connect_args
)
if backend == "sqlite":
    configure_sqlite(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
