import sqlalchemy as sa
import sqlalchemy.orm as orm
from sqlalchemy.orm import Session

SqlAlchemyBase = orm.declarative_base()

__factory = None


def global_init(db_url: str):
    global __factory

    if __factory:
        return

    if not db_url or not db_url.strip():
        raise Exception("Database URL is required.")

    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
    engine = sa.create_engine(db_url, echo=False, connect_args=connect_args)
    __factory = orm.sessionmaker(bind=engine, autoflush=False)

    from . import __all_models

    SqlAlchemyBase.metadata.create_all(engine)


def create_session() -> Session:
    global __factory
    return __factory()
