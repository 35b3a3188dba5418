from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from fieldrec.core.config import DATA_DIR, get_settings

DATA_DIR.mkdir(parents=True, exist_ok=True)

SQLALCHEMY_DATABASE_URL = get_settings().database_url

connect_args = {}
if SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    connect_args["check_same_thread"] = False

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)

Base = declarative_base()


def session_factory(bind=None) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind if bind is not None else engine)
