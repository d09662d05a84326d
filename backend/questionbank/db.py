from __future__ import annotations
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker, declarative_base
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./questionbank.db"

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


# Best-effort lightweight migrations for development (SQLite-friendly)
def ensure_schema() -> None:
	try:
		inspector = inspect(engine)
		tables = set(inspector.get_table_names())
	except Exception:
		return
	if "questions" in tables:
		cols = {c["name"] for c in inspector.get_columns("questions")}
		with engine.begin() as conn:
			if "tags_json" not in cols:
				conn.exec_driver_sql("ALTER TABLE questions ADD COLUMN tags_json TEXT DEFAULT '[]' NOT NULL")
			if "updated_at" not in cols:
				conn.exec_driver_sql("ALTER TABLE questions ADD COLUMN updated_at DATETIME")
	if "statement_drafts" in tables:
		cols = {c["name"] for c in inspector.get_columns("statement_drafts")}
		with engine.begin() as conn:
			if "selected_index" not in cols:
				conn.exec_driver_sql("ALTER TABLE statement_drafts ADD COLUMN selected_index INTEGER")
