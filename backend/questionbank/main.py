from fastapi import FastAPI

from .db import Base, engine, get_db, ensure_schema
from .cleanup import purge_stale
from .settings import settings
from .routers import auth
from .routers import subjects
from .routers import teachers
from .routers import questions
from .routers import tags
from .routers import editor
import asyncio
import logging

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Question Bank API")
app.include_router(auth.router)
app.include_router(subjects.router)
app.include_router(teachers.router)
app.include_router(questions.router)
app.include_router(tags.router)
app.include_router(editor.router)

_cleanup_task: asyncio.Task | None = None


@app.get("/info")
def root():
	return {"status": "ok", "tags_api_configured": bool(settings.tags_api_url)}


def _run_cleanup() -> None:
	db = next(get_db())
	try:
		editor.forget(purge_stale(db, settings.draft_retention_days))
	except Exception:
		logger.exception("Draft cleanup failed")
	finally:
		db.close()


async def _cleanup_watcher():
	# Startup already ran one pass; repeat daily
	while True:
		await asyncio.sleep(24 * 60 * 60)
		_run_cleanup()


@app.on_event("startup")
async def startup_event():
	global _cleanup_task
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	try:
		ensure_schema()
	except Exception:
		logger.exception("Schema migration failed")
	_run_cleanup()
	_cleanup_task = asyncio.create_task(_cleanup_watcher())


@app.on_event("shutdown")
async def shutdown_event():
	if _cleanup_task is not None:
		_cleanup_task.cancel()
