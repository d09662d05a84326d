from __future__ import annotations
import logging
from datetime import datetime, timedelta
from typing import List
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from .models import AuthSession, StatementDraft


logger = logging.getLogger(__name__)


def purge_stale(db: Session, days: int = 7) -> List[str]:
	"""Remove drafts and auth sessions untouched for ``days``; return purged draft ids."""
	threshold = datetime.utcnow() - timedelta(days=days)

	draft_ids = list(db.scalars(select(StatementDraft.draft_id).where(StatementDraft.updated_at < threshold)))
	if draft_ids:
		db.execute(delete(StatementDraft).where(StatementDraft.draft_id.in_(draft_ids)))

	res = db.execute(delete(AuthSession).where(AuthSession.last_activity_at < threshold))
	sessions_removed = res.rowcount or 0

	db.commit()
	if draft_ids or sessions_removed:
		logger.info("Purged %d drafts and %d sessions older than %d days", len(draft_ids), sessions_removed, days)
	return draft_ids
