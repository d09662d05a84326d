from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .auth import User, get_current_user
from ..db import get_db
from ..filters import facets
from ..models import Question
from ..tags_client import TagsClient

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("")
async def tag_suggestions(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	local_tags = facets(db.query(Question).all())["tags"]
	client = TagsClient()
	try:
		return {"tags": await client.suggestions(local_tags)}
	finally:
		await client.aclose()
