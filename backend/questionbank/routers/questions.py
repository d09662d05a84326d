from __future__ import annotations
from datetime import datetime
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .auth import User, get_current_user
from ..db import get_db
from ..export import OPTION_COUNT, export_filename, questions_to_csv
from ..filters import facets, filter_questions
from ..models import Question


router = APIRouter(prefix="/questions", tags=["questions"])

logger = logging.getLogger(__name__)


class QuestionIn(BaseModel):
	subject: str
	tags: List[str] = []
	# Statement markup produced by the statement editor
	statement: str
	options: List[str] = Field(default_factory=lambda: [""] * OPTION_COUNT)
	correct_option: int = 0


class QuestionOut(BaseModel):
	id: int
	author_id: str
	author_name: str
	subject: str
	tags: List[str]
	statement: str
	options: List[str]
	correct_option: int
	created_at: datetime


def to_out(row: Question) -> QuestionOut:
	return QuestionOut(
		id=row.id,
		author_id=row.author_id,
		author_name=row.author_name,
		subject=row.subject,
		tags=row.tags,
		statement=row.statement,
		options=row.options,
		correct_option=row.correct_option,
		created_at=row.created_at,
	)


def _clean_tags(tags: List[str]) -> List[str]:
	seen: List[str] = []
	for tag in tags or []:
		tag = (tag or "").strip()
		if tag and tag not in seen:
			seen.append(tag)
	return seen


def validate_question(req: QuestionIn) -> QuestionIn:
	subject = (req.subject or "").strip()
	options = list(req.options or [])
	if not subject or not (req.statement or "").strip() or len(options) != OPTION_COUNT or any(not (o or "").strip() for o in options):
		raise HTTPException(status_code=400, detail="subject, statement and all five options are required")
	if not 0 <= req.correct_option < OPTION_COUNT:
		raise HTTPException(status_code=400, detail=f"correct_option must be between 0 and {OPTION_COUNT - 1}")
	return QuestionIn(subject=subject, tags=_clean_tags(req.tags), statement=req.statement, options=options, correct_option=req.correct_option)


def create_question(db: Session, user: User, req: QuestionIn) -> Question:
	req = validate_question(req)
	row = Question(
		author_id=user.id,
		author_name=user.name,
		subject=req.subject,
		statement=req.statement,
		correct_option=req.correct_option,
	)
	row.tags = req.tags
	row.options = req.options
	db.add(row)
	db.commit()
	logger.info("Question %s saved by %s", row.id, user.email)
	return row


def update_question_row(db: Session, row: Question, req: QuestionIn) -> Question:
	req = validate_question(req)
	row.subject = req.subject
	row.statement = req.statement
	row.correct_option = req.correct_option
	row.tags = req.tags
	row.options = req.options
	db.add(row)
	db.commit()
	return row


def get_owned_question(db: Session, user: User, question_id: int) -> Question:
	row = db.get(Question, question_id)
	if row is None:
		raise HTTPException(status_code=404, detail="question not found")
	if row.author_id != user.id and not user.is_coordinator:
		raise HTTPException(status_code=403, detail="only the author or a coordinator may change this question")
	return row


def _filtered(db: Session, search: Optional[str], subject: Optional[str], author: Optional[str], tags: List[str]) -> List[Question]:
	rows = db.query(Question).order_by(Question.created_at.desc(), Question.id.desc()).all()
	return filter_questions(rows, search=search, subject=subject, author=author, tags=tags)


@router.get("", response_model=List[QuestionOut])
async def list_questions(
	search: Optional[str] = None,
	subject: Optional[str] = None,
	author: Optional[str] = None,
	tags: List[str] = Query(default=[]),
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	return [to_out(r) for r in _filtered(db, search, subject, author, tags)]


@router.get("/facets")
async def question_facets(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return facets(db.query(Question).all())


@router.get("/export.csv")
async def export_questions(
	search: Optional[str] = None,
	subject: Optional[str] = None,
	author: Optional[str] = None,
	tags: List[str] = Query(default=[]),
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	rows = _filtered(db, search, subject, author, tags)
	if not rows:
		raise HTTPException(status_code=404, detail="no questions to export")
	return Response(
		content=questions_to_csv(rows),
		media_type="text/csv; charset=utf-8",
		headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
	)


@router.get("/{question_id}", response_model=QuestionOut)
async def get_question(question_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row = db.get(Question, question_id)
	if row is None:
		raise HTTPException(status_code=404, detail="question not found")
	return to_out(row)


@router.post("", status_code=201, response_model=QuestionOut)
async def add_question(req: QuestionIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return to_out(create_question(db, user, req))


@router.put("/{question_id}", response_model=QuestionOut)
async def update_question(question_id: int, req: QuestionIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row = get_owned_question(db, user, question_id)
	return to_out(update_question_row(db, row, req))


@router.delete("/{question_id}")
async def delete_question(question_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row = get_owned_question(db, user, question_id)
	db.delete(row)
	db.commit()
	return {"ok": True}
