from __future__ import annotations
from typing import Dict, Iterable, List, Optional
import logging
import uuid

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .auth import User, get_current_user
from .questions import QuestionIn, QuestionOut, create_question, get_owned_question, to_out, update_question_row
from ..db import get_db
from ..editor import EditorState, ImageValidationError, StatementEditor
from ..export import OPTION_COUNT
from ..models import StatementDraft
from ..settings import settings


router = APIRouter(prefix="/drafts", tags=["statement_editor"])

logger = logging.getLogger(__name__)


class DraftState(EditorState):
	draft_id: str
	question_id: Optional[int] = None


class CreateDraftRequest(BaseModel):
	markup: str = ""
	# Open an existing question's statement for editing
	question_id: Optional[int] = None


class TextChangeRequest(BaseModel):
	text: str


class FormatRequest(BaseModel):
	kind: str
	selection_start: int
	selection_end: int


class ImageUrlRequest(BaseModel):
	url: str


class ResizeRequest(BaseModel):
	delta_width: int = 0
	delta_height: int = 0


class ClickRequest(BaseModel):
	# Image under the pointer, or None for a click outside every image
	index: Optional[int] = None


class SubmitRequest(BaseModel):
	subject: str
	tags: List[str] = []
	options: List[str] = Field(default_factory=lambda: [""] * OPTION_COUNT)
	correct_option: int = 0


# draft_id -> live editor; the statement_drafts table holds the last snapshot
_editors: Dict[str, StatementEditor] = {}


def forget(draft_ids: Iterable[str]) -> None:
	for draft_id in draft_ids:
		_editors.pop(draft_id, None)


def _new_editor(markup: str) -> StatementEditor:
	return StatementEditor(
		markup,
		preserve_images=settings.statement_preserve_images,
		max_image_bytes=settings.max_image_bytes,
	)


def _load(db: Session, user: User, draft_id: str) -> tuple[StatementDraft, StatementEditor]:
	row = db.get(StatementDraft, draft_id)
	if row is None or row.user_id != user.id:
		raise HTTPException(status_code=404, detail="draft not found")
	editor = _editors.get(draft_id)
	if editor is None:
		editor = _new_editor(row.markup)
		editor.select_image(row.selected_index)
		_editors[draft_id] = editor
	return row, editor


def _save(db: Session, row: StatementDraft, editor: StatementEditor) -> DraftState:
	row.markup = editor.markup
	row.selected_index = editor.selected_index
	db.add(row)
	try:
		db.commit()
	except Exception:
		db.rollback()
		raise
	return _state(row, editor)


def _state(row: StatementDraft, editor: StatementEditor) -> DraftState:
	return DraftState(draft_id=row.draft_id, question_id=row.question_id, **editor.snapshot().model_dump())


@router.post("", status_code=201, response_model=DraftState)
async def create_draft(req: CreateDraftRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	markup = req.markup or ""
	if req.question_id is not None:
		markup = get_owned_question(db, user, req.question_id).statement
	row = StatementDraft(draft_id=uuid.uuid4().hex, user_id=user.id, question_id=req.question_id, markup=markup)
	editor = _new_editor(markup)
	_editors[row.draft_id] = editor
	return _save(db, row, editor)


@router.get("/{draft_id}", response_model=DraftState)
async def get_draft(draft_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row, editor = _load(db, user, draft_id)
	return _state(row, editor)


@router.delete("/{draft_id}")
async def discard_draft(draft_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row, _ = _load(db, user, draft_id)
	db.delete(row)
	db.commit()
	forget([draft_id])
	return {"ok": True}


@router.put("/{draft_id}/text", response_model=DraftState)
async def change_text(draft_id: str, req: TextChangeRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row, editor = _load(db, user, draft_id)
	editor.on_statement_text_change(req.text)
	return _save(db, row, editor)


@router.post("/{draft_id}/format", response_model=DraftState)
async def apply_format(draft_id: str, req: FormatRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row, editor = _load(db, user, draft_id)
	try:
		editor.apply_formatting(req.kind, req.selection_start, req.selection_end)
	except ValueError as e:
		raise HTTPException(status_code=400, detail=str(e))
	return _save(db, row, editor)


@router.post("/{draft_id}/images/url", response_model=DraftState)
async def insert_image_url(draft_id: str, req: ImageUrlRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row, editor = _load(db, user, draft_id)
	try:
		editor.insert_image_url(req.url)
	except ImageValidationError as e:
		raise HTTPException(status_code=400, detail=str(e))
	return _save(db, row, editor)


@router.post("/{draft_id}/images/upload", response_model=DraftState)
async def upload_image(
	draft_id: str,
	file: UploadFile = File(...),
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	row, editor = _load(db, user, draft_id)
	# Oversized uploads are never buffered past the limit
	size = file.size
	content = b""
	if size is None or size <= editor.max_image_bytes:
		content = await file.read(editor.max_image_bytes + 1)
		size = len(content)
	# The editor may have changed while the file was being read; apply to its current state
	try:
		image = editor.insert_image_file(file.content_type or "", size, content, file.filename or "")
	except ImageValidationError as e:
		raise HTTPException(status_code=400, detail=str(e))
	logger.info("Uploaded image %s (%d bytes) into draft %s", image.id, len(content), draft_id)
	return _save(db, row, editor)


@router.post("/{draft_id}/images/{index}/resize", response_model=DraftState)
async def resize_image(draft_id: str, index: int, req: ResizeRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row, editor = _load(db, user, draft_id)
	editor.resize_image(index, req.delta_width, req.delta_height)
	return _save(db, row, editor)


@router.delete("/{draft_id}/images/{index}", response_model=DraftState)
async def delete_image(draft_id: str, index: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row, editor = _load(db, user, draft_id)
	editor.delete_image(index)
	return _save(db, row, editor)


@router.post("/{draft_id}/click", response_model=DraftState)
async def click(draft_id: str, req: ClickRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row, editor = _load(db, user, draft_id)
	editor.click(req.index)
	return _save(db, row, editor)


@router.post("/{draft_id}/submit", response_model=QuestionOut)
async def submit_draft(draft_id: str, req: SubmitRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row, editor = _load(db, user, draft_id)
	question = QuestionIn(
		subject=req.subject,
		tags=req.tags,
		statement=editor.markup,
		options=req.options,
		correct_option=req.correct_option,
	)
	if row.question_id is None:
		saved = create_question(db, user, question)
	else:
		saved = update_question_row(db, get_owned_question(db, user, row.question_id), question)
	db.delete(row)
	db.commit()
	forget([draft_id])
	return to_out(saved)
