from __future__ import annotations
from datetime import datetime
from typing import List
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .auth import User, get_current_user, require_coordinator
from ..db import get_db
from ..models import Subject


router = APIRouter(prefix="/subjects", tags=["subjects"])

logger = logging.getLogger(__name__)


class SubjectIn(BaseModel):
	name: str


class SubjectOut(BaseModel):
	id: int
	name: str
	created_at: datetime


def _clean_name(name: str) -> str:
	name = (name or "").strip()
	if not name:
		raise HTTPException(status_code=400, detail="name is required")
	if len(name) > 128:
		raise HTTPException(status_code=400, detail="name must be at most 128 characters")
	return name


def _get_or_404(db: Session, subject_id: int) -> Subject:
	row = db.get(Subject, subject_id)
	if row is None:
		raise HTTPException(status_code=404, detail="subject not found")
	return row


@router.get("", response_model=List[SubjectOut])
async def list_subjects(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	rows = db.query(Subject).order_by(Subject.name).all()
	return [SubjectOut(id=r.id, name=r.name, created_at=r.created_at) for r in rows]


@router.post("", status_code=201, response_model=SubjectOut)
async def create_subject(req: SubjectIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	name = _clean_name(req.name)
	if db.query(Subject).filter(Subject.name == name).first():
		raise HTTPException(status_code=409, detail="subject already exists")
	row = Subject(name=name)
	db.add(row)
	db.commit()
	logger.info("Subject %r created by %s", name, user.email)
	return SubjectOut(id=row.id, name=row.name, created_at=row.created_at)


@router.put("/{subject_id}", response_model=SubjectOut)
async def rename_subject(subject_id: int, req: SubjectIn, user: User = Depends(require_coordinator), db: Session = Depends(get_db)):
	row = _get_or_404(db, subject_id)
	name = _clean_name(req.name)
	clash = db.query(Subject).filter(Subject.name == name, Subject.id != subject_id).first()
	if clash:
		raise HTTPException(status_code=409, detail="subject already exists")
	row.name = name
	db.add(row)
	db.commit()
	return SubjectOut(id=row.id, name=row.name, created_at=row.created_at)


@router.delete("/{subject_id}")
async def delete_subject(subject_id: int, user: User = Depends(require_coordinator), db: Session = Depends(get_db)):
	row = _get_or_404(db, subject_id)
	db.delete(row)
	db.commit()
	return {"ok": True}
