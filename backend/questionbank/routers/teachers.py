from __future__ import annotations
from datetime import datetime
from typing import List, Optional
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import delete
from sqlalchemy.orm import Session

from .auth import User, hash_password, require_coordinator, validate_account_fields
from ..db import get_db
from ..models import AuthSession, AuthUser, ROLE_TEACHER


router = APIRouter(prefix="/teachers", tags=["teachers"])

logger = logging.getLogger(__name__)


class TeacherIn(BaseModel):
	name: str
	email: str
	password: Optional[str] = None


class TeacherOut(BaseModel):
	id: str
	name: str
	email: str
	created_at: datetime


def _out(row: AuthUser) -> TeacherOut:
	return TeacherOut(id=row.id, name=row.name, email=row.email, created_at=row.created_at)


def _get_teacher(db: Session, teacher_id: str) -> AuthUser:
	row = db.get(AuthUser, teacher_id)
	if row is None or row.role != ROLE_TEACHER:
		raise HTTPException(status_code=404, detail="teacher not found")
	return row


@router.get("", response_model=List[TeacherOut])
async def list_teachers(user: User = Depends(require_coordinator), db: Session = Depends(get_db)):
	rows = db.query(AuthUser).filter(AuthUser.role == ROLE_TEACHER).order_by(AuthUser.name).all()
	return [_out(r) for r in rows]


@router.post("", status_code=201, response_model=TeacherOut)
async def create_teacher(req: TeacherIn, user: User = Depends(require_coordinator), db: Session = Depends(get_db)):
	name, email = validate_account_fields(req.name, req.email)
	if db.query(AuthUser).filter(AuthUser.email == email).first():
		raise HTTPException(status_code=409, detail="e-mail already registered")
	# Without a password the account exists for authorship only and cannot log in
	password_hash = hash_password(req.password) if req.password else "!"
	row = AuthUser(id=uuid.uuid4().hex, name=name, email=email, password_hash=password_hash, role=ROLE_TEACHER)
	db.add(row)
	db.commit()
	logger.info("Teacher %s added by %s", email, user.email)
	return _out(row)


@router.put("/{teacher_id}", response_model=TeacherOut)
async def edit_teacher(teacher_id: str, req: TeacherIn, user: User = Depends(require_coordinator), db: Session = Depends(get_db)):
	row = _get_teacher(db, teacher_id)
	name, email = validate_account_fields(req.name, req.email)
	clash = db.query(AuthUser).filter(AuthUser.email == email, AuthUser.id != teacher_id).first()
	if clash:
		raise HTTPException(status_code=409, detail="e-mail already registered")
	row.name = name
	row.email = email
	if req.password:
		row.password_hash = hash_password(req.password)
	db.add(row)
	db.commit()
	return _out(row)


@router.delete("/{teacher_id}")
async def delete_teacher(teacher_id: str, user: User = Depends(require_coordinator), db: Session = Depends(get_db)):
	row = _get_teacher(db, teacher_id)
	db.execute(delete(AuthSession).where(AuthSession.user_id == teacher_id))
	db.delete(row)
	db.commit()
	return {"ok": True}
