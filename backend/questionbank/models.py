from __future__ import annotations
import json
from datetime import datetime
from typing import List
from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey
from .db import Base


ROLE_TEACHER = "teacher"
ROLE_COORDINATOR = "coordinator"


class AuthUser(Base):
	__tablename__ = "auth_users"
	id = Column(String(64), primary_key=True, index=True)
	name = Column(String(128), nullable=False)
	# Login identifier
	email = Column(String(256), unique=True, index=True, nullable=False)
	password_hash = Column(String(256), nullable=False)
	role = Column(String(32), default=ROLE_TEACHER, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# JWT id (jti); deleting the row revokes the token
	session_id = Column(String(64), primary_key=True)
	user_id = Column(String(64), ForeignKey("auth_users.id", ondelete="CASCADE"), index=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Subject(Base):
	__tablename__ = "subjects"
	id = Column(Integer, primary_key=True, autoincrement=True)
	name = Column(String(128), unique=True, index=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Question(Base):
	__tablename__ = "questions"
	id = Column(Integer, primary_key=True, autoincrement=True)
	author_id = Column(String(64), index=True, nullable=False)
	author_name = Column(String(128), nullable=False)
	subject = Column(String(128), index=True, nullable=False)
	tags_json = Column(Text, default="[]", nullable=False)
	# Statement markup (text, emphasis, <br>, sized <img> elements)
	statement = Column(Text, nullable=False)
	options_json = Column(Text, default="[]", nullable=False)
	correct_option = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=True)

	@property
	def tags(self) -> List[str]:
		return json.loads(self.tags_json or "[]")

	@tags.setter
	def tags(self, value: List[str]) -> None:
		self.tags_json = json.dumps(list(value or []), ensure_ascii=False)

	@property
	def options(self) -> List[str]:
		return json.loads(self.options_json or "[]")

	@options.setter
	def options(self, value: List[str]) -> None:
		self.options_json = json.dumps(list(value or []), ensure_ascii=False)


class StatementDraft(Base):
	__tablename__ = "statement_drafts"
	draft_id = Column(String(64), primary_key=True)
	user_id = Column(String(64), index=True, nullable=False)
	# Question being edited, if the draft was opened from one
	question_id = Column(Integer, nullable=True)
	markup = Column(Text, default="", nullable=False)
	selected_index = Column(Integer, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
