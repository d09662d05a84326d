from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..models import AuthUser, AuthSession, ROLE_COORDINATOR, ROLE_TEACHER

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)
logging.getLogger('passlib').setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class User(BaseModel):
	id: str
	name: str
	email: str
	role: str

	@property
	def is_coordinator(self) -> bool:
		return self.role == ROLE_COORDINATOR


def _to_user(row: AuthUser) -> User:
	return User(id=row.id, name=row.name, email=row.email, role=row.role)


def hash_password(password: str) -> str:
	# bcrypt only looks at the first 72 bytes
	password_bytes = password.encode('utf-8')
	if len(password_bytes) > 72:
		password_bytes = password_bytes[:72]
	return pwd_context.hash(password_bytes.decode('utf-8', errors='ignore'))


def verify_password(plain_password: str, hashed_password: str) -> bool:
	password_bytes = plain_password.encode('utf-8')[:72]
	try:
		return pwd_context.verify(password_bytes.decode('utf-8', errors='ignore'), hashed_password)
	except ValueError:
		# accounts added without a password carry an unusable hash
		return False


def _ensure_seed_user(db: Session) -> None:
	email = (settings.seed_email or "").strip().lower()
	password = settings.seed_password_plain
	if not email or not password:
		return
	if db.query(AuthUser).filter(AuthUser.email == email).first():
		return
	row = AuthUser(
		id=uuid.uuid4().hex,
		name=settings.seed_name or email.split("@")[0],
		email=email,
		password_hash=hash_password(password),
		role=ROLE_COORDINATOR,
	)
	db.add(row)
	db.commit()
	logger.info("Created seed coordinator %s", email)


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
	email = (email or "").strip().lower()
	_ensure_seed_user(db)
	row = db.query(AuthUser).filter(AuthUser.email == email).first()
	if row and verify_password(password, row.password_hash):
		return _to_user(row)
	return None


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = settings.access_token_expire_minutes
		delta = timedelta(minutes=minutes) if minutes > 0 else timedelta(days=30)
	return datetime.now(timezone.utc) + delta


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	to_encode.update({"exp": _resolve_expiry(expires_delta)})
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


@router.post("/token", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	# OAuth2 form: the username field carries the e-mail
	user = authenticate_user(db, form_data.username, form_data.password)
	if not user:
		raise HTTPException(status_code=401, detail="Incorrect e-mail or password")
	session_id = uuid.uuid4().hex
	access_token = create_access_token({"sub": user.id, "jti": session_id})
	try:
		db.add(AuthSession(session_id=session_id, user_id=user.id))
		db.commit()
	except Exception:
		db.rollback()
		raise
	return Token(access_token=access_token)


def _decode(token: str) -> tuple[str, str]:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		raise credentials_exception
	user_id: str | None = payload.get("sub")
	jti: str | None = payload.get("jti")
	if user_id is None or jti is None:
		raise credentials_exception
	return user_id, jti


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	user_id, jti = _decode(token)
	# The session row must still exist; deleting it revokes the token
	session_row = db.get(AuthSession, jti)
	if not session_row or session_row.user_id != user_id:
		raise credentials_exception
	row = db.get(AuthUser, user_id)
	if row is None:
		raise credentials_exception
	session_row.last_activity_at = datetime.utcnow()
	db.add(session_row)
	db.commit()
	return _to_user(row)


def require_coordinator(user: User = Depends(get_current_user)) -> User:
	if not user.is_coordinator:
		raise HTTPException(status_code=403, detail="coordinator role required")
	return user


@router.get("/me", response_model=User)
async def me(user: User = Depends(get_current_user)):
	return user


@router.post("/logout")
async def logout(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
	_, jti = _decode(token)
	row = db.get(AuthSession, jti)
	if row:
		db.delete(row)
		db.commit()
	return {"ok": True}


class RegisterRequest(BaseModel):
	name: str
	email: str
	password: str


def validate_account_fields(name: str, email: str) -> tuple[str, str]:
	name = (name or "").strip()
	email = (email or "").strip().lower()
	if not name or not email:
		raise HTTPException(status_code=400, detail="name and email are required")
	if "@" not in email or len(email) > 256:
		raise HTTPException(status_code=400, detail="invalid e-mail address")
	if len(name) > 128:
		raise HTTPException(status_code=400, detail="name must be at most 128 characters")
	return name, email


@router.post("/register", status_code=201, response_model=User)
async def register(req: RegisterRequest, db: Session = Depends(get_db)):
	name, email = validate_account_fields(req.name, req.email)
	password = req.password or ""
	if len(password) < 6:
		raise HTTPException(status_code=400, detail="password must be at least 6 characters")
	existing = db.query(AuthUser).filter(AuthUser.email == email).first()
	if existing:
		raise HTTPException(status_code=409, detail="e-mail already registered")
	row = AuthUser(id=uuid.uuid4().hex, name=name, email=email, password_hash=hash_password(password), role=ROLE_TEACHER)
	db.add(row)
	db.commit()
	return _to_user(row)
