import logging
import bcrypt
import jwt
import aiosqlite
from datetime import datetime, timedelta, timezone
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, field_validator
from app.db.database import get_db
from app.config import settings
from app.middleware.rate_limit import auth_limiter
from app.services import account_request_actions as actions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

JWT_ALGORITHM = "HS256"
JWT_EXPIRY_HOURS = 72

# Password policy
MIN_PASSWORD_LENGTH = 8


def _get_client_ip(request: Request) -> str:
    """Extract client IP from request (handles proxies)."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _check_rate_limit(request: Request) -> None:
    """Check rate limit and raise 429 if exceeded."""
    ip = _get_client_ip(request)
    if not auth_limiter.is_allowed(ip):
        retry_after = auth_limiter.get_retry_after(ip)
        raise HTTPException(
            status_code=429,
            detail=f"Too many attempts. Try again in {retry_after} seconds.",
            headers={"Retry-After": str(retry_after)} if retry_after else {},
        )


class LoginRequest(BaseModel):
    email: str
    password: str


class InstructorRegisterRequest(BaseModel):
    registration_key: str
    password: str

    @field_validator("password")
    @classmethod
    def password_min_length(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return v


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


def create_token(user_id: int, email: str, role: str = "instructor") -> str:
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(hours=JWT_EXPIRY_HOURS),
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


async def get_current_user(request: Request, db: aiosqlite.Connection) -> dict:
    """Extract and validate the current user from the JWT token."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")

    token = auth_header.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Empty token")

    payload = decode_token(token)
    user_id = int(payload["sub"])

    cursor = await db.execute(
        "SELECT id, name, email, role, institute FROM users WHERE id = ?",
        (user_id,),
    )
    user = await cursor.fetchone()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return {
        "id": user["id"],
        "name": user["name"],
        "email": user["email"],
        "role": user["role"] or "instructor",
        "institute": user["institute"],
    }


def require_role(*allowed_roles: str):
    """Return a checker that the user has one of the allowed roles.

    Usage in a route:
        user = await require_role("admin")(request, db)
    """
    async def _check(request: Request, db: aiosqlite.Connection) -> dict:
        user = await get_current_user(request, db)
        if user["role"] not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Access denied. Required role: {', '.join(allowed_roles)}",
            )
        return user
    return _check


@router.post("/login")
async def login(body: LoginRequest, request: Request, db=Depends(get_db)):
    _check_rate_limit(request)

    cursor = await db.execute(
        "SELECT id, name, email, password_hash, role FROM users WHERE email = ?",
        (body.email.lower(),),
    )
    user = await cursor.fetchone()
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user["password_hash"]:
        raise HTTPException(status_code=401, detail="Account has no password. Please register or contact admin.")

    if not verify_password(body.password, user["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    role = user["role"] or "instructor"
    token = create_token(user["id"], user["email"], role)

    return {
        "token": token,
        "user_id": user["id"],
        "name": user["name"],
        "email": user["email"],
        "role": role,
    }


@router.get("/me")
async def get_me(request: Request, db=Depends(get_db)):
    user = await get_current_user(request, db)
    return user


# ── Instructor Registration via Account Request ─────────────────────

@router.post("/instructor/register")
async def instructor_register(body: InstructorRegisterRequest, request: Request, db=Depends(get_db)):
    """Register as an instructor using the key mailed when the request was approved.

    The account request must be APPROVED. On success it becomes REGISTERED and
    records the registration time.
    """
    _check_rate_limit(request)

    pw_hash = hash_password(body.password)
    account_request, user_id = await actions.register_instructor(db, body.registration_key, pw_hash)

    email = account_request.email.lower()
    token = create_token(user_id, email, "instructor")

    return {
        "token": token,
        "user_id": user_id,
        "name": account_request.name,
        "email": email,
        "role": "instructor",
    }
