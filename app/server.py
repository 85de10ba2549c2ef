from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from app.config import settings
from app.db.database import init_db
from app.errors import register_error_handlers
from app.middleware.auth import AuthMiddleware

# CORS: use CORS_ORIGINS setting (comma-separated) or sensible defaults.
if settings.cors_origins:
    _allowed_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
else:
    _allowed_origins = [
        "http://localhost:8000",
        "http://127.0.0.1:8000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


app = FastAPI(title="PeerFeedback Account Requests", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)
app.add_middleware(AuthMiddleware)
register_error_handlers(app)

# Import and register routes
from app.routes.auth import router as auth_router
from app.routes.account_requests import router as account_requests_router

app.include_router(auth_router)
app.include_router(account_requests_router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
