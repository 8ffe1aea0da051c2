import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tutorhub.config import settings
from tutorhub.db.database import init_db

logger = logging.getLogger(__name__)

# CORS: use CORS_ORIGINS (comma-separated) or local development defaults.
if settings.cors_origins:
    _allowed_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
else:
    _allowed_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("TutorHub started (env=%s, primary AI provider=%s)", settings.env, settings.ai_primary_provider)
    yield


app = FastAPI(title="TutorHub", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# Import and register routes
from tutorhub.routes.students import router as students_router
from tutorhub.routes.lessons import router as lessons_router
from tutorhub.routes.progress import router as progress_router
from tutorhub.routes.analysis import router as analysis_router
from tutorhub.routes.analytics import router as analytics_router
from tutorhub.routes.lesson_plans import router as lesson_plans_router

app.include_router(students_router)
app.include_router(lessons_router)
app.include_router(progress_router)
app.include_router(analysis_router)
app.include_router(analytics_router)
app.include_router(lesson_plans_router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
