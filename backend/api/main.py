# -*- coding: utf-8 -*-
"""
FastAPI Backend for Glossa

Bilingual glossary of technical terms: public search API,
admin-only term/category management and user roles.
"""
import json
from pathlib import Path
from typing import Optional, List, Dict, Any
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field
from loguru import logger
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import settings
from database import (
    init_db,
    close_db,
    check_connection,
    get_db,
    TermRepository,
    CategoryRepository,
    UserRepository,
    UserModel,
    UserRoleEnum,
)
from glossary.models import Term, Category, Difficulty, GlossaryValidationError, normalize_difficulty
from glossary import transfer
from glossary_store import glossary_store
from search import ALL, FilterState
from auth import AuthError, register_user, authenticate, require_user, require_admin
from chat_relay import chat_relay, ChatNotConfiguredError, ChatRelayError


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - handle startup and shutdown"""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} API...")

    await init_db()
    logger.info("Database initialized")

    # First load of the glossary snapshot
    if await glossary_store.reload():
        logger.info("Glossary loaded")
    else:
        logger.warning("Initial glossary load failed; serving an empty glossary")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME} API...")
    await close_db()
    logger.info("Shutdown complete")


# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)

# Initialize FastAPI app with lifespan
app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Bilingual glossary of technical terms",
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# Attach rate limiter to app
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,  # Configured via CORS_ORIGINS env var
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)


# === Pydantic Models ===

class TermResponse(BaseModel):
    """A glossary term as shown to readers"""
    id: str
    term: str
    czech_name: str
    description: str
    practical_example: str
    related_terms: List[str]
    difficulty: str
    difficulty_label: str
    category: str
    category_name: str
    ai_tip: Optional[str] = None
    tags: List[str]
    learn_more: Optional[str] = None


class TermListResponse(BaseModel):
    """Filtered term list"""
    terms: List[TermResponse]
    total: int
    filters: Dict[str, str]


class TermDetailResponse(BaseModel):
    """One term with its resolved related terms"""
    term: TermResponse
    related: List[TermResponse]


class CategoryResponse(BaseModel):
    """Category with display metadata"""
    id: str
    name: str
    description: str
    icon: str
    color: str
    term_count: int = 0


class DifficultyInfo(BaseModel):
    """Difficulty level"""
    id: str
    name: str
    label: str


class TermRequest(BaseModel):
    """Create a term (admin)"""
    id: Optional[str] = Field(None, description="Term ID; generated from the label when omitted")
    term: str = Field(..., description="English term")
    czech_name: str = Field(..., description="Czech name")
    description: str
    practical_example: str
    difficulty: str = Field(Difficulty.BEGINNER.value, description="🌱, 🚀, 🔥 or beginner/intermediate/advanced")
    category: str
    related_terms: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    ai_tip: Optional[str] = None
    learn_more: Optional[str] = None


class TermUpdateRequest(BaseModel):
    """Partial term update (admin); omitted fields stay unchanged"""
    term: Optional[str] = None
    czech_name: Optional[str] = None
    description: Optional[str] = None
    practical_example: Optional[str] = None
    difficulty: Optional[str] = None
    category: Optional[str] = None
    related_terms: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    ai_tip: Optional[str] = None
    learn_more: Optional[str] = None


class CategoryRequest(BaseModel):
    """Create or update a category (admin)"""
    id: Optional[str] = None
    name: str
    description: str = ""
    icon: str = ""
    color: str = ""


class RegisterRequest(BaseModel):
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: str
    email: str
    role: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class RoleUpdateRequest(BaseModel):
    role: str = Field(..., description="admin or reader")


class GlossaryImportRequest(BaseModel):
    """Request to import glossary data"""
    format: str = "json"  # json or csv
    data: str  # JSON string or CSV content


class GlossaryImportResponse(BaseModel):
    """Response for glossary import"""
    success: bool
    imported_count: int
    skipped_count: int = 0
    message: str
    errors: List[str] = Field(default_factory=list)


class ChatRequest(BaseModel):
    message: str
    session_id: Optional[str] = None


class ChatResponse(BaseModel):
    reply: str
    session_id: str


# === Helper Functions ===

REQUIRED_TEXT_FIELDS = ("term", "czech_name", "description", "practical_example")


def term_to_response(term: Term) -> TermResponse:
    """Convert a Term to TermResponse"""
    try:
        difficulty_label = Difficulty(term.difficulty).label
    except ValueError:
        difficulty_label = term.difficulty

    return TermResponse(
        **term.to_dict(),
        difficulty_label=difficulty_label,
        category_name=glossary_store.category_label(term.category),
    )


def category_to_response(category: Category) -> CategoryResponse:
    count = sum(1 for t in glossary_store.terms if t.category == category.id)
    return CategoryResponse(**category.to_dict(), term_count=count)


def _clean_tags(tags: List[str]) -> List[str]:
    cleaned = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


def clean_term_fields(fields: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Trim and validate admin form input.

    Raises:
        HTTPException(422): blank required fields, null or unknown difficulty
    """
    errors = {}
    cleaned = dict(fields)

    for name in REQUIRED_TEXT_FIELDS + ("category",):
        if name not in cleaned:
            continue
        value = (cleaned[name] or "").strip()
        if not value:
            errors[name] = f"{name} must not be empty"
        cleaned[name] = value

    for name in ("ai_tip", "learn_more"):
        if cleaned.get(name) is not None:
            cleaned[name] = cleaned[name].strip() or None

    for name in ("tags", "related_terms"):
        if name in cleaned:
            cleaned[name] = _clean_tags(cleaned[name] or [])

    if "difficulty" in cleaned and cleaned["difficulty"] is None:
        errors["difficulty"] = "difficulty must not be null"
    elif cleaned.get("difficulty") is not None:
        difficulty = normalize_difficulty(cleaned["difficulty"])
        if difficulty not in {d.value for d in Difficulty}:
            errors["difficulty"] = f"Unknown difficulty: {cleaned['difficulty']}"
        cleaned["difficulty"] = difficulty
    elif not partial:
        cleaned["difficulty"] = Difficulty.BEGINNER.value

    if errors:
        raise HTTPException(status_code=422, detail=errors)
    return cleaned


def user_to_response(user: UserModel) -> UserResponse:
    return UserResponse(**user.to_dict())


# === Public API ===

@app.get("/")
async def root():
    """Health check"""
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@app.get("/api/health")
async def health():
    """Database connectivity and glossary load status"""
    database_ok = await check_connection()
    return {
        "status": "ok" if database_ok else "degraded",
        "database": "ok" if database_ok else "error",
        "terms": len(glossary_store.terms),
        "glossary_version": glossary_store.version,
        "last_load_error": glossary_store.last_error,
    }


@app.get("/api/terms", response_model=TermListResponse)
async def list_terms(
    query: str = "",
    category: str = ALL,
    difficulty: str = ALL,
):
    """Search and filter terms"""
    state = FilterState(
        query=query,
        category=category or ALL,
        difficulty=normalize_difficulty(difficulty) or ALL,
    )
    terms = glossary_store.search(state)
    return TermListResponse(
        terms=[term_to_response(t) for t in terms],
        total=len(terms),
        filters=state.to_dict(),
    )


@app.get("/api/terms/{term_id}", response_model=TermDetailResponse)
async def get_term(term_id: str):
    """Get a term by ID (or by its English label) with related terms"""
    term = glossary_store.get_term(term_id)
    if term is None:
        raise HTTPException(status_code=404, detail="Term not found")

    return TermDetailResponse(
        term=term_to_response(term),
        related=[term_to_response(t) for t in glossary_store.related(term)],
    )


@app.get("/api/terms/{term_id}/related", response_model=List[TermResponse])
async def get_related_terms(term_id: str):
    """Resolved related terms of a term"""
    term = glossary_store.get_term(term_id)
    if term is None:
        raise HTTPException(status_code=404, detail="Term not found")
    return [term_to_response(t) for t in glossary_store.related(term)]


@app.get("/api/categories", response_model=List[CategoryResponse])
async def list_categories():
    """All categories"""
    return [category_to_response(c) for c in glossary_store.categories]


@app.get("/api/difficulties", response_model=List[DifficultyInfo])
async def list_difficulties():
    """Difficulty levels"""
    return [DifficultyInfo(id=d.value, name=d.word, label=d.label) for d in Difficulty]


@app.post("/api/chat", response_model=ChatResponse)
@limiter.limit("20/minute")
async def chat(request: Request, chat_request: ChatRequest):
    """Relay a message to the chat assistant"""
    if not chat_request.message.strip():
        raise HTTPException(status_code=400, detail="Message must not be empty")
    try:
        result = await chat_relay.send(chat_request.message, chat_request.session_id)
    except ChatNotConfiguredError:
        raise HTTPException(status_code=503, detail="Chat assistant is not configured")
    except ChatRelayError as e:
        raise HTTPException(status_code=502, detail=f"Chat assistant failed: {e}")
    return ChatResponse(**result)


# === Auth API ===

@app.post("/api/auth/register", response_model=UserResponse, status_code=201)
@limiter.limit("10/minute")
async def register(request: Request, register_request: RegisterRequest):
    """Create an account (reader role unless the email is the configured admin)"""
    try:
        user = await register_user(register_request.email, register_request.password)
    except AuthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return user_to_response(user)


@app.post("/api/auth/login", response_model=TokenResponse)
@limiter.limit("20/minute")
async def login(request: Request, login_request: LoginRequest):
    """Exchange credentials for a bearer token"""
    token = await authenticate(login_request.email, login_request.password)
    if token is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return TokenResponse(access_token=token)


@app.get("/api/auth/me", response_model=UserResponse)
async def me(user: UserModel = Depends(require_user)):
    """Current user profile"""
    return user_to_response(user)


# === Admin: Terms ===

@app.post("/api/admin/terms", response_model=TermResponse, status_code=201)
@limiter.limit("60/minute")
async def create_term(
    request: Request,
    term_request: TermRequest,
    admin: UserModel = Depends(require_admin),
):
    """Create a term"""
    fields = clean_term_fields(term_request.model_dump(exclude={"id"}))
    term_id = (term_request.id or "").strip() or None

    async with get_db() as session:
        repo = TermRepository(session)
        duplicate = term_id is not None and await repo.exists(term_id)
        if not duplicate:
            model = await repo.create(term_id=term_id, **fields)
            term = model.to_term()

    if duplicate:
        raise HTTPException(status_code=409, detail=f"Term already exists: {term_id}")

    logger.info(f"{admin.email} created term {term.id}")
    await glossary_store.reload()
    return term_to_response(term)


@app.put("/api/admin/terms/{term_id}", response_model=TermResponse)
@limiter.limit("60/minute")
async def update_term(
    request: Request,
    term_id: str,
    update_request: TermUpdateRequest,
    admin: UserModel = Depends(require_admin),
):
    """Update a term; only provided fields change"""
    fields = clean_term_fields(update_request.model_dump(exclude_unset=True), partial=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    async with get_db() as session:
        model = await TermRepository(session).update(term_id, **fields)
        term = model.to_term() if model else None

    if term is None:
        raise HTTPException(status_code=404, detail="Term not found")

    logger.info(f"{admin.email} updated term {term_id}: {list(fields.keys())}")
    await glossary_store.reload()
    return term_to_response(term)


@app.delete("/api/admin/terms/{term_id}")
@limiter.limit("60/minute")
async def delete_term(
    request: Request,
    term_id: str,
    admin: UserModel = Depends(require_admin),
):
    """Delete a term"""
    async with get_db() as session:
        deleted = await TermRepository(session).delete(term_id)

    if not deleted:
        raise HTTPException(status_code=404, detail="Term not found")

    logger.info(f"{admin.email} deleted term {term_id}")
    await glossary_store.reload()
    return {"success": True, "message": f"Deleted term: {term_id}"}


# === Admin: Categories ===

@app.post("/api/admin/categories", response_model=CategoryResponse, status_code=201)
@limiter.limit("60/minute")
async def create_category(
    request: Request,
    category_request: CategoryRequest,
    admin: UserModel = Depends(require_admin),
):
    """Create a category"""
    category_id = (category_request.id or "").strip()
    name = category_request.name.strip()
    if not category_id or not name:
        raise HTTPException(status_code=422, detail="Category id and name are required")

    async with get_db() as session:
        repo = CategoryRepository(session)
        duplicate = await repo.get(category_id) is not None
        if not duplicate:
            model = await repo.create(
                category_id=category_id,
                name=name,
                description=category_request.description,
                icon=category_request.icon,
                color=category_request.color,
            )
            category = model.to_category()

    if duplicate:
        raise HTTPException(status_code=409, detail=f"Category already exists: {category_id}")

    logger.info(f"{admin.email} created category {category_id}")
    await glossary_store.reload()
    return category_to_response(category)


@app.put("/api/admin/categories/{category_id}", response_model=CategoryResponse)
@limiter.limit("60/minute")
async def update_category(
    request: Request,
    category_id: str,
    category_request: CategoryRequest,
    admin: UserModel = Depends(require_admin),
):
    """Update a category's display metadata"""
    name = category_request.name.strip()
    if not name:
        raise HTTPException(status_code=422, detail="Category name is required")

    async with get_db() as session:
        model = await CategoryRepository(session).update(
            category_id,
            name=name,
            description=category_request.description,
            icon=category_request.icon,
            color=category_request.color,
        )
        category = model.to_category() if model else None

    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")

    logger.info(f"{admin.email} updated category {category_id}")
    await glossary_store.reload()
    return category_to_response(category)


@app.delete("/api/admin/categories/{category_id}")
@limiter.limit("60/minute")
async def delete_category(
    request: Request,
    category_id: str,
    admin: UserModel = Depends(require_admin),
):
    """Delete a category; its terms keep the raw category key"""
    async with get_db() as session:
        deleted = await CategoryRepository(session).delete(category_id)

    if not deleted:
        raise HTTPException(status_code=404, detail="Category not found")

    logger.info(f"{admin.email} deleted category {category_id}")
    await glossary_store.reload()
    return {"success": True, "message": f"Deleted category: {category_id}"}


# === Admin: Users ===

@app.get("/api/admin/users", response_model=List[UserResponse])
async def list_users(admin: UserModel = Depends(require_admin)):
    """All user profiles, newest first"""
    async with get_db() as session:
        users = await UserRepository(session).get_all()
    return [user_to_response(u) for u in users]


@app.put("/api/admin/users/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: str,
    role_request: RoleUpdateRequest,
    admin: UserModel = Depends(require_admin),
):
    """Change a user's role"""
    valid_roles = [r.value for r in UserRoleEnum]
    if role_request.role not in valid_roles:
        raise HTTPException(status_code=400, detail=f"Invalid role. Valid roles: {valid_roles}")

    async with get_db() as session:
        user = await UserRepository(session).update_role(user_id, role_request.role)

    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user_to_response(user)


# === Admin: Import / Export ===

@app.post("/api/admin/import", response_model=GlossaryImportResponse)
@limiter.limit("10/minute")
async def import_glossary(
    request: Request,
    import_request: GlossaryImportRequest,
    admin: UserModel = Depends(require_admin),
):
    """Import glossary data from JSON or CSV"""
    if import_request.format not in ("json", "csv"):
        raise HTTPException(status_code=400, detail=f"Unsupported format: {import_request.format}")

    try:
        async with get_db() as session:
            if import_request.format == "json":
                result = await transfer.import_json(session, json.loads(import_request.data))
            else:
                result = await transfer.import_csv(session, import_request.data)
    except (ValueError, GlossaryValidationError) as e:
        return GlossaryImportResponse(
            success=False,
            imported_count=0,
            message=f"Import failed: {str(e)}",
        )

    await glossary_store.reload()
    return GlossaryImportResponse(
        success=True,
        imported_count=result.imported_count,
        skipped_count=result.skipped,
        message=f"Successfully imported {result.terms} terms and {result.categories} categories",
        errors=result.errors,
    )


@app.get("/api/admin/export")
async def export_glossary(format: str = "json", admin: UserModel = Depends(require_admin)):
    """Export glossary as JSON or CSV"""
    if format not in ("json", "csv"):
        raise HTTPException(status_code=400, detail=f"Unsupported format: {format}")

    async with get_db() as session:
        if format == "json":
            return await transfer.export_json(session)
        csv_content = await transfer.export_csv(session)

    return PlainTextResponse(
        content=csv_content,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=glossary.csv"}
    )


# Run with: uvicorn api.main:app --reload
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )
