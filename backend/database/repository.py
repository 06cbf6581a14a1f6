"""
Repository classes for database operations
Provides CRUD operations for terms, categories and users
"""
import re
import unicodedata
from datetime import datetime
from typing import Optional, List
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from .models import TermModel, CategoryModel, UserModel, UserRoleEnum
from glossary.models import difficulty_to_storage

TERM_FIELDS = (
    "term",
    "czech_name",
    "description",
    "practical_example",
    "related_terms",
    "difficulty",
    "category",
    "ai_tip",
    "tags",
    "learn_more",
)

CATEGORY_FIELDS = ("name", "description", "icon", "color")


def slugify(value: str) -> str:
    """Build a URL-friendly id from a term label"""
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^a-zA-Z0-9]+", "-", value).strip("-").lower()
    return value or "term"


class TermRepository:
    """Repository for term CRUD operations"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, term_id: str) -> Optional[TermModel]:
        """Get term by ID"""
        stmt = select(TermModel).where(TermModel.id == term_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_all(self) -> List[TermModel]:
        """Get all terms ordered by label"""
        stmt = select(TermModel).order_by(TermModel.term, TermModel.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def exists(self, term_id: str) -> bool:
        """Check if a term exists"""
        return await self.get(term_id) is not None

    async def generate_id(self, label: str) -> str:
        """Slug of the label, with a numeric suffix when taken"""
        base = slugify(label)
        candidate = base
        suffix = 2
        while await self.exists(candidate):
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    async def create(
        self,
        term: str,
        czech_name: str,
        description: str,
        practical_example: str,
        difficulty: str,
        category: str,
        related_terms: List[str] = None,
        tags: List[str] = None,
        ai_tip: Optional[str] = None,
        learn_more: Optional[str] = None,
        term_id: Optional[str] = None,
    ) -> TermModel:
        """Create a new term; difficulty may be emoji or storage word"""
        if not term_id:
            term_id = await self.generate_id(term)

        model = TermModel(
            id=term_id,
            term=term,
            czech_name=czech_name,
            description=description,
            practical_example=practical_example,
            related_terms=related_terms or [],
            difficulty=difficulty_to_storage(difficulty),
            category=category,
            ai_tip=ai_tip,
            tags=tags or [],
            learn_more=learn_more,
            created_at=datetime.now(),
            updated_at=datetime.now(),
        )

        self.session.add(model)
        await self.session.flush()
        logger.info(f"Created term: {term_id}")
        return model

    async def update(self, term_id: str, **kwargs) -> Optional[TermModel]:
        """Update term fields; unknown keys are ignored"""
        model = await self.get(term_id)
        if not model:
            return None

        updates = {k: v for k, v in kwargs.items() if k in TERM_FIELDS}
        if "difficulty" in updates and updates["difficulty"] is not None:
            updates["difficulty"] = difficulty_to_storage(updates["difficulty"])

        for key, value in updates.items():
            setattr(model, key, value)
        model.updated_at = datetime.now()

        await self.session.flush()
        logger.debug(f"Updated term {term_id}: {list(updates.keys())}")
        return model

    async def upsert(self, term_id: str, **kwargs) -> TermModel:
        """Create the term or overwrite the given fields of an existing one"""
        existing = await self.get(term_id)
        if existing:
            return await self.update(term_id, **kwargs)
        return await self.create(term_id=term_id, **kwargs)

    async def delete(self, term_id: str) -> bool:
        """Delete a term"""
        stmt = delete(TermModel).where(TermModel.id == term_id)
        result = await self.session.execute(stmt)
        if result.rowcount > 0:
            logger.info(f"Deleted term: {term_id}")
            return True
        return False


class CategoryRepository:
    """Repository for category CRUD operations"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, category_id: str) -> Optional[CategoryModel]:
        """Get category by ID"""
        stmt = select(CategoryModel).where(CategoryModel.id == category_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_all(self) -> List[CategoryModel]:
        """Get all categories ordered by name"""
        stmt = select(CategoryModel).order_by(CategoryModel.name)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(
        self,
        category_id: str,
        name: str,
        description: str = "",
        icon: str = "",
        color: str = "",
    ) -> CategoryModel:
        """Create a new category"""
        model = CategoryModel(
            id=category_id,
            name=name,
            description=description,
            icon=icon,
            color=color,
            created_at=datetime.now(),
        )
        self.session.add(model)
        await self.session.flush()
        logger.info(f"Created category: {category_id}")
        return model

    async def update(self, category_id: str, **kwargs) -> Optional[CategoryModel]:
        """Update category fields"""
        model = await self.get(category_id)
        if not model:
            return None

        for key, value in kwargs.items():
            if key in CATEGORY_FIELDS:
                setattr(model, key, value)

        await self.session.flush()
        logger.debug(f"Updated category {category_id}: {list(kwargs.keys())}")
        return model

    async def upsert(self, category_id: str, **kwargs) -> CategoryModel:
        """Create the category or overwrite an existing one"""
        existing = await self.get(category_id)
        if existing:
            return await self.update(category_id, **kwargs)
        return await self.create(category_id=category_id, **kwargs)

    async def delete(self, category_id: str) -> bool:
        """Delete a category (terms keep their category key)"""
        stmt = delete(CategoryModel).where(CategoryModel.id == category_id)
        result = await self.session.execute(stmt)
        if result.rowcount > 0:
            logger.info(f"Deleted category: {category_id}")
            return True
        return False


class UserRepository:
    """Repository for user profiles and roles"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: str) -> Optional[UserModel]:
        stmt = select(UserModel).where(UserModel.id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        stmt = select(UserModel).where(UserModel.email == email.lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_all(self) -> List[UserModel]:
        """Get all users, newest first"""
        stmt = select(UserModel).order_by(UserModel.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(
        self,
        user_id: str,
        email: str,
        password_hash: str,
        role: str = UserRoleEnum.READER.value,
    ) -> UserModel:
        """Create a user"""
        user = UserModel(
            id=user_id,
            email=email.lower(),
            password_hash=password_hash,
            role=role,
            created_at=datetime.now(),
            updated_at=datetime.now(),
        )
        self.session.add(user)
        await self.session.flush()
        logger.info(f"Created user {user.email} with role {role}")
        return user

    async def update_role(self, user_id: str, role: str) -> Optional[UserModel]:
        """Change a user's role"""
        user = await self.get(user_id)
        if not user:
            return None
        user.role = role
        user.updated_at = datetime.now()
        await self.session.flush()
        logger.info(f"Changed role of {user.email} to {role}")
        return user

