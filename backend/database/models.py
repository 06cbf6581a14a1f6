"""
Database Models for Glossa
SQLAlchemy models for persistent storage
"""
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, JSON
from sqlalchemy.orm import declarative_base
import enum

from glossary.models import Term, Category

Base = declarative_base()


class UserRoleEnum(str, enum.Enum):
    """User role enum"""
    ADMIN = "admin"
    READER = "reader"


class CategoryModel(Base):
    """Category persistence model"""
    __tablename__ = "categories"

    id = Column(String(64), primary_key=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, default="")
    icon = Column(String(50), default="")
    color = Column(String(50), default="")
    created_at = Column(DateTime, default=datetime.now)

    def to_dict(self) -> dict:
        """Convert to dictionary (storage row shape)"""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "color": self.color,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def to_category(self) -> Category:
        return Category.from_record(self.to_dict())


class TermModel(Base):
    """Term persistence model"""
    __tablename__ = "terms"

    id = Column(String(128), primary_key=True)
    term = Column(String(255), nullable=False, index=True)
    czech_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    practical_example = Column(Text, nullable=False)
    related_terms = Column(JSON, default=list)
    difficulty = Column(String(20), nullable=False, default="beginner")  # beginner, intermediate, advanced
    category = Column(String(64), nullable=False, index=True)
    ai_tip = Column(Text, nullable=True)
    tags = Column(JSON, default=list)
    learn_more = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    def to_dict(self) -> dict:
        """Convert to dictionary (storage row shape)"""
        return {
            "id": self.id,
            "term": self.term,
            "czech_name": self.czech_name,
            "description": self.description,
            "practical_example": self.practical_example,
            "related_terms": self.related_terms or [],
            "difficulty": self.difficulty,
            "category": self.category,
            "ai_tip": self.ai_tip,
            "tags": self.tags or [],
            "learn_more": self.learn_more,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_term(self) -> Term:
        """Convert the row to a domain Term (difficulty becomes emoji)"""
        return Term.from_record(self.to_dict())


class UserModel(Base):
    """User profile with role"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRoleEnum.READER.value)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRoleEnum.ADMIN.value

    def to_dict(self) -> dict:
        """Convert to dictionary for API response (no password hash)"""
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
