"""
Database module for Glossa
Provides SQL persistence for terms, categories and users
"""
from .models import Base, TermModel, CategoryModel, UserModel, UserRoleEnum
from .repository import TermRepository, CategoryRepository, UserRepository
from .connection import get_db, init_db, close_db, check_connection

__all__ = [
    "Base",
    "TermModel",
    "CategoryModel",
    "UserModel",
    "UserRoleEnum",
    "TermRepository",
    "CategoryRepository",
    "UserRepository",
    "get_db",
    "init_db",
    "close_db",
    "check_connection",
]
