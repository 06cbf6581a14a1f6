"""Utilities Package"""
from .encryption import (
    issue_token,
    read_token,
    hash_password,
    verify_password,
)

__all__ = [
    "issue_token",
    "read_token",
    "hash_password",
    "verify_password",
]
