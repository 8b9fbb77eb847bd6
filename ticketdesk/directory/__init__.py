"""Customers, users, groups and ticket master data."""

from .models import Actor, Customer, MasterDataEntry, User, UserGroup, UserRole
from .repository import DirectoryRepository

__all__ = [
    "Actor",
    "Customer",
    "DirectoryRepository",
    "MasterDataEntry",
    "User",
    "UserGroup",
    "UserRole",
]
