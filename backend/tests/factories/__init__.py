# backend/tests/factories/__init__.py

"""
Shared test factories for the canteen backend.

The root conftest binds every factory to the current test's session.
"""

from .base import BaseFactory, bind_session
from .auth import UserFactory, AdminUserFactory
from .menu import MenuItemFactory

ALL_FACTORIES = (UserFactory, AdminUserFactory, MenuItemFactory)

__all__ = [
    # Base
    'BaseFactory',
    'bind_session',
    'ALL_FACTORIES',

    # Auth
    'UserFactory',
    'AdminUserFactory',

    # Menu
    'MenuItemFactory',
]
