"""
Page Object Models for Playwright E2E Tests

This package provides page objects that encapsulate UI interactions
and provide a clean API for step definitions.
"""

from .base_page import BasePage
from .connections_page import ConnectionsPage
from .destination_page import DestinationPage, DestinationSetupError
from .login_page import LoginPage, LoginResult, LoginState
from .source_page import SourcePage

__all__ = [
    "BasePage",
    "LoginPage",
    "LoginResult",
    "LoginState",
    "ConnectionsPage",
    "SourcePage",
    "DestinationPage",
    "DestinationSetupError",
]
