"""Dependency injection for FastAPI endpoints"""

from datetime import date
from fastapi import Request
from installment_planner.config import Settings, settings


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_settings() -> Settings:
    return settings


def get_today() -> date:
    """Current date, overridable in tests"""
    return date.today()
