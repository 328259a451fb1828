"""
FastAPI dependencies.
"""
from fastapi import Request

from common.context import AppContext


def get_context(request: Request) -> AppContext:
    """The AppContext opened by the application lifespan."""
    return request.app.state.ctx
