"""FastAPI dependencies."""

from fastapi import Request

from crosswap.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    """The ServiceContainer created in the app lifespan."""
    return request.app.state.container
