# API service - FastAPI application over the matcher, generator and records services

from api.deps import Services
from api.main import create_app

__all__ = ["Services", "create_app"]
