from app.middleware.auth import BasicAuthMiddleware, get_current_username

__all__ = ["BasicAuthMiddleware", "get_current_username"]
