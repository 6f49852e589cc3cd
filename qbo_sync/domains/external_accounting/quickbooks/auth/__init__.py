from .service import QuickBooksAuthService

__all__ = ["QuickBooksAuthService"]
