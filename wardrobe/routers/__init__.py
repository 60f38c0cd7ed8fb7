from .auth import router as auth_router
from .items import router as items_router
from .outfits import router as outfits_router
from .suggestions import router as suggestions_router

__all__ = ["auth_router", "items_router", "outfits_router", "suggestions_router"]
