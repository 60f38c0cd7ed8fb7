# main.py – Wardrobe Catalog API
"""
Entry point for the wardrobe catalog backend.

Features:
- Auth (signup/login with JWT, token also set as an http-only cookie)
- Wardrobe items: upload photo -> PhotoRoom background removal -> Cloudinary -> Mongo
- Bulk import of items from a spreadsheet of image URLs
- Browse/filter items, save outfits built from items
- AI outfit suggestions and wardrobe analytics via OpenRouter (failover across API keys)

Run locally with ``python main.py`` or ``uvicorn main:app``.
"""

from wardrobe.app import create_app
from wardrobe.config import load_settings

settings = load_settings()
app = create_app(settings)

# ------------------ LOCAL RUN ------------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.environment != "production")
