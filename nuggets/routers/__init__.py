"""API routers organized by responsibility.

- tags: create-or-resolve tag identities
- diagnostics: read-only URL extraction and duplicate reports
- articles: normalization pipeline and pre-save validation
"""

from fastapi import APIRouter

from nuggets.routers import articles, diagnostics, tags

router = APIRouter(responses={404: {"description": "Not found"}})

router.include_router(tags.router)
router.include_router(diagnostics.router)
router.include_router(articles.router)

__all__ = ["router"]
