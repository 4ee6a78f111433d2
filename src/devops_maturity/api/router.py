"""Top-level API router.

All routes are thin: they validate inputs, resolve the caller's session,
check permissions, delegate to services and serialise responses.

API prefix: /api/v1
"""

from fastapi import APIRouter

from devops_maturity.api.routes import assessments, auth

router = APIRouter()
router.include_router(auth.router)
router.include_router(assessments.router)
