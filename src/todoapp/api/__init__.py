"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. `authorize` verifies the Bearer token and then
evaluates the policy table entry for the matched route, so every
protected handler runs only after both gates pass. Health and auth
routers are open.
"""

from fastapi import APIRouter, Depends

from todoapp.api.auth import router as auth_router
from todoapp.api.health import router as health_router
from todoapp.api.todos import router as todos_router
from todoapp.api.users import router as users_router
from todoapp.auth.dependencies import authorize

# All protected routers go through the policy gate
_auth = [Depends(authorize)]

api_router = APIRouter(prefix="/api")

# Open routes: no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes: require a valid JWT plus the route's capability
api_router.include_router(todos_router, tags=["todos"], dependencies=_auth)
api_router.include_router(users_router, tags=["users"], dependencies=_auth)
