"""Route handlers for the Web API."""

from skillforge.web.routes.health import router as health_router
from skillforge.web.routes.contents import router as contents_router
from skillforge.web.routes.users import router as users_router
from skillforge.web.routes.chat import router as chat_router
from skillforge.web.routes.ai import router as ai_router
from skillforge.web.routes.planner import router as planner_router

__all__ = [
    "health_router",
    "contents_router",
    "users_router",
    "chat_router",
    "ai_router",
    "planner_router",
]
