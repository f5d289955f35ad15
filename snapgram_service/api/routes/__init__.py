from .auth import router as auth_router
from .users import router as users_router
from .posts import router as posts_router
from .comments import router as comments_router
from .communities import router as communities_router
from .notifications import router as notifications_router


__all__ = [
    # auth.py
    "auth_router",
    # users.py
    "users_router",
    # posts.py
    "posts_router",
    # comments.py
    "comments_router",
    # communities.py
    "communities_router",
    # notifications.py
    "notifications_router",
]
