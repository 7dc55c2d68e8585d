from commentboard.web.routers.attachments import router as attachments_router
from commentboard.web.routers.comments import router as comments_router
from commentboard.web.routers.metadata import router as metadata_router

__all__ = [
    "attachments_router",
    "comments_router",
    "metadata_router",
]
