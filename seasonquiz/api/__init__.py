"""API route package: imports all routers for main.py."""

from seasonquiz.api.health import router as health_router  # noqa: F401
from seasonquiz.api.users import router as users_router  # noqa: F401
from seasonquiz.api.seasons import router as seasons_router  # noqa: F401
from seasonquiz.api.attempts import router as attempts_router  # noqa: F401
from seasonquiz.api.progress import router as progress_router  # noqa: F401
from seasonquiz.api.admin import router as admin_router  # noqa: F401
