"""InstaCares notifications FastAPI application.

Sends notifications over HTTP, exposes delivery history, stats and
escalations, and receives Twilio/Resend delivery receipts.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - unset / "test" → memory database
#   - "production"   → PostgreSQL (DATABASE_URL)
# Events are processed synchronously in both, so projectors run in the request.
from instacares_notify.api.app import create_app  # noqa: E402
from instacares_notify.domain import notify  # noqa: E402

notify.init()

app = create_app()
