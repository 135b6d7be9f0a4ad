import os

# Serverless hosts cannot run the background refresh job
os.environ.setdefault("DASHBOARD_REFRESH_MINUTES", "0")

from mangum import Mangum  # noqa: E402

from app.main import app  # noqa: E402


@app.get("/health")
def health():
    return {
        "message": "Maintenance Indent Tracker running on Vercel 🚀",
        "sheet_configured": bool(os.getenv("SHEET_ID")),
    }


# Mangum adapts FastAPI (ASGI) to serverless environments
handler = Mangum(app)
