import uvicorn

from gymdesk.app import app
from gymdesk.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "gymdesk.app:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
    )
