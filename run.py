"""
Run the AdPulse API server
"""
import uvicorn
from adpulse.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "adpulse.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
    )
