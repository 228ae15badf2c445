import logging
from datetime import datetime
from typing import Dict, Any
from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware

# Import modular components
from config.settings import ALLOWED_ORIGINS
from database.supabase_client import get_supabase
from services.auth_service import verify_jwt_token
from routes.weekly_setups import router as weekly_setups_router
from routes.breaks import router as breaks_router
from routes.templates import router as templates_router
from routes.positions import router as positions_router


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize FastAPI
app = FastAPI(
    title="Setup Sheet API",
    description="Weekly position setup sheets: assignments, breaks and replacements",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ===== ROUTES =====
app.include_router(weekly_setups_router)
app.include_router(breaks_router)
app.include_router(templates_router)
app.include_router(positions_router)


@app.get("/")
async def root():
    return {
        "message": "Setup Sheet API v1.0",
        "status": "running"
    }

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    try:
        result = get_supabase().table('weekly_setups').select('id').limit(1).execute()
        db_status = "connected" if result.data is not None else "disconnected"

        return {
            "status": "healthy",
            "database": db_status,
            "timestamp": datetime.utcnow().isoformat()
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "error": str(e)
        }

@app.get("/auth/me")
async def get_current_user(current_user: Dict[str, Any] = Depends(verify_jwt_token)):
    """Get current authenticated user info"""
    return {
        "success": True,
        "user": current_user
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
