import sys
import os
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
from modules.shared.db import init_db, close_db
from modules.shared.seed import seed_data
from modules.shared.schema import create_tables
from modules.auth.router import router as auth_router
from modules.dashboard.router import router as dashboard_router
from modules.emergency.router import router as emergency_router
from modules.map.router import router as map_router
from modules.notifications.router import router as notifications_router
from modules.users.router import router as users_router

load_dotenv()

app = FastAPI(title="Emergency Response Admin API")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/api/auth")
app.include_router(dashboard_router, prefix="/api/dashboard")
app.include_router(emergency_router, prefix="/api/emergency")
app.include_router(map_router, prefix="/api/map")
app.include_router(notifications_router, prefix="/api/notifications")
app.include_router(users_router, prefix="/api/users")

@app.on_event("startup")
async def startup_event():
    """Initialize database tables and seed data on startup"""
    await init_db()
    await create_tables()
    await seed_data()

@app.on_event("shutdown")
async def shutdown_event():
    await close_db()

def run():
    import uvicorn
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))

if __name__ == "__main__":
    run()
