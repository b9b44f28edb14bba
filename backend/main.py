import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trip_planner.api.routes_generate import router as generate_router
from trip_planner.api.routes_places import router as places_router
from trip_planner.api.routes_trips import router as trips_router
from trip_planner.api.routes_planner import router as planner_router

from trip_planner.core.config_loader import settings


app = FastAPI(
    title="Trip Planner",
    description="Day-by-day trip planner: AI-proposed plans over a place catalog, editable and saved per user",
    version="1.0.0"
)

# -------------------------------------------------------------
# CORS
# -------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # update to frontend domain in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------------------------------------------------------------
# ROUTES
# -------------------------------------------------------------
app.include_router(generate_router)
app.include_router(places_router)
app.include_router(trips_router)
app.include_router(planner_router)


# -------------------------------------------------------------
# ROOT ENDPOINT
# -------------------------------------------------------------
@app.get("/")
def root():
    return {
        "status": "ok",
        "message": "Trip planner backend is running",
        "env": settings.environment
    }


# -------------------------------------------------------------
# RUN LOCAL
# -------------------------------------------------------------
if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
