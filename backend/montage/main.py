from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import time

from montage import __version__
from montage.api import endpoints

app = FastAPI(
    title="Montage Render Service",
    description="Applies edit plans (cuts, effects, overlays, captions) to videos",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

# Add middleware for timing requests
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],  # Frontend URL
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include the API router
app.include_router(endpoints.router, prefix="/api/v1", tags=["Render"])

@app.get("/")
async def root():
    return {"message": "Montage render service"}

@app.get("/health")
async def health_check():
    return {"status": "ok"}
