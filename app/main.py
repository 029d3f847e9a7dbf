from fastapi import FastAPI
from app.api.error_handlers import register_error_handlers
from app.core.config import settings
from app.middleware.log_middleware import LogMiddleware

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

from fastapi.middleware.cors import CORSMiddleware

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LogMiddleware)

register_error_handlers(app)

@app.get("/")
async def root():
    return {"message": "Welcome to DoctorSewa API"}

from app.api.api import api_router
app.include_router(api_router, prefix=settings.API_V1_STR)
