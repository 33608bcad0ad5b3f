import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from os import getenv

from app.routers.voting import router as voting_router
from app.dependencies.error_handlers import register_error_handlers

logging.basicConfig(
    level=getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Proposal Voting & Eligibility Engine")

# 전역 예외 핸들러 등록
register_error_handlers(app)

# CORS 설정
cors_origins = getenv("CORS_ORIGINS", "*")
if cors_origins == "*":
    origins = ["*"]
    allow_credentials = False
else:
    origins = [origin.strip() for origin in cors_origins.split(",")]
    allow_credentials = True

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health():
    return {"status": "ok"}


app.include_router(voting_router, prefix="/v1", tags=["voting"])
