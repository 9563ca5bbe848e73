import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sheetaudit.api.audits import router as audits_router
from sheetaudit.api.datasets import router as datasets_router
from sheetaudit.core.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

LOG = logging.getLogger("sheetaudit")
LOG.info("Starting SheetAudit with settings %s", settings.as_dict())

app = FastAPI(title="SheetAudit")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
async def root():
    return {"status": "ok", "message": "SheetAudit running"}


app.include_router(datasets_router)
app.include_router(audits_router)
