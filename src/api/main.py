from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routes.transcribe import router as transcribe_router

app = FastAPI(
    title="Transcription API",
    description="Chunked speech-to-text for audio of any length",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
    ],
    allow_origin_regex=r"http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(transcribe_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
