import os
import logfire

from dotenv import load_dotenv

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from contextlib import asynccontextmanager

from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

from models.users import User
from models.subscriptions import Subscription
from models.videos import Video

from routers import auth, users
from security.helpers import get_settings
from services.results import InternalServiceError
from utils.logger import instrument_libraries


# Load environment variables first
load_dotenv()

# Configure logfire BEFORE creating FastAPI app
logfire.configure(token=os.getenv("LOGFIRE_WRITE_TOKEN"), send_to_logfire="if-token-present")

@asynccontextmanager
async def lifespan(app: FastAPI):
    logfire.info("Starting ChannelHub application...")
    instrument_libraries()

    # * Fail fast on missing or reused signing secrets
    get_settings()

    client = AsyncIOMotorClient(
        os.getenv("DATABASE_CONNECTION_STRING")
    )  # * Connect to MongoDB

    await init_beanie(
        database=client[os.getenv("DATABASE_NAME", "channelhub")],
        document_models=[User, Subscription, Video],
    )
    logfire.info("Database initialized successfully")

    yield

    logfire.info("Shutting down ChannelHub application...")
    client.close()
    logfire.info("Application shutdown complete")


app = FastAPI(
    title="ChannelHub API",
    description="User identity, session tokens and channel views for a video sharing platform.",
    lifespan=lifespan,
)


@app.exception_handler(InternalServiceError)
async def internal_service_error_handler(request: Request, exc: InternalServiceError):
    logfire.error(f"Internal error on {request.method} {request.url.path}: {exc.__cause__!r}")
    return exc.to_response()


app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["127.0.0.1"])
app.add_middleware(GZipMiddleware, minimum_size=500)

app.include_router(auth.router)
app.include_router(users.router)
