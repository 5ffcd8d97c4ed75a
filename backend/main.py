# backend/main.py
import asyncio
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

load_dotenv()

from config import settings
from database import init_db
from utils.logging_config import setup_logging
from utils.scheduled_tasks import start_background_tasks
from utils.uploads import upload_dir

# Routers
from routes.auth import router as auth_router
from routes.users import router as users_router
from routes.products import router as products_router
from routes.cart import router as cart_router
from routes.orders import router as orders_router
from routes.notifications import router as notifications_router
from routes.reviews import router as reviews_router
from routes.audit import router as audit_router

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    tasks = start_background_tasks()
    logger.info("Brick Shop API started")
    yield
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    logger.info("Brick Shop API stopped")


app = FastAPI(title="Brick Shop API", version="1.0.0", lifespan=lifespan)

# Uploaded images are served from the local upload directory
app.mount("/uploads", StaticFiles(directory=str(upload_dir())), name="uploads")

# CORS Configuration
origins = ["http://localhost:8081", "http://127.0.0.1:8081"]
if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Malformed input is a client error with a single message, like every other 400
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path", "form"))
    message = first.get("msg", "Invalid request")
    detail = f"{field}: {message}" if field else message
    logger.info("Rejected %s %s: %s", request.method, request.url.path, detail)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})


# Router registration
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(products_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(notifications_router)
app.include_router(reviews_router)
app.include_router(audit_router)


@app.get("/")
def read_root():
    return {"message": "Brick Shop API is running"}
