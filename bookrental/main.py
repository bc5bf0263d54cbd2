import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import List

from fastapi import Depends, FastAPI, File, Form, Query, Request, Response, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from pymongo.errors import PyMongoError

from .auth import get_current_user_id, issue_token
from .config import PORT, REQUEST_TIMEOUT_SECONDS, UPLOAD_DIR
from .crud import (
    authenticate_user,
    create_book,
    create_user,
    list_books,
    rent_book,
    return_book,
)
from .exceptions import add_exception_handlers
from .migrations import run_migrations
from .models import BookModel, RentalModel
from .schemas import BookCreate, RentRequest, TokenResponse, UserCredentials
from .storage import close, connect, get_database
from .uploads import discard_upload, get_upload_dir, save_upload

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Keeps (page - 1) * limit well inside a BSON int64 skip.
MAX_PAGE = 1_000_000
MAX_PAGE_SIZE = 100


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.testing = app.state.testing if hasattr(app.state, "testing") else False
    os.makedirs(UPLOAD_DIR, exist_ok=True)

    if not app.state.testing:
        logger.info("Initializing database connection")
        try:
            app.state.mongo_client = await connect()
        except PyMongoError as e:
            logger.error(f"MongoDB connection error: {e}")
            raise
        app.state.db = get_database(app.state.mongo_client)
        await run_migrations(app.state.db)

    yield

    if not app.state.testing:
        logger.info("Closing database connection")
        await close(app.state.mongo_client)


app = FastAPI(
    title="Book Rental API",
    lifespan=lifespan,
    description="Register, log in, add books with covers and rent one book at a time",
    version="1.0.0",
)

add_exception_handlers(app)
app.mount("/uploads", StaticFiles(directory=UPLOAD_DIR, check_dir=False), name="uploads")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"request {request.method} {request.url.path}")
    try:
        async with asyncio.timeout(REQUEST_TIMEOUT_SECONDS):
            response = await call_next(request)
    except TimeoutError:
        logger.error(f"timeout handling {request.method} {request.url.path}")
        return JSONResponse(status_code=504, content={"detail": "Request timed out"})
    logger.info(
        f"response {request.method} {request.url.path} status {response.status_code}"
    )
    return response


def get_db():
    return app.state.db


@app.post("/register", response_class=PlainTextResponse)
async def register(user: UserCredentials, db=Depends(get_db)):
    await create_user(db, user)
    return "User registered"


@app.post("/login", response_model=TokenResponse)
async def login(credentials: UserCredentials, response: Response, db=Depends(get_db)):
    user = await authenticate_user(db, credentials)
    token = issue_token(user.id)
    response.headers["Authorization"] = token
    logger.info(f"Issued token for {user.username}")
    return TokenResponse(token=token)


@app.post("/books", response_model=BookModel)
async def add_book(
    title: str = Form(...),
    author: str = Form(...),
    cover: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
    upload_dir: str = Depends(get_upload_dir),
    db=Depends(get_db),
):
    cover_path = await save_upload(cover, upload_dir, field_name="cover")
    try:
        book = await create_book(
            db, BookCreate(title=title, author=author, cover_image=cover_path)
        )
    except Exception:
        discard_upload(cover_path)
        raise
    logger.info(f"Book {book.id} added by user {user_id}")
    return book


@app.get("/books", response_model=List[BookModel])
async def get_books(
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_db),
):
    return await list_books(db, page=page, limit=limit)


@app.post("/rent", response_model=RentalModel)
async def rent(
    rent_request: RentRequest,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_db),
):
    return await rent_book(db, user_id, rent_request.book_id)


@app.post("/return", response_class=PlainTextResponse)
async def return_rental(
    user_id: str = Depends(get_current_user_id), db=Depends(get_db)
):
    await return_book(db, user_id)
    return "Book returned"


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)
