from datetime import datetime, timezone
import logging
from typing import List, Optional

from bson import ObjectId
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from .auth import check_password, hash_password
from .exceptions import (
    AlreadyRentingError,
    BookUnavailableError,
    DatabaseError,
    InvalidCredentialsError,
    NoActiveRentalError,
    UsernameTakenError,
)
from .models import BookModel, RentalModel, UserModel
from .schemas import BookCreate, UserCredentials

logger = logging.getLogger(__name__)


async def create_user(db, user: UserCredentials) -> UserModel:
    record = {"username": user.username, "password_hash": hash_password(user.password)}
    try:
        result = await db.users.insert_one(record)
    except DuplicateKeyError:
        raise UsernameTakenError(user.username)
    except PyMongoError as e:
        raise DatabaseError("register", str(e))
    logger.info(f"Registered user {user.username}")
    return UserModel(**{**record, "_id": result.inserted_id})


async def authenticate_user(db, credentials: UserCredentials) -> UserModel:
    try:
        record = await db.users.find_one({"username": credentials.username})
    except PyMongoError as e:
        raise DatabaseError("login", str(e))
    if record is None or not check_password(credentials.password, record["password_hash"]):
        raise InvalidCredentialsError()
    return UserModel(**record)


async def create_book(db, book: BookCreate) -> BookModel:
    record = {**book.model_dump(), "is_rented": False}
    try:
        result = await db.books.insert_one(record)
    except PyMongoError as e:
        raise DatabaseError("add book", str(e))
    return BookModel(**{**record, "_id": result.inserted_id})


async def list_books(db, page: int = 1, limit: int = 10) -> List[BookModel]:
    try:
        cursor = (
            db.books.find()
            .sort("_id", ASCENDING)
            .skip((page - 1) * limit)
            .limit(limit)
        )
        return [BookModel(**book) async for book in cursor]
    except PyMongoError as e:
        raise DatabaseError("list books", str(e))


async def get_active_rental(db, user_id: str) -> Optional[RentalModel]:
    try:
        rental = await db.rentals.find_one({"user_id": ObjectId(user_id)})
    except PyMongoError as e:
        raise DatabaseError("get rental", str(e))
    if rental:
        return RentalModel(**rental)
    return None


async def release_book(db, book_oid: ObjectId):
    """Undo a rent's flag flip, leaving the book as it was before the call."""
    try:
        await db.books.update_one(
            {"_id": book_oid, "is_rented": True},
            {"$set": {"is_rented": False}},
        )
    except PyMongoError as e:
        logger.error(f"Could not release book {book_oid}: {e}")


async def rent_book(db, user_id: str, book_id: str) -> RentalModel:
    if not ObjectId.is_valid(book_id):
        raise BookUnavailableError(book_id)
    user_oid = ObjectId(user_id)
    book_oid = ObjectId(book_id)

    if await get_active_rental(db, user_id):
        raise AlreadyRentingError(user_id)

    try:
        # Only one caller can flip the flag from False to True.
        book = await db.books.find_one_and_update(
            {"_id": book_oid, "is_rented": False},
            {"$set": {"is_rented": True}},
        )
    except PyMongoError as e:
        raise DatabaseError("rent", str(e))
    if book is None:
        raise BookUnavailableError(book_id)

    rental = {
        "user_id": user_oid,
        "book_id": book_oid,
        "rented_at": datetime.now(timezone.utc),
    }
    try:
        result = await db.rentals.insert_one(rental)
    except DuplicateKeyError:
        await release_book(db, book_oid)
        if await get_active_rental(db, user_id):
            raise AlreadyRentingError(user_id)
        raise BookUnavailableError(book_id)
    except PyMongoError as e:
        await release_book(db, book_oid)
        raise DatabaseError("rent", str(e))

    logger.info(f"User {user_id} rented book {book_id}")
    return RentalModel(**{**rental, "_id": result.inserted_id})


async def return_book(db, user_id: str) -> RentalModel:
    try:
        rental = await db.rentals.find_one_and_delete({"user_id": ObjectId(user_id)})
    except PyMongoError as e:
        raise DatabaseError("return", str(e))
    if rental is None:
        raise NoActiveRentalError(user_id)

    try:
        await db.books.update_one(
            {"_id": rental["book_id"]}, {"$set": {"is_rented": False}}
        )
    except PyMongoError as e:
        # Put the rental back so the ledger still matches the book flag.
        try:
            await db.rentals.insert_one(rental)
        except PyMongoError as restore_error:
            logger.error(f"Could not restore rental {rental['_id']}: {restore_error}")
        raise DatabaseError("return", str(e))

    logger.info(f"User {user_id} returned book {rental['book_id']}")
    return RentalModel(**rental)
