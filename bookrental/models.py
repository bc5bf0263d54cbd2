from datetime import datetime
from typing import Annotated, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field

# ObjectId values coming back from Mongo are rendered as plain strings.
PyObjectId = Annotated[str, BeforeValidator(str)]


class MongoModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[PyObjectId] = Field(
        default=None, validation_alias=AliasChoices("_id", "id")
    )


class UserModel(MongoModel):
    username: str
    password_hash: str


class BookModel(MongoModel):
    title: str
    author: str
    cover_image: str
    is_rented: bool = False


class RentalModel(MongoModel):
    user_id: PyObjectId
    book_id: PyObjectId
    rented_at: datetime
