from pydantic import AliasChoices, BaseModel, Field, field_validator

# bcrypt only looks at the first 72 bytes and rejects longer input
MAX_PASSWORD_BYTES = 72


class UserCredentials(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


class TokenResponse(BaseModel):
    token: str


class BookCreate(BaseModel):
    title: str
    author: str
    cover_image: str


class RentRequest(BaseModel):
    book_id: str = Field(validation_alias=AliasChoices("bookId", "book_id"))
