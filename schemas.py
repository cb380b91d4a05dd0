"""
Database Schemas

MongoDB collection schemas and request bodies for the store, as Pydantic
models. Model name lowercased is the collection name (User -> "user",
Product -> "product"). Field names are snake_case in Python and camelCase
in the database and on the wire.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator, model_validator
from pydantic.alias_generators import to_camel


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Category(str, Enum):
    GAMES = "Games"
    CONSOLES = "Consoles"
    ACCESSORIES = "Accessories"
    CONTROLLERS = "Controllers"
    CASES = "Cases & Protection"
    STORAGE = "Memory & Storage"
    CABLES = "Cables & Adapters"
    STANDS = "Stands & Grips"


class StoreModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
        arbitrary_types_allowed=True,
    )


Trimmed = Annotated[str, StringConstraints(strip_whitespace=True)]
UserName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]
Password = Annotated[str, Field(min_length=6)]
ProductName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]
Description = Annotated[str, StringConstraints(strip_whitespace=True, min_length=10, max_length=1000)]
Price = Annotated[float, Field(ge=0)]
Stock = Annotated[int, Field(ge=0)]
ImageUrl = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Images = Annotated[List[ImageUrl], Field(min_length=1)]
Comment = Annotated[str, StringConstraints(strip_whitespace=True, min_length=5, max_length=500)]


# -----------------------------
# Users
# -----------------------------

class Address(StoreModel):
    street: Optional[Trimmed] = None
    city: Optional[Trimmed] = None
    state: Optional[Trimmed] = None
    zip_code: Optional[Trimmed] = None
    country: Optional[Trimmed] = None


class User(StoreModel):
    """
    Users collection schema
    Collection name: "user"
    """
    name: UserName
    email: EmailStr
    password_hash: str = Field(..., description="BCrypt hashed password")
    role: Role = Role.USER
    phone: Optional[Trimmed] = None
    address: Optional[Address] = None
    created_at: datetime = Field(default_factory=_now)


class _EmailInput(StoreModel):
    @field_validator("email", check_fields=False)
    @classmethod
    def _lower_email(cls, v):
        return v.lower() if v else v


class RegisterInput(_EmailInput):
    name: UserName
    email: EmailStr
    password: Password
    phone: Optional[Trimmed] = None
    address: Optional[Address] = None


class LoginInput(_EmailInput):
    # Plain str: a malformed or missing email is just another failed login.
    email: str = ""
    password: str = ""


class UpdateDetailsInput(_EmailInput):
    name: Optional[UserName] = None
    email: Optional[EmailStr] = None
    phone: Optional[Trimmed] = None
    address: Optional[Address] = None


# -----------------------------
# Products
# -----------------------------

class Review(StoreModel):
    """Embedded in Product.reviews; never stored on its own."""
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    user: ObjectId
    name: str
    rating: int = Field(..., ge=1, le=5)
    comment: Comment
    created_at: datetime = Field(default_factory=_now)


class ReviewInput(StoreModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Comment


class ProductInput(StoreModel):
    name: ProductName
    description: Description
    price: Price
    original_price: Optional[Price] = None
    category: Category
    brand: Trimmed = "Nintendo"
    images: Images
    stock: Stock
    featured: bool = False
    on_sale: bool = False
    tags: List[Trimmed] = Field(default_factory=list)
    specifications: Dict[str, str] = Field(default_factory=dict)


class ProductUpdate(StoreModel):
    """Partial product edit; only fields present in the payload are applied."""
    name: Optional[ProductName] = None
    description: Optional[Description] = None
    price: Optional[Price] = None
    original_price: Optional[Price] = None
    category: Optional[Category] = None
    brand: Optional[Trimmed] = None
    images: Optional[Images] = None
    stock: Optional[Stock] = None
    featured: Optional[bool] = None
    on_sale: Optional[bool] = None
    tags: Optional[List[Trimmed]] = None
    specifications: Optional[Dict[str, str]] = None

    @model_validator(mode="after")
    def _reject_nulls(self):
        nulls = sorted(
            type(self).model_fields[name].alias or name
            for name in self.model_fields_set
            if getattr(self, name) is None and name != "original_price"
        )
        if nulls:
            raise ValueError(f"{', '.join(nulls)} cannot be null")
        return self


class Product(ProductInput):
    """
    Products collection schema
    Collection name: "product"
    """
    rating: float = Field(default=0, ge=0, le=5)
    num_reviews: int = Field(default=0, ge=0)
    reviews: List[Review] = Field(default_factory=list)
    created_by: ObjectId
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
