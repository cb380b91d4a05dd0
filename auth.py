"""
Credential & session handling

Passwords are stored as bcrypt hashes (passlib); sessions are stateless
HS256 JWTs (python-jose) carrying the user id and role. Every protected
request re-reads the user from the database, so role changes and deleted
accounts take effect before the token expires.
"""
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from bson import ObjectId
from fastapi import Depends, Header
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import get_db, serialize_doc
from errors import AuthenticationError, AuthorizationError, ValidationError
from schemas import LoginInput, RegisterInput, Role, UpdateDetailsInput, User

logger = logging.getLogger("switchstore.auth")

# JWT Config
SECRET_KEY = os.getenv("JWT_SECRET", "dev-secret-change")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", 60 * 24 * 7))  # 7 days
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 12))

PROFILE_FIELDS = ("name", "email", "phone", "address")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


class Identity(BaseModel):
    """The authenticated principal behind a request."""
    id: str
    name: str
    email: str
    role: Role

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "Identity":
        return cls(id=str(doc["_id"]), name=doc["name"], email=doc["email"], role=doc.get("role", Role.USER))


# Utilities

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": str(user["_id"]), "role": user.get("role", Role.USER.value), "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise AuthenticationError("Invalid or expired token")


def public_user(doc: Dict[str, Any]) -> Dict[str, Any]:
    user = serialize_doc(doc)
    # Never send password hash
    user.pop("passwordHash", None)
    return user


# Operations

def register(db: Database, payload: RegisterInput) -> Tuple[str, Dict[str, Any]]:
    users = db["user"]
    if users.find_one({"email": payload.email}):
        raise ValidationError("User already exists")
    user_model = User(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        phone=payload.phone,
        address=payload.address,
    )
    try:
        result = users.insert_one(user_model.model_dump(by_alias=True, exclude_none=True))
    except DuplicateKeyError:
        raise ValidationError("User already exists")
    user = users.find_one({"_id": result.inserted_id})
    logger.info("Registered user %s", result.inserted_id)
    return create_access_token(user), public_user(user)


def login(db: Database, payload: LoginInput) -> Tuple[str, Dict[str, Any]]:
    user = db["user"].find_one({"email": payload.email})
    # Same message for unknown email and wrong password
    if not user or not verify_password(payload.password, user.get("passwordHash", "")):
        logger.warning("Failed login attempt for %s", payload.email)
        raise AuthenticationError("Invalid credentials")
    return create_access_token(user), public_user(user)


def authenticate(db: Database, token: Optional[str]) -> Identity:
    if not token:
        raise AuthenticationError()
    payload = decode_token(token)
    user_id = payload.get("sub")
    if not user_id or not ObjectId.is_valid(user_id):
        raise AuthenticationError("Invalid token")
    user = db["user"].find_one({"_id": ObjectId(user_id)})
    if not user:
        raise AuthenticationError("User not found")
    return Identity.from_doc(user)


def authorize(identity: Identity, required_role: Role) -> Identity:
    if identity.role != required_role:
        raise AuthorizationError(f"User role {identity.role.value} is not authorized to access this route")
    return identity


def get_user(db: Database, identity: Identity) -> Dict[str, Any]:
    user = db["user"].find_one({"_id": ObjectId(identity.id)})
    if not user:
        raise AuthenticationError("User not found")
    return public_user(user)


def update_profile(db: Database, identity: Identity, payload: UpdateDetailsInput) -> Dict[str, Any]:
    fields = payload.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
    fields = {k: v for k, v in fields.items() if k in PROFILE_FIELDS}
    user_id = ObjectId(identity.id)
    if "email" in fields and db["user"].find_one({"email": fields["email"], "_id": {"$ne": user_id}}):
        raise ValidationError("Email already in use")
    if fields:
        try:
            db["user"].update_one({"_id": user_id}, {"$set": fields})
        except DuplicateKeyError:
            raise ValidationError("Email already in use")
        logger.info("Updated profile of user %s (%s)", identity.id, ", ".join(sorted(fields)))
    return get_user(db, identity)


# Dependencies

def get_current_user(authorization: Optional[str] = Header(default=None), db: Database = Depends(get_db)) -> Identity:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError()
    token = authorization.split(" ", 1)[1].strip()
    return authenticate(db, token)


def require_role(role: Role):
    def dependency(identity: Identity = Depends(get_current_user)) -> Identity:
        return authorize(identity, role)

    return dependency
