import logging
import math
import os
import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi import FastAPI, HTTPException, Depends, Header, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, EmailStr, Field
from bson import ObjectId
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from database import db, create_document, ensure_indexes
from schemas import User as UserSchema, Review as ReviewSchema, RevokedToken as RevokedTokenSchema
from seed import seed_demo_data

logger = logging.getLogger(__name__)

# JWT Config
SECRET_KEY = os.getenv("JWT_SECRET", "dev-secret-change")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))  # 7 days

# Catalog Config
PRODUCTS_PER_PAGE = int(os.getenv("PRODUCTS_PER_PAGE", 20))
MAX_PAGE_SIZE = 100
MAX_PAGE = 1_000_000
SORTABLE_FIELDS = ("price", "rating", "title", "stock", "discount_percentage")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

app = FastAPI(title="Storefront API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Utilities

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")


def serialize_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc:
        return doc
    doc = dict(doc)
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    # Convert ObjectId in nested fields if any
    for k, v in list(doc.items()):
        if isinstance(v, ObjectId):
            doc[k] = str(v)
    return doc


def get_collection(name: str):
    if db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return db[name]


def product_lookup(product_id: str) -> Dict[str, Any]:
    """Filter for a product id. Numeric ids are stored zero-padded to three digits."""
    if ObjectId.is_valid(product_id):
        return {"_id": ObjectId(product_id)}
    if product_id.isdigit():
        product_id = product_id.zfill(3)
    return {"_id": product_id}


def build_product_query(search: Optional[str] = None, category: Optional[str] = None) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    if search:
        query["title"] = {"$regex": "^" + re.escape(search), "$options": "i"}
    if category:
        query["category"] = category
    return query


def parse_sort(sort: Optional[str]) -> Optional[Tuple[str, int]]:
    """Parse "<field>_<order>" into a pymongo sort key. Unknown fields give None."""
    if not sort:
        return None
    if sort in SORTABLE_FIELDS:
        return sort, ASCENDING
    field, _, order = sort.rpartition("_")
    if field not in SORTABLE_FIELDS:
        return None
    return field, DESCENDING if order == "desc" else ASCENDING


def _review_timestamp(review: Dict[str, Any]) -> float:
    value = review.get("date")
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return 0.0
    if not isinstance(value, datetime):
        return 0.0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def sort_reviews(reviews: List[Dict[str, Any]], option: Optional[str] = None) -> List[Dict[str, Any]]:
    """Order reviews by rating or date; anything unrecognised means newest first."""
    if option == "rating-asc":
        return sorted(reviews, key=lambda r: r.get("rating") or 0)
    if option == "rating-desc":
        return sorted(reviews, key=lambda r: r.get("rating") or 0, reverse=True)
    if option == "date-asc":
        return sorted(reviews, key=_review_timestamp)
    return sorted(reviews, key=_review_timestamp, reverse=True)


def average_rating(reviews: List[Dict[str, Any]]) -> float:
    if not reviews:
        return 0
    return sum(r.get("rating") or 0 for r in reviews) / len(reviews)


# Auth models
class RegisterInput(BaseModel):
    name: str
    email: EmailStr
    password: str


class LoginInput(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Dict[str, Any]


# Dependencies to get the token and current user

def get_token_payload(authorization: Optional[str] = Header(default=None)) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    token = authorization.split(" ", 1)[1]
    payload = decode_token(token)
    jti = payload.get("jti")
    try:
        revoked = jti and get_collection("revoked_token").find_one({"jti": jti})
    except PyMongoError:
        logger.exception("Error checking revoked token")
        raise HTTPException(status_code=500, detail="Error verifying token")
    if revoked:
        raise HTTPException(status_code=401, detail="Token has been revoked")
    return payload


def get_current_user(payload: dict = Depends(get_token_payload)):
    user_id = payload.get("sub")
    if not user_id or not ObjectId.is_valid(user_id):
        raise HTTPException(status_code=401, detail="Invalid token")
    try:
        user = get_collection("user").find_one({"_id": ObjectId(user_id)})
    except PyMongoError:
        logger.exception("Error loading user %s", user_id)
        raise HTTPException(status_code=500, detail="Error loading user")
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    user = serialize_doc(user)
    # Never expose password hash
    user.pop("password_hash", None)
    return user


@app.on_event("startup")
def prepare_database():
    if db is None:
        return
    try:
        ensure_indexes(db)
        if os.getenv("SEED_DEMO_DATA"):
            seed_demo_data(db)
    except PyMongoError:
        logger.exception("Error preparing database")


# Routes
@app.get("/")
def read_root():
    return {"message": "Storefront API"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        if db is not None:
            response["database"] = "✅ Available"
            response["connection_status"] = "Connected"
            response["database_name"] = db.name
            response["collections"] = db.list_collection_names()
        else:
            response["database"] = "❌ Not Available"
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


# Auth
@app.post("/api/auth/register", response_model=TokenResponse)
def register(payload: RegisterInput):
    users = get_collection("user")
    email = payload.email.lower()
    try:
        if users.find_one({"email": email}):
            raise HTTPException(status_code=400, detail="Email already registered")
        user_model = UserSchema(
            name=payload.name,
            email=email,
            password_hash=hash_password(payload.password),
        )
        user_id = create_document("user", user_model)
        user = serialize_doc(users.find_one({"_id": ObjectId(user_id)}))
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Email already registered")
    except PyMongoError:
        logger.exception("Error registering user")
        raise HTTPException(status_code=500, detail="Error registering user")
    logger.info("Registered user %s", user_id)
    token = create_access_token({"sub": user_id})
    user.pop("password_hash", None)
    return TokenResponse(access_token=token, user=user)


@app.post("/api/auth/login", response_model=TokenResponse)
def login(payload: LoginInput):
    try:
        user = get_collection("user").find_one({"email": payload.email.lower()})
    except PyMongoError:
        logger.exception("Error signing in")
        raise HTTPException(status_code=500, detail="Error signing in")
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise HTTPException(status_code=400, detail="Invalid email or password")
    user = serialize_doc(user)
    user.pop("password_hash", None)
    logger.info("User %s signed in", user["id"])
    token = create_access_token({"sub": user["id"]})
    return TokenResponse(access_token=token, user=user)


@app.post("/api/auth/logout")
def logout(payload: dict = Depends(get_token_payload)):
    jti = payload.get("jti")
    if not jti:
        raise HTTPException(status_code=401, detail="Invalid token")
    revoked = RevokedTokenSchema(jti=jti, expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc))
    try:
        create_document("revoked_token", revoked)
    except PyMongoError:
        logger.exception("Error signing out")
        raise HTTPException(status_code=500, detail="Error signing out")
    logger.info("User %s signed out", payload.get("sub"))
    return {"ok": True}


@app.get("/api/auth/me")
def me(current_user: dict = Depends(get_current_user)):
    return current_user


# Catalog
@app.get("/api/products")
def list_products(search: Optional[str] = None, category: Optional[str] = None, sort: Optional[str] = None, page: int = Query(1, le=MAX_PAGE), limit: int = PRODUCTS_PER_PAGE):
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    query = build_product_query(search, category)
    collection = get_collection("product")
    try:
        cursor = collection.find(query)
        sort_key = parse_sort(sort)
        if sort_key:
            cursor = cursor.sort(*sort_key)
        cursor = cursor.skip((page - 1) * limit).limit(limit)
        products = [serialize_doc(d) for d in cursor]
        total = collection.count_documents(query)
    except PyMongoError:
        logger.exception("Error fetching products")
        raise HTTPException(status_code=500, detail="Error fetching products")
    return {
        "products": products,
        "total": total,
        "currentPage": page,
        "totalPages": math.ceil(total / limit),
    }


@app.get("/api/products/{product_id}")
def get_product(product_id: str):
    try:
        product = get_collection("product").find_one(product_lookup(product_id))
    except PyMongoError:
        logger.exception("Error fetching product %s", product_id)
        raise HTTPException(status_code=500, detail="Error fetching product")
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    product = serialize_doc(product)
    reviews = product.get("reviews") or []
    product["average_rating"] = average_rating(reviews)
    product["review_count"] = len(reviews)
    return product


@app.get("/api/categories")
def list_categories() -> List[str]:
    try:
        docs = get_collection("category").find({}).sort("name", ASCENDING)
        return [d["name"] for d in docs if d.get("name")]
    except PyMongoError:
        logger.exception("Error fetching categories")
        raise HTTPException(status_code=500, detail="Error fetching categories")


# Reviews
class ReviewIn(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1)
    reviewer_name: Optional[str] = None
    reviewer_email: Optional[EmailStr] = None


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, min_length=1)
    reviewer_name: Optional[str] = None
    reviewer_email: Optional[EmailStr] = None


def _find_product(product_id: str) -> Dict[str, Any]:
    try:
        product = get_collection("product").find_one(product_lookup(product_id))
    except PyMongoError:
        logger.exception("Error fetching product %s", product_id)
        raise HTTPException(status_code=500, detail="Error fetching product")
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def _save_reviews(product: Dict[str, Any], reviews: List[Dict[str, Any]]):
    try:
        get_collection("product").update_one(
            {"_id": product["_id"]},
            {"$set": {"reviews": reviews, "updated_at": datetime.now(timezone.utc)}},
        )
    except PyMongoError:
        logger.exception("Error saving reviews for product %s", product["_id"])
        raise HTTPException(status_code=500, detail="Error saving review")


@app.get("/api/products/{product_id}/reviews")
def list_reviews(product_id: str, sort: Optional[str] = None):
    reviews = _find_product(product_id).get("reviews") or []
    return {
        "reviews": sort_reviews(reviews, sort),
        "average_rating": average_rating(reviews),
        "count": len(reviews),
    }


@app.post("/api/products/{product_id}/reviews", status_code=201)
def create_review(product_id: str, data: ReviewIn, current_user: dict = Depends(get_current_user)):
    product = _find_product(product_id)
    review = ReviewSchema(
        id=str(ObjectId()),
        reviewer_name=data.reviewer_name or current_user.get("name", ""),
        reviewer_email=data.reviewer_email or current_user["email"],
        rating=data.rating,
        comment=data.comment,
        date=datetime.now(timezone.utc),
        user_id=current_user["id"],
        product_id=str(product["_id"]),
    )
    reviews = list(product.get("reviews") or [])
    reviews.append(review.model_dump())
    _save_reviews(product, reviews)
    logger.info("User %s reviewed product %s", current_user["id"], product["_id"])
    return review.model_dump()


@app.put("/api/products/{product_id}/reviews/{review_id}")
def update_review(product_id: str, review_id: str, data: ReviewUpdate, current_user: dict = Depends(get_current_user)):
    update_dict = data.model_dump(exclude_unset=True, exclude_none=True)
    if not update_dict:
        raise HTTPException(status_code=400, detail="No fields to update")
    product = _find_product(product_id)
    reviews = list(product.get("reviews") or [])
    for i, review in enumerate(reviews):
        if review.get("id") == review_id:
            break
    else:
        raise HTTPException(status_code=404, detail="Review not found")
    if review.get("user_id") != current_user["id"]:
        raise HTTPException(status_code=403, detail="You can only edit your own reviews")
    updated = {**review, **update_dict, "date": datetime.now(timezone.utc)}
    reviews[i] = updated
    _save_reviews(product, reviews)
    return updated


@app.delete("/api/products/{product_id}/reviews/{review_id}")
def delete_review(product_id: str, review_id: str, current_user: dict = Depends(get_current_user)):
    product = _find_product(product_id)
    reviews = product.get("reviews") or []
    review = next((r for r in reviews if r.get("id") == review_id), None)
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    if review.get("user_id") != current_user["id"]:
        raise HTTPException(status_code=403, detail="You can only delete your own reviews")
    _save_reviews(product, [r for r in reviews if r.get("id") != review_id])
    logger.info("User %s deleted review %s", current_user["id"], review_id)
    return {"ok": True}


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
