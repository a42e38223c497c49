import os
import re
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from bson import ObjectId
from fastapi import FastAPI, HTTPException, Depends, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from database import db, create_document, get_documents, ensure_indexes
from schemas import (
    User,
    UserCreate,
    Section,
    SectionUpdate,
    BlogPost,
    BlogPostUpdate,
    PortfolioItem,
    PortfolioItemUpdate,
    Customer,
    CustomerUpdate,
    CallbackRequest,
    CallbackRequestCreate,
    CallbackRequestUpdate,
    CallbackStatusUpdate,
    CallbackStatus,
    LoyaltyProgram,
    LoyaltyProgramUpdate,
    ContactInfo,
    SiteSetting,
    SiteSettingUpdate,
    ColorSchemeUpdate,
    ChatRequest,
    RecommendationRequest,
    SentimentRequest,
    Service,
    ServiceUpdate,
)
from chatbot import flower_chatbot, summarize_chat, ChatbotError, NEUTRAL_SENTIMENT
import color_palette

import hashlib
import hmac

logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if db is not None:
        ensure_indexes()
        ensure_root_user()
    yield


app = FastAPI(title="Tsvetokraft API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -----------------
# Error envelope: every error body is {"message": ..., ...}
# -----------------
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"message": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request data", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# -----------------
# Auth (bearer JWT for the admin panel)
# -----------------
JWT_SECRET = os.getenv("JWT_SECRET", "devsecret")
JWT_ALGO = "HS256"
JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "8"))
ROOT_USERNAME = os.getenv("ROOT_USERNAME", "root")
ROOT_PASSWORD = os.getenv("ROOT_PASSWORD", "Admin2025!Secure#Flowercraft")
ADMIN_ROLES = {"super_admin", "admin", "manager"}

security = HTTPBearer(auto_error=False)


class LoginRequest(BaseModel):
    username: str
    password: str


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode()).hexdigest()


def verify_password(password: str, hashed: str) -> bool:
    return hmac.compare_digest(hash_password(password), hashed or "")


def create_token(payload: dict) -> str:
    exp = utcnow() + timedelta(hours=JWT_EXPIRE_HOURS)
    return jwt.encode({**payload, "exp": exp}, JWT_SECRET, algorithm=JWT_ALGO)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGO])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)):
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    payload = decode_token(credentials.credentials)
    user_id = payload.get("id")
    if not user_id or not ObjectId.is_valid(user_id):
        raise HTTPException(status_code=401, detail="Invalid token payload")
    user = db["user"].find_one({"_id": ObjectId(user_id)})
    if not user or not user.get("is_active", True):
        raise HTTPException(status_code=401, detail="User not found")
    return serialize_doc(user)


def require_admin(user=Depends(get_current_user)):
    if user.get("role") not in ADMIN_ROLES:
        raise HTTPException(status_code=403, detail="Admin only")
    return user


def require_roles(*roles: str):
    def dependency(user=Depends(get_current_user)):
        if user.get("role") not in roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user
    return dependency


# managers edit content and the CRM; site-wide config and the catalog need more
require_site_admin = require_roles("super_admin", "admin")
require_super_admin = require_roles("super_admin")


def ensure_root_user():
    if db["user"].find_one({"username": ROOT_USERNAME}):
        return
    root = User(
        username=ROOT_USERNAME,
        email="admin@flowercraft.ru",
        password_hash=hash_password(ROOT_PASSWORD),
        role="super_admin",
    )
    create_document("user", root)
    logger.info("Root user created with username: %s", ROOT_USERNAME)


@app.post("/api/auth/login")
def login(body: LoginRequest):
    user = db["user"].find_one({"username": body.username})
    if not user or not user.get("is_active", True) or not verify_password(body.password, user.get("password_hash")):
        logger.warning("Failed admin login for %s", body.username)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    db["user"].update_one({"_id": user["_id"]}, {"$set": {"last_login_at": utcnow()}})
    suser = serialize_doc(user)
    token = create_token({"id": suser["id"], "username": suser["username"], "role": suser.get("role")})
    logger.info("Admin %s logged in", suser["username"])
    return {"token": token, "user": suser}


@app.get("/api/auth/me")
def me(user=Depends(get_current_user)):
    return user


@app.get("/api/auth/users", dependencies=[Depends(require_super_admin)])
def list_users():
    return [serialize_doc(u) for u in get_documents("user", sort=[("username", 1)])]


@app.post("/api/auth/users", status_code=201)
def create_user(body: UserCreate, user=Depends(require_super_admin)):
    if db["user"].find_one({"username": body.username}):
        raise HTTPException(status_code=409, detail="User with this username already exists")
    new_user = User(
        username=body.username,
        email=body.email,
        password_hash=hash_password(body.password),
        role=body.role,
    )
    try:
        created = insert_and_fetch("user", new_user)
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail="User with this username already exists")
    logger.info("User %s (%s) created by %s", body.username, body.role, user.get("username"))
    return created


# -----------------
# Utility
# -----------------
def serialize_doc(doc):
    if not doc:
        return doc
    doc = dict(doc)
    _id = doc.pop("_id", None)
    if isinstance(_id, ObjectId):
        doc["id"] = str(_id)
    doc.pop("password_hash", None)
    for k, v in list(doc.items()):
        if isinstance(v, datetime):
            doc[k] = v.isoformat()
        elif isinstance(v, ObjectId):
            doc[k] = str(v)
    return doc


def to_oid(oid: str) -> ObjectId:
    if not ObjectId.is_valid(oid):
        raise HTTPException(status_code=400, detail="Invalid ID")
    return ObjectId(oid)


def find_or_404(collection: str, doc_id: str, label: str):
    doc = db[collection].find_one({"_id": to_oid(doc_id)})
    if not doc:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return serialize_doc(doc)


def insert_and_fetch(collection: str, data) -> dict:
    new_id = create_document(collection, data)
    return serialize_doc(db[collection].find_one({"_id": ObjectId(new_id)}))


def update_or_404(collection: str, doc_id: str, update: dict, label: str, conflict=None):
    update = dict(update)
    update["updated_at"] = utcnow()
    try:
        doc = db[collection].find_one_and_update(
            {"_id": to_oid(doc_id)},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail=conflict or f"{label} conflicts with an existing record")
    if not doc:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return serialize_doc(doc)


def delete_or_404(collection: str, doc_id: str, label: str) -> Response:
    res = db[collection].delete_one({"_id": to_oid(doc_id)})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return Response(status_code=204)


def is_true(flag: Optional[str]) -> bool:
    return flag is not None and flag.lower() in {"1", "true", "yes"}


@app.get("/")
def root():
    return {"message": "Tsvetokraft API running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        if db is not None:
            response["database"] = "✅ Available"
            collections = db.list_collection_names()
            response["collections"] = collections[:20]
            response["database"] = "✅ Connected & Working"
            response["connection_status"] = "Connected"
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:120]}"
    response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
    response["database_name"] = "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set"
    response["ai_provider"] = "✅ Configured" if flower_chatbot.enabled else "❌ Not Configured"
    return response


# -----------------
# Sections
# -----------------
@app.get("/api/sections")
def list_sections(active: Optional[str] = None):
    q = {"is_active": True} if is_true(active) else {}
    return [serialize_doc(s) for s in get_documents("section", q, sort=[("name", 1)])]


@app.get("/api/sections/{key}")
def get_section(key: str):
    # a section is addressable by id or by its unique name
    if ObjectId.is_valid(key):
        doc = db["section"].find_one({"_id": ObjectId(key)})
    else:
        doc = db["section"].find_one({"name": key})
    if not doc:
        raise HTTPException(status_code=404, detail="Section not found")
    return serialize_doc(doc)


@app.post("/api/sections", status_code=201, dependencies=[Depends(require_admin)])
def create_section(body: Section):
    if db["section"].find_one({"name": body.name}):
        raise HTTPException(status_code=409, detail=f"Section '{body.name}' already exists")
    return insert_and_fetch("section", body)


@app.api_route("/api/sections/{section_id}", methods=["PUT", "PATCH"], dependencies=[Depends(require_admin)])
def update_section(section_id: str, body: SectionUpdate):
    update = body.changes()
    if "name" in update:
        clash = db["section"].find_one({"name": update["name"], "_id": {"$ne": to_oid(section_id)}})
        if clash:
            raise HTTPException(status_code=409, detail=f"Section '{update['name']}' already exists")
    return update_or_404("section", section_id, update, "Section")


@app.delete("/api/sections/{section_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_section(section_id: str):
    return delete_or_404("section", section_id, "Section")


# -----------------
# Blog
# -----------------
@app.get("/api/blog-posts")
def list_blog_posts(published: Optional[str] = None, category: Optional[str] = None):
    q = {}
    if is_true(published):
        q["published"] = True
    if category:
        q["category"] = category
    posts = get_documents("blogpost", q, sort=[("created_at", -1)])
    return [serialize_doc(p) for p in posts]


@app.get("/api/blog-posts/{post_id}")
def get_blog_post(post_id: str):
    return find_or_404("blogpost", post_id, "Blog post")


@app.post("/api/blog-posts", status_code=201, dependencies=[Depends(require_admin)])
def create_blog_post(body: BlogPost):
    return insert_and_fetch("blogpost", body)


@app.api_route("/api/blog-posts/{post_id}", methods=["PUT", "PATCH"], dependencies=[Depends(require_admin)])
def update_blog_post(post_id: str, body: BlogPostUpdate):
    return update_or_404("blogpost", post_id, body.changes(), "Blog post")


@app.delete("/api/blog-posts/{post_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_blog_post(post_id: str):
    return delete_or_404("blogpost", post_id, "Blog post")


# -----------------
# Portfolio
# -----------------
@app.get("/api/portfolio-items")
def list_portfolio_items(category: Optional[str] = None, active: Optional[str] = None):
    q = {}
    if category:
        q["category"] = category
    if is_true(active):
        q["is_active"] = True
    items = get_documents("portfolioitem", q, sort=[("created_at", -1)])
    return [serialize_doc(i) for i in items]


@app.get("/api/portfolio-items/{item_id}")
def get_portfolio_item(item_id: str):
    return find_or_404("portfolioitem", item_id, "Portfolio item")


@app.post("/api/portfolio-items", status_code=201, dependencies=[Depends(require_admin)])
def create_portfolio_item(body: PortfolioItem):
    return insert_and_fetch("portfolioitem", body)


@app.api_route("/api/portfolio-items/{item_id}", methods=["PUT", "PATCH"], dependencies=[Depends(require_admin)])
def update_portfolio_item(item_id: str, body: PortfolioItemUpdate):
    return update_or_404("portfolioitem", item_id, body.changes(), "Portfolio item")


@app.delete("/api/portfolio-items/{item_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_portfolio_item(item_id: str):
    return delete_or_404("portfolioitem", item_id, "Portfolio item")


# -----------------
# Services catalog
# -----------------
SERVICE_ORDER = [("sort_order", -1), ("name", 1)]


@app.get("/api/services")
def list_services(category: Optional[str] = None):
    q = {"category": category} if category else {}
    return [serialize_doc(s) for s in get_documents("service", q, sort=SERVICE_ORDER)]


@app.get("/api/services/active")
def list_active_services():
    return [serialize_doc(s) for s in get_documents("service", {"is_active": True}, sort=SERVICE_ORDER)]


@app.get("/api/services/{service_id}")
def get_service(service_id: str):
    return find_or_404("service", service_id, "Service")


@app.post("/api/services", status_code=201)
def create_service(body: Service, user=Depends(require_site_admin)):
    created = insert_and_fetch("service", body)
    logger.info("Service %s created by %s", body.name, user.get("username"))
    return created


@app.api_route("/api/services/{service_id}", methods=["PUT", "PATCH"], dependencies=[Depends(require_site_admin)])
def update_service(service_id: str, body: ServiceUpdate):
    return update_or_404("service", service_id, body.changes(), "Service")


@app.delete("/api/services/{service_id}", status_code=204, dependencies=[Depends(require_site_admin)])
def delete_service(service_id: str):
    return delete_or_404("service", service_id, "Service")


# -----------------
# Customers (CRM, admin only)
# -----------------
DUPLICATE_CUSTOMER_PHONE = {"message": "Клиент с таким номером телефона уже существует", "code": "duplicate_phone"}


def ensure_phone_free(phone: str, exclude_id: Optional[ObjectId] = None):
    q = {"phone": phone}
    if exclude_id is not None:
        q["_id"] = {"$ne": exclude_id}
    if db["customer"].find_one(q):
        raise HTTPException(status_code=409, detail=DUPLICATE_CUSTOMER_PHONE)


@app.get("/api/customers", dependencies=[Depends(require_admin)])
def list_customers(q: Optional[str] = None, loyalty_level: Optional[str] = None):
    filt = {}
    if q:
        # q is plain text, not a pattern
        pattern = re.escape(q)
        filt["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"phone": {"$regex": pattern, "$options": "i"}},
        ]
    if loyalty_level:
        filt["loyalty_level"] = loyalty_level
    return [serialize_doc(c) for c in get_documents("customer", filt, sort=[("name", 1)])]


@app.get("/api/customers/{customer_id}", dependencies=[Depends(require_admin)])
def get_customer(customer_id: str):
    return find_or_404("customer", customer_id, "Customer")


@app.post("/api/customers", status_code=201, dependencies=[Depends(require_admin)])
def create_customer(body: Customer):
    body.phone = body.phone.strip()
    ensure_phone_free(body.phone)
    try:
        return insert_and_fetch("customer", body)
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail=DUPLICATE_CUSTOMER_PHONE)


@app.api_route("/api/customers/{customer_id}", methods=["PUT", "PATCH"], dependencies=[Depends(require_admin)])
def update_customer(customer_id: str, body: CustomerUpdate):
    update = body.changes()
    if "phone" in update:
        update["phone"] = update["phone"].strip()
        ensure_phone_free(update["phone"], exclude_id=to_oid(customer_id))
    return update_or_404("customer", customer_id, update, "Customer", conflict=DUPLICATE_CUSTOMER_PHONE)


@app.delete("/api/customers/{customer_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_customer(customer_id: str):
    return delete_or_404("customer", customer_id, "Customer")


# -----------------
# Callback requests
# -----------------
OPEN_CALLBACK_STATUSES = ["pending", "contacted"]


@app.get("/api/callback-requests", dependencies=[Depends(require_admin)])
def list_callback_requests(status: Optional[CallbackStatus] = None):
    q = {"status": status} if status else {}
    return [serialize_doc(r) for r in get_documents("callbackrequest", q, sort=[("created_at", -1)])]


@app.get("/api/callback-requests/{request_id}", dependencies=[Depends(require_admin)])
def get_callback_request(request_id: str):
    return find_or_404("callbackrequest", request_id, "Callback request")


def open_callback_for(phone: str):
    return db["callbackrequest"].find_one({"phone": phone, "status": {"$in": OPEN_CALLBACK_STATUSES}})


def duplicate_callback(phone: str, existing) -> HTTPException:
    logger.info("Rejected duplicate callback request for %s", phone)
    return HTTPException(
        status_code=409,
        detail={
            "message": "Заявка с этим номером телефона уже принята. Мы свяжемся с вами в ближайшее время.",
            "code": "duplicate_phone",
            "existing_id": str(existing["_id"]) if existing else None,
        },
    )


@app.post("/api/callback-requests", status_code=201)
def create_callback_request(body: CallbackRequestCreate):
    phone = body.phone.strip()
    existing = open_callback_for(phone)
    if existing:
        raise duplicate_callback(phone, existing)
    data = CallbackRequest(**{**body.model_dump(), "phone": phone})
    try:
        return insert_and_fetch("callbackrequest", data)
    except DuplicateKeyError:
        # a concurrent request got in between
        winner = db["callbackrequest"].find_one({"phone": phone, "status": {"$in": OPEN_CALLBACK_STATUSES}})
        raise duplicate_callback(phone, winner)


@app.api_route("/api/callback-requests/{request_id}", methods=["PUT", "PATCH"], dependencies=[Depends(require_admin)])
def update_callback_request(request_id: str, body: CallbackRequestUpdate):
    return update_or_404("callbackrequest", request_id, body.changes(), "Callback request")


@app.put("/api/callback-requests/{request_id}/status", dependencies=[Depends(require_admin)])
def update_callback_status(request_id: str, body: CallbackStatusUpdate):
    return update_or_404("callbackrequest", request_id, {"status": body.status}, "Callback request")


@app.delete("/api/callback-requests/{request_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_callback_request(request_id: str):
    return delete_or_404("callbackrequest", request_id, "Callback request")


# -----------------
# Loyalty program
# -----------------
@app.get("/api/loyalty-program")
def list_loyalty_levels(active: Optional[str] = None):
    q = {"is_active": True} if is_true(active) else {}
    return [serialize_doc(t) for t in get_documents("loyaltyprogram", q, sort=[("min_amount", 1)])]


@app.get("/api/loyalty-program/match")
def match_loyalty_level(amount: int = Query(..., ge=0)):
    tiers = get_documents("loyaltyprogram", {"is_active": True}, sort=[("min_amount", -1)])
    for tier in tiers:
        upper = tier.get("max_amount")
        if tier["min_amount"] <= amount and (upper is None or amount < upper):
            return serialize_doc(tier)
    raise HTTPException(status_code=404, detail="No loyalty level for this amount")


@app.get("/api/loyalty-program/{level_id}")
def get_loyalty_level(level_id: str):
    return find_or_404("loyaltyprogram", level_id, "Loyalty level")


@app.post("/api/loyalty-program", status_code=201, dependencies=[Depends(require_admin)])
def create_loyalty_level(body: LoyaltyProgram):
    return insert_and_fetch("loyaltyprogram", body)


@app.api_route("/api/loyalty-program/{level_id}", methods=["PUT", "PATCH"], dependencies=[Depends(require_admin)])
def update_loyalty_level(level_id: str, body: LoyaltyProgramUpdate):
    update = body.changes()
    current = find_or_404("loyaltyprogram", level_id, "Loyalty level")
    # validate the merged record, not just the patch
    merged = {k: v for k, v in current.items() if k in LoyaltyProgram.model_fields}
    merged.update(update)
    try:
        LoyaltyProgram(**merged)
    except ValueError as e:
        raise HTTPException(status_code=400, detail={"message": "Invalid loyalty program data", "errors": str(e)})
    return update_or_404("loyaltyprogram", level_id, update, "Loyalty level")


@app.delete("/api/loyalty-program/{level_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_loyalty_level(level_id: str):
    return delete_or_404("loyaltyprogram", level_id, "Loyalty level")


# -----------------
# Contact info (singleton)
# -----------------
DEFAULT_CONTACT = {
    "id": None,
    "phone": "8 (800) 123-45-67",
    "email": "info@tsvetokraft.ru",
    "address": "г. Москва, ул. Цветочная, д. 15",
    "working_hours": "Пн-Вс: 8:00 - 22:00",
    "social_media": {
        "telegram": "@tsvetokraft",
        "instagram": "@tsvetokraft_moscow",
        "vk": "vk.com/tsvetokraft",
    },
    "additional_info": {
        "whatsapp": "+7 (999) 123-45-67",
        "map_url": "https://yandex.ru/maps/?text=55.751244,37.618423",
    },
    "updated_at": None,
    "updated_by": None,
}


@app.get("/api/contact-info")
def get_contact_info():
    doc = db["contactinfo"].find_one({})
    return serialize_doc(doc) if doc else DEFAULT_CONTACT


@app.put("/api/contact-info")
def update_contact_info(body: ContactInfo, user=Depends(require_site_admin)):
    update = {**body.model_dump(), "updated_at": utcnow(), "updated_by": user["id"]}
    db["contactinfo"].update_one({}, {"$set": update}, upsert=True)
    logger.info("Contact info updated by %s", user.get("username"))
    return {"message": "Contact information updated successfully", "contact": serialize_doc(db["contactinfo"].find_one({}))}


# -----------------
# Site settings
# -----------------
@app.get("/api/settings")
def list_settings():
    return [serialize_doc(s) for s in get_documents("sitesetting", sort=[("key", 1)])]


@app.get("/api/settings/{key}")
def get_setting(key: str):
    doc = db["sitesetting"].find_one({"key": key})
    if not doc:
        raise HTTPException(status_code=404, detail="Setting not found")
    return serialize_doc(doc)


@app.post("/api/settings", status_code=201)
def create_setting(body: SiteSetting, user=Depends(require_site_admin)):
    if db["sitesetting"].find_one({"key": body.key}):
        raise HTTPException(status_code=409, detail="Setting with this key already exists")
    body.updated_by = user["id"]
    created = insert_and_fetch("sitesetting", body)
    logger.info("Setting created: %s = %s", body.key, body.value)
    return created


@app.put("/api/settings/{key}")
def update_setting(key: str, body: SiteSettingUpdate, user=Depends(require_site_admin)):
    update = {**body.changes(), "updated_by": user["id"], "updated_at": utcnow()}
    doc = db["sitesetting"].find_one_and_update(
        {"key": key}, {"$set": update}, return_document=ReturnDocument.AFTER
    )
    if not doc:
        raise HTTPException(status_code=404, detail="Setting not found")
    logger.info("Setting updated: %s = %s", key, body.value)
    return serialize_doc(doc)


@app.delete("/api/settings/{key}", status_code=204, dependencies=[Depends(require_site_admin)])
def delete_setting(key: str):
    res = db["sitesetting"].delete_one({"key": key})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Setting not found")
    logger.info("Setting deleted: %s", key)
    return Response(status_code=204)


# -----------------
# Color scheme
# -----------------
@app.get("/api/color-scheme")
def get_color_scheme():
    setting = db["sitesetting"].find_one({"key": color_palette.SETTING_KEY})
    current = color_palette.resolve_scheme_name(setting.get("value") if setting else None)
    return {
        "current_scheme": current,
        "scheme_data": color_palette.scheme_payload(current),
        "available_schemes": color_palette.available_schemes(),
    }


@app.put("/api/color-scheme")
def update_color_scheme(body: ColorSchemeUpdate, user=Depends(require_admin)):
    name = body.scheme_name
    db["sitesetting"].update_one(
        {"key": color_palette.SETTING_KEY},
        {
            "$set": {"value": name, "updated_by": user["id"], "updated_at": utcnow()},
            "$setOnInsert": {"description": "Активная цветовая схема сайта", "created_at": utcnow()},
        },
        upsert=True,
    )
    scheme = color_palette.COLOR_SCHEMES[name]
    logger.info("Color scheme switched to %s by %s", name, user.get("username"))
    return {
        "success": True,
        "message": f"Цветовая схема изменена на \"{scheme['name']}\"",
        "current_scheme": name,
        "scheme_data": color_palette.scheme_payload(name),
    }


@app.get("/api/color-scheme/preview/{scheme_name}")
def preview_color_scheme(scheme_name: str):
    if not color_palette.is_known_scheme(scheme_name):
        raise HTTPException(status_code=404, detail="Color scheme not found")
    return {"scheme_name": scheme_name, "scheme_data": color_palette.scheme_payload(scheme_name)}


# -----------------
# Chatbot
# -----------------
@app.post("/api/chatbot/chat")
def chatbot_chat(body: ChatRequest):
    messages = [m.model_dump() for m in body.messages]
    last_user = next((m["content"] for m in reversed(messages) if m["role"] == "user"), "")
    response = flower_chatbot.get_chat_response(messages)
    sentiment = flower_chatbot.analyze_sentiment(last_user) if last_user else dict(NEUTRAL_SENTIMENT)
    return {"response": response, "sentiment": sentiment}


@app.post("/api/chatbot/stream")
def chatbot_stream(body: ChatRequest):
    messages = [m.model_dump() for m in body.messages]
    return StreamingResponse(
        flower_chatbot.stream_chat_response(messages),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@app.post("/api/chatbot/recommend")
def chatbot_recommend(body: RecommendationRequest):
    try:
        return flower_chatbot.generate_flower_recommendation(
            body.occasion, body.budget, body.preferences, body.colors
        )
    except ChatbotError:
        raise HTTPException(status_code=500, detail="Не удалось создать рекомендацию")


@app.post("/api/chatbot/sentiment")
def chatbot_sentiment(body: SentimentRequest):
    return flower_chatbot.analyze_sentiment(body.text)


@app.post("/api/chatbot/analyze")
def chatbot_analyze(body: ChatRequest):
    return {"summary": summarize_chat([m.model_dump() for m in body.messages]), "success": True}


# -----------------
# Seed default content
# -----------------
DEFAULT_SECTIONS = [
    {
        "name": "hero",
        "title": "Создаем магию из цветов",
        "subtitle": "Премиальные цветочные композиции для особенных моментов вашей жизни",
        "button_text": "Заказать звонок",
        "image_url": "https://images.unsplash.com/photo-1487070183336-b863922373d4",
    },
    {
        "name": "about",
        "title": "О нас",
        "subtitle": "Более 15 лет мы создаем незабываемые цветочные композиции",
        "content": "Работаем только с лучшими поставщиками, гарантируя свежесть и красоту каждого цветка.",
        "image_url": "https://images.unsplash.com/photo-1441986300917-64674bd600d8",
    },
    {
        "name": "loyalty",
        "title": "Программа лояльности",
        "subtitle": "Чем больше радости вы дарите, тем больше получаете",
        "button_text": "Узнать условия",
    },
]

DEFAULT_BLOG_POSTS = [
    {
        "title": "Как правильно обрезать стебли",
        "excerpt": "Правильная обрезка стеблей - залог долгой жизни букета.",
        "content": "Правильная обрезка стеблей является ключевым фактором для продления жизни срезанных цветов...",
        "category": "Основы ухода",
        "image_url": "https://images.unsplash.com/photo-1416879595882-3373a0480b5b",
        "published": True,
    },
    {
        "title": "Идеальная вода для цветов",
        "excerpt": "Качество воды напрямую влияет на жизнь букета.",
        "content": "Вода является жизненно важным элементом для срезанных цветов...",
        "category": "Секреты свежести",
        "image_url": "https://images.unsplash.com/photo-1487070183336-b863922373d4",
        "published": True,
    },
    {
        "title": "Сезонные композиции",
        "excerpt": "Каждое время года дарит уникальные возможности для особенных букетов.",
        "content": "Сезонность в флористике играет огромную роль...",
        "category": "Сезонность",
        "image_url": "https://images.unsplash.com/photo-1578662996442-48f60103fc96",
        "published": True,
    },
]

DEFAULT_PORTFOLIO = [
    {
        "title": "Свадебный букет \"Нежность\"",
        "description": "Классическая композиция из роз и пионов",
        "category": "wedding",
        "image_url": "https://images.unsplash.com/photo-1519225421980-715cb0215aed",
    },
    {
        "title": "Корпоративная композиция",
        "description": "Стильное оформление офисного пространства",
        "category": "corporate",
        "image_url": "https://images.unsplash.com/photo-1556075798-4825dfaaf498",
    },
    {
        "title": "День рождения \"Радость\"",
        "description": "Яркая композиция для особого дня",
        "category": "birthday",
        "image_url": "https://images.unsplash.com/photo-1558618666-fcd25c85cd64",
    },
]

DEFAULT_LOYALTY = [
    {
        "level": "beginner",
        "title": "Новичок",
        "description": "Первые покупки",
        "min_amount": 0,
        "max_amount": 5000,
        "discount": 5,
        "benefits": ["Скидка 5% на следующий заказ", "Бесплатная консультация флориста"],
    },
    {
        "level": "silver",
        "title": "Ценитель",
        "description": "Для постоянных клиентов",
        "min_amount": 5000,
        "max_amount": 15000,
        "discount": 10,
        "benefits": ["Скидка 10% на все заказы", "Приоритетная доставка", "Подарок на день рождения"],
    },
    {
        "level": "gold",
        "title": "VIP",
        "description": "Эксклюзивный статус для особых клиентов",
        "min_amount": 15000,
        "max_amount": 50000,
        "discount": 15,
        "benefits": ["Скидка 15% на все услуги", "Бесплатная доставка", "Персональный флорист"],
    },
    {
        "level": "platinum",
        "title": "Платиновый",
        "description": "Для самых преданных ценителей цветов",
        "min_amount": 50000,
        "max_amount": None,
        "discount": 20,
        "benefits": ["Скидка 20% на все услуги", "Приглашения на мастер-классы"],
    },
]


@app.post("/seed", dependencies=[Depends(require_admin)])
def seed():
    seeded = {}
    for collection, model, rows in [
        ("section", Section, DEFAULT_SECTIONS),
        ("blogpost", BlogPost, DEFAULT_BLOG_POSTS),
        ("portfolioitem", PortfolioItem, DEFAULT_PORTFOLIO),
        ("loyaltyprogram", LoyaltyProgram, DEFAULT_LOYALTY),
    ]:
        if db[collection].count_documents({}) > 0:
            seeded[collection] = 0
            continue
        for row in rows:
            create_document(collection, model(**row))
        seeded[collection] = len(rows)
    return {"seeded": seeded}


# -----------------
# Schema endpoint for viewer tooling
# -----------------
@app.get("/schema")
def get_schema_definitions():
    return {
        "collections": [
            "user", "section", "blogpost", "portfolioitem", "customer",
            "callbackrequest", "loyaltyprogram", "contactinfo", "sitesetting", "service"
        ]
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
