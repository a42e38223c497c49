"""
Database Schemas for Tsvetokraft (MongoDB via Pydantic)

Each Pydantic model maps to a MongoDB collection using the lowercase
class name as the collection name.

Collections:
- user
- section
- blogpost
- portfolioitem
- customer
- callbackrequest
- loyaltyprogram
- contactinfo
- sitesetting
- service

The *Update models carry the same fields as optional values and back the
PUT/PATCH endpoints: an omitted field is left alone, an explicit null clears
it unless the model lists it in required_fields.
"""
from typing import ClassVar, Dict, List, Optional, Literal, Tuple
from pydantic import BaseModel, Field, EmailStr, model_validator
from datetime import datetime

PortfolioCategory = Literal["wedding", "corporate", "birthday", "seasonal"]
CustomerLoyaltyLevel = Literal["bronze", "silver", "gold", "platinum"]
CallbackStatus = Literal["pending", "contacted", "completed"]
LoyaltyLevel = Literal["beginner", "silver", "gold", "platinum"]
UserRole = Literal["super_admin", "admin", "manager"]
ServiceCategory = Literal["bouquets", "decoration", "events", "delivery", "consultation", "maintenance"]


class PartialUpdate(BaseModel):
    """
    Base for PUT/PATCH bodies. Fields left out are untouched, an explicit
    null clears the field, except for the names in `required_fields`.
    """
    required_fields: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_null_required(self):
        for name in self.required_fields:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)

# Auth/User
class User(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: Optional[str] = None
    password_hash: str = Field(..., description="SHA-256 hex digest")
    role: UserRole = "manager"
    is_active: bool = True
    last_login_at: Optional[datetime] = None

class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=8)
    email: Optional[str] = None
    role: UserRole = "manager"

# Page sections (hero, about, loyalty, ...)
class Section(BaseModel):
    name: str = Field(..., pattern=r"^[a-z][a-z0-9_-]*$", max_length=50)
    title: str = Field(..., min_length=1)
    subtitle: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    button_text: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool = True

class SectionUpdate(PartialUpdate):
    required_fields = ("name", "title", "is_active")

    name: Optional[str] = Field(None, pattern=r"^[a-z][a-z0-9_-]*$", max_length=50)
    title: Optional[str] = Field(None, min_length=1)
    subtitle: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    button_text: Optional[str] = None
    image_url: Optional[str] = None
    is_active: Optional[bool] = None

# Blog
class BlogPost(BaseModel):
    title: str = Field(..., min_length=1)
    excerpt: Optional[str] = None
    content: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    published: bool = False

class BlogPostUpdate(PartialUpdate):
    required_fields = ("title", "content", "category", "published")

    title: Optional[str] = Field(None, min_length=1)
    excerpt: Optional[str] = None
    content: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    image_url: Optional[str] = None
    published: Optional[bool] = None

# Portfolio
class PortfolioItem(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: PortfolioCategory
    image_url: str = Field(..., min_length=1)
    is_active: bool = True

class PortfolioItemUpdate(PartialUpdate):
    required_fields = ("title", "category", "image_url", "is_active")

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category: Optional[PortfolioCategory] = None
    image_url: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None

# CRM
class Customer(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=5, max_length=32)
    email: Optional[EmailStr] = None
    loyalty_level: CustomerLoyaltyLevel = "bronze"
    notes: Optional[str] = None
    total_orders: int = Field(0, ge=0)
    total_spent: float = Field(0, ge=0)
    last_order_date: Optional[datetime] = None

class CustomerUpdate(PartialUpdate):
    required_fields = ("name", "phone", "loyalty_level", "total_orders", "total_spent")

    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = Field(None, min_length=5, max_length=32)
    email: Optional[EmailStr] = None
    loyalty_level: Optional[CustomerLoyaltyLevel] = None
    notes: Optional[str] = None
    total_orders: Optional[int] = Field(None, ge=0)
    total_spent: Optional[float] = Field(None, ge=0)
    last_order_date: Optional[datetime] = None

# Callback requests (visitor asks for a phone consultation)
class CallbackRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=5, max_length=32)
    message: Optional[str] = Field(None, max_length=2000)
    call_time: Optional[str] = None
    status: CallbackStatus = "pending"

class CallbackRequestCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=5, max_length=32)
    message: Optional[str] = Field(None, max_length=2000)
    call_time: Optional[str] = None

class CallbackRequestUpdate(PartialUpdate):
    required_fields = ("name", "phone", "status")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, min_length=5, max_length=32)
    message: Optional[str] = Field(None, max_length=2000)
    call_time: Optional[str] = None
    status: Optional[CallbackStatus] = None

class CallbackStatusUpdate(BaseModel):
    status: CallbackStatus

# Loyalty program tiers
class LoyaltyProgram(BaseModel):
    level: LoyaltyLevel
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    benefits: List[str] = []
    min_amount: int = Field(..., ge=0)
    max_amount: Optional[int] = Field(None, ge=0)
    discount: int = Field(..., ge=0, le=100)
    is_active: bool = True

    @model_validator(mode="after")
    def check_bracket(self):
        if self.max_amount is not None and self.max_amount < self.min_amount:
            raise ValueError("max_amount must be greater than or equal to min_amount")
        return self

class LoyaltyProgramUpdate(PartialUpdate):
    required_fields = ("level", "title", "benefits", "min_amount", "discount", "is_active")

    level: Optional[LoyaltyLevel] = None
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    benefits: Optional[List[str]] = None
    min_amount: Optional[int] = Field(None, ge=0)
    max_amount: Optional[int] = Field(None, ge=0)
    discount: Optional[int] = Field(None, ge=0, le=100)
    is_active: Optional[bool] = None

# Services catalog
class Service(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    short_description: Optional[str] = None
    price: Optional[str] = None
    duration: Optional[str] = None
    category: ServiceCategory
    features: List[str] = []
    image_url: Optional[str] = None
    is_active: bool = True
    is_popular: bool = False
    sort_order: int = Field(0, ge=0)

class ServiceUpdate(PartialUpdate):
    required_fields = ("name", "description", "category", "features", "is_active", "is_popular", "sort_order")

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    short_description: Optional[str] = None
    price: Optional[str] = None
    duration: Optional[str] = None
    category: Optional[ServiceCategory] = None
    features: Optional[List[str]] = None
    image_url: Optional[str] = None
    is_active: Optional[bool] = None
    is_popular: Optional[bool] = None
    sort_order: Optional[int] = Field(None, ge=0)

# Contact info (singleton)
class ContactInfo(BaseModel):
    phone: str = Field(..., min_length=5)
    email: EmailStr
    address: str = Field(..., min_length=1)
    working_hours: str = Field(..., min_length=1)
    social_media: Dict[str, str] = {}
    additional_info: Dict[str, str] = {}

# Site settings
class SiteSetting(BaseModel):
    key: str = Field(..., pattern=r"^[a-z_][a-zA-Z0-9_]*$", max_length=64)
    value: str
    description: Optional[str] = None
    updated_by: Optional[str] = None

class SiteSettingUpdate(PartialUpdate):
    value: str
    description: Optional[str] = None

class ColorSchemeUpdate(BaseModel):
    scheme_name: Literal["floralPink", "botanicalGreen", "royalPurple"]

# Chatbot
class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str

class ChatRequest(BaseModel):
    messages: List[ChatMessage]

class RecommendationRequest(BaseModel):
    occasion: str = Field(..., min_length=1)
    budget: str = Field(..., min_length=1)
    preferences: str = Field(..., min_length=1)
    colors: Optional[List[str]] = None

class SentimentRequest(BaseModel):
    text: str = Field(..., min_length=1)
