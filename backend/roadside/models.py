from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


RequestStatus = Literal["pending", "assigned", "in_progress", "completed", "cancelled"]
RequestPriority = Literal["normal", "high", "emergency"]
ProviderAvailability = Literal["available", "busy", "offline"]
SenderKind = Literal["user", "mechanic", "system"]


class User(BaseModel):
    id: int
    username: str
    name: str
    email: str
    phone: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class UserCreate(BaseModel):
    username: str = Field(min_length=1)
    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    address: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class UserLocationUpdate(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: str


class Provider(BaseModel):
    id: int
    name: str
    business_name: str
    phone: str
    email: str
    latitude: float
    longitude: float
    address: str
    rating: float = Field(default=0.0, ge=0.0, le=5.0)
    review_count: int = Field(default=0, ge=0)
    services: list[str] = Field(min_length=1)
    availability: ProviderAvailability = "available"
    response_time: int = Field(default=15, gt=0)
    price_range: str
    profile_image: Optional[str] = None
    is_24x7: bool = False


class ProviderCreate(BaseModel):
    name: str = Field(min_length=1)
    business_name: str = Field(min_length=1)
    phone: str
    email: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: str
    services: list[str] = Field(min_length=1)
    availability: ProviderAvailability = "available"
    response_time: int = Field(default=15, gt=0)
    price_range: str
    profile_image: Optional[str] = None
    is_24x7: bool = False


class ProviderAvailabilityUpdate(BaseModel):
    availability: ProviderAvailability


class ServiceRequest(BaseModel):
    id: int
    user_id: int
    mechanic_id: Optional[int] = None
    service_type: str
    description: Optional[str] = None
    status: RequestStatus = "pending"
    priority: RequestPriority = "normal"
    user_latitude: float
    user_longitude: float
    user_address: str
    estimated_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    final_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    estimated_arrival: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ServiceRequestCreate(BaseModel):
    user_id: int
    service_type: str
    description: Optional[str] = None
    priority: RequestPriority = "normal"
    user_latitude: float = Field(ge=-90, le=90)
    user_longitude: float = Field(ge=-180, le=180)
    user_address: str


class RequestStatusUpdate(BaseModel):
    status: RequestStatus
    mechanic_id: Optional[int] = None
    final_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)


class RequestAssignment(BaseModel):
    mechanic_id: int


class ServiceHistory(BaseModel):
    id: int
    user_id: int
    mechanic_id: int
    service_type: str
    description: Optional[str] = None
    price: Decimal = Field(ge=0)
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    review: Optional[str] = None
    completed_at: datetime
    created_at: datetime


class ServiceHistoryCreate(BaseModel):
    user_id: int
    mechanic_id: int
    service_type: str = Field(min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(ge=0, decimal_places=2)
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    review: Optional[str] = None
    completed_at: datetime


class ServiceHistoryReview(BaseModel):
    rating: int = Field(ge=1, le=5)
    review: Optional[str] = None


class HistorySummary(BaseModel):
    count: int
    total_spent: Decimal
    average_rating: Optional[float] = None


class Message(BaseModel):
    id: int
    request_id: int
    sender_id: int
    sender_type: SenderKind
    message: str
    created_at: datetime


class MessageCreate(BaseModel):
    request_id: int
    sender_id: int
    sender_type: SenderKind
    message: str
