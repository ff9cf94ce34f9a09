from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from app.domain import (
    PHONE_PATTERN,
    WEBSITE_PATTERN,
    PaymentMethod,
    PaymentStatus,
    ProductCategory,
    ProductStatus,
    ProductUnit,
    ReportPriority,
    ReportStatus,
    ReportType,
    Role,
    SupplierCategory,
    StockChangeReason,
    SupplierStatus,
    to_iso,
)
from app.security import BCRYPT_MAX_PASSWORD_BYTES, password_fits_bcrypt, password_meets_policy

PASSWORD_POLICY_MESSAGE = (
    "Password must contain at least one lowercase letter, one uppercase letter, one number, and one special character"
)


def _lower_email(value: str | None) -> str | None:
    return value.strip().lower() if isinstance(value, str) else value


def _check_password(value: str) -> str:
    if not password_fits_bcrypt(value):
        raise ValueError(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes long")
    if not password_meets_policy(value):
        raise ValueError(PASSWORD_POLICY_MESSAGE)
    return value


# ---------------------------------------------------------------------------
# Users & auth
# ---------------------------------------------------------------------------


class UserProfile(BaseModel):
    age: int | None = Field(default=None, ge=16, le=100)
    gender: Literal["male", "female", "other"] | None = None
    province: str | None = None
    district: str | None = None
    farm_size: float | None = Field(default=None, ge=0)
    crops: list[str] | None = None
    specialization: list[str] | None = None
    service_areas: list[str] | None = None
    experience_years: int | None = Field(default=None, ge=0)
    shop_name: str | None = None
    shop_location: str | None = None
    business_license: str | None = None
    farming_experience: int | None = Field(default=None, ge=0)
    certification_type: str | None = None


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: str = Field(min_length=2, max_length=100)
    phone: str | None = Field(default=None, pattern=PHONE_PATTERN)
    role: Role | None = None
    profile: UserProfile | None = None

    normalize_email = field_validator("email", mode="after")(_lower_email)
    password_policy = field_validator("password")(_check_password)

    @field_validator("full_name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        stripped = value.strip()
        if len(stripped) < 2:
            raise ValueError("Full name must be at least 2 characters long")
        return stripped


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

    normalize_email = field_validator("email", mode="after")(_lower_email)


class ProfileUpdateRequest(BaseModel):
    full_name: str | None = Field(default=None, min_length=2, max_length=100)
    phone: str | None = Field(default=None, pattern=PHONE_PATTERN)
    profile: UserProfile | None = None


class PasswordChangeRequest(BaseModel):
    currentPassword: str = Field(min_length=1)
    newPassword: str = Field(min_length=8)

    password_policy = field_validator("newPassword")(_check_password)


class UserUpdateRequest(BaseModel):
    full_name: str | None = Field(default=None, min_length=2, max_length=100)
    phone: str | None = Field(default=None, pattern=PHONE_PATTERN)
    profile: UserProfile | None = None
    role: str | None = None
    status: str | None = None


class UserStatusRequest(BaseModel):
    status: str


class UserRoleRequest(BaseModel):
    role: str


# ---------------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------------


class SupplierAddress(BaseModel):
    street_address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    province: str = Field(min_length=1)
    district: str | None = None
    postal_code: str | None = None
    country: str = "Rwanda"


class BankDetails(BaseModel):
    bank_name: str = Field(min_length=1)
    account_name: str = Field(min_length=1)
    account_number: str = Field(min_length=1)
    routing_number: str | None = None
    swift_code: str | None = None


class SupplierCreateRequest(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    category: SupplierCategory
    contact_person: str = Field(min_length=2, max_length=100)
    email: EmailStr
    phone: str = Field(pattern=PHONE_PATTERN)
    website: str | None = Field(default=None, pattern=WEBSITE_PATTERN)
    address: SupplierAddress
    business_license: str | None = None
    tax_id: str | None = None
    bank_details: BankDetails | None = None
    status: SupplierStatus = "pending_approval"
    rating: float = Field(default=0, ge=0, le=5)
    total_orders: int = Field(default=0, ge=0)
    products_supplied: list[str] = Field(default_factory=list)
    services_offered: list[str] = Field(default_factory=list)
    delivery_areas: list[str] = Field(default_factory=list)
    payment_terms: str | None = Field(default=None, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)

    normalize_email = field_validator("email", mode="after")(_lower_email)


class SupplierUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=200)
    category: SupplierCategory | None = None
    contact_person: str | None = Field(default=None, min_length=2, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, pattern=PHONE_PATTERN)
    website: str | None = Field(default=None, pattern=WEBSITE_PATTERN)
    address: SupplierAddress | None = None
    business_license: str | None = None
    tax_id: str | None = None
    bank_details: BankDetails | None = None
    status: SupplierStatus | None = None
    products_supplied: list[str] | None = None
    services_offered: list[str] | None = None
    delivery_areas: list[str] | None = None
    payment_terms: str | None = Field(default=None, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)

    normalize_email = field_validator("email", mode="after")(_lower_email)


class SupplierRatingRequest(BaseModel):
    rating: float = Field(ge=0, le=5)


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


def _not_in_future(value: datetime | None) -> datetime | None:
    if value is not None:
        aware = value if value.tzinfo else value.replace(tzinfo=UTC)
        if aware > datetime.now(UTC):
            raise ValueError("Harvest date cannot be in the future")
    return value


def _in_future(value: datetime | None) -> datetime | None:
    if value is not None:
        aware = value if value.tzinfo else value.replace(tzinfo=UTC)
        if aware <= datetime.now(UTC):
            raise ValueError("Expiry date must be in the future")
    return value


class ProductCreateRequest(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    category: ProductCategory
    description: str | None = Field(default=None, max_length=1000)
    price: float = Field(ge=0, allow_inf_nan=False)
    quantity: int = Field(default=0, ge=0)
    unit: ProductUnit
    supplier_id: str = Field(min_length=1)
    status: ProductStatus = "available"
    harvest_date: datetime | None = None
    expiry_date: datetime | None = None
    sku: str | None = Field(default=None, min_length=1, max_length=64)
    brand: str | None = Field(default=None, max_length=100)
    images: list[str] = Field(default_factory=list)
    specifications: dict[str, Any] = Field(default_factory=dict)

    harvest_not_future = field_validator("harvest_date")(_not_in_future)
    expiry_in_future = field_validator("expiry_date")(_in_future)


class ProductUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=200)
    category: ProductCategory | None = None
    description: str | None = Field(default=None, max_length=1000)
    price: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    quantity: int | None = Field(default=None, ge=0)
    unit: ProductUnit | None = None
    supplier_id: str | None = Field(default=None, min_length=1)
    status: ProductStatus | None = None
    harvest_date: datetime | None = None
    expiry_date: datetime | None = None
    sku: str | None = Field(default=None, min_length=1, max_length=64)
    brand: str | None = Field(default=None, max_length=100)
    images: list[str] | None = None
    specifications: dict[str, Any] | None = None

    harvest_not_future = field_validator("harvest_date")(_not_in_future)
    expiry_in_future = field_validator("expiry_date")(_in_future)


class StockUpdateRequest(BaseModel):
    quantity: int | None = Field(default=None, ge=0)
    operation: Literal["add", "subtract", "set"] | None = None
    amount: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _require_quantity_or_operation(self) -> "StockUpdateRequest":
        if self.quantity is None and (self.operation is None or self.amount is None):
            raise ValueError("Valid quantity is required")
        return self


class StockAdjustmentRequest(BaseModel):
    product_id: str = Field(min_length=1)
    quantity: int
    reason: StockChangeReason = "adjustment"
    notes: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class OrderAddress(BaseModel):
    full_name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    street_address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    province: str = Field(min_length=1)
    postal_code: str | None = None
    country: str = "Rwanda"


class OrderItemRequest(BaseModel):
    product_id: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    specifications: dict[str, Any] | None = None


class OrderCreateRequest(BaseModel):
    items: list[OrderItemRequest] = Field(min_length=1)
    shipping_address: OrderAddress
    billing_address: OrderAddress | None = None
    payment_method: PaymentMethod = "cash"
    expected_delivery_date: datetime | None = None
    notes: str | None = Field(default=None, max_length=500)


class OrderUpdateRequest(BaseModel):
    shipping_address: OrderAddress | None = None
    billing_address: OrderAddress | None = None
    payment_status: PaymentStatus | None = None
    payment_method: PaymentMethod | None = None
    expected_delivery_date: datetime | None = None
    tracking_number: str | None = None
    notes: str | None = Field(default=None, max_length=500)


class OrderStatusRequest(BaseModel):
    status: str


# ---------------------------------------------------------------------------
# Shops
# ---------------------------------------------------------------------------


class ShopCreateRequest(BaseModel):
    shopName: str = Field(min_length=2, max_length=200)
    description: str = Field(min_length=1, max_length=1000)
    province: str = Field(min_length=1)
    district: str = Field(min_length=1)
    ownerName: str = Field(min_length=2)
    ownerEmail: EmailStr
    ownerPhone: str = Field(pattern=PHONE_PATTERN)

    normalize_email = field_validator("ownerEmail", mode="after")(_lower_email)


class ShopUpdateRequest(BaseModel):
    shopName: str | None = Field(default=None, min_length=2, max_length=200)
    description: str | None = Field(default=None, min_length=1, max_length=1000)
    province: str | None = Field(default=None, min_length=1)
    district: str | None = Field(default=None, min_length=1)
    ownerName: str | None = Field(default=None, min_length=2)
    ownerEmail: EmailStr | None = None
    ownerPhone: str | None = Field(default=None, pattern=PHONE_PATTERN)

    normalize_email = field_validator("ownerEmail", mode="after")(_lower_email)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class ReportLocation(BaseModel):
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    address: str | None = Field(default=None, max_length=500)


class ReportCreateRequest(BaseModel):
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=10, max_length=2000)
    report_type: ReportType
    status: ReportStatus = "pending"
    priority: ReportPriority = "medium"
    agent_id: str | None = None
    farmer_id: str | None = None
    scheduled_date: datetime
    location: ReportLocation | None = None
    findings: str | None = Field(default=None, max_length=5000)
    recommendations: str | None = Field(default=None, max_length=5000)
    notes: str | None = Field(default=None, max_length=2000)


class ReportUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=5, max_length=200)
    description: str | None = Field(default=None, min_length=10, max_length=2000)
    report_type: ReportType | None = None
    status: ReportStatus | None = None
    priority: ReportPriority | None = None
    farmer_id: str | None = None
    scheduled_date: datetime | None = None
    location: ReportLocation | None = None
    findings: str | None = Field(default=None, max_length=5000)
    recommendations: str | None = Field(default=None, max_length=5000)
    notes: str | None = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Farmer & agent profiles
# ---------------------------------------------------------------------------


class FarmerProfileFields(BaseModel):
    age: int | None = Field(default=None, ge=0, le=150)
    id_number: str | None = None
    gender: Literal["Male", "Female", "Other"] | None = None
    marital_status: Literal["Single", "Married", "Divorced", "Widowed"] | None = None
    education_level: Literal["Primary", "Secondary", "University", "None"] | None = None
    province: str | None = None
    district: str | None = None
    sector: str | None = None
    cell: str | None = None
    village: str | None = None
    farm_age: float | None = Field(default=None, ge=0)
    planted: str | None = None
    avocado_type: str | None = None
    mixed_percentage: float | None = Field(default=None, ge=0, le=100)
    farm_size: float | None = Field(default=None, ge=0)
    tree_count: int | None = Field(default=None, ge=0)
    upi_number: str | None = None
    farm_province: str | None = None
    farm_district: str | None = None
    farm_sector: str | None = None
    farm_cell: str | None = None
    farm_village: str | None = None
    assistance: list[str] | None = None
    image: str | None = None


class FarmerInformationUpdateRequest(FarmerProfileFields):
    farmerId: str | None = None
    full_name: str | None = Field(default=None, min_length=2, max_length=100)
    phone: str | None = Field(default=None, pattern=PHONE_PATTERN)
    email: EmailStr | None = None

    normalize_email = field_validator("email", mode="after")(_lower_email)


class TreeCountRequest(BaseModel):
    tree_count: int | None = None


class AgentTerritory(BaseModel):
    district: str = Field(min_length=1)
    sector: str = Field(min_length=1)
    isPrimary: bool = False
    assignedDate: datetime | None = None


class AgentStatistics(BaseModel):
    farmersAssisted: int = Field(default=0, ge=0)
    totalTransactions: int = Field(default=0, ge=0)
    performance: str | None = None
    activeFarmers: int = Field(default=0, ge=0)
    territoryUtilization: str | None = None


class AgentProfileFields(BaseModel):
    province: str | None = None
    territory: list[AgentTerritory] | None = None
    district: str | None = None
    sector: str | None = None
    cell: str | None = None
    village: str | None = None
    specialization: str | None = None
    experience: str | None = None
    certification: str | None = None
    statistics: AgentStatistics | None = None
    farmersAssisted: int | None = Field(default=None, ge=0)
    totalTransactions: int | None = Field(default=None, ge=0)
    performance: str | None = None
    profileImage: str | None = None


class AgentInformationUpdateRequest(AgentProfileFields):
    full_name: str | None = Field(default=None, min_length=2, max_length=100)
    phone: str | None = Field(default=None, pattern=PHONE_PATTERN)
    email: EmailStr | None = None

    normalize_email = field_validator("email", mode="after")(_lower_email)


class AgentPerformanceRequest(BaseModel):
    farmersAssisted: int | None = Field(default=None, ge=0)
    totalTransactions: int | None = Field(default=None, ge=0)
    performance: str | None = None


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


def _meta(trace_id: str) -> dict[str, Any]:
    return {
        "trace_id": trace_id,
        "timestamp": to_iso(datetime.now(UTC)),
        "version": os.environ.get("APP_VERSION", "").strip() or "1.0.0",
    }


def success_envelope(
    data: Any,
    trace_id: str,
    message: str = "Request successful",
    *,
    pagination: dict[str, Any] | None = None,
) -> dict[str, Any]:
    meta = _meta(trace_id)
    if pagination is not None:
        meta["pagination"] = pagination
    return {
        "success": True,
        "message": message,
        "data": data,
        "meta": meta,
    }


def error_envelope(
    *,
    code: str,
    message: str,
    error_class: str,
    retryable: bool,
    trace_id: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    error: dict[str, Any] = {
        "code": code,
        "message": message,
        "retryable": retryable,
        "class": error_class,
    }
    if details is not None:
        error["details"] = details
    return {
        "success": False,
        "message": message,
        "error": error,
        "meta": _meta(trace_id),
    }
