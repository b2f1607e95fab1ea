"""
Schémas stricts des formulaires de devis / leads.
Les champs acceptent le camelCase des formulaires (alias) ou le snake_case.
"""
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from storefront.quotes import options


class QuoteStatus(str, Enum):
    NEW = "new"
    SENT = "sent"
    CONTACTED = "contacted"
    QUOTED = "quoted"
    WON = "won"
    LOST = "lost"


class QuoteKind(str, Enum):
    BUILD = "build"
    WHEEL_BELAK = "wheel_belak"
    WHEEL_JTX = "wheel_jtx"
    SALES_LEAD = "sales_lead"
    VENDOR_APPLICATION = "vendor_application"


class _Form(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="forbid")


class _Contact(_Form):
    fullname: str = Field(min_length=2)
    email: EmailStr
    phone: Optional[str] = None
    vehicle_year: Optional[str] = Field(default=None, alias="vehicleYear")
    vehicle_make: Optional[str] = Field(default=None, alias="vehicleMake")
    vehicle_model: Optional[str] = Field(default=None, alias="vehicleModel")
    page_context: Optional[str] = Field(default=None, alias="pageContext")


class BuildQuoteItem(BaseModel):
    model_config = ConfigDict(extra="allow")
    name: Optional[str] = None
    # prix indicatif affiché au client, jamais facturé
    price: Optional[float] = Field(default=None, ge=0)
    qty: int = Field(default=1, ge=1)


class BuildQuoteRequest(_Form):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    vehicle: str = Field(min_length=1)
    items: List[BuildQuoteItem] = Field(min_length=1)
    subtotal: Optional[float] = None
    notes: Optional[str] = Field(default=None, max_length=4000)


class BelakWheelQuoteRequest(_Contact):
    series: Literal["Series 2", "Series 3"]
    phone: Optional[str] = Field(default=None, min_length=7)
    diameter: int
    width: float = Field(gt=0)
    bolt_pattern: str = Field(alias="boltPattern")
    backspacing: str = Field(min_length=2)
    finish: str
    beadlock: str
    center_cap: str = Field(alias="centerCap")
    hardware: str
    style: Optional[str] = None
    qty_front: int = Field(default=2, ge=0, le=2, alias="qtyFront")
    qty_rear: int = Field(default=2, ge=0, le=2, alias="qtyRear")
    tire_size_front: Optional[str] = Field(default=None, alias="tireSizeFront")
    tire_size_rear: Optional[str] = Field(default=None, alias="tireSizeRear")
    brake_clearance_notes: Optional[str] = Field(default=None, alias="brakeClearanceNotes")
    notes: Optional[str] = Field(default=None, max_length=2000)
    attachment_asset_ids: List[str] = Field(default_factory=list, alias="attachmentAssetIds")
    agree_track_use_only: bool = Field(alias="agreeTrackUseOnly")

    @field_validator("diameter")
    def diameter_allowed(cls, v: int) -> int:
        if v not in options.BELAK_DIAMETERS:
            raise ValueError("Invalid diameter")
        return v

    @field_validator("bolt_pattern")
    def bolt_pattern_allowed(cls, v: str) -> str:
        if v not in options.BELAK_BOLT_PATTERNS:
            raise ValueError("Invalid bolt pattern")
        return v

    @field_validator("finish")
    def finish_allowed(cls, v: str) -> str:
        if v not in options.BELAK_FINISHES:
            raise ValueError("Invalid finish")
        return v

    @field_validator("beadlock")
    def beadlock_allowed(cls, v: str) -> str:
        if v not in options.BELAK_BEADLOCK:
            raise ValueError("Invalid beadlock option")
        return v

    @field_validator("center_cap")
    def center_cap_allowed(cls, v: str) -> str:
        if v not in options.BELAK_CENTER_CAP:
            raise ValueError("Invalid center cap")
        return v

    @field_validator("hardware")
    def hardware_allowed(cls, v: str) -> str:
        if v not in options.BELAK_HARDWARE:
            raise ValueError("Invalid hardware")
        return v

    @field_validator("style")
    def style_allowed(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in options.BELAK_STYLES:
            raise ValueError("Invalid style")
        return v

    @field_validator("agree_track_use_only")
    def must_agree(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("Required")
        return v

    @model_validator(mode="after")
    def check_size_and_quantities(self):
        if self.width not in options.BELAK_WIDTHS_BY_DIAMETER.get(self.diameter, ()):
            raise ValueError("Selected width is not available for the chosen diameter.")
        if self.qty_front + self.qty_rear == 0:
            raise ValueError("At least one wheel is required")
        return self


class JtxWheelQuoteRequest(_Contact):
    series: str
    style: str = Field(min_length=1)
    diameter: int
    width: float
    bolt_pattern: str = Field(alias="boltPattern", min_length=1)
    offset: int
    finish: str = Field(min_length=1)
    color: Optional[str] = None
    qty: int = Field(default=4, ge=1, le=4)
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("series")
    def series_allowed(cls, v: str) -> str:
        if v not in options.JTX_SERIES:
            raise ValueError("Invalid series")
        return v

    @model_validator(mode="after")
    def check_combination(self):
        if self.style not in options.JTX_STYLES_BY_SERIES[self.series]:
            raise ValueError("Selected style is not available for the chosen series.")
        if self.diameter not in options.JTX_DIAMETERS_BY_SERIES[self.series]:
            raise ValueError("Selected diameter is not available for the chosen series.")
        if self.width not in options.JTX_WIDTHS_BY_DIAMETER.get(self.diameter, ()):
            raise ValueError("Selected width is not available for the chosen diameter.")
        if self.bolt_pattern not in options.JTX_BOLT_PATTERNS:
            raise ValueError("Selected bolt pattern is not available.")
        if self.finish not in options.JTX_FINISHES:
            raise ValueError("Selected finish is not available.")
        low, high = options.JTX_OFFSET_RANGE
        if self.series == "Beadlock Series":
            size = f"{self.diameter}x{self.width:g}"
            low, high = options.JTX_BEADLOCK_OFFSETS.get(size, (low, high))
        if not low <= self.offset <= high:
            raise ValueError(f"Offset must be between {low} and {high}.")
        return self


class SalesLead(_Form):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    message: str = Field(min_length=1, max_length=4000)
    # champ piège anti-spam: rempli uniquement par les robots
    website: Optional[str] = None
    return_to: Optional[str] = Field(default=None, alias="returnTo")


class VendorApplication(_Form):
    business_name: str = Field(min_length=1, alias="businessName")
    contact_person: str = Field(min_length=2, alias="contactPerson")
    email: EmailStr
    phone: Optional[str] = None
    business_address: Optional[Dict[str, Any]] = Field(default=None, alias="businessAddress")
    business_type: Optional[str] = Field(default=None, alias="businessType")
    website: Optional[str] = None
    tax_id: Optional[str] = Field(default=None, alias="taxId")
    resale_certificate_id: Optional[str] = Field(default=None, alias="resaleCertificateId")
    message: Optional[str] = Field(default=None, max_length=4000)


class QuoteStatusUpdate(BaseModel):
    status: QuoteStatus
