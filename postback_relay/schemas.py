from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Annotated, Any, Dict, List, Literal, Optional
from datetime import datetime

from .postback.templates import get_receive_template, get_relay_template
from .postback.transforms import RELAY_TRANSFORMS, TRANSFORMERS

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Endpoint configuration

class ValidationSettings(CamelModel):
    type: Literal["none", "checksum", "hmac", "apiKey", "ipAllowlist"]
    config: Dict[str, Any] = {}


class FieldMappingConfig(CamelModel):
    source: Literal["body", "query", "header", "path"]
    source_path: str
    target_field: str
    transform: Optional[str] = None
    default_value: Any = None

    @field_validator("transform")
    @classmethod
    def known_transform(cls, value):
        if value is not None and value not in TRANSFORMERS:
            raise ValueError(f"Unknown transform: {value}")
        return value


class EventConfig(CamelModel):
    event_name: str = "conversion"
    record_revenue: bool = False
    revenue_field: Optional[str] = None
    currency_field: Optional[str] = None


class ResponseConfig(CamelModel):
    mode: Literal["minimal", "passthrough", "detailed"] = "minimal"
    success_code: int = Field(200, ge=100, le=599)


class EndpointConfig(CamelModel):
    # Extra keys are template settings such as validationSalt or pixelId
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    allowed_methods: List[HttpMethod] = ["GET", "POST"]
    input_format: Literal["auto", "json", "xml", "form", "query"] = "auto"
    validation: Optional[ValidationSettings] = None
    field_mapping: Optional[List[FieldMappingConfig]] = None
    event_config: Optional[EventConfig] = None
    response: Optional[ResponseConfig] = None

    def lookup_values(self) -> Dict[str, Any]:
        """Flat map used to resolve {{tokens}} and salt keys."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# Relay configuration

class RetryConfig(CamelModel):
    max_attempts: int = Field(3, ge=1, le=10)
    initial_delay_ms: int = Field(1000, ge=100, le=60000)
    max_delay_ms: int = Field(30000, ge=1000, le=300000)
    backoff_multiplier: float = Field(2, ge=1, le=10)


ConditionOperator = Literal[
    "eq", "neq", "gt", "gte", "lt", "lte",
    "contains", "startsWith", "endsWith", "exists", "notExists",
]


class ConditionRule(CamelModel):
    field: str
    operator: ConditionOperator
    value: Any = None


class RelayConditions(CamelModel):
    rules: List[ConditionRule] = []
    logic: Literal["and", "or"] = "and"

    @field_validator("logic", mode="before")
    @classmethod
    def lowercase_logic(cls, value):
        return value.lower() if isinstance(value, str) else value


class RelayFieldMapping(CamelModel):
    source: Optional[str] = None
    target: str
    transform: Optional[str] = None
    default_value: Any = None
    static_value: Any = None

    @field_validator("transform")
    @classmethod
    def known_transform(cls, value):
        if value is not None and value not in RELAY_TRANSFORMS:
            raise ValueError(f"Unknown relay transform: {value}")
        return value

    @model_validator(mode="after")
    def source_or_static(self):
        if self.source is None and self.static_value is None:
            raise ValueError("Either source or staticValue is required")
        return self


class RelayMapping(CamelModel):
    fields: List[RelayFieldMapping] = []


def _check_url(value):
    if value is not None and not value.startswith(("http://", "https://")):
        raise ValueError("URL must start with http:// or https://")
    return value


def _check_receive_template(value):
    if value and get_receive_template(value) is None:
        raise ValueError(f"Unknown receive template: {value}")
    return value


def _check_relay_template(value):
    if value and get_relay_template(value) is None:
        raise ValueError(f"Unknown relay template: {value}")
    return value


TargetUrl = Annotated[str, AfterValidator(_check_url)]
ReceiveTemplateId = Annotated[Optional[str], AfterValidator(_check_receive_template)]
RelayTemplateId = Annotated[Optional[str], AfterValidator(_check_relay_template)]


class RelayCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    target_url: TargetUrl
    method: HttpMethod = "POST"
    format: Literal["json", "query", "form"] = "json"
    mapping: RelayMapping = RelayMapping()
    headers: Optional[Dict[str, str]] = None
    conditions: Optional[RelayConditions] = None
    retry_config: Optional[RetryConfig] = None
    is_active: bool = True


class RelayUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    target_url: Optional[TargetUrl] = None
    method: Optional[HttpMethod] = None
    format: Optional[Literal["json", "query", "form"]] = None
    mapping: Optional[RelayMapping] = None
    headers: Optional[Dict[str, str]] = None
    conditions: Optional[RelayConditions] = None
    retry_config: Optional[RetryConfig] = None
    is_active: Optional[bool] = None


class RelayResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    endpoint_id: str
    name: str
    target_url: str
    method: str
    format: str
    mapping: Dict[str, Any]
    headers: Optional[Dict[str, str]] = None
    conditions: Optional[Dict[str, Any]] = None
    retry_config: Optional[Dict[str, Any]] = None
    is_active: bool
    created_at: Optional[datetime] = None


class RelayLogResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    relay_id: str
    request_id: Optional[str] = None
    attempt: int
    status: str
    status_code: Optional[int] = None
    request_body: Any = None
    response_body: Optional[str] = None
    duration_ms: Optional[int] = None
    error: Optional[str] = None
    created_at: Optional[datetime] = None


# Endpoints

class EndpointCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_-]+$")
    config: EndpointConfig = EndpointConfig()
    receive_template_id: ReceiveTemplateId = None
    relay_template_id: RelayTemplateId = None
    relay_target_url: Optional[str] = None
    team_id: Optional[str] = None
    is_active: bool = True


class EndpointUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    config: Optional[EndpointConfig] = None
    receive_template_id: ReceiveTemplateId = None
    relay_template_id: RelayTemplateId = None
    relay_target_url: Optional[str] = None
    is_active: Optional[bool] = None


class EndpointResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    name: str
    slug: str
    user_id: Optional[str] = None
    team_id: Optional[str] = None
    receive_template_id: Optional[str] = None
    relay_template_id: Optional[str] = None
    relay_target_url: Optional[str] = None
    config: Dict[str, Any]
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Audit records

class PostbackRequestResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    endpoint_id: str
    method: str
    path: str
    query: Optional[Dict[str, Any]] = None
    headers: Optional[Dict[str, Any]] = None
    body: Any = None
    body_raw: Optional[str] = None
    content_type: Optional[str] = None
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None
    status: str
    parsed_fields: Optional[Dict[str, Any]] = None
    validation: Optional[Dict[str, Any]] = None
    relay_result: Optional[Dict[str, Any]] = None
    event_id: Optional[str] = None
    link_click_id: Optional[str] = None
    redirect_click_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PostbackStats(BaseModel):
    total: int
    successful: int
    failed: int
    revenue: float
