"""
Template type definitions.

Receive templates describe how to validate and extract an inbound postback
for a given network; relay templates describe how to format an outbound
conversion for a destination.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

VALIDATION_TYPES = ("md5", "sha256", "hmac-sha256", "none")
RELAY_FORMATS = ("json", "query", "form")


@dataclass(frozen=True)
class ValidationConfig:
    type: str
    # Fields hashed after the salt, in order
    fields: Tuple[str, ...] = ()
    checksum_field: str = ""
    salt_config_key: Optional[str] = None
    # e.g. "{{salt}}{{log_id}}{{attempt}}"; overrides salt + fields
    formula: Optional[str] = None


@dataclass(frozen=True)
class FieldMapping:
    source: str
    target: str
    type: Optional[str] = None
    default: Any = None


@dataclass(frozen=True)
class TemplateSetting:
    key: str
    label: str
    type: str = "string"
    required: bool = False
    description: str = ""


@dataclass(frozen=True)
class ReceiveTemplate:
    id: str
    name: str
    description: str
    source: str
    field_mappings: Tuple[FieldMapping, ...]
    standard_fields: Dict[str, str] = field(default_factory=dict)
    validation: Optional[ValidationConfig] = None
    docs_url: Optional[str] = None
    config_schema: Tuple[TemplateSetting, ...] = ()


@dataclass(frozen=True)
class RelayTemplate:
    id: str
    name: str
    description: str
    destination: str
    method: str
    format: str
    url_template: str
    body_template: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)
    docs_url: Optional[str] = None
    config_schema: Tuple[TemplateSetting, ...] = ()


def describe_settings(settings: Tuple[TemplateSetting, ...]) -> List[Dict[str, Any]]:
    return [
        {
            "key": s.key,
            "label": s.label,
            "type": s.type,
            "required": s.required,
            "description": s.description,
        }
        for s in settings
    ]
