"""
Template registry.

Templates are keyed by id; the registry is built at import time and refuses
duplicate ids.
"""
from typing import Dict, Iterable, List, Optional, TypeVar

from .receive import RECEIVE_TEMPLATES
from .relay import RELAY_TEMPLATES
from .types import (
    FieldMapping,
    ReceiveTemplate,
    RelayTemplate,
    TemplateSetting,
    ValidationConfig,
)

T = TypeVar("T", ReceiveTemplate, RelayTemplate)


def build_registry(templates: Iterable[T]) -> Dict[str, T]:
    registry: Dict[str, T] = {}
    for template in templates:
        if template.id in registry:
            raise ValueError(f"Duplicate template id: {template.id}")
        registry[template.id] = template
    return registry


_receive_templates = build_registry(RECEIVE_TEMPLATES)
_relay_templates = build_registry(RELAY_TEMPLATES)


def get_receive_templates() -> List[ReceiveTemplate]:
    return list(_receive_templates.values())


def get_receive_template(template_id: Optional[str]) -> Optional[ReceiveTemplate]:
    if not template_id:
        return None
    return _receive_templates.get(template_id)


def get_relay_templates() -> List[RelayTemplate]:
    return list(_relay_templates.values())


def get_relay_template(template_id: Optional[str]) -> Optional[RelayTemplate]:
    if not template_id:
        return None
    return _relay_templates.get(template_id)


__all__ = [
    "FieldMapping",
    "ReceiveTemplate",
    "RelayTemplate",
    "TemplateSetting",
    "ValidationConfig",
    "build_registry",
    "get_receive_template",
    "get_receive_templates",
    "get_relay_template",
    "get_relay_templates",
]
