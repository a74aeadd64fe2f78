from fastapi import APIRouter

from ..postback.templates import get_receive_templates, get_relay_templates
from ..postback.templates.types import describe_settings

router = APIRouter(prefix="/api/templates", tags=["templates"])


@router.get("/receive")
def list_receive_templates():
    """Networks we know how to validate and parse"""
    return [
        {
            "id": template.id,
            "name": template.name,
            "description": template.description,
            "source": template.source,
            "docsUrl": template.docs_url,
            "validationType": template.validation.type if template.validation else "none",
            "standardFields": template.standard_fields,
            "configSchema": describe_settings(template.config_schema),
        }
        for template in get_receive_templates()
    ]


@router.get("/relay")
def list_relay_templates():
    """Destinations we know how to format for"""
    return [
        {
            "id": template.id,
            "name": template.name,
            "description": template.description,
            "destination": template.destination,
            "docsUrl": template.docs_url,
            "method": template.method,
            "format": template.format,
            "configSchema": describe_settings(template.config_schema),
        }
        for template in get_relay_templates()
    ]
