import pytest

from postback_relay.postback.templates import (
    build_registry,
    get_receive_template,
    get_receive_templates,
    get_relay_template,
    get_relay_templates,
)
from postback_relay.postback.templates.types import RELAY_FORMATS, VALIDATION_TYPES


def test_receive_templates_are_registered_by_id():
    ids = [template.id for template in get_receive_templates()]

    assert ids == ["generic", "chaturbate", "clickbank"]
    assert get_receive_template("chaturbate").validation.type == "md5"


def test_relay_templates_are_registered_by_id():
    ids = [template.id for template in get_relay_templates()]

    assert ids == ["generic-webhook", "facebook-capi", "google-ads"]
    assert get_relay_template("generic-webhook").url_template == "{{webhookUrl}}"


def test_unknown_or_empty_ids_resolve_to_none():
    assert get_receive_template("nope") is None
    assert get_receive_template(None) is None
    assert get_relay_template("") is None


def test_duplicate_ids_are_rejected():
    generic = get_receive_template("generic")

    with pytest.raises(ValueError, match="Duplicate template id: generic"):
        build_registry([generic, generic])


def test_templates_declare_supported_types():
    for template in get_receive_templates():
        assert template.validation is None or template.validation.type in VALIDATION_TYPES
    for template in get_relay_templates():
        assert template.format in RELAY_FORMATS
