"""
Tests for {{token}} template compilation and rendering.
"""
from postback_relay.postback.templating import (
    Literal,
    Variable,
    compile_template,
    render_structure,
    render_template,
)


def test_plain_variable_substitution():
    assert render_template("Hello {{name}}!", {"name": "Ann"}, {}) == "Hello Ann!"


def test_fields_take_priority_over_config():
    assert render_template("{{pixelId}}", {"pixelId": "from-fields"}, {"pixelId": "from-config"}) == "from-fields"
    assert render_template("{{pixelId}}", {}, {"pixelId": "123"}) == "123"


def test_missing_values_render_empty():
    assert render_template("a={{missing}}&b=1", {}, {}) == "a=&b=1"


def test_default_modifier_applies_to_blank_values():
    template = "{{currency|default:USD}}"
    assert render_template(template, {}, {}) == "USD"
    assert render_template(template, {"currency": ""}, {}) == "USD"
    assert render_template(template, {"currency": "EUR"}, {}) == "EUR"


def test_default_argument_may_contain_spaces():
    assert render_template("{{name|default:No name}}", {}, {}) == "No name"


def test_number_modifier():
    assert render_template("{{revenue|number}}", {"revenue": "12.50"}, {}) == "12.5"
    assert render_template("{{revenue|number}}", {"revenue": "10"}, {}) == "10"
    assert render_template("{{revenue|number}}", {"revenue": "abc"}, {}) == "0"
    assert render_template("{{revenue|number}}", {}, {}) == "0"


def test_values_render_like_javascript():
    assert render_template("{{v}}", {"v": 5.0}, {}) == "5"
    assert render_template("{{v}}", {"v": True}, {}) == "true"


def test_non_tokens_are_left_alone():
    assert render_template("{{not a token}} {{x}}", {"x": "1"}, {}) == "{{not a token}} 1"
    assert render_template("{{{x}}}", {"x": "1"}, {}) == "{1}"


def test_compiled_templates_are_cached_and_structured():
    compiled = compile_template("id={{click_id}}&c={{currency|default:USD}}")

    assert compiled is compile_template("id={{click_id}}&c={{currency|default:USD}}")
    assert compiled.nodes == (
        Literal("id="),
        Variable("click_id"),
        Literal("&c="),
        Variable("currency", "default", "USD"),
    )
    assert compiled.variables == ("click_id", "currency")


def test_render_structure_walks_nested_objects_and_lists():
    template = {
        "data": [{"event_id": "{{transactionId}}", "value": "{{revenue|number}}"}],
        "static": 1,
    }
    rendered = render_structure(template, {"transactionId": "T1", "revenue": "9.99"}, {})

    assert rendered == {"data": [{"event_id": "T1", "value": "9.99"}], "static": 1}
