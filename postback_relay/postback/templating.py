"""
{{token}} templates used by relay templates and checksum formulas.

Supported forms: ``{{field}}``, ``{{field|default:value}}`` and
``{{field|number}}``. A template string is compiled once into a tuple of
literal and variable nodes and cached, so rendering never re-parses.
"""
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Mapping, Optional, Tuple, Union

from .coerce import is_blank, to_number, to_str

_VARIABLE = re.compile(r"(\w+)(?:\|(\w+)(?::([^}]+))?)?")

Lookup = Callable[[str], Any]


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class Variable:
    name: str
    modifier: Optional[str] = None
    argument: Optional[str] = None

    def evaluate(self, value: Any) -> str:
        if self.modifier == "default" and is_blank(value):
            value = self.argument
        if self.modifier == "number":
            number = to_number(value)
            return "0" if number is None else to_str(number)
        return to_str(value)


Node = Union[Literal, Variable]


@dataclass(frozen=True)
class CompiledTemplate:
    source: str
    nodes: Tuple[Node, ...]

    @property
    def variables(self) -> Tuple[str, ...]:
        return tuple(node.name for node in self.nodes if isinstance(node, Variable))

    def render(self, lookup: Lookup) -> str:
        parts = []
        for node in self.nodes:
            if isinstance(node, Literal):
                parts.append(node.text)
            else:
                parts.append(node.evaluate(lookup(node.name)))
        return "".join(parts)


def _tokenize(source: str) -> Tuple[Node, ...]:
    nodes = []
    text = []
    position = 0

    while True:
        start = source.find("{{", position)
        end = source.find("}}", start + 2) if start != -1 else -1
        if start == -1 or end == -1:
            text.append(source[position:])
            break

        match = _VARIABLE.fullmatch(source[start + 2:end])
        if match is None:
            # Not a token; keep one brace and rescan from the next character
            text.append(source[position:start + 1])
            position = start + 1
            continue

        text.append(source[position:start])
        if any(text):
            nodes.append(Literal("".join(text)))
        text = []
        nodes.append(Variable(*match.groups()))
        position = end + 2

    if any(text):
        nodes.append(Literal("".join(text)))
    return tuple(nodes)


@lru_cache(maxsize=2048)
def compile_template(source: str) -> CompiledTemplate:
    return CompiledTemplate(source=source, nodes=_tokenize(source))


def chain_lookup(*sources: Mapping[str, Any]) -> Lookup:
    """First non-null value across the mappings, in order."""

    def lookup(name: str) -> Any:
        for source in sources:
            value = source.get(name)
            if value is not None:
                return value
        return None

    return lookup


def render_template(source: str, fields: Mapping[str, Any], config: Mapping[str, Any]) -> str:
    return compile_template(source).render(chain_lookup(fields, config))


def render_structure(template: Any, fields: Mapping[str, Any], config: Mapping[str, Any]) -> Any:
    """Render every string inside a nested dict/list template."""
    lookup = chain_lookup(fields, config)
    return _render_node(template, lookup)


def _render_node(template: Any, lookup: Lookup) -> Any:
    if isinstance(template, str):
        return compile_template(template).render(lookup)
    if isinstance(template, (list, tuple)):
        return [_render_node(item, lookup) for item in template]
    if isinstance(template, Mapping):
        return {key: _render_node(value, lookup) for key, value in template.items()}
    return template
