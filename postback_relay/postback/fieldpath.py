from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping, MutableMapping, Tuple


@dataclass(frozen=True)
class FieldPath:
    """Dot-notation path ("data.user.id") split into segments once."""

    segments: Tuple[str, ...]

    @classmethod
    def parse(cls, path: str) -> "FieldPath":
        return _parse(path)

    def __str__(self) -> str:
        return ".".join(self.segments)

    def get(self, data: Any) -> Any:
        current = data
        for segment in self.segments:
            if not isinstance(current, Mapping):
                return None
            current = current.get(segment)
            if current is None:
                return None
        return current

    def set(self, data: MutableMapping, value: Any) -> None:
        current = data
        for segment in self.segments[:-1]:
            child = current.get(segment)
            if not isinstance(child, MutableMapping):
                child = {}
                current[segment] = child
            current = child
        current[self.segments[-1]] = value


@lru_cache(maxsize=1024)
def _parse(path: str) -> FieldPath:
    return FieldPath(tuple(path.split(".")))


def get_path(data: Any, path: str) -> Any:
    return FieldPath.parse(path).get(data)


def set_path(data: MutableMapping, path: str, value: Any) -> None:
    FieldPath.parse(path).set(data, value)
