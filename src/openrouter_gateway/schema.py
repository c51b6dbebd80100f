"""Schema validation capability used for structured output."""

from __future__ import annotations

from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class SchemaMismatch(Exception):
    """Raised by a ``SchemaValidator`` when a value does not fit the schema."""

    def __init__(self, violations: list[dict[str, Any]]) -> None:
        self.violations = violations
        summary = "; ".join(
            f"{'.'.join(str(p) for p in v.get('loc', ())) or '<root>'}: {v.get('msg', 'invalid')}"
            for v in violations
        )
        super().__init__(summary or "value does not match schema")


@runtime_checkable
class SchemaValidator(Protocol[T_co]):
    """Anything that can turn a decoded JSON value into a ``T``.

    Implementations raise ``SchemaMismatch`` with a structured list of
    violations when the value does not conform.
    """

    def validate(self, value: Any) -> T_co:
        """Validate *value* and return the typed result."""
        ...

    def json_schema(self) -> dict[str, Any]:
        """Return the JSON Schema this validator enforces."""
        ...


class PydanticValidator(Generic[T]):
    """``SchemaValidator`` backed by ``pydantic.TypeAdapter``.

    Works for pydantic models as well as plain annotated types such as
    ``list[int]`` or a ``TypedDict``.
    """

    def __init__(self, tp: type[T]) -> None:
        self._type = tp
        self._adapter: TypeAdapter[T] = TypeAdapter(tp)

    @property
    def type_name(self) -> str:
        return getattr(self._type, "__name__", repr(self._type))

    def validate(self, value: Any) -> T:
        try:
            return self._adapter.validate_python(value)
        except PydanticValidationError as exc:
            raise SchemaMismatch(
                [dict(error) for error in exc.errors(include_url=False)]
            ) from exc

    def json_schema(self) -> dict[str, Any]:
        return self._adapter.json_schema()
