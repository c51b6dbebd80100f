"""Tests for response parsing and schema validation."""

from __future__ import annotations

import json
import logging
from typing import Any

import pytest
from pydantic import BaseModel, ConfigDict

from openrouter_gateway.exceptions import (
    ContentFilterError,
    EmptyResponseError,
    JSONParseError,
    ResponseValidationError,
)
from openrouter_gateway.parsing import parse_response
from openrouter_gateway.schema import PydanticValidator, SchemaMismatch, SchemaValidator
from openrouter_gateway.types import RawCompletionResponse


class Ingredient(BaseModel):
    name: str
    quantity: float


class StrictIngredient(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    quantity: float


def _raw(content: str | None, finish_reason: str | None = "stop", **extra: Any) -> RawCompletionResponse:
    return RawCompletionResponse.model_validate(
        {
            "id": "gen-1",
            "model": "openai/gpt-4o-mini",
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": content},
                    "finish_reason": finish_reason,
                }
            ],
            "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
            **extra,
        }
    )


@pytest.mark.unit
class TestParseResponse:
    def test_plain_text_returned(self) -> None:
        assert parse_response(_raw("Make a frittata.")) == "Make a frittata."

    def test_no_choices_is_empty_response(self) -> None:
        raw = RawCompletionResponse.model_validate({"id": "gen-1", "choices": []})
        with pytest.raises(EmptyResponseError, match="No choices"):
            parse_response(raw)

    def test_content_filter(self) -> None:
        with pytest.raises(ContentFilterError, match="content filter"):
            parse_response(_raw("partial", finish_reason="content_filter"))

    def test_content_filter_checked_before_empty_content(self) -> None:
        with pytest.raises(ContentFilterError):
            parse_response(_raw(None, finish_reason="content_filter"))

    @pytest.mark.parametrize("content", [None, ""])
    def test_empty_content(self, content: str | None) -> None:
        with pytest.raises(EmptyResponseError, match="Empty content"):
            parse_response(_raw(content))

    def test_truncated_output_returned_with_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="openrouter_gateway.parsing"):
            result = parse_response(_raw("Cut off mid-sent", finish_reason="length"))
        assert result == "Cut off mid-sent"
        assert any("truncated" in r.getMessage() for r in caplog.records)

    def test_unknown_fields_tolerated(self) -> None:
        raw = _raw("ok", provider="OpenAI", system_fingerprint="fp_1")
        assert parse_response(raw) == "ok"


@pytest.mark.unit
class TestStructuredOutput:
    def test_valid_json_validated(self) -> None:
        validator = PydanticValidator(Ingredient)
        result = parse_response(_raw('{"name": "egg", "quantity": 2}'), validator)
        assert result == Ingredient(name="egg", quantity=2)

    def test_result_deep_equals_parsed_json(self) -> None:
        payload = {"items": [{"name": "spinach", "quantity": 0.5}], "servings": 2}
        validator = PydanticValidator(dict[str, Any])
        assert parse_response(_raw(json.dumps(payload)), validator) == payload

    def test_extra_fields_allowed_when_schema_permits(self) -> None:
        content = '{"name": "egg", "quantity": 2, "note": "free range"}'
        result = parse_response(_raw(content), PydanticValidator(Ingredient))
        assert result.name == "egg"

    def test_extra_fields_rejected_when_schema_forbids(self) -> None:
        content = '{"name": "egg", "quantity": 2, "note": "free range"}'
        with pytest.raises(ResponseValidationError) as exc_info:
            parse_response(_raw(content), PydanticValidator(StrictIngredient))
        violations = exc_info.value.violations
        assert violations[0]["loc"] == ("note",)
        assert violations[0]["type"] == "extra_forbidden"

    def test_not_json(self) -> None:
        with pytest.raises(JSONParseError) as exc_info:
            parse_response(_raw("not json"), PydanticValidator(Ingredient))
        err = exc_info.value
        assert err.content_prefix == "not json"
        assert "not json" in err.message
        assert not err.retryable

    def test_json_error_prefix_is_capped(self) -> None:
        content = "x" * 500
        with pytest.raises(JSONParseError) as exc_info:
            parse_response(_raw(content), PydanticValidator(Ingredient))
        assert exc_info.value.content_prefix == "x" * 200

    def test_schema_mismatch_lists_violations(self) -> None:
        with pytest.raises(ResponseValidationError) as exc_info:
            parse_response(_raw('{"name": "egg"}'), PydanticValidator(Ingredient))
        err = exc_info.value
        assert [v["loc"] for v in err.violations] == [("quantity",)]
        assert "quantity" in err.message
        assert not err.retryable

    def test_any_validator_implementation_accepted(self) -> None:
        class UpperValidator:
            def validate(self, value: Any) -> str:
                if not isinstance(value, str):
                    raise SchemaMismatch([{"loc": (), "msg": "expected string"}])
                return value.upper()

            def json_schema(self) -> dict[str, Any]:
                return {"type": "string"}

        validator = UpperValidator()
        assert isinstance(validator, SchemaValidator)
        assert parse_response(_raw('"basil"'), validator) == "BASIL"
        with pytest.raises(ResponseValidationError, match="expected string"):
            parse_response(_raw("[1, 2]"), validator)


@pytest.mark.unit
class TestPydanticValidator:
    def test_json_schema(self) -> None:
        schema = PydanticValidator(Ingredient).json_schema()
        assert schema["type"] == "object"
        assert set(schema["properties"]) == {"name", "quantity"}

    def test_non_model_types(self) -> None:
        validator = PydanticValidator(list[int])
        assert validator.validate([1, "2"]) == [1, 2]
        with pytest.raises(SchemaMismatch):
            validator.validate(["a"])

    def test_type_name(self) -> None:
        assert PydanticValidator(Ingredient).type_name == "Ingredient"
