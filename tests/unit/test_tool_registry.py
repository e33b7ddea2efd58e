import json

import pytest
from pydantic import BaseModel, Field, ValidationError

from section_router.agent.registry import ToolRegistry, ToolSpec


class LineCountInput(BaseModel):
    text: str
    minimum: int = Field(default=1, ge=1)


def _count_lines(data: LineCountInput) -> dict[str, int]:
    return {"line_count": max(len(data.text.split("\n")), data.minimum)}


def _spec() -> ToolSpec:
    return ToolSpec(
        name="count_lines",
        description="count lines in a text block",
        args_schema=LineCountInput,
        handler=_count_lines,
    )


def test_tool_registry_validation() -> None:
    registry = ToolRegistry()
    registry.register(_spec())

    assert registry.execute("count_lines", {"text": "a\nb"}) == {"line_count": 2}

    with pytest.raises(ValidationError):
        registry.execute("count_lines", {"text": "a", "minimum": 0})


def test_duplicate_tool_registration_rejected() -> None:
    registry = ToolRegistry()
    spec = _spec()

    registry.register(spec)
    with pytest.raises(ValueError):
        registry.register(spec)


def test_unknown_tool_raises_key_error() -> None:
    with pytest.raises(KeyError):
        ToolRegistry().execute("missing", {})


def test_langchain_export_returns_json_text() -> None:
    registry = ToolRegistry()
    registry.register(_spec())

    tools = registry.as_langchain_tools()

    assert [tool.name for tool in tools] == ["count_lines"]
    output = tools[0].invoke({"text": "a\nb\nc"})
    assert json.loads(output) == {"line_count": 3}
