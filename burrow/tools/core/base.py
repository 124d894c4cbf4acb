from abc import ABC, abstractmethod
from typing import Any, ClassVar

from pydantic import BaseModel


class ToolError(Exception):
    """Base class for failures raised by a tool."""


class InvalidArgs(ToolError):
    pass


class ExecutionError(ToolError):
    pass


def _inline_refs(schema: dict) -> dict:
    """Resolve $ref pointers by inlining definitions from $defs."""
    defs = schema.get("$defs", {})
    if not defs:
        return schema

    def _resolve(node: Any) -> Any:
        if isinstance(node, dict):
            if "$ref" in node:
                ref_name = node["$ref"].rsplit("/", 1)[-1]
                if ref_name in defs:
                    return _resolve(defs[ref_name])
                return node
            return {k: _resolve(v) for k, v in node.items() if k != "$defs"}
        if isinstance(node, list):
            return [_resolve(item) for item in node]
        return node

    return _resolve(schema)


class Tool(ABC):
    name: str
    description: str
    input_model: ClassVar[type[BaseModel] | None] = None

    @abstractmethod
    async def execute(self, **kwargs: Any) -> str: ...

    @property
    def parameters(self) -> dict:
        if self.input_model is None:
            return {"type": "object", "properties": {}, "required": []}
        json_schema = _inline_refs(self.input_model.model_json_schema())
        return {
            "type": "object",
            "properties": json_schema.get("properties", {}),
            "required": json_schema.get("required", []),
        }

    def definition(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }
