"""Unified tool registry."""

from __future__ import annotations

import inspect
import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger
from pydantic import BaseModel

ToolHandler = Callable[[Any], Any]


def _shorten_text(text: str, width: int = 30, placeholder: str = "...") -> str:
    """Shorten text to width characters, cutting in the middle of words if needed.

    Unlike textwrap.shorten, this function can cut in the middle of a word,
    ensuring long strings without spaces are still truncated properly.
    """
    if len(text) <= width:
        return text

    available = width - len(placeholder)
    if available <= 0:
        return placeholder

    return text[:available] + placeholder


@dataclass(frozen=True)
class ToolDescriptor:
    """Tool metadata and runtime handle."""

    name: str
    short_description: str
    detail: str
    model: type[BaseModel]
    handler: ToolHandler

    def input_schema(self) -> dict[str, Any]:
        schema = self.model.model_json_schema()
        schema.pop("title", None)
        return schema


class ToolRegistry:
    """Registry for the console tools exposed to callers."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}

    def register(
        self,
        *,
        name: str,
        short_description: str,
        model: type[BaseModel],
        detail: str | None = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        def _decorator(handler: ToolHandler) -> ToolHandler:
            self._tools[name] = ToolDescriptor(
                name=name,
                short_description=short_description,
                detail=detail or inspect.getdoc(handler) or short_description,
                model=model,
                handler=handler,
            )
            return handler

        return _decorator

    def has(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    def descriptors(self) -> list[ToolDescriptor]:
        return sorted(self._tools.values(), key=lambda item: item.name)

    def compact_rows(self) -> list[str]:
        return [f"{descriptor.name}: {descriptor.short_description}" for descriptor in self.descriptors()]

    def _log_tool_call(self, name: str, kwargs: dict[str, Any]) -> None:
        params: list[str] = []
        for key, value in kwargs.items():
            try:
                rendered = json.dumps(value, ensure_ascii=False)
            except TypeError:
                rendered = repr(value)
            value = _shorten_text(rendered, width=30, placeholder="...")
            if value.startswith('"') and not value.endswith('"'):
                value = value + '"'
            params.append(f"{key}={value}")
        logger.info("tool.call.start name={} {{ {} }}", name, ", ".join(params))

    async def execute(self, name: str, *, kwargs: dict[str, Any]) -> Any:
        """Validate arguments against the tool's model and run its handler.

        Raises:
            KeyError: no tool with that name.
            pydantic.ValidationError: the arguments do not fit the input model.
        """
        descriptor = self.get(name)
        if descriptor is None:
            raise KeyError(name)

        self._log_tool_call(name, kwargs)
        start = time.monotonic()
        try:
            params = descriptor.model.model_validate(kwargs)
            result = descriptor.handler(params)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception:
            logger.exception("tool.call.error name={}", name)
            raise
        finally:
            duration = time.monotonic() - start
            logger.info("tool.call.end name={} duration={:.3f}ms", name, duration * 1000)
