import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Type

from pydantic import BaseModel

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any]], Any]


@dataclass
class Tool:
    name: str
    description: str
    parameters: Dict[str, Any]
    args_model: Type[BaseModel]
    invoke: ToolHandler
    source: str = field(default="local")
    # Raw schema kept for introspection when the validator had to fall back.
    original_schema: Optional[Any] = None

    def validate_arguments(self, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        model = self.args_model.model_validate(arguments or {})
        validated = model.model_dump(by_alias=True, exclude_unset=True)
        validated.update(model.model_extra or {})
        return validated

    async def __call__(self, arguments: Optional[Dict[str, Any]] = None) -> Any:
        result = self.invoke(self.validate_arguments(arguments))
        if inspect.isawaitable(result):
            result = await result
        return result

    def as_response_tool(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


class ToolRegistry(Mapping):
    """Read-only view of merged tools keyed by name.

    Only `merge` writes, once per server batch while connections are being
    gathered; later batches overwrite earlier ones on name collisions.
    """

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: Dict[str, Tool] = {}
        self.merge(tools)

    def merge(self, tools: Iterable[Tool]) -> List[str]:
        batch = {tool.name: tool for tool in tools}
        overwritten = [name for name in batch if name in self._tools]
        for name in overwritten:
            logger.warning(
                "Tool %s from %s overrides the one from %s",
                name,
                batch[name].source,
                self._tools[name].source,
            )
        self._tools.update(batch)
        return overwritten

    def __getitem__(self, name: str) -> Tool:
        return self._tools[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def list_for_responses(self) -> List[Dict[str, Any]]:
        return [tool.as_response_tool() for tool in self._tools.values()]

    async def execute(self, name: str, arguments: Dict[str, Any]) -> Any:
        return await self._tools[name](arguments)

    def summary(self) -> List[Dict[str, str]]:
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "source": tool.source,
            }
            for tool in self._tools.values()
        ]
