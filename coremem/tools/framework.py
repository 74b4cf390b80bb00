"""Tool framework: turn plain functions into agent-callable tools.

A tool is a function whose first parameter is the ``AgentContext``. The
``@tool`` decorator keeps the function directly callable and adds:

- ``schema()``: the tool specification (name, description, input_schema)
  generated from the signature and the docstring's ``Args:`` section.
- ``invoke(context, arguments)``: validates raw arguments from the model
  against the same signature, then calls the function. Invalid arguments
  produce an error ``ToolResult`` rather than an exception.
"""

import functools
import inspect
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Tuple,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from pydantic import ConfigDict, ValidationError, create_model


@dataclass
class ToolResult:
    """Result of a tool call, as returned to the agent loop."""

    text: str
    details: Dict[str, Any] = field(default_factory=dict)
    is_error: bool = False

    @classmethod
    def failure(cls, text: str, error: str, **details: Any) -> "ToolResult":
        return cls(text=text, details={"error": error, **details}, is_error=True)

    def to_content(self) -> List[Dict[str, str]]:
        return [{"type": "text", "text": self.text}]

    def __str__(self) -> str:
        return self.text


def _parse_docstring(func: Callable) -> Tuple[str, Dict[str, str]]:
    """Split a docstring into the description and per-parameter docs."""
    docstring = inspect.getdoc(func)
    if not docstring:
        return "", {}

    parts = docstring.split("\n\nArgs:")
    description = parts[0].strip()

    param_docs: Dict[str, str] = {}
    if len(parts) > 1:
        current = None
        for line in parts[1].split("\n\n")[0].split("\n"):
            stripped = line.strip()
            if not stripped:
                continue
            name, sep, desc = stripped.partition(":")
            if sep and name.isidentifier():
                current = name
                param_docs[current] = desc.strip()
            elif current:
                # Continuation line of the previous parameter
                param_docs[current] = f"{param_docs[current]} {stripped}"
    return description, param_docs


def _tool_parameters(func: Callable) -> List[inspect.Parameter]:
    """Parameters the model supplies: everything after the context."""
    params = list(inspect.signature(func).parameters.values())[1:]
    return [
        p
        for p in params
        if p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]


def _json_type(hint: Any) -> str:
    if get_origin(hint) is Union:
        hint = next((arg for arg in get_args(hint) if arg is not type(None)), hint)

    if hint is bool:
        return "boolean"
    if isinstance(hint, type) and issubclass(hint, int):
        return "integer"
    if isinstance(hint, type) and issubclass(hint, float):
        return "number"
    return "string"


def _is_optional(hint: Any) -> bool:
    return get_origin(hint) is Union and type(None) in get_args(hint)


def generate_schema(func: Callable, name: Optional[str] = None) -> Dict[str, Any]:
    """Generate the tool schema from a function signature and docstring.

    Args:
        func: The tool function (first parameter is the context)
        name: Tool name (defaults to func.__name__)

    Returns:
        A dictionary with 'name', 'description', and 'input_schema' keys.
    """
    description, param_docs = _parse_docstring(func)
    type_hints = get_type_hints(func)

    schema: Dict[str, Any] = {
        "name": name or func.__name__,
        "description": description,
        "input_schema": {"type": "object", "properties": {}, "required": []},
    }

    for param in _tool_parameters(func):
        hint = type_hints.get(param.name, str)
        has_default = param.default is not inspect.Parameter.empty

        if not (has_default or _is_optional(hint)):
            schema["input_schema"]["required"].append(param.name)

        schema["input_schema"]["properties"][param.name] = {
            "type": _json_type(hint),
            "description": param_docs.get(param.name, ""),
        }

    return schema


def _build_arguments_model(func: Callable, name: str):
    """Pydantic model mirroring the tool's parameters."""
    type_hints = get_type_hints(func)
    fields: Dict[str, Any] = {}
    for param in _tool_parameters(func):
        hint = type_hints.get(param.name, str)
        if param.default is not inspect.Parameter.empty:
            fields[param.name] = (hint, param.default)
        elif _is_optional(hint):
            fields[param.name] = (hint, None)
        else:
            fields[param.name] = (hint, ...)

    return create_model(
        f"{name}_arguments",
        __config__=ConfigDict(extra="forbid", strict=True),
        **fields,
    )


def _format_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


class Tool:
    """A function exposed to the agent as a tool."""

    def __init__(self, func: Callable, name: Optional[str] = None):
        functools.update_wrapper(self, func)
        self.func = func
        self.name = name or func.__name__
        self.arguments_model = _build_arguments_model(func, self.name)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.func(*args, **kwargs)

    def schema(self) -> Dict[str, Any]:
        return generate_schema(self.func, self.name)

    def invoke(self, context: Any, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        """Validate raw arguments and run the tool."""
        try:
            validated = self.arguments_model.model_validate(arguments or {})
        except ValidationError as e:
            return ToolResult.failure(
                f"❌ Invalid arguments for {self.name}: {_format_validation_error(e)}",
                "invalid_arguments",
            )

        kwargs = {name: getattr(validated, name) for name in self.arguments_model.model_fields}
        return self.func(context, **kwargs)

    def __repr__(self) -> str:
        return f"Tool(name='{self.name}')"


def tool(func: Optional[Callable] = None, *, name: Optional[str] = None):
    """Decorator that turns a function into a Tool.

    Usable bare (``@tool``) or with a name override (``@tool(name="x")``).
    """
    if func is None:
        return lambda f: Tool(f, name=name)
    return Tool(func, name=name)
