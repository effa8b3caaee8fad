"""The contract every assistant function satisfies.

A Function is a named, described, schema-bearing unit of work the model may call.
Parameters are declared as a Pydantic model on the ``Params`` class attribute;
the published JSON schema is derived from it and normalized so that every object
level (including array items) carries ``additionalProperties: false``.

Strict mode is never declared by hand: it is inferred from the schema shape.
"""

from __future__ import annotations

import inspect
import logging
import re
from typing import Any, Callable, ClassVar, Literal, Type

from pydantic import BaseModel
from typing_extensions import Self

from ..config import Settings
from ..domain import Ledger
from ..types_.core import FunctionDefinition
from ..utilities import suppress_logs, to_snake_case

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

DocstringStyle = Literal["google", "numpy", "sphinx"]


def _detect_docstring_style(doc: str) -> DocstringStyle:
    """Detect the style of a docstring.

    As of Feb 2025, the automatic style detection in griffe is an Insiders feature. This code approximates it.
    """
    scores: dict[DocstringStyle, int] = {"sphinx": 0, "numpy": 0, "google": 0}

    sphinx_patterns = [r"^:param\s", r"^:type\s", r"^:return:", r"^:rtype:"]
    for pattern in sphinx_patterns:
        if re.search(pattern, doc, re.MULTILINE):
            scores["sphinx"] += 1

    numpy_patterns = [
        r"^Parameters\s*\n\s*-{3,}",
        r"^Returns\s*\n\s*-{3,}",
        r"^Yields\s*\n\s*-{3,}",
    ]
    for pattern in numpy_patterns:
        if re.search(pattern, doc, re.MULTILINE):
            scores["numpy"] += 1

    google_patterns = [r"^(Args|Arguments):", r"^(Returns):", r"^(Raises):"]
    for pattern in google_patterns:
        if re.search(pattern, doc, re.MULTILINE):
            scores["google"] += 1

    max_score = max(scores.values())
    if max_score == 0:
        return "google"

    # Priority order: sphinx > numpy > google in case of tie
    styles: list[DocstringStyle] = ["sphinx", "numpy", "google"]
    for style in styles:
        if scores[style] == max_score:
            return style

    return "google"


def extract_description(obj: Any) -> str | None:
    """Extract the leading text section from an object's own docstring.

    Only the docstring defined directly on ``obj`` is considered, so subclasses do not inherit
    their parent's description.
    """
    from griffe import Docstring, DocstringSectionKind

    raw = obj.__dict__.get("__doc__") if isinstance(obj, type) else getattr(obj, "__doc__", None)
    if not raw:
        return None
    doc = inspect.cleandoc(raw)

    # griffe warns about missing annotations for params
    with suppress_logs(logging.getLogger("griffe")):
        docstring = Docstring(doc, lineno=1, parser=_detect_docstring_style(doc))
        parsed = docstring.parse()

    return next((section.value.strip() for section in parsed if section.kind == DocstringSectionKind.text), None)


def build_schema(properties: dict[str, Any] | None = None, required: list[str] | None = None) -> dict[str, Any]:
    """Build an object schema that forbids undeclared properties."""
    return {
        "type": "object",
        "properties": properties or {},
        "required": required or [],
        "additionalProperties": False,
    }


def _normalize_schema(node: Any, defs: dict[str, Any]) -> Any:
    if isinstance(node, list):
        return [_normalize_schema(item, defs) for item in node]
    if not isinstance(node, dict):
        return node

    if "$ref" in node:
        resolved = defs[node["$ref"].split("/")[-1]]
        siblings = {k: v for k, v in node.items() if k != "$ref"}
        return _normalize_schema({**resolved, **siblings}, defs)

    # Optional[X] renders as anyOf[X, null]; publish it as plain X since optionality lives in 'required'
    if "anyOf" in node:
        options = [option for option in node["anyOf"] if option.get("type") != "null"]
        if len(options) == 1:
            siblings = {k: v for k, v in node.items() if k != "anyOf"}
            return _normalize_schema({**options[0], **siblings}, defs)

    normalized: dict[str, Any] = {}
    for key, value in node.items():
        if key in ("title", "default"):
            continue
        if key == "properties":
            normalized[key] = {name: _normalize_schema(prop, defs) for name, prop in value.items()}
        else:
            normalized[key] = _normalize_schema(value, defs)

    if normalized.get("type") == "object":
        normalized.setdefault("properties", {})
        normalized.setdefault("required", [])
        normalized["additionalProperties"] = False

    return normalized


def pydantic_to_schema(model: Type[BaseModel]) -> dict[str, Any]:
    """Convert a Pydantic model to a self-contained parameter schema.

    References are inlined, titles and defaults dropped, ``Optional`` unions collapsed,
    and ``additionalProperties: false`` set on every object.
    """
    schema = model.model_json_schema()
    defs = schema.pop("$defs", {})
    schema.pop("description", None)
    return _normalize_schema(schema, defs)


def infer_strict_mode(schema: dict[str, Any]) -> bool:
    """Return True when every declared property is required."""
    properties = schema.get("properties") or {}
    required = schema.get("required") or []
    return set(required) == set(properties)


class Function:
    """Base class for capabilities the assistant may call.

    Subclasses set ``Params`` (a Pydantic model describing the arguments) and implement ``call``.
    The function name defaults to the snake_case class name and the description to the class docstring.
    """

    Params: ClassVar[Type[BaseModel] | None] = None
    function_name: ClassVar[str | None] = None

    def __init__(
        self,
        ledger: Ledger,
        *,
        settings: Settings | None = None,
        on_data_changed: Callable[[], None] | None = None,
    ):
        self.ledger = ledger
        self.settings = settings
        self._on_data_changed = on_data_changed
        self._progress_callback: ProgressCallback | None = None

    @property
    def name(self) -> str:
        return self.function_name or to_snake_case(self.__class__.__name__)

    @property
    def description(self) -> str:
        description = extract_description(self.__class__)
        if not description:
            logger.warning(f"Function {self.name} should have a docstring for its description.")
            return ""
        return description

    def params_schema(self) -> dict[str, Any]:
        if self.Params is None:
            return build_schema()
        return pydantic_to_schema(self.Params)

    def strict_mode(self) -> bool:
        return infer_strict_mode(self.params_schema())

    def to_definition(self) -> FunctionDefinition:
        schema = self.params_schema()
        return FunctionDefinition(
            name=self.name,
            description=self.description,
            params_schema=schema,
            strict=infer_strict_mode(schema),
        )

    def on_progress(self, callback: ProgressCallback | None) -> Self:
        """Register the progress callback; the last registration wins and ``None`` clears it."""
        self._progress_callback = callback
        return self

    def call(self, params: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError("Subclasses must implement the call method")

    def parse_params(self, params: dict[str, Any]) -> BaseModel:
        """Validate raw arguments against ``Params``."""
        if self.Params is None:
            raise TypeError(f"Function {self.name} does not declare Params")
        return self.Params.model_validate(params)

    def report_progress(self, message: str) -> None:
        logger.debug(f"{self.name}: {message}")
        if self._progress_callback is not None:
            self._progress_callback(message)

    def broadcast_data_changed(self) -> None:
        """Notify subscribers that the ledger was modified. Call after committing a write."""
        if self._on_data_changed is not None:
            self._on_data_changed()

    def __repr__(self):
        return f"{self.__class__.__name__}(name={self.name!r})"
