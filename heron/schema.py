"""
Schema capability - validation and JSON Schema export for declared shapes.

A *shape* is anything pydantic can build a ``TypeAdapter`` for: usually a
``BaseModel`` subclass, but ``list[Model]``, ``dict[str, int]`` and plain
types work too. Heron never inspects a shape itself; it only asks this
module to validate a value against it or to describe it as JSON Schema.

Strict mode rejects top-level fields the model does not declare. It is only
meaningful for ``BaseModel`` shapes; other shapes validate identically in
both modes.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Set, Tuple

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic_core import to_jsonable_python


COMPONENTS_REF_TEMPLATE = "#/components/schemas/{model}"


@dataclass(frozen=True)
class SchemaIssue:
    """One field-level validation problem."""
    path: Tuple[Any, ...]
    message: str
    type: str = "value_error"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": list(self.path),
            "message": self.message,
            "type": self.type,
        }


@dataclass(frozen=True)
class SchemaResult:
    """Outcome of a validation: either a value or a list of issues."""
    value: Any = None
    issues: Tuple[SchemaIssue, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.issues

    def issue_dicts(self) -> List[Dict[str, Any]]:
        return [issue.to_dict() for issue in self.issues]


def is_model(shape: Any) -> bool:
    return isinstance(shape, type) and issubclass(shape, BaseModel)


@lru_cache(maxsize=None)
def strict_variant(shape: Any) -> Any:
    """
    Return a variant of ``shape`` that forbids undeclared fields.

    The variant subclasses the original model, so validated instances are
    still ``isinstance`` of the declared shape.
    """
    if not is_model(shape):
        return shape
    if shape.model_config.get("extra") == "forbid":
        return shape
    config = dict(shape.model_config)
    config["extra"] = "forbid"
    return type(
        shape.__name__,
        (shape,),
        {
            "model_config": config,
            "__module__": shape.__module__,
            "__qualname__": shape.__qualname__,
        },
    )


@lru_cache(maxsize=None)
def _adapter(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


def validate(shape: Any, value: Any, *, strict: bool = False) -> SchemaResult:
    """
    Validate ``value`` against ``shape``.

    Args:
        shape: Declared shape
        value: Raw input (decoded JSON, query mapping, handler result)
        strict: Reject fields the shape does not declare

    Returns:
        SchemaResult with the validated/coerced value, or the issues found
    """
    target = strict_variant(shape) if strict else shape
    try:
        validated = _adapter(target).validate_python(value)
    except ValidationError as exc:
        issues = tuple(
            SchemaIssue(
                path=tuple(error["loc"]),
                message=error["msg"],
                type=error["type"],
            )
            for error in exc.errors(
                include_url=False, include_context=False, include_input=False,
            )
        )
        return SchemaResult(issues=issues)
    return SchemaResult(value=validated)


def dump(shape: Any, value: Any) -> Any:
    """Serialize an already validated value to JSON-compatible data."""
    return _adapter(shape).dump_python(value, mode="json")


def to_jsonable(value: Any) -> Any:
    """Serialize an arbitrary handler result to JSON-compatible data."""
    return to_jsonable_python(value)


class SchemaCatalog:
    """
    Describes many shapes as JSON Schema in one pass.

    Every shape goes through the same pydantic generator, so two nested
    models that share a class name (``billing.Address`` and
    ``shipping.Address``) get distinct component names instead of one
    overwriting the other. Nested definitions are referenced with
    ``#/components/schemas/``.

        catalog = SchemaCatalog()
        catalog.add(CreateUser)
        catalog.add(User, mode="serialization")
        schemas, definitions = catalog.export()
        schemas[(User, "serialization")]
    """

    def __init__(self):
        self._keys: Dict[Tuple[Any, str], None] = {}

    def add(self, shape: Any, mode: str = "validation") -> None:
        self._keys.setdefault((shape, mode), None)

    def __len__(self) -> int:
        return len(self._keys)

    def export(self) -> Tuple[Dict[Tuple[Any, str], Dict[str, Any]], Dict[str, Any]]:
        """
        Returns:
            (schema per ``(shape, mode)`` key, shared component definitions)

        A shape that is itself a model is described inline; only the models
        it nests end up in the definitions.
        """
        if not self._keys:
            return {}, {}
        inputs = [(key, key[1], _adapter(key[0])) for key in self._keys]
        by_key, top = TypeAdapter.json_schemas(inputs, ref_template=COMPONENTS_REF_TEMPLATE)
        definitions = top.get("$defs", {})

        schemas = {}
        for key in self._keys:
            described = by_key[(key, key[1])]
            name = _ref_name(described) if set(described) == {"$ref"} else None
            schemas[key] = copy.deepcopy(definitions[name]) if name in definitions else described

        reachable = _ref_names(list(schemas.values()), set())
        pending = list(reachable)
        while pending:
            for name in _ref_names(definitions.get(pending.pop(), {}), set()) - reachable:
                reachable.add(name)
                pending.append(name)
        return schemas, {name: definitions[name] for name in definitions if name in reachable}


def _ref_name(node: Dict[str, Any]) -> str:
    return node["$ref"].rsplit("/", 1)[-1]


def _ref_names(node: Any, found: Set[str]) -> Set[str]:
    if isinstance(node, dict):
        if isinstance(node.get("$ref"), str):
            found.add(_ref_name(node))
        for value in node.values():
            _ref_names(value, found)
    elif isinstance(node, list):
        for value in node:
            _ref_names(value, found)
    return found


def json_schema(
    shape: Any,
    definitions: Dict[str, Any],
    mode: str = "validation",
) -> Dict[str, Any]:
    """
    Describe a single ``shape`` as JSON Schema.

    Nested definitions are merged into ``definitions``. A name already
    present with a different definition raises ``ValueError``; use
    :class:`SchemaCatalog` to describe several shapes together.
    """
    catalog = SchemaCatalog()
    catalog.add(shape, mode)
    schemas, found = catalog.export()
    for name, definition in found.items():
        if definitions.setdefault(name, definition) != definition:
            raise ValueError(f"Conflicting JSON Schema definitions for '{name}'")
    return schemas[(shape, mode)]
