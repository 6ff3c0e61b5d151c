"""
OpenAPI 3.1 generation from registry metadata.

The generator reads only the registry, never the compiled routes, and runs
no handler. Response maps come from ``heron.contract.response_entries``,
the same function the route compiler takes its success status from.

Building twice from an unchanged registry yields equal documents.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from jinja2 import Environment, select_autoescape

from .. import schema
from ..contract import ResponseEntry, response_entries, success_entry
from .metadata import (
    HandlerMetadata,
    HandlerOwner,
    RouteDeclaration,
    placeholder_names,
    to_openapi_path,
)


logger = logging.getLogger("heron.openapi")

OPENAPI_VERSION = "3.1.0"
DOCUMENT_VERSION = "1.0.0"
JSON_MEDIA = "application/json"


# ─── Naming ──────────────────────────────────────────────────────────────────

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def humanize_handler_name(handler_id: str) -> str:
    """
    ``getUserById`` and ``get_user_by_id`` both become ``Get user by id``.
    """
    words: List[str] = []
    for part in handler_id.split("_"):
        words.extend(w for w in _CAMEL_BOUNDARY.sub(" ", part).split(" ") if w)
    if not words:
        return handler_id
    return " ".join(
        [words[0][:1].upper() + words[0][1:].lower()] + [w.lower() for w in words[1:]]
    )


# ─── OpenAPI Configuration ────────────────────────────────────────────────────

@dataclass
class OpenAPIConfig:
    """Configuration for document generation and the docs page."""
    title: str = "Heron API"
    description: str = ""
    servers: List[Dict[str, str]] = field(default_factory=list)

    docs_path: str = "/docs"
    openapi_json_path: str = "/openapi.json"

    swagger_ui_theme: str = ""  # "dark"
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OpenAPIConfig":
        config = cls()
        for key, value in data.items():
            if key.startswith("_"):
                continue
            if hasattr(config, key):
                setattr(config, key, value)
        return config


# ─── Schemas ─────────────────────────────────────────────────────────────────

def error_schema(message: str) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "success": {"type": "boolean", "default": False},
            "error": {"type": "string", "default": message},
            "details": {"type": ["object", "array", "null"]},
        },
        "required": ["success", "error"],
    }


def success_schema(data_schema: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "success": {"type": "boolean", "default": True},
            "data": data_schema,
        },
        "required": ["success", "data"],
    }


# ─── Main Generator ──────────────────────────────────────────────────────────

class OpenAPIGenerator:
    """
    Folds a registry into an OpenAPI 3.1 document.

    Usage::

        document = OpenAPIGenerator(title="My API").build(registry)
    """

    def __init__(self, title: Optional[str] = None, config: Optional[OpenAPIConfig] = None):
        config = config or OpenAPIConfig()
        self.config = replace(config, title=title) if title is not None else config

    def build(self, registry: Any) -> Dict[str, Any]:
        documented = []
        catalog = schema.SchemaCatalog()

        for owner in registry.owners():
            if not owner.is_routable:
                logger.warning(
                    f'Owner "{owner.name}" is missing a base path or routes '
                    f'and will be skipped in OpenAPI docs'
                )
                continue

            for declaration in owner.unique_routes():
                metadata = owner.metadata_for(declaration.handler_id)
                full_path = owner.full_path(declaration)
                entries = response_entries(
                    declaration.verb,
                    has_body=metadata.has_body,
                    has_query=metadata.has_query,
                    has_middleware=metadata.has_middleware,
                    has_path_params=bool(placeholder_names(full_path)),
                )
                documented.append((owner, declaration, full_path, metadata, entries))
                if metadata.has_body:
                    catalog.add(metadata.body)
                if metadata.has_query:
                    catalog.add(metadata.query)
                if metadata.has_response and success_entry(entries).has_body:
                    catalog.add(metadata.response, "serialization")

        # One export for every shape keeps same-named nested models apart
        schemas, definitions = catalog.export()

        paths: Dict[str, Dict[str, Any]] = {}
        for owner, declaration, full_path, metadata, entries in documented:
            operation = self._build_operation(
                owner, declaration, full_path, metadata, entries, schemas,
            )
            path_item = paths.setdefault(to_openapi_path(full_path), {})
            path_item[declaration.verb.value.lower()] = operation

        document: Dict[str, Any] = {
            "openapi": OPENAPI_VERSION,
            "info": self._build_info(),
        }
        if self.config.servers:
            document["servers"] = list(self.config.servers)
        document["paths"] = paths
        if definitions:
            document["components"] = {"schemas": dict(sorted(definitions.items()))}
        return document

    def _build_info(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "title": self.config.title,
            "version": DOCUMENT_VERSION,
        }
        if self.config.description:
            info["description"] = self.config.description
        return info

    def _build_operation(
        self,
        owner: HandlerOwner,
        declaration: RouteDeclaration,
        full_path: str,
        metadata: HandlerMetadata,
        entries: Dict[int, ResponseEntry],
        schemas: Dict[Any, Dict[str, Any]],
    ) -> Dict[str, Any]:
        name = humanize_handler_name(declaration.handler_id)
        path_params = placeholder_names(full_path)

        operation: Dict[str, Any] = {
            "tags": [owner.name],
            "summary": name,
            "operationId": name,
        }

        parameters = self._build_parameters(path_params, metadata, schemas)
        if parameters:
            operation["parameters"] = parameters

        if metadata.has_body:
            operation["requestBody"] = {
                "required": True,
                "content": {
                    JSON_MEDIA: {"schema": schemas[(metadata.body, "validation")]},
                },
            }

        operation["responses"] = {
            str(status): self._build_response(entry, metadata, schemas)
            for status, entry in entries.items()
        }
        return operation

    def _build_parameters(
        self,
        path_params: List[str],
        metadata: HandlerMetadata,
        schemas: Dict[Any, Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        parameters: List[Dict[str, Any]] = [
            {"name": name, "in": "path", "required": True, "schema": {"type": "string"}}
            for name in path_params
        ]

        if metadata.has_query:
            query_schema = schemas[(metadata.query, "validation")]
            required = set(query_schema.get("required", ()))
            for name, prop in query_schema.get("properties", {}).items():
                param: Dict[str, Any] = {
                    "name": name,
                    "in": "query",
                    "required": name in required,
                    "schema": prop,
                }
                if "description" in prop:
                    param["description"] = prop["description"]
                parameters.append(param)

        seen = set()
        for descriptor in metadata.required_headers:
            if descriptor.header_key in seen:
                continue
            seen.add(descriptor.header_key)
            param = {
                "name": descriptor.header_key,
                "in": "header",
                "required": True,
                "schema": {"type": "string"},
            }
            if descriptor.description:
                param["description"] = descriptor.description
            parameters.append(param)

        return parameters

    def _build_response(
        self,
        entry: ResponseEntry,
        metadata: HandlerMetadata,
        schemas: Dict[Any, Dict[str, Any]],
    ) -> Dict[str, Any]:
        if not entry.is_success:
            return {
                "description": entry.description,
                "content": {JSON_MEDIA: {"schema": error_schema(entry.description)}},
            }
        if not (metadata.has_response and entry.has_body):
            return {"description": entry.description}
        data_schema = schemas[(metadata.response, "serialization")]
        return {
            "description": entry.description,
            "content": {JSON_MEDIA: {"schema": success_schema(data_schema)}},
        }


def build_openapi(registry: Any, title: str = "Heron API") -> Dict[str, Any]:
    """Shortcut for ``OpenAPIGenerator(title).build(registry)``."""
    return OpenAPIGenerator(title).build(registry)


# ─── Swagger UI HTML ─────────────────────────────────────────────────────────

_SWAGGER_UI_VERSION = "5.18.2"

_SWAGGER_UI_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>{{ title }} - API Documentation</title>
    <link rel="stylesheet"
          href="https://cdn.jsdelivr.net/npm/swagger-ui-dist@{{ version }}/swagger-ui.css">
    <style>
        body { margin: 0; background: #fafafa; }
        .topbar { display: none !important; }
        {% if theme == "dark" %}
        body { background: #1a1a2e; }
        .swagger-ui { filter: invert(88%) hue-rotate(180deg); }
        {% endif %}
    </style>
</head>
<body>
    <div id="swagger-ui"></div>
    <script src="https://cdn.jsdelivr.net/npm/swagger-ui-dist@{{ version }}/swagger-ui-bundle.js">
    </script>
    <script>
        window.onload = () => {
            window.ui = SwaggerUIBundle({
                url: {{ spec_url|tojson }},
                dom_id: '#swagger-ui',
                deepLinking: true,
                presets: [SwaggerUIBundle.presets.apis],
                docExpansion: 'list',
                tryItOutEnabled: true,
            });
        };
    </script>
</body>
</html>"""

_env = Environment(autoescape=select_autoescape(default_for_string=True))
_swagger_template = _env.from_string(_SWAGGER_UI_TEMPLATE)


def generate_swagger_html(
    title: str,
    openapi_url: str = "/openapi.json",
    theme: str = "",
) -> str:
    """Render the Swagger UI page pointing at ``openapi_url``."""
    return _swagger_template.render(
        title=title,
        version=_SWAGGER_UI_VERSION,
        spec_url=openapi_url,
        theme=theme,
    )


__all__ = [
    "OpenAPIConfig",
    "OpenAPIGenerator",
    "build_openapi",
    "generate_swagger_html",
    "humanize_handler_name",
]
