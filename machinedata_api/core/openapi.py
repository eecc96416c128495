"""OpenAPI metadata and customization utilities.

Provides a helper to enrich the generated OpenAPI schema with tag
descriptions and the 429 response every route can return, keeping
documentation concerns out of the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {
        "name": "Machine Data",
        "description": "Create, list, look up, update the status of and delete machine records.",
    },
    {
        "name": "Health",
        "description": "Welcome text, liveness and readiness checks.",
    },
]

_RATE_LIMITED_RESPONSE = {
    "description": "Rate limit exceeded (plain-text message)",
    "content": {"text/plain": {"schema": {"type": "string"}}},
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and the 429 response.

    - Adds tags metadata if not present
    - Documents a 429 response on every operation, since the daily limit
      applies to every route
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for methods in schema.get("paths", {}).values():
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj.setdefault("responses", {}).setdefault("429", _RATE_LIMITED_RESPONSE)

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
