"""Documentation extras for the generated OpenAPI schema.

Adds tag descriptions and the two header credentials every private route
expects: ``X-API-Key`` for the calling service and ``X-User-Id`` for the
acting user. Health and public portfolio reads are documented as open.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {"name": "Accounts", "description": "Registration, visibility and account deletion."},
    {"name": "Resume Versions", "description": "Draft, publish, archive and edit resume versions."},
    {"name": "Portfolio", "description": "Public read of a user's published resume."},
    {"name": "Credits", "description": "Credit balance and feature prices."},
    {"name": "Job Assistant", "description": "Credit-metered AI job application features and saved applications."},
    {"name": "Health", "description": "Liveness and readiness checks."},
]

SECURITY_SCHEMES: Dict[str, Dict[str, str]] = {
    "ApiKeyAuth": {
        "type": "apiKey",
        "in": "header",
        "name": "X-API-Key",
        "description": "Key identifying the calling service.",
    },
    "UserSession": {
        "type": "apiKey",
        "in": "header",
        "name": "X-User-Id",
        "description": "Acting user established by the upstream session.",
    },
}

PUBLIC_PATH_PREFIXES = ("/health", "/v1/portfolios/")


def _mark_public_operations(paths: Dict[str, Any]) -> None:
    for path, operations in paths.items():
        if not path.startswith(PUBLIC_PATH_PREFIXES):
            continue
        for operation in operations.values():
            if isinstance(operation, dict):
                operation["security"] = []


def apply_openapi_customizations(app: FastAPI) -> None:
    """Wrap ``app.openapi`` so the first build is enriched and then cached."""

    build_default = app.openapi

    def openapi_with_security() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = build_default()
        schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        for name, scheme in SECURITY_SCHEMES.items():
            schemes.setdefault(name, scheme)
        schema.setdefault("security", [{name: [] for name in SECURITY_SCHEMES}])

        known_tags = {tag.get("name") for tag in schema.setdefault("tags", [])}
        schema["tags"].extend(tag for tag in TAGS_METADATA if tag["name"] not in known_tags)

        _mark_public_operations(schema.get("paths", {}))

        app.openapi_schema = schema
        return schema

    app.openapi = openapi_with_security  # type: ignore[assignment]
