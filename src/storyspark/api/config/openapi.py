"""OpenAPI configuration and customization for Story Spark API.

Provides API documentation with descriptions, the session authentication
schemes and request examples.
"""

from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

from storyspark import __version__
from storyspark.core.config import get_settings

# API metadata
API_TITLE = "Story Spark API"
API_DESCRIPTION = """
# Story Spark API

Cuentos infantiles en español generados, ampliados, ilustrados y narrados
con modelos generativos.

## Authentication

Sign in with `/api/auth/login`. The session token is returned in the body and
set as an HttpOnly cookie; either may be used.

```
Authorization: Bearer <session-token>
```

Logging out with `/api/auth/revoke-token` revokes the token.

## Rate Limits

Registration and login allow 5 requests per minute per IP and per e-mail.

## Errors

| Code | Description |
|------|-------------|
| 400 | Bad Request - Invalid parameters |
| 401 | Unauthorized - Missing, invalid or revoked session |
| 403 | Forbidden - E-mail not verified |
| 404 | Not Found - Resource doesn't exist or isn't yours |
| 409 | Conflict - E-mail already registered |
| 429 | Too Many Requests - Rate limited |
| 502 | Bad Gateway - A generative model failed |
| 500 | Internal Error - Server issue |
"""

TAGS_METADATA = [
    {
        "name": "health",
        "description": "Health check and system status endpoints",
    },
    {
        "name": "account",
        "description": "Registration, e-mail verification and password recovery",
    },
    {
        "name": "auth",
        "description": "Session login, logout and current user",
    },
    {
        "name": "stories",
        "description": "Saved stories of the signed-in user",
    },
    {
        "name": "users",
        "description": "User lookup by e-mail",
    },
    {
        "name": "flows",
        "description": "Story generation, extension, illustration and narration",
    },
    {
        "name": "audio",
        "description": "Cached narration files",
    },
]


def custom_openapi(app: FastAPI) -> dict[str, Any]:
    """Generate custom OpenAPI schema with enhanced documentation.

    Args:
        app: FastAPI application instance

    Returns:
        OpenAPI schema dictionary
    """
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=API_TITLE,
        version=__version__,
        description=API_DESCRIPTION,
        routes=app.routes,
        tags=TAGS_METADATA,
    )

    # Initialize components if not present
    if "components" not in openapi_schema:
        openapi_schema["components"] = {}

    # Add security schemes
    openapi_schema["components"]["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "Session token from /api/auth/login",
        },
        "SessionCookie": {
            "type": "apiKey",
            "in": "cookie",
            "name": get_settings().session_cookie_name,
            "description": "HttpOnly cookie set by /api/auth/login",
        },
    }

    openapi_schema["servers"] = [
        {
            "url": "http://localhost:8000",
            "description": "Local development",
        },
    ]

    _add_examples(openapi_schema)

    app.openapi_schema = openapi_schema
    return app.openapi_schema


def _add_examples(schema: dict[str, Any]) -> None:
    """Attach request examples to flow inputs.

    Args:
        schema: OpenAPI schema dictionary to modify in place
    """
    schemas = schema.get("components", {}).get("schemas", {})

    for name, example in FLOW_EXAMPLES.items():
        if name in schemas:
            schemas[name]["example"] = example


FLOW_EXAMPLES = {
    "GenerateStoryInput": {
        "theme": "aventura",
        "mainCharacterName": "Luna",
        "mainCharacterTraits": "valiente y curiosa",
    },
    "ExtendStoryInput": {
        "existingStory": "Había una vez una niña llamada Luna...",
        "userInput": "Luna encuentra un mapa del tesoro",
    },
    "GenerateStoryImageInput": {
        "title": "Luna y el bosque encantado",
        "theme": "aventura",
    },
    "TextToSpeechInput": {
        "text": "Había una vez una niña llamada Luna...",
    },
}
