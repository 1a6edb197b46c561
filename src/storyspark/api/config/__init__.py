"""OpenAPI document configuration."""
