"""Configuration, errors, middleware and observability."""
