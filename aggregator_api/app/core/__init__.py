"""Configuration, logging, errors and middleware."""
