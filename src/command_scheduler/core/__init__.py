"""Core primitives: errors, logging, settings, timestamps, cache and ORM."""
