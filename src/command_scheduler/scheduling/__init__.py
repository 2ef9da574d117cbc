"""Scheduling core: decision engine, repository, coordinator and run loop."""
