"""Repository implementations."""

from ritual_engine.persistence.repositories.metrics_repo import MetricsRepository

__all__ = ["MetricsRepository"]
