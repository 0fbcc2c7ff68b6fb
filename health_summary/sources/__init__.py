from .base import HealthDataSource

__all__ = ["HealthDataSource"]
