from .clock import BusinessClock

__all__ = ["BusinessClock"]
