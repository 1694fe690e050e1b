"""Service modules"""
from .monitor import LiquidationMonitor

__all__ = ["LiquidationMonitor"]
