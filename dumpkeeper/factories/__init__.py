"""
Factories del sistema
"""
from .strategy_factory import DumpStrategyFactory

__all__ = ['DumpStrategyFactory']
