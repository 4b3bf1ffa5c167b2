"""
Estrategias de dump para diferentes motores de BD
"""
from .base_strategy import DumpStrategy
from .postgresql import PostgreSQLDumpStrategy

__all__ = [
    'DumpStrategy',
    'PostgreSQLDumpStrategy'
]
