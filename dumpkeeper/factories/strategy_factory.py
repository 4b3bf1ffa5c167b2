"""
Factory para crear estrategias de dump
"""
from typing import Optional
from ..strategies.base_strategy import DumpStrategy
from ..strategies.postgresql import PostgreSQLDumpStrategy


class DumpStrategyFactory:
    """Factory para crear estrategias de dump (Factory Pattern)"""

    # Mapeo de tipos a estrategias
    _strategies = {
        'postgresql': PostgreSQLDumpStrategy,
        'postgres': PostgreSQLDumpStrategy,
    }

    @classmethod
    def create(cls, db_type: str) -> Optional[DumpStrategy]:
        """
        Crea una estrategia de dump según el tipo de base de datos

        Args:
            db_type: Tipo de base de datos (postgresql, postgres)

        Returns:
            Instancia de DumpStrategy o None si el tipo no es soportado
        """
        strategy_class = cls._strategies.get(db_type.lower())
        if strategy_class:
            return strategy_class()
        return None

    @classmethod
    def register_strategy(cls, db_type: str, strategy_class: type):
        """
        Registra una nueva estrategia (permite extender sin modificar - Open/Closed)

        Args:
            db_type: Tipo de base de datos
            strategy_class: Clase de estrategia a registrar
        """
        cls._strategies[db_type.lower()] = strategy_class

    @classmethod
    def get_supported_types(cls) -> list:
        """
        Obtiene lista de tipos de base de datos soportados

        Returns:
            Lista de tipos soportados
        """
        return list(cls._strategies.keys())
