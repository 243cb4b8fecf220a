"""
Graph database configuration.
"""

from dataclasses import dataclass, field
import os

from .base import BaseConfig


@dataclass
class Neo4jConfig(BaseConfig):
    """
    Neo4j connection configuration.

    Attributes:
        uri: Bolt URI (bolt://host:port)
        user: Username
        password: Password
        database: Database name (default: neo4j)
        max_connection_pool_size: Connection pool size shared by all retrieval stages
        connection_timeout: Timeout in seconds
    """
    uri: str = "bolt://localhost:7687"
    user: str = "neo4j"
    password: str = field(
        default_factory=lambda: os.getenv("NEO4J_PASSWORD", "password")
    )
    database: str = "neo4j"
    max_connection_pool_size: int = 50
    connection_timeout: float = 30.0

    @classmethod
    def from_env(cls, prefix: str = "") -> 'Neo4jConfig':
        """Load from NEO4J_* environment variables."""
        return cls(
            uri=os.getenv("NEO4J_URI", "bolt://localhost:7687"),
            user=os.getenv("NEO4J_USER", "neo4j"),
            password=os.getenv("NEO4J_PASSWORD", "password"),
            database=os.getenv("NEO4J_DATABASE", "neo4j"),
            max_connection_pool_size=int(os.getenv("NEO4J_POOL_SIZE", "50")),
        )
