"""Role-based access control data layer: configuration, SQLite repositories, migration and policy loading."""

__version__ = "0.1.0"
__all__ = ["config", "db", "menu", "role", "user", "migrate", "casbin_adapter"]