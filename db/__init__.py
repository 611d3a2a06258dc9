"""Database package for the connection timeline engine."""
from db.connection import create_all, dispose_engine, get_db, get_engine, get_session_factory

__all__ = ["get_engine", "get_session_factory", "get_db", "create_all", "dispose_engine"]
