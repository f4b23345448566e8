"""
Entry point for running Mongo Schema Manager as a module.

Enables execution via:
    python -m mongo_schema_manager [command] [options]

This is equivalent to running the installed CLI:
    mongo-schema-manager [command] [options]
"""

from mongo_schema_manager.cli import app

if __name__ == "__main__":
    app()
