"""
Mongo Schema Manager.

Evolves MongoDB collection schemas, indexes and data through an ordered
sequence of versions, expanding msmType / msmEnums / msmEnumList directives
into concrete $jsonSchema validators.
"""

__version__ = "0.1.0"
