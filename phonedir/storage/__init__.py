"""
phonedir.storage - SQLite persistence for sources, lookups and contacts.
"""
