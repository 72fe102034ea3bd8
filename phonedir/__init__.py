"""
phonedir - corporate phone directory mirror

Mirrors LDAP / Active Directory sources into a local SQLite store, merges the
mirrored entries with manually maintained contacts and serves a grouped,
weighted listing.
"""

__version__ = "0.3.0"
