"""Shared fixtures for the phonedir test suite."""

from datetime import datetime, timedelta, timezone

import pytest

from phonedir.directory.entry import RawEntry
from phonedir.storage.db import DirectoryDatabase
from phonedir.sync.contact import DirectorySource


class FakeFetcher:
    """
    In-memory stand-in for LdapFetcher.

    ``snapshots`` maps a source name to the entries returned for it, or to
    an exception instance that fetch() raises.
    """

    def __init__(self, snapshots=None):
        self.snapshots = dict(snapshots or {})
        self.calls = []

    def fetch(self, source, timeout):
        self.calls.append((source.name, timeout))
        snapshot = self.snapshots.get(source.name, [])
        if isinstance(snapshot, Exception):
            raise snapshot
        return list(snapshot)


class StepClock:
    """Clock returning strictly increasing UTC datetimes."""

    def __init__(self, start=None):
        self.current = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        value = self.current
        self.current += timedelta(seconds=1)
        return value


def entry(dn, name="", division=None, department=None, title=None, company=None, **kw):
    """Build a RawEntry with short keyword names."""
    return RawEntry(
        distinguished_name=dn,
        display_name=name,
        division_name=division,
        department_name=department,
        title_name=title,
        company_name=company,
        **kw,
    )


@pytest.fixture
def db():
    """Initialized in-memory database."""
    database = DirectoryDatabase(":memory:")
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def file_db(tmp_path):
    """Initialized file-backed database."""
    database = DirectoryDatabase(str(tmp_path / "phonedir.db"))
    database.initialize()
    return database


@pytest.fixture
def source(db):
    """An active source named HQ."""
    return db.add_source(DirectorySource(name="HQ", server="ldap.example.com"))
