"""Pytest fixtures for library catalog tests."""

import threading

import pytest

from library_catalog import Book, BorrowCoordinator, Catalog


@pytest.fixture
def books_file(tmp_path):
    """Path of a books file inside a temporary directory (not yet created)."""
    return tmp_path / "books.txt"


@pytest.fixture
def catalog(books_file):
    """Empty catalog bound to the temporary books file."""
    return Catalog(books_file)


@pytest.fixture
def dune():
    return Book("Dune", "Herbert", "111", 1965)


@pytest.fixture
def sample_books():
    """A few books with no delimiter in any field."""
    return [
        Book("Dune", "Herbert", "111", 1965),
        Book("Neuromancer", "Gibson", "978-0441569595", 1984),
        Book("The Dispossessed", "Le Guin", "0060512751", 1974),
    ]


@pytest.fixture
def coordinator():
    """Coordinator with its own lock so tests don't share the process-wide one."""
    return BorrowCoordinator(lock=threading.Lock())
