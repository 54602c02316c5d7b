#!/usr/bin/env python3
"""
library_catalog.py

Single-process library catalog: books, members, borrow/return and overdue notices.

The catalog keeps its books in memory and mirrors them to a flat
``title,author,isbn,year`` text file. Every borrow/return goes through a
`BorrowCoordinator` holding one process-wide lock. Librarians and admins act
on the catalog directly, from the main thread only.

Typical usage:
    python library_catalog.py --books-file books.txt
"""

from __future__ import annotations
import argparse
import csv
import logging
import pathlib
import threading
import warnings
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, TypeVar, Union

import pandas as pd

# Configuration
DEFAULT_BOOKS_FILE = "books.txt"
DELIMITER = ","
BOOK_FIELDS = ["title", "author", "isbn", "year"]
OVERDUE_GRACE_DAYS = 30

# Logging
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger("LibraryCatalog")

T = TypeVar("T")


# ---------------- Data model ----------------
@dataclass(frozen=True)
class Book:
    """A catalog entry. Two books are the same book when every field matches."""
    title: str
    author: str
    isbn: str
    publication_year: int

    def __str__(self) -> str:
        return f"{self.title} by {self.author} (ISBN {self.isbn}, {self.publication_year})"


@dataclass
class Member:
    """
    A library member and the books they currently hold.

    The borrowed list only records borrow relations; the catalog owns the books.
    Mutations from multiple threads must go through `BorrowCoordinator`.
    """
    name: str
    borrowed_books: List[Book] = field(default_factory=list)

    def borrow_book(self, book: Book) -> None:
        self.borrowed_books.append(book)

    def return_book(self, book: Book) -> bool:
        """Remove the first copy of `book`. Returns False if it was not held."""
        if book not in self.borrowed_books:
            return False
        self.borrowed_books.remove(book)
        return True

    def view_borrowed_books(self) -> List[Book]:
        return list(self.borrowed_books)


@dataclass
class Librarian:
    """Maintains the catalog's book collection."""
    name: str

    def add_book(self, catalog: "Catalog", book: Book) -> None:
        catalog.books.append(book)
        logger.info("%s added book %r", self.name, book.title)
        catalog.save_to_file()

    def remove_book(self, catalog: "Catalog", book: Book) -> None:
        if book in catalog.books:
            catalog.books.remove(book)
            logger.info("%s removed book %r", self.name, book.title)
        else:
            logger.warning("Book not in catalog: %s", book)
        catalog.save_to_file()


@dataclass
class Admin:
    """Runs reports and overdue notices."""
    name: str

    def generate_report(self, catalog: "Catalog") -> str:
        return f"Total books: {len(catalog.books)}, Borrowed books: {catalog.borrowed_count()}"

    def notify_overdue(self, catalog: "Catalog") -> None:
        catalog.notify_overdue_members()


User = Union[Member, Librarian, Admin]


def display_role(user: User) -> str:
    """Return the display string for a user, e.g. ``"Librarian: Ada"``."""
    if isinstance(user, Member):
        role = "Member"
    elif isinstance(user, Librarian):
        role = "Librarian"
    elif isinstance(user, Admin):
        role = "Admin"
    else:
        raise TypeError(f"Unknown user type: {type(user).__name__}")
    return f"{role}: {user.name}"


OverdueHandler = Callable[[Member], None]


# ---------------- Catalog ----------------
class Catalog:
    """
    Catalog owns the books, the members and the overdue-notification handlers.

    Books are persisted to a comma-delimited text file, one book per line, and
    the whole file is rewritten on every save. Members and handlers are held in
    memory only. None of this state is guarded by the borrow lock; callers are
    expected to mutate the catalog from a single thread.
    """

    def __init__(self, books_file: Union[str, pathlib.Path] = DEFAULT_BOOKS_FILE):
        """
        Initialize an empty catalog.

        Args:
            books_file: path of the text file used by save_to_file/load_from_file.
        """
        self.books_file = pathlib.Path(books_file)
        self.books: List[Book] = []
        self.members: List[Member] = []
        self._overdue_handlers: List[OverdueHandler] = []

    # ---------------- Persisting ----------------
    def save_to_file(self) -> None:
        """
        Overwrite the books file with the current books, in memory order.

        Fields are joined with the delimiter as-is; a comma inside a field will
        corrupt that row when it is loaded back.
        """
        out_df = pd.DataFrame([[b.title, b.author, b.isbn, str(b.publication_year)] for b in self.books],
                              columns=BOOK_FIELDS, dtype=str)
        lines = out_df.apply(DELIMITER.join, axis=1) if not out_df.empty else []
        self.books_file.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
        logger.info("Saved %d books to %s", len(self.books), self.books_file)

    def load_from_file(self) -> None:
        """
        Append books read from the books file.

        A missing or empty file leaves the catalog as it is. Raises ValueError
        when a line has fewer than four fields or a non-integer year.
        """
        if not self.books_file.exists():
            logger.warning("Books file not found: %s (starting empty)", self.books_file)
            return
        try:
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always", pd.errors.ParserWarning)
                books_df = pd.read_csv(self.books_file, sep=DELIMITER, header=None, names=BOOK_FIELDS,
                                       index_col=False, dtype=str, keep_default_na=False,
                                       quoting=csv.QUOTE_NONE, encoding="utf-8")
        except pd.errors.EmptyDataError:
            logger.info("Books file %s is empty", self.books_file)
            return
        for w in caught:
            if issubclass(w.category, pd.errors.ParserWarning):
                # Extra fields (a delimiter inside a value) are dropped from the row.
                logger.warning("Malformed rows in %s: %s", self.books_file, w.message)
            else:
                warnings.warn(w.message, w.category)

        loaded = []
        for line_no, row in enumerate(books_df.itertuples(index=False), start=1):
            if any(pd.isna(value) for value in row):
                raise ValueError(f"{self.books_file}: record {line_no} has fewer than {len(BOOK_FIELDS)} fields")
            try:
                year = int(row.year)
            except ValueError:
                raise ValueError(f"{self.books_file}: record {line_no} has a non-integer year: {row.year!r}")
            loaded.append(Book(title=row.title, author=row.author, isbn=row.isbn, publication_year=year))
        self.books.extend(loaded)
        logger.info("Loaded %d books", len(loaded))

    # ---------------- Members ----------------
    def find_member(self, name: str) -> Optional[Member]:
        return next((m for m in self.members if m.name == name), None)

    def get_or_create_member(self, name: str) -> Member:
        """Return the member called `name`, registering them on first use."""
        member = self.find_member(name)
        if member is None:
            member = Member(name=name)
            self.members.append(member)
            logger.info("Registered member %s", name)
        return member

    # ---------------- Overdue notifications ----------------
    def subscribe_overdue(self, handler: OverdueHandler) -> None:
        # Duplicate registrations are kept; each one fires.
        self._overdue_handlers.append(handler)

    def unsubscribe_overdue(self, handler: OverdueHandler) -> bool:
        """Drop one registration of `handler`. Returns False if it was not registered."""
        if handler not in self._overdue_handlers:
            return False
        self._overdue_handlers.remove(handler)
        return True

    def clear_overdue_subscribers(self) -> None:
        self._overdue_handlers.clear()

    @property
    def overdue_subscribers(self) -> List[OverdueHandler]:
        return list(self._overdue_handlers)

    def notify_overdue_members(self) -> None:
        """
        Call every registered handler once per member, in member order.

        No due dates are tracked, so every member is notified.
        """
        handlers = list(self._overdue_handlers)
        logger.info("Notifying %d member(s) via %d handler(s)", len(self.members), len(handlers))
        for member in self.members:
            for handler in handlers:
                handler(member)

    # ---------------- Reports / Queries ----------------
    def borrowed_count(self) -> int:
        return sum(len(m.borrowed_books) for m in self.members)

    def search_books(self, query: str) -> List[Book]:
        """
        Search books by title or author using a case-insensitive substring match.

        Returns an empty list for a blank query.
        """
        q = (query or "").strip().lower()
        if q == "":
            return []
        return [b for b in self.books if q in b.title.lower() or q in b.author.lower()]

    def export_report_books(self) -> pd.DataFrame:
        """
        Produce a DataFrame of the inventory.

        Columns: Title, Author, ISBN, Year, BorrowedCount (copies currently held by members).
        """
        held = Counter(b for m in self.members for b in m.borrowed_books)
        rows = [{"Title": b.title, "Author": b.author, "ISBN": b.isbn, "Year": b.publication_year,
                 "BorrowedCount": held[b]} for b in self.books]
        return pd.DataFrame(rows, columns=["Title", "Author", "ISBN", "Year", "BorrowedCount"])

    def export_report_members(self) -> pd.DataFrame:
        """
        Build a DataFrame summarizing members and their current borrowed books.

        Returns columns: Name, BorrowedCount, BorrowedBooks (semicolon separated titles).
        """
        rows = []
        for m in self.members:
            rows.append({
                "Name": m.name,
                "BorrowedCount": len(m.borrowed_books),
                "BorrowedBooks": "; ".join(b.title for b in m.borrowed_books)
            })
        return pd.DataFrame(rows, columns=["Name", "BorrowedCount", "BorrowedBooks"])


# ---------------- Borrow coordination ----------------
# Serializes every borrow/return in the process, whichever member or book is involved.
borrow_lock = threading.Lock()


class BorrowCoordinator:
    """
    Single serialization point for changes to members' borrowed lists.

    All coordinators share `borrow_lock` unless given their own lock, so two
    unrelated members never borrow in parallel.
    """

    def __init__(self, lock: Optional[threading.Lock] = None):
        self.lock = lock if lock is not None else borrow_lock

    def borrow(self, member: Member, book: Book) -> None:
        with self.lock:
            member.borrow_book(book)
        logger.info("Borrowed %r to %s", book.title, member.name)
        print(f"{member.name} borrowed '{book.title}'.")

    def return_book(self, member: Member, book: Book) -> None:
        with self.lock:
            returned = member.return_book(book)
        if returned:
            logger.info("Book %r returned by %s", book.title, member.name)
        else:
            logger.debug("%s does not hold %r; nothing returned", member.name, book.title)

    def simulate_concurrent_borrowing(self, member_a: Member, book_a: Book,
                                      member_b: Member, book_b: Book) -> None:
        """Borrow two books from two threads at once and wait for both."""
        threads = [
            threading.Thread(target=self.borrow, args=(member_a, book_a), name=f"borrow-{member_a.name}"),
            threading.Thread(target=self.borrow, args=(member_b, book_b), name=f"borrow-{member_b.name}"),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()


# ---------------- CLI ----------------
def input_prompt(prompt: str) -> str:
    """
    Wrapper around built-in input() that returns a stripped string and handles interrupts.

    Returns an empty string on EOF/KeyboardInterrupt.
    """
    try:
        return input(prompt).strip()
    except (EOFError, KeyboardInterrupt):
        print()
        return ""


def select_item(items: Sequence[T], raw: str) -> T:
    """Pick an item by its 1-based position. Raises ValueError/IndexError on bad input."""
    index = int(raw)
    if not 1 <= index <= len(items):
        raise IndexError(f"Selection {index} is out of range (1-{len(items)})")
    return items[index - 1]


def print_books(books: Sequence[Book]) -> None:
    if not books:
        print("(none)")
    for i, b in enumerate(books, start=1):
        print(f"{i}. {b}")


def console_overdue_notice(member: Member) -> None:
    print(f"Dear {member.name}, please return your borrowed books within {OVERDUE_GRACE_DAYS} days.")


def member_menu(catalog: Catalog, coordinator: BorrowCoordinator) -> None:
    name = input_prompt("Enter your name: ")
    member = catalog.get_or_create_member(name)
    print(f"Welcome, {display_role(member)}")
    print("1. Borrow book")
    print("2. Return book")
    print("3. View borrowed books")
    print("4. Search books by title/author")
    choice = input_prompt("Choose (1-4): ")
    if choice == "1":
        print_books(catalog.books)
        book = select_item(catalog.books, input_prompt("Book number: "))
        coordinator.borrow(member, book)
    elif choice == "2":
        borrowed = member.view_borrowed_books()
        print_books(borrowed)
        book = select_item(borrowed, input_prompt("Book number: "))
        coordinator.return_book(member, book)
        print(f"Returned '{book.title}'.")
    elif choice == "3":
        print_books(member.view_borrowed_books())
    elif choice == "4":
        res = catalog.search_books(input_prompt("Search query: "))
        print(f"Found {len(res)} result(s):")
        print_books(res)
    else:
        print("Unknown choice.")


def librarian_menu(catalog: Catalog) -> None:
    librarian = Librarian(input_prompt("Enter your name: "))
    print(f"Welcome, {display_role(librarian)}")
    print("1. Add book")
    print("2. Remove book")
    choice = input_prompt("Choose (1-2): ")
    if choice == "1":
        title = input_prompt("Title: ")
        author = input_prompt("Author: ")
        isbn = input_prompt("ISBN: ")
        year = int(input_prompt("Publication year: "))
        librarian.add_book(catalog, Book(title, author, isbn, year))
        print("Added.")
    elif choice == "2":
        print_books(catalog.books)
        book = select_item(catalog.books, input_prompt("Book number: "))
        librarian.remove_book(catalog, book)
        print("Removed.")
    else:
        print("Unknown choice.")


def admin_menu(catalog: Catalog, coordinator: BorrowCoordinator) -> None:
    admin = Admin(input_prompt("Enter your name: "))
    print(f"Welcome, {display_role(admin)}")
    print("1. Generate report")
    print("2. Notify overdue members")
    print("3. Simulate concurrent borrowing")
    print("4. Export inventory and member reports")
    choice = input_prompt("Choose (1-4): ")
    if choice == "1":
        print(admin.generate_report(catalog))
    elif choice == "2":
        # Subscribed again on every visit, so notices repeat once per visit.
        catalog.subscribe_overdue(console_overdue_notice)
        admin.notify_overdue(catalog)
    elif choice == "3":
        member_a = catalog.get_or_create_member(input_prompt("First member: "))
        member_b = catalog.get_or_create_member(input_prompt("Second member: "))
        print_books(catalog.books)
        book_a = select_item(catalog.books, input_prompt(f"Book for {member_a.name}: "))
        book_b = select_item(catalog.books, input_prompt(f"Book for {member_b.name}: "))
        coordinator.simulate_concurrent_borrowing(member_a, book_a, member_b, book_b)
    elif choice == "4":
        print("\nInventory:")
        print(catalog.export_report_books().to_string(index=False))
        print("\nMembers:")
        print(catalog.export_report_members().to_string(index=False))
    else:
        print("Unknown choice.")


def print_menu():
    """
    Print the role-selection menu to stdout.

    This function only prints available options and does not return a value.
    """
    print("\n--- Library Catalog ---")
    print("1. Member")
    print("2. Librarian")
    print("3. Admin")
    print("4. Exit")


def cli_loop(catalog: Catalog, coordinator: Optional[BorrowCoordinator] = None):
    """
    Interactive command-loop for the library catalog.

    Presents the role menu until Exit, then saves the catalog.
    """
    coordinator = coordinator or BorrowCoordinator()
    while True:
        print_menu()
        choice = input_prompt("Choose (1-4): ")
        if choice in ("4", ""):
            break
        elif choice == "1":
            member_menu(catalog, coordinator)
        elif choice == "2":
            librarian_menu(catalog)
        elif choice == "3":
            admin_menu(catalog, coordinator)
        else:
            print("Unknown choice. Try again.")
    catalog.save_to_file()
    print("Goodbye.")


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Library catalog manager")
    parser.add_argument("--books-file", default=DEFAULT_BOOKS_FILE, help="Path to the books text file")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging verbosity")
    args = parser.parse_args(argv)

    logger.setLevel(args.log_level)
    catalog = Catalog(args.books_file)
    catalog.load_from_file()
    cli_loop(catalog)


if __name__ == "__main__":
    main()
