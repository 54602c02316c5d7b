"""Tests for the interactive menu, driven with scripted input."""

import pytest

import library_catalog
from library_catalog import cli_loop, main, select_item


@pytest.fixture
def scripted_input(monkeypatch):
    """Feed a list of answers to input(); raises EOFError when exhausted."""
    def install(answers):
        answers = iter(answers)

        def fake_input(prompt=""):
            try:
                return next(answers)
            except StopIteration:
                raise EOFError
        monkeypatch.setattr("builtins.input", fake_input)
    return install


class TestSelectItem:

    def test_one_based(self):
        assert select_item(["a", "b", "c"], "2") == "b"

    def test_out_of_range(self):
        with pytest.raises(IndexError):
            select_item(["a"], "2")
        with pytest.raises(IndexError):
            select_item(["a"], "0")

    def test_not_a_number(self):
        with pytest.raises(ValueError):
            select_item(["a"], "first")


class TestCliLoop:

    def test_librarian_add_then_exit_saves(self, catalog, books_file, dune, scripted_input):
        scripted_input(["2", "Lin", "1", "Dune", "Herbert", "111", "1965", "4"])
        cli_loop(catalog)

        assert catalog.books == [dune]
        assert books_file.read_text(encoding="utf-8") == "Dune,Herbert,111,1965\n"

    def test_member_borrow_and_return(self, catalog, dune, sample_books, scripted_input, capsys):
        catalog.books.extend(sample_books)
        scripted_input([
            "1", "Ada", "1", "1",   # borrow Dune
            "1", "Ada", "1", "2",   # borrow Neuromancer
            "1", "Ada", "2", "1",   # return Dune
            "1", "Ada", "3",        # view
            "4",
        ])
        cli_loop(catalog)

        ada = catalog.find_member("Ada")
        assert ada.borrowed_books == [sample_books[1]]
        assert "Returned 'Dune'" in capsys.readouterr().out

    def test_admin_report(self, catalog, sample_books, scripted_input, capsys):
        catalog.books.extend(sample_books)
        catalog.get_or_create_member("Ada").borrow_book(sample_books[0])
        scripted_input(["3", "Root", "1", "4"])
        cli_loop(catalog)

        assert "Total books: 3, Borrowed books: 1" in capsys.readouterr().out

    def test_admin_notify_accumulates_subscribers(self, catalog, scripted_input, capsys):
        catalog.get_or_create_member("Ada")
        scripted_input(["3", "Root", "2", "3", "Root", "2", "4"])
        cli_loop(catalog)

        out = capsys.readouterr().out
        # first visit: one notice; second visit: two
        assert out.count("Dear Ada") == 3
        assert len(catalog.overdue_subscribers) == 2

    def test_admin_concurrent_demo(self, catalog, sample_books, scripted_input):
        catalog.books.extend(sample_books)
        scripted_input(["3", "Root", "3", "Ada", "Grace", "1", "2", "4"])
        cli_loop(catalog)

        assert catalog.find_member("Ada").borrowed_books == [sample_books[0]]
        assert catalog.find_member("Grace").borrowed_books == [sample_books[1]]

    def test_member_search(self, catalog, sample_books, scripted_input, capsys):
        catalog.books.extend(sample_books)
        scripted_input(["1", "Ada", "4", "gibson", "4"])
        cli_loop(catalog)

        out = capsys.readouterr().out
        assert "Found 1 result(s):" in out
        assert "1. Neuromancer by Gibson" in out

    def test_admin_export_reports(self, catalog, sample_books, scripted_input, capsys):
        catalog.books.extend(sample_books)
        catalog.get_or_create_member("Ada").borrow_book(sample_books[2])
        scripted_input(["3", "Root", "4", "4"])
        cli_loop(catalog)

        out = capsys.readouterr().out
        assert "Inventory:" in out
        assert "The Dispossessed" in out
        assert "BorrowedCount" in out
        assert "Members:" in out

    def test_bad_selection_is_fatal(self, catalog, sample_books, scripted_input):
        catalog.books.extend(sample_books)
        scripted_input(["1", "Ada", "1", "9"])
        with pytest.raises(IndexError):
            cli_loop(catalog)

    def test_bad_year_is_fatal(self, catalog, scripted_input):
        scripted_input(["2", "Lin", "1", "Dune", "Herbert", "111", "nineteen"])
        with pytest.raises(ValueError):
            cli_loop(catalog)

    def test_eof_exits(self, catalog, books_file, scripted_input):
        scripted_input([])
        cli_loop(catalog)
        assert books_file.exists()


class TestMain:

    def test_main_loads_existing_file(self, books_file, scripted_input, capsys):
        books_file.write_text("Dune,Herbert,111,1965\n", encoding="utf-8")
        scripted_input(["3", "Root", "1", "4"])

        main(["--books-file", str(books_file)])

        assert "Total books: 1, Borrowed books: 0" in capsys.readouterr().out
        assert books_file.read_text(encoding="utf-8") == "Dune,Herbert,111,1965\n"

    def test_main_log_level(self, books_file, scripted_input, request):
        previous = library_catalog.logger.level
        request.addfinalizer(lambda: library_catalog.logger.setLevel(previous))
        scripted_input(["4"])
        main(["--books-file", str(books_file), "--log-level", "WARNING"])
        assert library_catalog.logger.level == library_catalog.logging.WARNING
