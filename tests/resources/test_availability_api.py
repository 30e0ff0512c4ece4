"""Tests for the availability endpoints and the caller's loan list."""

import pytest

pytestmark = pytest.mark.integration


class TestAvailableCopies:
    def test_all_available(self, client, sample_book):
        book, copies = sample_book

        response = client.get("/books/available")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["count"] == 2
        assert body["data"][0] == {
            "copy_id": copies[0].copy_id,
            "id": book.id,
            "status": "Available",
            "condition": "Good",
            "location": "Shelf A1",
            "title": book.title,
            "author": book.author,
        }

    def test_for_book(self, client, sample_book):
        book, copies = sample_book

        response = client.get(f"/books/available/{book.id}")

        assert response.status_code == 200
        body = response.json()
        assert body["book"] == {"id": book.id, "title": book.title, "author": book.author}
        assert body["count"] == 2
        assert [c["copy_id"] for c in body["copies"]] == [c.copy_id for c in copies]

    def test_borrowed_copies_are_excluded(self, client, login, sample_book):
        book, copies = sample_book
        login(client, user_id=5)
        client.post("/books/borrow", json={"copy_id": copies[0].copy_id})
        client.post("/books/borrow", json={"copy_id": copies[1].copy_id})

        body = client.get(f"/books/available/{book.id}").json()

        assert body["count"] == 0
        assert body["copies"] == []
        assert body["book"]["id"] == book.id

    def test_missing_book(self, client):
        response = client.get("/books/available/999")

        assert response.status_code == 404
        assert response.json() == {"detail": "Book not found"}


class TestMyLoans:
    def test_requires_session(self, client):
        assert client.get("/books/loans").status_code == 401

    def test_lists_only_the_callers_loans(self, client, login, sample_book):
        _, copies = sample_book
        login(client, user_id=5)
        mine = client.post("/books/borrow", json={"copy_id": copies[0].copy_id}).json()
        login(client, user_id=6)
        client.post("/books/borrow", json={"copy_id": copies[1].copy_id})

        login(client, user_id=5)
        body = client.get("/books/loans").json()

        assert body["count"] == 1
        assert body["loans"][0]["borrower_id"] == mine["borrower_id"]
        assert body["loans"][0]["status"] == "Borrowed"

    def test_open_only(self, client, login, sample_book):
        _, copies = sample_book
        login(client, user_id=5)
        loan = client.post("/books/borrow", json={"copy_id": copies[0].copy_id}).json()
        client.post("/books/return", json={"borrower_id": loan["borrower_id"]})

        assert client.get("/books/loans").json()["count"] == 1
        assert client.get("/books/loans", params={"open_only": "true"}).json() == {
            "count": 0,
            "loans": [],
        }
