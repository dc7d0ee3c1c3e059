import pytest

PDF_BYTES = b"%PDF-1.4 fake book"


@pytest.fixture
def category(client, admin_headers):
    response = client.post(
        "/api/admin/categories",
        json={"name": "Science Fiction", "description": "Space"},
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def create_book(client, admin_headers):
    def _create(title="Dune", author="Frank Herbert", category_id=None, with_files=False):
        data = {"title": title, "author": author, "description": f"About {title}"}
        if category_id:
            data["categoryId"] = category_id
        files = None
        if with_files:
            files = {
                "cover": ("cover.png", b"\x89PNG cover", "image/png"),
                "book": ("dune.PDF", PDF_BYTES, "application/pdf"),
            }
        response = client.post("/api/admin/books", data=data, files=files, headers=admin_headers)
        assert response.status_code == 200, response.text
        return response.json()

    return _create


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


# ---------- guard ----------

def test_protected_routes_require_a_valid_token(client):
    response = client.get("/api/bookmarks")
    assert response.status_code == 401
    assert response.json() == {"message": "Authentication required"}

    response = client.get("/api/bookmarks", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert "message" in response.json()


def test_admin_routes_forbid_readers(client, register):
    _, headers = register("reader@example.com")
    response = client.get("/api/admin/users", headers=headers)
    assert response.status_code == 403
    assert response.json() == {"message": "Admin access required"}


def test_me_returns_current_user_without_password(client, register):
    user, headers = register("reader@example.com", name="Reader")
    body = client.get("/api/auth/me", headers=headers).json()
    assert body["id"] == user["id"]
    assert body["isBlocked"] is False
    assert "passwordHash" not in body
    assert "password_hash" not in body


def test_blocked_user_gets_403_on_login_and_with_existing_token(client, admin_headers, register):
    user, headers = register("reader@example.com", password="password123")

    response = client.patch(f"/api/admin/users/{user['id']}/block", json={"isBlocked": True}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["isBlocked"] is True

    login = client.post("/api/auth/login", json={"email": "reader@example.com", "password": "password123"})
    assert login.status_code == 403
    assert login.json() == {"message": "Your account has been blocked"}
    assert client.get("/api/bookmarks", headers=headers).status_code == 403

    bad = client.post("/api/auth/login", json={"email": "reader@example.com", "password": "nope-nope"})
    assert bad.status_code == 401


def test_bootstrap_login_is_idempotent(client, admin_headers, settings):
    again = client.post(
        "/api/auth/login",
        json={"email": settings.bootstrap_admin_email, "password": settings.bootstrap_admin_password},
    )
    assert again.status_code == 200
    assert again.json()["user"]["role"] == "admin"
    users = client.get("/api/admin/users", headers=admin_headers).json()
    assert [u["email"] for u in users] == [settings.bootstrap_admin_email]


def test_register_duplicate_email_conflicts(client, register):
    register("reader@example.com")
    response = client.post(
        "/api/auth/register", json={"name": "Again", "email": "reader@example.com", "password": "password123"}
    )
    assert response.status_code == 409


def test_admin_cannot_change_own_role_or_block_self(client, admin_headers):
    me = client.get("/api/auth/me", headers=admin_headers).json()

    role = client.patch(f"/api/admin/users/{me['id']}/role", json={"role": "user"}, headers=admin_headers)
    block = client.patch(f"/api/admin/users/{me['id']}/block", json={"isBlocked": True}, headers=admin_headers)

    assert role.status_code == 403
    assert block.status_code == 403
    assert client.get("/api/auth/me", headers=admin_headers).json()["role"] == "admin"


def test_role_changes_take_effect_immediately(client, admin_headers, register):
    user, headers = register("helper@example.com")

    bad = client.patch(f"/api/admin/users/{user['id']}/role", json={"role": "owner"}, headers=admin_headers)
    assert bad.status_code == 400

    promoted = client.patch(f"/api/admin/users/{user['id']}/role", json={"role": "admin"}, headers=admin_headers)
    assert promoted.json()["role"] == "admin"
    # the token was issued while the user was a reader
    assert client.get("/api/admin/users", headers=headers).status_code == 200

    missing = client.patch("/api/admin/users/nope/role", json={"role": "admin"}, headers=admin_headers)
    assert missing.status_code == 404


# ---------- catalog ----------

def test_book_details_shape(client, category, create_book):
    book = create_book(category_id=category["id"])

    body = client.get(f"/api/books/{book['id']}").json()
    assert body["title"] == "Dune"
    assert body["categoryId"] == category["id"]
    assert body["category"] == {"id": category["id"], "name": "Science Fiction", "description": "Space"}
    assert body["averageRating"] == 0
    assert body["reviewCount"] == 0
    assert body["downloadCount"] == 0

    assert client.get("/api/books/missing").status_code == 404
    assert client.get("/api/books/missing").json() == {"message": "Book not found"}


def test_reviews_drive_average_rating(client, create_book, register):
    book = create_book()
    _, alice = register("alice@example.com", name="Alice")
    _, bob = register("bob@example.com", name="Bob")

    assert client.post(f"/api/books/{book['id']}/reviews", json={"rating": 4}, headers=alice).status_code == 200
    assert (
        client.post(
            f"/api/books/{book['id']}/reviews", json={"rating": 2, "comment": "Slow"}, headers=bob
        ).status_code
        == 200
    )

    details = client.get(f"/api/books/{book['id']}").json()
    assert details["averageRating"] == 3.0
    assert details["reviewCount"] == 2
    [listed] = client.get("/api/books").json()
    assert listed["averageRating"] == 3.0

    reviews = client.get(f"/api/books/{book['id']}/reviews").json()
    assert {(r["user"]["name"], r["rating"]) for r in reviews} == {("Alice", 4), ("Bob", 2)}
    assert all(set(r["user"]) == {"id", "name", "email"} for r in reviews)


@pytest.mark.parametrize(
    "payload",
    [{"rating": 0}, {"rating": 6}, {}, {"rating": "great"}, {"rating": True}, {"rating": "4"}, {"rating": 3.0}],
)
def test_review_rating_is_validated(client, create_book, register, payload):
    book = create_book()
    _, headers = register("reader@example.com")

    response = client.post(f"/api/books/{book['id']}/reviews", json=payload, headers=headers)
    assert response.status_code == 400
    assert "message" in response.json()
    assert client.get(f"/api/books/{book['id']}").json()["reviewCount"] == 0


def test_review_requires_auth_and_existing_book(client, create_book, register):
    book = create_book()
    assert client.post(f"/api/books/{book['id']}/reviews", json={"rating": 5}).status_code == 401
    _, headers = register("reader@example.com")
    assert client.post("/api/books/missing/reviews", json={"rating": 5}, headers=headers).status_code == 404


def test_list_books_query_parameters(client, category, create_book):
    create_book(title="Dune", author="Frank Herbert", category_id=category["id"])
    create_book(title="Emma", author="Jane Austen")
    create_book(title="Foundation", author="Isaac Asimov", category_id=category["id"])

    found = client.get("/api/books", params={"search": "DUNE", "categoryId": "all"}).json()
    assert [b["title"] for b in found] == ["Dune"]

    in_category = client.get("/api/books", params={"categoryId": category["id"], "sort": "title"}).json()
    assert [b["title"] for b in in_category] == ["Dune", "Foundation"]

    limited = client.get("/api/books", params={"sort": "title", "limit": 1}).json()
    assert [b["title"] for b in limited] == ["Dune"]

    assert client.get("/api/books", params={"sort": "popularity"}).status_code == 400
    assert client.get("/api/books", params={"limit": 0}).status_code == 400


def test_categories_are_public(client, category):
    assert [c["name"] for c in client.get("/api/categories").json()] == ["Science Fiction"]
    assert client.get(f"/api/categories/{category['id']}").json()["name"] == "Science Fiction"
    assert client.get("/api/categories/missing").status_code == 404


def test_stats(client, create_book, register):
    create_book()
    register("reader@example.com")
    assert client.get("/api/stats").json() == {"books": 1, "users": 1, "downloads": 0, "reviews": 0}


# ---------- bookmarks & progress ----------

def test_bookmarks(client, create_book, register):
    book = create_book()
    _, headers = register("reader@example.com")

    first = client.post("/api/bookmarks", json={"bookId": book["id"]}, headers=headers)
    second = client.post("/api/bookmarks", json={"bookId": book["id"]}, headers=headers)

    assert first.status_code == 200
    assert first.json()["bookId"] == book["id"]
    assert second.status_code == 409
    assert second.json() == {"message": "Book already bookmarked"}
    assert len(client.get("/api/bookmarks", headers=headers).json()) == 1
    assert client.get(f"/api/bookmarks/{book['id']}", headers=headers).json() == {"bookmarked": True}

    removed = client.delete(f"/api/bookmarks/{book['id']}", headers=headers)
    assert removed.json() == {"message": "Bookmark removed"}
    assert client.get("/api/bookmarks", headers=headers).json() == []
    assert client.post("/api/bookmarks", json={"bookId": "missing"}, headers=headers).status_code == 404


def test_reading_progress_upsert(client, create_book, register):
    book = create_book()
    _, headers = register("reader@example.com")

    assert client.get(f"/api/reading-progress/{book['id']}", headers=headers).json() is None

    first = client.post(
        "/api/reading-progress", json={"bookId": book["id"], "lastPage": 10, "totalPages": 412}, headers=headers
    ).json()
    second = client.post("/api/reading-progress", json={"bookId": book["id"], "lastPage": 42}, headers=headers).json()

    assert second["id"] == first["id"]
    stored = client.get(f"/api/reading-progress/{book['id']}", headers=headers).json()
    assert stored["lastPage"] == 42
    assert stored["totalPages"] == 412

    negative = client.post("/api/reading-progress", json={"bookId": book["id"], "lastPage": -1}, headers=headers)
    assert negative.status_code == 400


# ---------- files & downloads ----------

def test_create_book_with_files_and_download(client, admin_headers, create_book, register, settings):
    book = create_book(with_files=True)
    assert book["coverImage"].startswith("/uploads/covers/")
    assert book["bookFile"].startswith("/uploads/books/")
    assert book["fileType"] == "pdf"
    assert client.get(book["coverImage"]).content == b"\x89PNG cover"

    anonymous = client.get(f"/api/books/{book['id']}/download")
    assert anonymous.status_code == 200
    assert anonymous.content == PDF_BYTES
    assert "Dune.pdf" in anonymous.headers["content-disposition"]

    user, headers = register("reader@example.com")
    assert client.get(f"/api/books/{book['id']}/download", headers=headers).status_code == 200

    assert client.get(f"/api/books/{book['id']}").json()["downloadCount"] == 2
    events = client.get("/api/admin/downloads", headers=admin_headers).json()
    assert sorted(e["userId"] or "" for e in events) == sorted(["", user["id"]])


def test_download_without_file_is_404_and_not_counted(client, create_book):
    book = create_book()
    response = client.get(f"/api/books/{book['id']}/download")
    assert response.status_code == 404
    assert response.json() == {"message": "Book file not found"}
    assert client.get(f"/api/books/{book['id']}").json()["downloadCount"] == 0


def test_create_book_requires_text_fields_before_saving_files(client, admin_headers, settings):
    response = client.post(
        "/api/admin/books",
        data={"title": "Dune", "author": "", "description": "Spice"},
        files={"book": ("dune.pdf", PDF_BYTES, "application/pdf")},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert list((settings.upload_dir / "books").iterdir()) == []
    assert client.get("/api/books").json() == []


def test_create_book_with_unknown_category(client, admin_headers, settings):
    response = client.post(
        "/api/admin/books",
        data={"title": "Dune", "author": "Frank Herbert", "description": "Spice", "categoryId": "missing"},
        files={"cover": ("c.png", b"png", "image/png")},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert list((settings.upload_dir / "covers").iterdir()) == []


def test_update_book_changes_only_sent_fields(client, admin_headers, category, create_book, settings):
    book = create_book(category_id=category["id"], with_files=True)
    old_cover = settings.upload_dir / "covers" / book["coverImage"].rsplit("/", 1)[1]
    assert old_cover.is_file()

    renamed = client.patch(f"/api/admin/books/{book['id']}", data={"title": "Dune Messiah"}, headers=admin_headers)
    assert renamed.status_code == 200, renamed.text
    body = renamed.json()
    assert body["title"] == "Dune Messiah"
    assert body["author"] == "Frank Herbert"
    assert body["categoryId"] == category["id"]
    assert body["bookFile"] == book["bookFile"]

    cleared = client.patch(
        f"/api/admin/books/{book['id']}",
        data={"categoryId": ""},
        files={"cover": ("new.jpg", b"jpeg", "image/jpeg")},
        headers=admin_headers,
    )
    assert cleared.status_code == 200, cleared.text
    body = cleared.json()
    assert body["categoryId"] is None
    assert body["title"] == "Dune Messiah"
    assert body["coverImage"].endswith(".jpg")
    # the replaced cover is removed from disk
    assert not old_cover.exists()

    empty_title = client.patch(f"/api/admin/books/{book['id']}", data={"title": "  "}, headers=admin_headers)
    assert empty_title.status_code == 400
    missing = client.patch("/api/admin/books/missing", data={"title": "X"}, headers=admin_headers)
    assert missing.status_code == 404


def test_delete_category_in_use_conflicts(client, admin_headers, category, create_book):
    book = create_book(category_id=category["id"])

    response = client.delete(f"/api/admin/categories/{category['id']}", headers=admin_headers)
    assert response.status_code == 409
    assert "message" in response.json()

    assert client.delete(f"/api/admin/books/{book['id']}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/admin/categories/{category['id']}", headers=admin_headers).json() == {
        "message": "Category deleted"
    }
    assert client.get("/api/categories").json() == []


def test_category_admin_validation(client, admin_headers, category):
    duplicate = client.post("/api/admin/categories", json={"name": "Science Fiction"}, headers=admin_headers)
    assert duplicate.status_code == 409

    blank = client.post("/api/admin/categories", json={"name": "   "}, headers=admin_headers)
    assert blank.status_code == 400

    renamed = client.patch(
        f"/api/admin/categories/{category['id']}", json={"name": "SF"}, headers=admin_headers
    ).json()
    assert renamed == {"id": category["id"], "name": "SF", "description": "Space"}


def test_delete_book_removes_dependents_and_files(client, admin_headers, create_book, register, settings):
    book = create_book(with_files=True)
    _, headers = register("reader@example.com")
    client.post(f"/api/books/{book['id']}/reviews", json={"rating": 5}, headers=headers)
    client.post("/api/bookmarks", json={"bookId": book["id"]}, headers=headers)
    client.post("/api/reading-progress", json={"bookId": book["id"], "lastPage": 3}, headers=headers)
    client.get(f"/api/books/{book['id']}/download")

    response = client.delete(f"/api/admin/books/{book['id']}", headers=admin_headers)
    assert response.json() == {"message": "Book deleted"}

    assert client.get(f"/api/books/{book['id']}").status_code == 404
    assert client.get(f"/api/books/{book['id']}/reviews").status_code == 404
    assert client.get("/api/bookmarks", headers=headers).json() == []
    assert client.get(f"/api/reading-progress/{book['id']}", headers=headers).json() is None
    assert client.get("/api/admin/reviews", headers=admin_headers).json() == []
    assert client.get("/api/admin/downloads", headers=admin_headers).json() == []
    assert list((settings.upload_dir / "books").iterdir()) == []
    assert list((settings.upload_dir / "covers").iterdir()) == []

    assert client.delete(f"/api/admin/books/{book['id']}", headers=admin_headers).status_code == 404
