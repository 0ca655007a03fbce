from urllib.parse import parse_qs, urlparse

import pytest

from edgehomes.pagination import ELLIPSIS, build_pagination_view, page_numbers, page_url
from edgehomes.schemas import Pagination


def test_middle_page_shows_neighbours_and_both_ellipses():
    assert page_numbers(5, 10) == [1, ELLIPSIS, 4, 5, 6, ELLIPSIS, 10]


@pytest.mark.parametrize("current, total, expected", [
    (1, 1, [1]),
    (3, 7, [1, 2, 3, 4, 5, 6, 7]),
    (1, 10, [1, 2, ELLIPSIS, 10]),
    (2, 10, [1, 2, 3, ELLIPSIS, 10]),
    (9, 10, [1, ELLIPSIS, 8, 9, 10]),
    (10, 10, [1, ELLIPSIS, 9, 10]),
])
def test_page_numbers_edges(current, total, expected):
    assert page_numbers(current, total) == expected


def test_page_url_keeps_other_filters():
    url = page_url("/admin/bookings", {"status": "pending", "page": "1", "search": ""}, 3)

    parsed = urlparse(url)
    assert parsed.path == "/admin/bookings"
    assert parse_qs(parsed.query) == {"status": ["pending"], "page": ["3"]}


def test_single_page_is_hidden():
    view = build_pagination_view(Pagination(page=1, totalPages=1), "/", {})
    assert view.visible is False


def test_view_marks_current_page_and_neighbours():
    pagination = Pagination(page=2, totalPages=3, hasNextPage=True, hasPreviousPage=True)
    view = build_pagination_view(pagination, "/", {"location": "Lekki"})

    assert view.visible is True
    assert [link.label for link in view.links] == [1, 2, 3]
    assert [link.is_current for link in view.links] == [False, True, False]
    assert "page=1" in view.previous_url
    assert "page=3" in view.next_url
    assert "location=Lekki" in view.next_url


def test_missing_pagination_gives_hidden_view():
    assert build_pagination_view(None, "/", {}).visible is False
