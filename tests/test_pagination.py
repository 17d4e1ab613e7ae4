"""Tests for front page pagination."""

from __future__ import annotations

import pytest

from chanboard.models import Thread
from chanboard.pagination import paginate


def make_threads(n: int) -> list[Thread]:
    # Thread i was bumped at time i, so the newest has the highest id.
    return [Thread(id=i, title=f"t{i}", message="m", last_updated=1000 + i) for i in range(1, n + 1)]


class TestPaginate:
    def test_pages_of_25(self) -> None:
        threads = make_threads(25)
        assert len(paginate(threads, 1).items) == 10
        assert len(paginate(threads, 2).items) == 10
        assert len(paginate(threads, 3).items) == 5

    def test_newest_first(self) -> None:
        page = paginate(make_threads(25), 1)
        assert [t.id for t in page.items] == list(range(25, 15, -1))
        assert [t.id for t in paginate(make_threads(25), 3).items] == [5, 4, 3, 2, 1]

    def test_past_the_end_clamps_to_last_page(self) -> None:
        threads = make_threads(25)
        page = paginate(threads, 4)
        assert page.number == 3
        assert page.items == paginate(threads, 3).items

    @pytest.mark.parametrize("requested", [0, -1, -50, None])
    def test_low_pages_clamp_to_first(self, requested: int | None) -> None:
        threads = make_threads(25)
        page = paginate(threads, requested)
        assert page.number == 1
        assert page.items == paginate(threads, 1).items

    def test_metadata(self) -> None:
        page = paginate(make_threads(25), 2)
        assert page.total == 25
        assert page.total_pages == 3
        assert page.has_previous and page.has_next
        assert list(page.page_numbers) == [1, 2, 3]
        last = paginate(make_threads(25), 3)
        assert last.has_previous and not last.has_next

    def test_empty_board(self) -> None:
        page = paginate([], 1)
        assert page.is_empty
        assert page.items == []
        assert page.total_pages == 0
        assert not page.has_previous and not page.has_next

    def test_exact_multiple(self) -> None:
        page = paginate(make_threads(20), 5)
        assert page.total_pages == 2
        assert page.number == 2
        assert len(page.items) == 10

    def test_ties_are_deterministic(self) -> None:
        threads = [Thread(id=i, title="t", message="m", last_updated=5) for i in (3, 1, 2)]
        assert [t.id for t in paginate(threads).items] == [3, 2, 1]
        assert [t.id for t in paginate(list(reversed(threads))).items] == [3, 2, 1]

    def test_custom_page_size(self) -> None:
        page = paginate(make_threads(7), 2, page_size=3)
        assert [t.id for t in page.items] == [4, 3, 2]

    def test_does_not_mutate_input(self) -> None:
        threads = make_threads(3)
        paginate(threads)
        assert [t.id for t in threads] == [1, 2, 3]
