"""Unit tests for bounded cursor pagination."""

from agentregistry.core.pagination import PAGE_SIZE, Page, paginate, paginate_filtered


def _collect(length: int) -> tuple[list[int], list[int | None]]:
    items: list[int] = []
    cursors: list[int | None] = []
    cursor = None
    while True:
        page = paginate(length, cursor, lambda i: i)
        items.extend(page.items)
        cursors.append(page.cursor)
        if page.is_last:
            return items, cursors
        cursor = page.cursor


class TestPaginate:
    def test_page_size(self) -> None:
        assert PAGE_SIZE == 15

    def test_first_page(self) -> None:
        page = paginate(40, None, lambda i: i * 10)

        assert page.items == [i * 10 for i in range(15)]
        assert page.cursor == 15
        assert not page.is_last
        assert len(page) == 15

    def test_round_trip_has_no_gaps_or_duplicates(self) -> None:
        items, cursors = _collect(45)

        assert items == list(range(45))
        assert cursors == [15, 30, None]

    def test_round_trip_uneven_length(self) -> None:
        items, cursors = _collect(31)

        assert items == list(range(31))
        assert cursors == [15, 30, None]

    def test_exactly_one_page(self) -> None:
        page = paginate(PAGE_SIZE, None, lambda i: i)

        assert len(page) == PAGE_SIZE
        assert page.cursor is None

    def test_empty_sequence(self) -> None:
        page = paginate(0, None, lambda i: i)

        assert page.items == []
        assert page.is_last

    def test_cursor_past_end(self) -> None:
        page = paginate(10, 10, lambda i: i)

        assert page.items == []
        assert page.cursor is None

    def test_negative_cursor(self) -> None:
        page = paginate(10, -1, lambda i: i)

        assert page.items == []
        assert page.cursor is None

    def test_fetch_called_once_per_item_in_window(self) -> None:
        calls: list[int] = []
        paginate(100, 30, lambda i: calls.append(i) or i)

        assert calls == list(range(30, 45))

    def test_custom_page_size(self) -> None:
        page = paginate(10, 0, lambda i: i, page_size=4)

        assert page.items == [0, 1, 2, 3]
        assert page.cursor == 4


class TestPaginateFiltered:
    def test_cursor_advances_by_window_not_matches(self) -> None:
        page = paginate_filtered(40, None, lambda i: i, lambda x: x % 2 == 0)

        assert page.items == [0, 2, 4, 6, 8, 10, 12, 14]
        assert page.cursor == 15

    def test_page_can_be_empty_while_more_remain(self) -> None:
        page = paginate_filtered(40, None, lambda i: i, lambda x: x >= 30)

        assert page.items == []
        assert page.cursor == 15

    def test_filtered_round_trip(self) -> None:
        collected = []
        cursor = None
        while True:
            page = paginate_filtered(50, cursor, lambda i: i, lambda x: x % 3 == 0)
            collected.extend(page.items)
            if page.cursor is None:
                break
            cursor = page.cursor

        assert collected == [i for i in range(50) if i % 3 == 0]


class TestPage:
    def test_default_page_is_last(self) -> None:
        page: Page[int] = Page()
        assert page.is_last
        assert len(page) == 0
