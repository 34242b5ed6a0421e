import pytest

from concurrency_lab.sliceops import (
    copy_into,
    dedup_sorted,
    delete_at,
    delete_range,
    delete_swap,
    filter_in_place,
    insert_at,
    main,
    reverse_in_place,
)


def test_copy_into_shorter_destination():
    src = [1, 2, 3, 4, 5]
    dst = [0] * 3
    count = copy_into(dst, src)
    assert count == len(dst)
    assert dst == src[: len(dst)]


def test_copy_into_longer_destination_keeps_tail():
    src = [1, 2, 3, 4, 5]
    dst = [0] * 7
    count = copy_into(dst, src)
    assert count == len(src)
    assert dst[: len(src)] == src
    assert dst[len(src):] == [0, 0]


def test_copy_into_does_not_change_length():
    dst = [9] * 4
    copy_into(dst, [1] * 10)
    assert len(dst) == 4


def test_delete_at_preserves_order():
    items = [10, 20, 30, 40, 50]
    delete_at(items, 2)
    assert items == [10, 20, 40, 50]


@pytest.mark.parametrize("index", [-1, 5, 9])
def test_delete_at_out_of_range(index):
    with pytest.raises(IndexError):
        delete_at([10, 20, 30, 40, 50], index)


def test_delete_swap_moves_last_into_place():
    items = [10, 20, 30, 40, 50]
    delete_swap(items, 2)
    assert items == [10, 20, 50, 40]


def test_delete_swap_removes_exactly_one_item():
    original = [10, 20, 30, 40, 50]
    items = list(original)
    delete_swap(items, 1)
    assert len(items) == len(original) - 1
    assert sorted(items + [original[1]]) == sorted(original)


def test_delete_swap_last_index():
    items = [1, 2, 3]
    delete_swap(items, 2)
    assert items == [1, 2]


def test_delete_swap_out_of_range():
    with pytest.raises(IndexError):
        delete_swap([], 0)


def test_insert_then_delete_round_trip():
    original = [1, 2, 4, 5]
    items = list(original)
    insert_at(items, 2, 3)
    assert items[2] == 3
    assert len(items) == len(original) + 1
    delete_at(items, 2)
    assert items == original


def test_insert_at_end_appends():
    items = [1, 2]
    insert_at(items, len(items), 7)
    assert items[-1] == 7


@pytest.mark.parametrize("index", [-1, 5])
def test_insert_at_out_of_range(index):
    with pytest.raises(IndexError):
        insert_at([1, 2, 3, 4], index, 0)


def test_filter_in_place_keeps_matching_items_in_order():
    original = [1, 2, 3, 4, 5, 6, 7, 8]
    items = original[:]
    same = items
    filter_in_place(items, lambda v: v % 2 == 0)
    assert items is same
    assert all(v % 2 == 0 for v in items)
    assert items == sorted(items)
    assert set(items) == {v for v in original if v % 2 == 0}


def test_reverse_twice_is_identity():
    original = [1, 2, 3, 4, 5]
    items = list(original)
    reverse_in_place(items)
    assert items[0] == original[-1]
    assert items[-1] == original[0]
    reverse_in_place(items)
    assert items == original


def test_dedup_sorted_example():
    assert dedup_sorted([1, 1, 2, 3, 3, 3, 4, 5, 5]) == [1, 2, 3, 4, 5]


def test_dedup_sorted_invariants():
    items = [0, 0, 2, 2, 2, 7, 9, 9]
    result = dedup_sorted(items)
    assert set(result) == set(items)
    assert len(result) == len(set(items))
    assert all(a != b for a, b in zip(result, result[1:]))


def test_dedup_sorted_empty():
    assert dedup_sorted([]) == []


def test_delete_range_removes_span():
    items = [10, 20, 30, 40, 50]
    delete_range(items, 1, 3)
    assert len(items) == 3
    assert items[0] == 10
    assert items[-1] == 50


def test_delete_empty_range_is_noop():
    items = [1, 2, 3]
    delete_range(items, 2, 2)
    assert items == [1, 2, 3]


@pytest.mark.parametrize("start, stop", [(3, 2), (-1, 2), (0, 6)])
def test_delete_range_invalid(start, stop):
    with pytest.raises(IndexError):
        delete_range([1, 2, 3, 4, 5], start, stop)


def test_main_runs(capsys):
    assert main([]) == 0
    out = capsys.readouterr().out
    assert "deduped:" in out
    assert "delete_range([10..50], 1, 3):" in out