import pytest

from concurrency_lab.escape import (
    box_value,
    closure_counter,
    main,
    make_list,
    return_reference,
    return_value,
    sum_array,
)


def test_return_value():
    assert return_value() == 42


def test_sum_array():
    assert sum_array() == 15


def test_return_reference_holds_42():
    assert return_reference() == [42]


def test_return_reference_gives_fresh_objects():
    first = return_reference()
    second = return_reference()
    first[0] = 7
    assert second[0] == 42
    assert first is not second


def test_closure_counter_counts_up():
    counter = closure_counter()
    assert counter() == 1
    assert counter() == 2


def test_closure_counters_are_independent():
    a = closure_counter()
    b = closure_counter()
    a()
    a()
    assert b() == 1


def test_box_value():
    assert box_value(99) == "99"


def test_make_list_small():
    assert make_list(4) == [0, 2, 4, 6]


def test_make_list_64():
    result = make_list(64)
    assert len(result) == 64
    assert result[-1] == 126


def test_make_list_empty():
    assert make_list(0) == []


def test_make_list_negative():
    with pytest.raises(ValueError):
        make_list(-1)


def test_main_output(capsys):
    assert main([]) == 0
    out = capsys.readouterr().out
    assert "return_value()  → 42" in out
    assert "closure_counter() → 1, 2" in out
    assert "make_list(4)    → [0, 2, 4, 6]" in out