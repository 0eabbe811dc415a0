from easysearch.core.utils.text import (
    fold_case,
    initial_query,
    is_multiline,
    line_starts,
    offset_to_position,
    split_lines,
)


def test_fold_case_preserves_length():
    text = "İstanbul ABC"
    folded = fold_case(text)
    assert len(folded) == len(text)
    assert folded.endswith("abc")
    assert fold_case("") == ""


def test_split_lines_and_offsets():
    text = "ab\r\ncd\nef"
    assert split_lines(text) == ["ab", "cd", "ef"]
    starts = line_starts("ab\ncd\nef")
    assert starts == [0, 3, 6]
    assert offset_to_position(starts, 0) == (0, 0)
    assert offset_to_position(starts, 4) == (1, 1)
    assert offset_to_position(starts, 6) == (2, 0)


def test_is_multiline():
    assert is_multiline("a\nb")
    assert is_multiline("a\rb")
    assert not is_multiline("ab")


def test_initial_query_prefers_selection():
    text = "call my_function(arg)"
    assert initial_query(text, selection=(5, 16)) == "my_function"
    assert initial_query(text, selection=(16, 5)) == "my_function"


def test_initial_query_falls_back_to_word_at_cursor():
    text = "call my_function(arg)"
    assert initial_query(text, cursor=8) == "my_function"
    assert initial_query(text, selection=(8, 8)) == "my_function"
    assert initial_query(text, cursor=4) == "call"
    assert initial_query("a  b", cursor=2) == ""
    assert initial_query("", cursor=0) == ""
    assert initial_query(text) == ""
