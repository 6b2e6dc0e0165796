import pytest
import readchar

from gitman.prompts import CheckboxState, Choice, fuzzy_match


@pytest.mark.parametrize(
    "needle,haystack,expected",
    [
        ("", "anything", True),
        ("gm", "gitman", True),
        ("GTM", "gitman", True),
        ("mg", "gitman", False),
        ("gitmann", "gitman", False),
    ],
)
def test_fuzzy_match(needle, haystack, expected):
    assert fuzzy_match(needle, haystack) is expected


def choices():
    return [
        Choice("proj1", "proj1", "Local"),
        Choice("proj2", "proj2", "Local"),
        Choice("other", "other", "Remote"),
    ]


def test_toggle_and_confirm_returns_display_order():
    state = CheckboxState(choices())
    state.handle_key(readchar.key.DOWN)
    state.handle_key(readchar.key.DOWN)
    state.handle_key(" ")
    state.handle_key(readchar.key.UP)
    state.handle_key(readchar.key.UP)
    state.handle_key(" ")
    assert state.handle_key(readchar.key.ENTER) is True
    assert state.selected() == ["proj1", "other"]


def test_toggle_twice_unchecks():
    state = CheckboxState(choices())
    state.handle_key(" ")
    state.handle_key(" ")
    assert state.selected() == []


def test_typing_filters_and_resets_cursor():
    state = CheckboxState(choices())
    state.handle_key(readchar.key.DOWN)
    for char in "oth":
        state.handle_key(char)
    assert [c.value for c in state.visible] == ["other"]
    assert state.cursor == 0
    state.handle_key(" ")
    state.handle_key(readchar.key.BACKSPACE)
    assert state.query == "ot"
    assert state.selected() == ["other"]


def test_cursor_wraps_around():
    state = CheckboxState(choices())
    state.handle_key(readchar.key.UP)
    assert state.cursor == 2


def test_toggle_with_no_matches_is_ignored():
    state = CheckboxState(choices())
    state.search("zzz")
    state.toggle()
    assert state.selected() == []


def test_escape_cancels():
    state = CheckboxState(choices())
    with pytest.raises(KeyboardInterrupt):
        state.handle_key(readchar.key.ESC)


def test_render_shows_sections():
    panel = CheckboxState(choices()).render("Pick")
    assert panel.title == "[bold]Pick[/]"
