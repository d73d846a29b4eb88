"""Tests for instruction splitting and launch-and-write detection."""

from __future__ import annotations

import pytest

from deskhand.dispatch.splitter import (
    extract_app_name,
    extract_write_text,
    find_launch_write,
    has_sequence_delimiter,
    split_instructions,
)


class TestSplitInstructions:
    """Tests for split_instructions."""

    def test_and_then(self) -> None:
        assert split_instructions("open chrome and then search for cats") == ["open chrome", "search for cats"]

    def test_mixed_delimiters_in_order(self) -> None:
        text = "open notepad then type hello, then click Save after that close notepad"
        assert split_instructions(text) == ["open notepad", "type hello", "click Save", "close notepad"]

    def test_case_insensitive(self) -> None:
        assert split_instructions("open notepad THEN close notepad") == ["open notepad", "close notepad"]

    def test_semicolon(self) -> None:
        assert split_instructions("open notepad; close notepad") == ["open notepad", "close notepad"]

    def test_empty_segments_dropped(self) -> None:
        assert split_instructions("open notepad and  and close notepad") == ["open notepad", "close notepad"]

    def test_no_delimiter(self) -> None:
        assert split_instructions("open notepad") == ["open notepad"]
        assert not has_sequence_delimiter("open notepad")

    def test_delimiter_needs_spaces(self) -> None:
        assert not has_sequence_delimiter("open android studio")
        assert has_sequence_delimiter("open notepad and close it")


class TestExtraction:
    """Tests for app name and text extraction."""

    @pytest.mark.parametrize(
        ("step", "app"),
        [
            ("open notepad", "notepad"),
            ("launch the notepad app", "notepad"),
            ("start Calculator application", "Calculator"),
            ("open word document", "word"),
        ],
    )
    def test_extract_app_name(self, step: str, app: str) -> None:
        assert extract_app_name(step) == app

    @pytest.mark.parametrize(
        ("step", "text"),
        [
            ("write hello world", "hello world"),
            ("write call me there", "call me"),
            ("type 'quoted text' in it", "quoted text"),
            ("write hello inside it", "hello"),
        ],
    )
    def test_extract_write_text(self, step: str, text: str) -> None:
        assert extract_write_text(step) == text

    def test_only_first_suffix_removed(self) -> None:
        assert extract_write_text("write go there in it") == "go there"

    def test_app_specific_suffix(self) -> None:
        assert extract_write_text("write hello in wordpad", app_name="wordpad") == "hello"


class TestFindLaunchWrite:
    """Tests for the launch-and-write shape."""

    def test_open_and_write(self) -> None:
        plan = find_launch_write(split_instructions("open notepad and write hello world"))
        assert plan is not None
        assert plan.app_name == "notepad"
        assert plan.text == "hello world"
        assert (plan.launch_index, plan.write_index) == (0, 1)

    def test_launch_nearest_before_write(self) -> None:
        steps = ["open chrome", "open notepad", "click File", "type notes"]
        plan = find_launch_write(steps)
        assert plan is not None
        assert plan.app_name == "notepad"
        assert (plan.launch_index, plan.write_index) == (1, 3)

    def test_write_before_launch_is_not_a_plan(self) -> None:
        assert find_launch_write(["write hello", "open notepad"]) is None

    def test_no_write(self) -> None:
        assert find_launch_write(["open notepad", "close notepad"]) is None

    def test_empty_text_is_not_a_plan(self) -> None:
        assert find_launch_write(["open notepad", "write \"\""]) is None
