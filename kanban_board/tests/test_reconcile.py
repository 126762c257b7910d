from __future__ import annotations

from collections import Counter

import pytest

from kanban_board.board_sync.reconcile import (
    ExternalRecord,
    deduplicate,
    insert_task_line,
    reconcile,
)
from kanban_board.board_sync.tasks import keys_in, locate_tasks

SETTINGS = '%% kanban:settings\n```\n{"kanban-plugin":"board"}\n```\n%%\n'


def record(key: str, status: str) -> ExternalRecord:
    return ExternalRecord(key=key, status=status, summary=f"Summary of {key}")


def test_moves_task_into_mapped_section() -> None:
    result = reconcile("## To Do\n- [ ] [[ABC-1]]\n", [record("ABC-1", "Done")], {"Done": "Complete"})
    assert result.text == "## To Do\n\n## Complete\n\n- [ ] [[ABC-1]]\n"
    assert result.moved == ["ABC-1"]
    assert result.added == []


def test_move_into_done_block_is_checked() -> None:
    text = "## To Do\n- [ ] [[ABC-1]]\n\n## Complete\n\n**Complete**\n"
    result = reconcile(text, [record("ABC-1", "Done")], {"Done": "Complete"})
    assert result.text == "## To Do\n\n## Complete\n\n**Complete**\n- [x] [[ABC-1]]\n"


def test_duplicates_collapse_without_records() -> None:
    text = "## Backlog\n\n- [ ] [[XYZ-9]]\n- [ ] [[XYZ-9]] again\n\n\n"
    result = reconcile(text, [])
    assert result.text == "## Backlog\n\n- [ ] [[XYZ-9]]\n"
    assert result.removed == ["XYZ-9"]


def test_deduplicate_keeps_first_occurrence() -> None:
    text = (
        "## A\n- [ ] [[K-1]] first\n"
        "## B\n- [x] [[K-1]]\n- [ ] [[K-2]]\n- [ ] [[K-1]] third\n"
    )
    deduped, removed = deduplicate(text)
    assert deduped == "## A\n- [ ] [[K-1]] first\n## B\n- [ ] [[K-2]]\n"
    assert removed == ["K-1", "K-1"]


def test_new_tasks_follow_record_order() -> None:
    text = "## To Do\n\n- [ ] [[A-1]]\n"
    records = [
        record("A-1", "To Do"),
        record("A-2", "To Do"),
        record("A-3", "To Do"),
        record("B-1", "In Progress"),
    ]
    result = reconcile(text, records)
    assert result.text == (
        "## To Do\n\n- [ ] [[A-2]]\n- [ ] [[A-3]]\n- [ ] [[A-1]]\n\n"
        "## In Progress\n\n- [ ] [[B-1]]\n"
    )
    assert result.added == ["A-2", "A-3", "B-1"]


def test_moves_preserve_notes_and_untouched_items() -> None:
    text = (
        "## To Do\n\nSome free-form note.\n\n- [ ] [[A-1]] needs review\n- [ ] [[A-2]]\n\n"
        "## Doing\n\n- [ ] [[A-3]]\n- [ ] [[Z-1]] manual entry\n"
    )
    records = [record("A-1", "Doing"), record("A-2", "To Do"), record("A-3", "Doing")]
    result = reconcile(text, records)
    assert result.text == (
        "## To Do\n\nSome free-form note.\n\n- [ ] [[A-2]]\n\n"
        "## Doing\n\n- [ ] [[A-1]] needs review\n- [ ] [[A-3]]\n- [ ] [[Z-1]] manual entry\n"
    )
    assert result.moved == ["A-1"]


def test_moved_line_keeps_check_state() -> None:
    result = reconcile("## Done\n\n- [x] [[A-1]] shipped\n", [record("A-1", "In Progress")])
    assert result.text == "## Done\n\n## In Progress\n\n- [x] [[A-1]] shipped\n"


def test_duplicate_headings_target_the_first() -> None:
    text = "## To Do\n\n- [ ] [[A-1]]\n\n## To Do\n\n- [ ] [[A-2]]\n"
    result = reconcile(text, [record("A-3", "To Do"), record("A-2", "To Do")])
    assert result.text == (
        "## To Do\n\n- [ ] [[A-3]]\n- [ ] [[A-1]]\n\n## To Do\n\n- [ ] [[A-2]]\n"
    )
    assert result.moved == []


def test_new_section_goes_before_settings_block() -> None:
    text = "## To Do\n\n- [ ] [[A-1]]\n\n" + SETTINGS
    result = reconcile(text, [record("A-2", "Done")])
    assert result.text == "## To Do\n\n- [ ] [[A-1]]\n\n## Done\n\n- [ ] [[A-2]]\n\n" + SETTINGS


def test_malformed_and_repeated_records_are_dropped() -> None:
    records = [
        ExternalRecord(key="bad key", status="Done"),
        ExternalRecord(key="A-1", status="   "),
        record("A-2", "To Do"),
        record("A-2", "Done"),
    ]
    result = reconcile("## To Do\n", records)
    assert result.text == "## To Do\n\n- [ ] [[A-2]]\n"
    assert result.added == ["A-2"]


def test_insert_below_heading_without_newline() -> None:
    assert insert_task_line("## To Do", "To Do", "- [ ] [[A-1]]") == "## To Do\n- [ ] [[A-1]]\n"


def test_insert_below_done_marker() -> None:
    text = "## Done\n\n**Complete**\n- [x] [[A-1]]\n"
    assert insert_task_line(text, "Done", "- [ ] [[A-2]]\n") == (
        "## Done\n\n**Complete**\n- [ ] [[A-2]]\n- [x] [[A-1]]\n"
    )


def test_insert_into_empty_document_creates_section() -> None:
    assert insert_task_line("", "To Do", "- [ ] [[A-1]]\n") == "## To Do\n- [ ] [[A-1]]\n"


BOARDS = [
    "## To Do\n\n- [ ] [[A-1]]\n- [ ] [[A-1]]\n\n## Done\n\n**Complete**\n- [x] [[A-2]]\n",
    "---\nautoUpdateKanban: true\n---\n\n## Doing\n- [ ] [[A-3]] note\n\n\n- [ ] [[Q-7]]\n",
    "## Backlog\n\nFree text\n\n- [ ] [[A-2]]\n\n## Backlog\n- [ ] [[A-4]]\n",
    "",
]
RECORDS = [
    record("A-1", "In Progress"),
    record("A-2", "Done"),
    record("A-3", "To Do"),
    record("A-4", "Backlog"),
    record("A-5", "Won't Do"),
]
PLACEMENT = {"Done": "Done", "Won't Do": "Done", "To Do": "Backlog"}


@pytest.mark.parametrize("text", BOARDS)
def test_second_run_is_a_no_op(text: str) -> None:
    first = reconcile(text, RECORDS, PLACEMENT)
    second = reconcile(first.text, RECORDS, PLACEMENT)
    assert second.text == first.text
    assert not second.changed
    assert (second.added, second.moved, second.removed) == ([], [], [])


@pytest.mark.parametrize("text", BOARDS)
def test_keys_are_conserved_and_unique(text: str) -> None:
    before = set(keys_in(deduplicate(text)[0]))
    result = reconcile(text, RECORDS, PLACEMENT)
    after = Counter(keys_in(result.text))
    assert set(after) == before | {item.key for item in RECORDS}
    assert all(count == 1 for count in after.values())


@pytest.mark.parametrize("text", BOARDS)
def test_records_land_in_resolved_section(text: str) -> None:
    result = reconcile(text, RECORDS, PLACEMENT)
    placed = {task.key: task.section.name for task in locate_tasks(result.text)}
    for item in RECORDS:
        assert placed[item.key] == PLACEMENT.get(item.status, item.status)


@pytest.mark.parametrize("text", BOARDS)
def test_done_blocks_are_fully_checked(text: str) -> None:
    result = reconcile(text, RECORDS, PLACEMENT)
    for task in locate_tasks(result.text):
        if task.section.name == "Done" and "**Complete**" in task.section.body(result.text):
            assert task.checked


def test_records_with_missing_fields_are_dropped_individually() -> None:
    records = [
        ExternalRecord(key="A-1", status=None),  # type: ignore[arg-type]
        ExternalRecord(key=None, status="To Do"),  # type: ignore[arg-type]
        record("A-2", "To Do"),
    ]
    result = reconcile("## To Do\n", records)
    assert result.text == "## To Do\n\n- [ ] [[A-2]]\n"
    assert result.added == ["A-2"]


def test_task_above_first_heading_is_not_added_again() -> None:
    text = "- [ ] [[A-1]]\n\n## To Do\n"
    result = reconcile(text, [record("A-1", "To Do")])
    assert result.text == text
    assert result.added == []


def test_insert_falls_back_to_heading_when_marker_line_is_gone(monkeypatch: pytest.MonkeyPatch) -> None:
    from kanban_board.board_sync import reconcile as engine

    monkeypatch.setattr(engine, "first_body_line", lambda text, section: None)
    text = "## Done\n\n**Complete**\n"
    assert engine.insert_task_line(text, "Done", "- [ ] [[A-1]]\n") == (
        "## Done\n- [ ] [[A-1]]\n\n**Complete**\n"
    )
