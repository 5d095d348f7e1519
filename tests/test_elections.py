import datetime

import pytest

from digivote.elections import (ElectionRuleError, allowed_statuses, can_archive, can_delete, can_delete_permanently,
                                can_edit,
                                can_publish, edit_payload, form_values, is_locked, needs_activation_confirm,
                                parse_timestamp, validate_create)

NOW = datetime.datetime(2025, 3, 10, 12, 0, tzinfo=datetime.timezone.utc)

DRAFT = {
    "_id": "e1", "title": "Kadi Panchayat", "type": "Panchayat", "level": "Village", "status": "draft",
    "state": "Gujarat", "district": "Mehsana", "taluka": "Kadi", "villageCity": "Agol",
    "votingStartDate": "2025-03-01T09:00:00.000Z", "votingEndDate": "2025-03-05T17:00:00.000Z",
    "resultDeclarationDate": "2025-03-06T10:00:00.000Z",
}


def test_parse_timestamp_handles_z_and_naive():
    assert parse_timestamp("2025-03-05T17:00:00Z") == datetime.datetime(2025, 3, 5, 17, tzinfo=datetime.timezone.utc)
    assert parse_timestamp("2025-03-05T17:00").tzinfo is not None
    assert parse_timestamp("garbage") is None


def test_status_gates():
    assert can_edit(DRAFT) and can_delete(DRAFT) and not can_archive(DRAFT)
    completed = {**DRAFT, "status": "completed"}
    assert can_archive(completed) and not can_delete(completed) and not can_edit(completed)
    assert not can_archive({**completed, "archived": True})


def test_active_election_only_moves_to_completed():
    active = {**DRAFT, "status": "active"}
    assert allowed_statuses(active) == ["active", "completed"]
    assert is_locked(active)

    with pytest.raises(ElectionRuleError):
        edit_payload(active, {"status": "draft"})


def test_active_election_locks_other_fields():
    active = {**DRAFT, "status": "active"}
    with pytest.raises(ElectionRuleError):
        edit_payload(active, {**form_values(active), "title": "Renamed"})

    assert edit_payload(active, {"status": "completed"}) == {"status": "completed"}


def test_only_changed_fields_are_sent():
    submitted = {**form_values(DRAFT), "title": "Kadi Panchayat 2025"}
    assert edit_payload(DRAFT, submitted) == {"title": "Kadi Panchayat 2025"}


def test_activation_must_not_carry_other_edits():
    submitted = {**form_values(DRAFT), "status": "active"}
    payload = edit_payload(DRAFT, submitted)
    assert payload == {"status": "active"}
    assert needs_activation_confirm(payload)

    with pytest.raises(ElectionRuleError):
        edit_payload(DRAFT, {**submitted, "title": "Changed"})


def test_publish_window():
    assert can_publish(DRAFT, now=NOW)
    assert not can_publish({**DRAFT, "votingEndDate": "2025-04-01T00:00:00Z"}, now=NOW)
    assert not can_publish({**DRAFT, "results": {"isDeclared": True}}, now=NOW)


def test_validate_create_date_order():
    errors = validate_create({"title": "X", "description": "Ward poll", "votingStartDate": "2025-03-05T10:00",
                              "votingEndDate": "2025-03-04T10:00", "resultDeclarationDate": "2025-03-06T10:00"})
    assert set(errors) == {"votingEndDate"}
    assert "title" in validate_create({})


def test_validate_create_requires_description():
    errors = validate_create({"title": "X", "votingStartDate": "2025-03-01T10:00",
                              "votingEndDate": "2025-03-04T10:00", "resultDeclarationDate": "2025-03-06T10:00"})
    assert set(errors) == {"description"}


def test_permanent_delete_gate():
    assert can_delete_permanently(DRAFT)
    assert can_delete_permanently({**DRAFT, "status": "upcoming"})
    assert can_delete_permanently({**DRAFT, "status": "completed", "archived": True})
    assert not can_delete_permanently({**DRAFT, "status": "active"})
    assert not can_delete_permanently({**DRAFT, "status": "cancelled"})
