"""Tests for shared helpers and message normalization."""
from datetime import datetime, timedelta, timezone

import pytest

from relay_chat.shared.dto import MessageDTO
from relay_chat.shared.utils import normalize_username, parse_user_id


@pytest.mark.parametrize("value, expected", [(1, 1), ("42", 42), (" 7 ", 7)])
def test_parse_user_id(value, expected):
    assert parse_user_id(value) == expected


@pytest.mark.parametrize("value", [True, None, "", "abc", "1.5", 0, -3, 2.0])
def test_parse_user_id_rejects(value):
    with pytest.raises(ValueError):
        parse_user_id(value)


def test_normalize_username():
    assert normalize_username("  bob ") == "bob"
    with pytest.raises(ValueError):
        normalize_username(" ")


def test_message_from_snake_case():
    msg = MessageDTO.from_payload(
        {
            "id": 3,
            "content": "hi",
            "created_at": "2024-05-01T10:15:00",
            "sender_id": 1,
            "receiver_id": 2,
            "sender_name": "alice",
        }
    )
    assert msg == MessageDTO(3, "hi", datetime(2024, 5, 1, 10, 15, tzinfo=timezone.utc), 1, 2, "alice")


def test_message_from_camel_case_with_missing_name():
    msg = MessageDTO.from_payload(
        {"id": "3", "content": "hi", "createdAt": "2024-05-01T10:15:00Z", "senderId": "1", "receiverId": 2}
    )
    assert (msg.id, msg.sender_id, msg.receiver_id) == (3, 1, 2)
    assert msg.sender_name == "Unknown"
    assert msg.created_at.year == 2024


def test_involves_is_direction_agnostic():
    msg = MessageDTO(1, "x", None, 1, 2, "alice")
    assert msg.involves(2, 1)
    assert not msg.involves(1, 3)


def test_message_timestamp_keeps_explicit_offset():
    msg = MessageDTO.from_payload(
        {"id": 1, "content": "x", "created_at": "2024-05-01T12:15:00+02:00", "sender_id": 1, "receiver_id": 2}
    )
    assert msg.created_at.utcoffset() == timedelta(hours=2)
    assert msg.created_at == datetime(2024, 5, 1, 10, 15, tzinfo=timezone.utc)
