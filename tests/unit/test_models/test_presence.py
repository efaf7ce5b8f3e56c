"""Tests for presence models."""

import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from presence_api.models.presence import PresenceActivity, PresenceSnapshot, PresenceView


@pytest.mark.unit
def test_unknown_member_placeholder():
    view = PresenceView.unknown("123")
    assert view.id == "123"
    assert view.username == "unknown"
    assert view.status == "unknown"
    assert view.activities == []
    assert view.avatar_url is None


@pytest.mark.unit
def test_snapshot_payload_uses_wire_names():
    snapshot = PresenceSnapshot(
        updated_at=datetime(2024, 12, 9, 12, 0, tzinfo=timezone.utc),
        team=[
            PresenceView(
                id="1",
                username="ana",
                status="online",
                activities=[PresenceActivity(name="Visual Studio Code", type="playing")],
                avatar_url="https://cdn.discordapp.com/avatars/1/a.png?size=64",
            ),
            PresenceView.unknown("2"),
        ],
    )

    payload = snapshot.to_payload()

    assert payload["updatedAt"].startswith("2024-12-09T12:00:00")
    assert payload["team"][0]["avatarUrl"].endswith("size=64")
    assert payload["team"][0]["activities"] == [{"name": "Visual Studio Code", "type": "playing"}]
    # Unknown members carry no avatar key at all
    assert "avatarUrl" not in payload["team"][1]
    assert payload["team"][1]["status"] == "unknown"


@pytest.mark.unit
def test_snapshot_is_immutable():
    snapshot = PresenceSnapshot(updated_at=datetime.now(timezone.utc), team=[])
    with pytest.raises(ValidationError):
        snapshot.team = [PresenceView.unknown("1")]
