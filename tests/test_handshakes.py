from datetime import datetime, timedelta
from http import HTTPStatus

import pytest

from dormdash import handshakes


@pytest.fixture()
def matched(client):
    client.post(
        "/api/deliverers/activate",
        json={"user_id": "d1", "hall_id": "bruin-cafe", "desired_order": "cold brew"},
    )
    resp = client.post(
        "/api/deliverers/match", json={"hall_id": "bruin-cafe", "orderer_id": "o1"}
    )
    assert resp.status_code == HTTPStatus.OK
    handshake_id = resp.json()["handshake"]["id"]

    def pin_of(user_id):
        view = client.get(f"/api/handshakes/{handshake_id}", params={"user_id": user_id})
        assert view.status_code == HTTPStatus.OK
        return view.json()["handshake"]["pin"]

    return handshake_id, pin_of("d1"), pin_of("o1")


def _verify(client, handshake_id, user_id, pin):
    return client.post(
        f"/api/handshakes/{handshake_id}/verify", json={"user_id": user_id, "pin": pin}
    )


def test_each_party_sees_only_their_own_pin(client, matched):
    handshake_id, deliverer_pin, _ = matched
    view = client.get(f"/api/handshakes/{handshake_id}", params={"user_id": "d1"}).json()
    assert view["handshake"]["role"] == "deliverer"
    assert view["handshake"]["pin"] == deliverer_pin
    assert "orderer_pin" not in view["handshake"]
    assert "deliverer_pin" not in view["handshake"]


def test_both_parties_confirm(client, matched):
    handshake_id, deliverer_pin, orderer_pin = matched

    resp = _verify(client, handshake_id, "o1", deliverer_pin)
    assert resp.status_code == HTTPStatus.OK
    assert resp.json()["handshake"]["orderer_confirmed"] is True
    assert resp.json()["handshake"]["status"] == "pending"

    resp = _verify(client, handshake_id, "d1", orderer_pin)
    assert resp.status_code == HTTPStatus.OK
    assert resp.json()["handshake"]["status"] == "confirmed"


def test_wrong_pin_counts_down_then_locks(client, matched):
    handshake_id, _, _ = matched

    resp = _verify(client, handshake_id, "o1", "0000")
    assert resp.status_code == HTTPStatus.BAD_REQUEST
    assert resp.json()["detail"] == "PIN does not match. 4 attempt(s) remaining."

    for _ in range(4):
        _verify(client, handshake_id, "o1", "0000")

    resp = _verify(client, handshake_id, "o1", "0000")
    assert resp.status_code == HTTPStatus.LOCKED


def test_outsider_cannot_view_or_verify(client, matched):
    handshake_id, deliverer_pin, _ = matched
    view = client.get(f"/api/handshakes/{handshake_id}", params={"user_id": "mallory"})
    assert view.status_code == HTTPStatus.FORBIDDEN
    assert _verify(client, handshake_id, "mallory", deliverer_pin).status_code == HTTPStatus.FORBIDDEN


def test_pin_format_is_validated(client, matched):
    handshake_id, _, _ = matched
    resp = _verify(client, handshake_id, "o1", "12")
    assert resp.status_code == HTTPStatus.BAD_REQUEST


def test_unknown_handshake(client):
    resp = client.get("/api/handshakes/nope", params={"user_id": "o1"})
    assert resp.status_code == HTTPStatus.NOT_FOUND


def test_expired_handshake_rejects_verification(db_session):
    opened = datetime(2025, 3, 1, 18, 0)
    handshake = handshakes.open_handshake(db_session, "rendezvous", "d1", "o1", now=opened)
    later = handshake.expires_at + timedelta(seconds=1)

    assert handshake.status_at(later) == "expired"
    with pytest.raises(handshakes.HandshakeExpired):
        handshakes.verify(db_session, handshake, "o1", handshake.deliverer_pin, now=later)


def test_generated_pins_are_four_digits():
    for _ in range(50):
        pin = handshakes.generate_pin()
        assert len(pin) == 4 and 1000 <= int(pin) <= 9999


def test_confirmed_party_cannot_lock_the_handshake(client, matched):
    handshake_id, deliverer_pin, orderer_pin = matched

    assert _verify(client, handshake_id, "d1", orderer_pin).status_code == HTTPStatus.OK
    for _ in range(5):
        resp = _verify(client, handshake_id, "d1", "0000")
        assert resp.status_code == HTTPStatus.OK
        assert resp.json()["handshake"]["deliverer_confirmed"] is True
        assert resp.json()["handshake"]["status"] == "pending"

    resp = _verify(client, handshake_id, "o1", deliverer_pin)
    assert resp.status_code == HTTPStatus.OK
    assert resp.json()["handshake"]["status"] == "confirmed"


def test_repeat_verification_after_confirming_changes_nothing(db_session):
    handshake = handshakes.open_handshake(db_session, "rendezvous", "d1", "o1")
    handshakes.verify(db_session, handshake, "o1", handshake.deliverer_pin)

    again = handshakes.verify(db_session, handshake, "o1", "1234")
    assert again.orderer_confirmed is True
    assert again.failed_attempts == 0
