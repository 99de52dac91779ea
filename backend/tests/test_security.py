"""Security tests: hashing, tokens, sanitization, validators and the change feed socket."""

import asyncio
import pytest
from datetime import timedelta
from decimal import Decimal

from starlette.websockets import WebSocketDisconnect

from app.core.sanitize import MAX_NOTE_LENGTH, sanitize_note, sanitize_text
from app.core.security import (
    create_access_token,
    create_profile_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)
from app.models.validators import non_negative, one_of, positive, validate_variants
from app.services.change_feed import ChangeFeed


# ============== Password hashing ==============

class TestPasswordHashing:
    def test_hash_and_verify(self):
        h = get_password_hash("secret123")
        assert verify_password("secret123", h)

    def test_wrong_password_rejected(self):
        h = get_password_hash("secret123")
        assert not verify_password("wrong", h)

    def test_hash_is_unique(self):
        assert get_password_hash("same") != get_password_hash("same")  # different salts

    def test_invalid_hash_returns_false(self):
        assert not verify_password("test", "not-a-hash")


# ============== JWT tokens ==============

class TestJWTTokens:
    def test_profile_token_claims(self, waiter):
        payload = decode_access_token(create_profile_token(waiter))
        assert payload["sub"] == waiter.id
        assert payload["hotel_id"] == waiter.hotel_id
        assert payload["role"] == "waiter"
        assert payload["full_name"] == "Ravi Kumar"
        assert "exp" in payload and "jti" in payload

    def test_expired_token_rejected(self):
        token = create_access_token(data={"sub": "1"}, expires_delta=timedelta(seconds=-10))
        assert decode_access_token(token) is None

    def test_tampered_token_rejected(self):
        token = create_access_token(data={"sub": "1"})
        assert decode_access_token(token[:-5] + "XXXXX") is None


# ============== Sanitization ==============

class TestSanitize:
    def test_script_tag(self):
        result = sanitize_text("<script>alert(1)</script>")
        assert "<script>" not in result
        assert "alert(1)" in result

    def test_unicode_preserved(self):
        assert sanitize_text("बिना प्याज़") == "बिना प्याज़"

    def test_note_trimmed_and_capped(self):
        assert sanitize_note("  no onion  ") == "no onion"
        assert len(sanitize_note("x" * (MAX_NOTE_LENGTH + 50))) == MAX_NOTE_LENGTH

    def test_blank_note_is_none(self):
        assert sanitize_note("   ") is None
        assert sanitize_note(None) is None


# ============== Validators ==============

class TestValidators:
    def test_non_negative(self):
        assert non_negative("qty", Decimal("0")) == Decimal("0")
        with pytest.raises(ValueError, match="cannot be negative"):
            non_negative("qty", Decimal("-1"))

    def test_positive(self):
        with pytest.raises(ValueError, match="must be positive"):
            positive("quantity", 0)

    def test_one_of(self):
        with pytest.raises(ValueError):
            one_of("status", "eaten", {"pending", "served"})

    def test_variants(self):
        variants = [{"name": "Full", "price": 100}, {"name": "Half", "price": 60}]
        assert validate_variants("variants", variants) == variants
        with pytest.raises(ValueError, match="duplicate"):
            validate_variants("variants", variants + [{"name": "Half", "price": 50}])
        with pytest.raises(ValueError):
            validate_variants("variants", [{"name": "", "price": 10}])

    def test_model_rejects_negative_stock(self, menu):
        with pytest.raises(ValueError):
            menu["paneer"].stock_count = Decimal("-1")


# ============== Change feed ==============

class FakeSocket:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail
        self.closed_with = None

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)

    async def close(self, code=None):
        self.closed_with = code


class TestChangeFeed:
    def test_publish_reaches_only_the_hotel_channel(self):
        feed = ChangeFeed()
        mine, theirs = FakeSocket(), FakeSocket()
        feed.active_connections = {"hotel-a": [mine], "hotel-b": [theirs]}

        asyncio.run(feed.publish("a", ["orders", "seats", "orders", "secrets"], "insert"))

        assert [(m["table"], m["action"]) for m in mine.sent] == [("orders", "insert"), ("seats", "insert")]
        assert theirs.sent == []

    def test_dead_sockets_are_dropped(self):
        feed = ChangeFeed()
        feed.active_connections = {"hotel-a": [FakeSocket(fail=True), FakeSocket()]}
        asyncio.run(feed.broadcast("a", {"event": "change"}))
        assert feed.get_connection_count("a") == 1

    def test_drop_profile_closes_only_that_profiles_sockets(self):
        feed = ChangeFeed()
        gone, stays = FakeSocket(), FakeSocket()
        feed.active_connections = {"hotel-a": [gone, stays]}
        feed.connection_metadata = {id(gone): {"profile_id": "p1"}, id(stays): {"profile_id": "p2"}}

        assert asyncio.run(feed.drop_profile("a", "p1")) == 1

        assert gone.closed_with == 1008
        assert stays.closed_with is None
        assert feed.get_connection_count("a") == 1

    def test_socket_refused_for_deleted_profile(self, client, db_session, hotel, waiter):
        token = create_profile_token(waiter)
        db_session.delete(waiter)
        db_session.commit()
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect(f"/ws/hotels/{hotel.id}?token={token}") as ws:
                ws.receive_json()

    def test_socket_requires_matching_hotel(self, client, hotel, waiter):
        token = create_profile_token(waiter)
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect(f"/ws/hotels/some-other-hotel?token={token}") as ws:
                ws.receive_json()

    def test_socket_without_token(self, client, hotel):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect(f"/ws/hotels/{hotel.id}") as ws:
                ws.receive_json()

    def test_socket_receives_changes(self, client, hotel, admin, admin_headers):
        token = create_profile_token(admin)
        with client.websocket_connect(f"/ws/hotels/{hotel.id}?token={token}") as ws:
            assert ws.receive_json() == {"event": "connected", "hotel_id": hotel.id}
            ws.send_text("ping")
            assert ws.receive_text() == "pong"

            client.put("/api/v1/hotel/shop-status", json={"is_open": False}, headers=admin_headers)
            message = ws.receive_json()
            assert message["event"] == "change"
            assert message["table"] == "hotels"
