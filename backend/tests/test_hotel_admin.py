"""Tests for registration, login, shop status, staff accounts and menu administration."""

import pytest
from decimal import Decimal

from app.core.errors import ConflictError, GuardViolationError, NotFoundError
from app.models import Order, Profile, Seat
from app.services.hotel_service import HotelService, slugify

API = "/api/v1"


class TestRegistration:
    def test_register_creates_hotel_admin_and_tables(self, client, db_session):
        response = client.post(
            f"{API}/auth/register",
            json={"hotel_name": "Blue Lotus Cafe", "username": "lotus", "password": "secret123", "table_count": 4},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["profile"]["role"] == "admin"
        assert data["hotel"]["slug"] == "blue-lotus-cafe"
        assert data["hotel"]["is_open"] is True

        hotel_id = data["hotel"]["id"]
        assert db_session.query(Seat).filter(Seat.hotel_id == hotel_id).count() == 4

        me = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.json()["username"] == "lotus"

    def test_duplicate_username(self, client, admin):
        response = client.post(
            f"{API}/auth/register",
            json={"hotel_name": "Copycat", "username": "owner", "password": "secret123"},
        )
        assert response.status_code == 409
        assert response.json()["code"] == "conflict"

    def test_slug_is_unique(self, db_session, hotel):
        other, _ = HotelService(db_session).register_tenant_and_admin("Spice Garden", "second", "secret123", table_count=0)
        assert other.slug == "spice-garden-2"

    @pytest.mark.parametrize("name, slug", [
        ("Spice Garden", "spice-garden"),
        ("  Café #1 ", "caf-1"),
        ("!!!", "hotel"),
    ])
    def test_slugify(self, name, slug):
        assert slugify(name) == slug


class TestLogin:
    def test_login(self, client, waiter):
        response = client.post(f"{API}/auth/login", json={"username": "ravi", "password": "secret123"})
        assert response.status_code == 200
        assert response.json()["profile"]["full_name"] == "Ravi Kumar"

    def test_wrong_password(self, client, waiter):
        response = client.post(f"{API}/auth/login", json={"username": "ravi", "password": "nope"})
        assert response.status_code == 401

    def test_unknown_user(self, client, hotel):
        response = client.post(f"{API}/auth/login", json={"username": "ghost", "password": "secret123"})
        assert response.status_code == 401


class TestShopStatus:
    def test_toggle_and_reopen_stamp(self, db_session, hotel, clock):
        service = HotelService(db_session, clock=clock)
        closed = service.toggle_shop(hotel.id)
        assert closed.is_open is False
        stamped = closed.last_opened_at

        reopened = service.toggle_shop(hotel.id)
        assert reopened.is_open is True
        assert reopened.last_opened_at > stamped

    def test_opening_an_open_shop_keeps_stamp(self, db_session, hotel, clock):
        before = hotel.last_opened_at
        HotelService(db_session, clock=clock).toggle_shop(hotel.id, True)
        db_session.refresh(hotel)
        assert hotel.last_opened_at == before

    def test_only_admin_can_toggle(self, client, hotel, waiter_headers, admin_headers):
        assert client.put(f"{API}/hotel/shop-status", json={}, headers=waiter_headers).status_code == 403
        response = client.put(f"{API}/hotel/shop-status", json={}, headers=admin_headers)
        assert response.json()["is_open"] is False
        assert client.get(f"{API}/hotel", headers=waiter_headers).json()["is_open"] is False

    def test_table_count_endpoint(self, client, hotel, admin_headers):
        response = client.put(f"{API}/hotel/tables", json={"count": 3}, headers=admin_headers)
        assert response.json() == {"created": [], "removed": [4, 5], "kept_occupied": []}
        seats = client.get(f"{API}/seats", headers=admin_headers).json()
        assert [s["id"] for s in seats] == [0, 1, 2, 3]


class TestStaff:
    def test_create_and_list(self, client, admin, admin_headers):
        response = client.post(
            f"{API}/hotel/staff",
            json={"username": "tandoor", "password": "secret123", "full_name": "Tandoor Station", "role": "kitchen"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["role"] == "kitchen"

        names = [p["username"] for p in client.get(f"{API}/hotel/staff", headers=admin_headers).json()]
        assert names == ["owner", "tandoor"]

    def test_waiter_cannot_manage_staff(self, client, waiter_headers):
        assert client.get(f"{API}/hotel/staff", headers=waiter_headers).status_code == 403

    def test_repair_updates_existing(self, db_session, hotel, waiter):
        profile = HotelService(db_session).repair_staff_profile(hotel.id, "ravi", full_name="Ravi K", role="admin")
        assert profile.id == waiter.id
        assert profile.full_name == "Ravi K"
        assert profile.is_admin

    def test_repair_creates_missing_profile(self, db_session, hotel):
        profile = HotelService(db_session).repair_staff_profile(hotel.id, "newbie", password="secret123")
        assert profile.role == "waiter"
        assert HotelService(db_session).authenticate("newbie", "secret123") is not None

    def test_repair_missing_without_password(self, db_session, hotel):
        with pytest.raises(NotFoundError):
            HotelService(db_session).repair_staff_profile(hotel.id, "newbie")

    def test_repair_refuses_other_hotels_user(self, db_session, hotel, waiter):
        other, _ = HotelService(db_session).register_tenant_and_admin("Other Place", "boss", "secret123", table_count=0)
        with pytest.raises(ConflictError):
            HotelService(db_session).repair_staff_profile(other.id, "ravi", full_name="Poached")

    def test_delete_keeps_order_history(self, client, db_session, hotel, admin_headers, waiter):
        order = Order(hotel_id=hotel.id, seat_id=1, status="paid", waiter_id=waiter.id, waiter_name="Ravi Kumar")
        db_session.add(order)
        db_session.commit()

        response = client.delete(f"{API}/hotel/staff/{waiter.id}", headers=admin_headers)
        assert response.status_code == 204
        assert db_session.query(Profile).filter(Profile.username == "ravi").first() is None
        db_session.refresh(order)
        assert order.waiter_name == "Ravi Kumar"

    def test_cannot_delete_self(self, db_session, hotel, admin):
        with pytest.raises(GuardViolationError):
            HotelService(db_session).delete_staff_account(hotel.id, admin.id, acting=admin)


class TestMenuAdmin:
    def test_item_with_variants_priced_by_first(self, client, menu, admin_headers):
        response = client.post(
            f"{API}/menu/items",
            json={
                "name": "Mutton Curry",
                "category_id": menu["mains"].id,
                "variants": [{"name": "Full", "price": "320"}, {"name": "Half", "price": "180"}],
                "track_inventory": True,
                "stock_count": "5",
            },
            headers=admin_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["price"]) == Decimal("320")
        assert [v["name"] for v in data["variants"]] == ["Full", "Half"]
        assert data["available"] is True

    def test_item_needs_price_or_variants(self, client, menu, admin_headers):
        response = client.post(f"{API}/menu/items", json={"name": "Mystery"}, headers=admin_headers)
        assert response.status_code == 422

    def test_duplicate_variant_names(self, client, menu, admin_headers):
        response = client.post(
            f"{API}/menu/items",
            json={"name": "Dal", "variants": [{"name": "Half", "price": 50}, {"name": "Half", "price": 60}]},
            headers=admin_headers,
        )
        assert response.status_code == 422

    def test_waiter_cannot_edit_menu(self, client, menu, waiter_headers):
        response = client.post(f"{API}/menu/items", json={"name": "Lassi", "price": 40}, headers=waiter_headers)
        assert response.status_code == 403

    def test_update_and_restock(self, client, menu, admin_headers):
        biryani = menu["biryani"]
        response = client.put(
            f"{API}/menu/items/{biryani.id}",
            json={"variants": [{"name": "Full", "price": 260}, {"name": "Half", "price": 150}]},
            headers=admin_headers,
        )
        assert Decimal(response.json()["price"]) == Decimal("260")

        restocked = client.post(f"{API}/menu/items/{biryani.id}/restock", json={"units": "2.5"}, headers=admin_headers)
        assert Decimal(restocked.json()["stock_count"]) == Decimal("5.5")

    def test_available_only_hides_sold_out(self, client, db_session, menu, waiter_headers):
        menu["paneer"].stock_count = Decimal("0")
        db_session.commit()
        everything = client.get(f"{API}/menu", headers=waiter_headers).json()
        available = client.get(f"{API}/menu?available_only=true", headers=waiter_headers).json()
        assert len(everything["items"]) == 3
        assert "Paneer Tikka" not in [item["name"] for item in available["items"]]

    def test_delete_category_keeps_items(self, client, db_session, menu, admin_headers):
        response = client.delete(f"{API}/menu/categories/{menu['drinks'].id}", headers=admin_headers)
        assert response.status_code == 204
        db_session.refresh(menu["chai"])
        assert menu["chai"].category_id is None

    def test_delete_item(self, client, menu, admin_headers):
        assert client.delete(f"{API}/menu/items/{menu['chai'].id}", headers=admin_headers).status_code == 204
        assert client.delete(f"{API}/menu/items/{menu['chai'].id}", headers=admin_headers).status_code == 404
