"""Tests for the cart builder."""

import pytest
from decimal import Decimal

from app.core.errors import InsufficientStockError, InvalidCartError
from app.services.cart import Cart, CartKey, CartRegistry


class TestCart:
    def test_add_and_remove(self, menu):
        cart = Cart(seat_id=3)
        chai = menu["chai"]
        assert cart.update_quantity(chai, 2) == 2
        assert cart.update_quantity(chai, -1) == 1
        assert cart.update_quantity(chai, -5) == 0
        assert cart.is_empty
        assert CartKey(chai.id) not in {line.key for line in cart.lines()}

    def test_variants_are_separate_lines(self, menu):
        cart = Cart(seat_id=1)
        biryani = menu["biryani"]
        cart.update_quantity(biryani, 1, "Full")
        cart.update_quantity(biryani, 2, "Half")
        assert len(cart) == 2
        assert cart.quantity(CartKey(biryani.id, "Half")) == 2
        assert cart.cart_weight(biryani.id) == Decimal("2")

    def test_variant_name_with_delimiters(self, menu):
        cart = Cart(seat_id=1)
        biryani = menu["biryani"]
        cart.update_quantity(biryani, 1, "Half_Spicy-Extra")
        line = cart.lines()[0]
        assert line.menu_item_id == biryani.id
        assert line.variant_name == "Half_Spicy-Extra"

    def test_increase_beyond_stock_is_refused(self, menu):
        cart = Cart(seat_id=1)
        biryani = menu["biryani"]
        cart.update_quantity(biryani, 2, "Full")
        cart.update_quantity(biryani, 2, "Half")

        with pytest.raises(InsufficientStockError):
            cart.update_quantity(biryani, 1, "Half")

        assert cart.quantity(CartKey(biryani.id, "Half")) == 2

    def test_decrease_never_checks_stock(self, db_session, menu):
        cart = Cart(seat_id=1)
        paneer = menu["paneer"]
        cart.update_quantity(paneer, 5)
        paneer.stock_count = Decimal("0")
        db_session.commit()
        assert cart.update_quantity(paneer, -1) == 4

    def test_sold_out_item_cannot_be_added(self, db_session, menu):
        paneer = menu["paneer"]
        paneer.stock_count = Decimal("0")
        db_session.commit()
        with pytest.raises(InsufficientStockError):
            Cart(seat_id=1).update_quantity(paneer, 1)

    def test_notes_are_independent_of_quantity(self, menu):
        cart = Cart(seat_id=1)
        chai = menu["chai"]
        key = CartKey(chai.id)
        cart.update_quantity(chai, 1)
        cart.set_note(key, "  less sugar ")
        cart.update_quantity(chai, 2)
        assert cart.lines()[0].note == "less sugar"
        cart.set_note(key, "   ")
        assert cart.note(key) is None

    def test_removing_line_drops_its_note(self, menu):
        cart = Cart(seat_id=1)
        chai = menu["chai"]
        key = CartKey(chai.id)
        cart.update_quantity(chai, 1)
        cart.set_note(key, "no sugar")
        cart.update_quantity(chai, -1)
        cart.update_quantity(chai, 1)
        assert cart.note(key) is None
        assert cart.lines()[0].note is None

    def test_subtotal_uses_variant_prices(self, menu):
        cart = Cart(seat_id=1)
        biryani, chai = menu["biryani"], menu["chai"]
        cart.update_quantity(biryani, 1, "Full")
        cart.update_quantity(biryani, 2, "Half")
        cart.update_quantity(chai, 3)
        cart.update_quantity(chai, 1, "Kulhad")  # unknown variant: base price
        menu_by_id = {item.id: item for item in (biryani, chai)}
        assert cart.compute_subtotal(menu_by_id) == Decimal("240") + Decimal("280") + Decimal("60") + Decimal("20")

    def test_subtotal_with_missing_item(self, menu):
        cart = Cart(seat_id=1)
        cart.update_quantity(menu["chai"], 1)
        with pytest.raises(InvalidCartError):
            cart.compute_subtotal({})

    def test_clear(self, menu):
        cart = Cart(seat_id=1)
        cart.update_quantity(menu["chai"], 1)
        cart.set_note(CartKey(menu["chai"].id), "hot")
        cart.clear()
        assert cart.is_empty
        assert cart.note(CartKey(menu["chai"].id)) is None


class TestCartRegistry:
    def test_one_cart_per_staff_and_seat(self):
        registry = CartRegistry()
        a = registry.get("h1", "p1", 4)
        assert registry.get("h1", "p1", 4) is a
        assert registry.get("h1", "p2", 4) is not a
        assert registry.get("h1", "p1", 5) is not a

    def test_discard(self):
        registry = CartRegistry()
        a = registry.get("h1", "p1", 4)
        registry.discard("h1", "p1", 4)
        assert registry.get("h1", "p1", 4) is not a
