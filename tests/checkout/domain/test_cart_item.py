"""Tests for the cart item snapshot."""

import pytest
from checkout.exceptions import InvalidAmount
from checkout.pricing.cart import CartItem


class TestCartItem:
    def test_line_total(self):
        assert CartItem(product_id="p1", quantity=3, unit_price=2.5).line_total == 7.5

    def test_name_defaults(self):
        assert CartItem(product_id="p1", quantity=1, unit_price=1.0).name == "Unknown Product"

    def test_price_alias(self):
        item = CartItem.from_dict({"product_id": "p1", "quantity": 2, "price": 25.0})
        assert item.unit_price == 25.0

    def test_unit_price_wins_over_alias(self):
        item = CartItem.from_dict({"product_id": "p1", "quantity": 1, "unit_price": 3.0, "price": 9.0})
        assert item.unit_price == 3.0

    def test_missing_price_rejected(self):
        with pytest.raises(InvalidAmount):
            CartItem.from_dict({"product_id": "p1", "quantity": 1})

    def test_negative_price_rejected(self):
        with pytest.raises(InvalidAmount):
            CartItem(product_id="p1", quantity=1, unit_price=-1)

    def test_zero_quantity_rejected(self):
        with pytest.raises(InvalidAmount):
            CartItem(product_id="p1", quantity=0, unit_price=1)

    def test_missing_product_rejected(self):
        with pytest.raises(InvalidAmount):
            CartItem.from_dict({"quantity": 1, "unit_price": 1})

    def test_metadata_is_read_only(self):
        item = CartItem(product_id="p1", quantity=1, unit_price=1, metadata={"weight": 2})
        with pytest.raises(TypeError):
            item.metadata["weight"] = 5

    def test_unit_weight(self):
        item = CartItem(product_id="p1", quantity=1, unit_price=1, metadata={"weight": 0.75})
        assert item.unit_weight == 0.75

    def test_unit_weight_absent(self):
        assert CartItem(product_id="p1", quantity=1, unit_price=1).unit_weight is None

    def test_to_dict(self):
        item = CartItem(product_id="p1", quantity=2, unit_price=4.0, name="Mug")
        assert item.to_dict() == {
            "product_id": "p1",
            "quantity": 2,
            "unit_price": 4.0,
            "name": "Mug",
            "metadata": {},
        }
