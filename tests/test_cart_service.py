"""
Tests for the client-side cart store.
"""
import json
import random
from decimal import Decimal

import pytest

from storefront.repos.cart_repo import MemoryCartRepo
from storefront.services.cart_service import CartService
from storefront.utils.retry import CartConflictError


@pytest.fixture
def cola(make_item):
    return make_item("item-a", "Cola", base_price="10", coefficient="1.5")


@pytest.fixture
def tea(make_item):
    return make_item("item-b", "Iced Tea", base_price="4", coefficient="0.8")


@pytest.fixture
def cart(cart_repo):
    return CartService(cart_repo)


class TestMutations:
    def test_add_same_item_twice_merges_quantity(self, cart, cola):
        cart.add_item(cola, 1)
        cart.add_item(cola, 2)

        assert len(cart.entries) == 1
        assert cart.entries[0].quantity == 3
        assert cart.total_price == 3 * cola.final_price
        assert cart.total_price == Decimal("45")

    def test_add_defaults_to_one(self, cart, cola):
        cart.add_item(cola)
        assert cart.total_items == 1

    def test_add_rejects_non_positive_quantity(self, cart, cola):
        with pytest.raises(ValueError):
            cart.add_item(cola, 0)
        assert cart.is_empty()

    def test_add_inactive_item_is_allowed(self, cart, make_item):
        inactive = make_item("item-x", "Retired", is_active=False)
        cart.add_item(inactive)
        assert cart.total_items == 1

    def test_readd_refreshes_item_snapshot(self, cart, cola, make_item):
        cart.add_item(cola, 1)
        repriced = make_item("item-a", "Cola", base_price="10", coefficient="2.0")
        cart.add_item(repriced, 1)

        assert cart.entries[0].menu_item.final_price == Decimal("20.0")

    def test_remove_item(self, cart, cola, tea):
        cart.add_item(cola)
        cart.add_item(tea)
        cart.remove_item(cola.id)

        assert [e.menu_item.id for e in cart.entries] == [tea.id]

    def test_remove_unknown_item_is_noop(self, cart, cola):
        cart.add_item(cola, 2)
        cart.remove_item("nope")
        assert cart.total_items == 2

    def test_update_quantity_sets_exact_value(self, cart, cola):
        cart.add_item(cola, 5)
        cart.update_quantity(cola.id, 2)
        assert cart.entries[0].quantity == 2

    def test_update_quantity_zero_equals_remove(self, cola, tea):
        removed = CartService(MemoryCartRepo())
        zeroed = CartService(MemoryCartRepo())
        for svc in (removed, zeroed):
            svc.add_item(cola, 2)
            svc.add_item(tea, 1)

        removed.remove_item(cola.id)
        zeroed.update_quantity(cola.id, 0)

        assert removed.to_order_payload() == zeroed.to_order_payload()
        assert removed.total_items == zeroed.total_items == 1

    def test_update_quantity_negative_removes(self, cart, cola):
        cart.add_item(cola, 2)
        cart.update_quantity(cola.id, -3)
        assert cart.is_empty()

    def test_update_unknown_item_does_not_insert(self, cart):
        cart.update_quantity("ghost", 4)
        assert cart.is_empty()

    def test_clear_cart(self, cart, cart_repo, cola, tea):
        cart.add_item(cola)
        cart.add_item(tea)
        cart.clear_cart()

        assert cart.is_empty()
        assert cart.total_price == Decimal("0")
        assert CartService(cart_repo).is_empty()


class TestInvariants:
    def test_random_sequence_keeps_totals_consistent(self, cart, make_item):
        items = [make_item(f"item-{i}", f"Drink {i}", base_price="3", coefficient="1.1") for i in range(4)]
        rnd = random.Random(1234)

        for _ in range(200):
            item = rnd.choice(items)
            op = rnd.choice(["add", "remove", "update"])
            if op == "add":
                cart.add_item(item, rnd.randint(1, 3))
            elif op == "remove":
                cart.remove_item(item.id)
            else:
                cart.update_quantity(item.id, rnd.randint(-2, 5))

            assert cart.total_items == sum(e.quantity for e in cart.entries)
            assert all(e.quantity > 0 for e in cart.entries)

    def test_total_price_independent_of_add_order(self, cola, tea):
        first = CartService(MemoryCartRepo())
        first.add_item(cola, 2)
        first.add_item(tea, 3)

        second = CartService(MemoryCartRepo())
        second.add_item(tea, 1)
        second.add_item(cola, 2)
        second.add_item(tea, 2)

        assert first.total_price == second.total_price == Decimal("39.6")

    def test_order_payload_matches_entries(self, cart, cola, tea):
        cart.add_item(tea, 3)
        cart.add_item(cola, 1)

        payload = {p.menu_item_id: p.quantity for p in cart.to_order_payload()}
        assert payload == {cola.id: 1, tea.id: 3}

    def test_order_payload_keeps_insertion_order(self, cart, cola, tea):
        cart.add_item(tea)
        cart.add_item(cola)
        cart.add_item(tea)

        assert [p.menu_item_id for p in cart.to_order_payload()] == [tea.id, cola.id]


class TestPersistence:
    def test_reload_yields_same_entries(self, cart_repo, cola, tea):
        cart = CartService(cart_repo)
        cart.add_item(cola, 2)
        cart.add_item(tea, 1)

        reloaded = CartService(cart_repo)
        assert [(e.menu_item.model_dump(), e.quantity) for e in reloaded.entries] == [
            (e.menu_item.model_dump(), e.quantity) for e in cart.entries
        ]
        assert reloaded.total_price == cart.total_price

    def test_persisted_format_uses_menu_item_key(self, cart_repo, cola):
        CartService(cart_repo).add_item(cola, 2)

        _, raw = cart_repo.load()
        stored = json.loads(raw)
        assert stored[0]["quantity"] == 2
        assert stored[0]["menuItem"]["id"] == cola.id

    def test_every_mutation_writes(self, cart_repo, cola):
        cart = CartService(cart_repo)
        cart.add_item(cola)
        cart.update_quantity(cola.id, 4)
        cart.remove_item(cola.id)

        version, _ = cart_repo.load()
        assert version == 3

    @pytest.mark.parametrize("raw", ["not json", '{"menuItem": 1}', '[{"quantity": 2}]', '[{"menuItem": {"id": "x"}, "quantity": 0}]'])
    def test_corrupt_storage_resets_to_empty(self, raw):
        repo = MemoryCartRepo()
        repo.save(raw, 0)

        cart = CartService(repo)
        assert cart.is_empty()
        assert cart.total_items == 0

    def test_string_prices_in_storage_are_parsed(self):
        repo = MemoryCartRepo()
        repo.save(json.dumps([{
            "menuItem": {
                "id": "item-s",
                "name": "Lemonade",
                "category": {"id": "c", "name": "Drinks"},
                "base_price": "5.00",
                "coefficient": "1.20",
                "final_price": "6.00",
            },
            "quantity": 2,
        }]), 0)

        cart = CartService(repo)
        assert cart.total_price == Decimal("12.00")


class TestConcurrentWriters:
    def test_conflicting_write_is_reapplied_on_latest_state(self, cart_repo, cola, tea):
        tab_one = CartService(cart_repo)
        tab_two = CartService(cart_repo)

        tab_one.add_item(cola, 1)
        # tab_two still holds the old version, its write must not drop tab_one's change
        tab_two.add_item(tea, 2)

        final = CartService(cart_repo)
        payload = {p.menu_item_id: p.quantity for p in final.to_order_payload()}
        assert payload == {cola.id: 1, tea.id: 2}
        assert tab_two.total_items == 3

    def test_persistent_conflict_raises(self, cola):
        class AlwaysConflicting(MemoryCartRepo):
            def save(self, raw, expected_version):
                return None

        cart = CartService(AlwaysConflicting())
        with pytest.raises(CartConflictError):
            cart.add_item(cola)
        assert cart.is_empty()


class TestRemoveOrdered:
    def test_stale_version_subtracts_only_ordered_lines(self, cart_repo, cola, tea):
        checkout_tab = CartService(cart_repo)
        checkout_tab.add_item(cola, 2)
        ordered_version = checkout_tab.version
        lines = checkout_tab.to_order_payload()

        other_tab = CartService(cart_repo)
        other_tab.add_item(cola, 1)
        other_tab.add_item(tea, 1)

        checkout_tab.remove_ordered(lines, ordered_version)

        remaining = {e.menu_item.id: e.quantity for e in CartService(cart_repo).entries}
        assert remaining == {cola.id: 1, tea.id: 1}

    def test_current_version_empties_cart(self, cart, cart_repo, cola):
        cart.add_item(cola, 3)

        cart.remove_ordered(cart.to_order_payload(), cart.version)

        assert cart.is_empty()
        assert CartService(cart_repo).is_empty()
