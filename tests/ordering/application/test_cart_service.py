"""Tests for CartService: locking, fire-and-forget persistence and failure handling."""

import threading
from decimal import Decimal

import pytest
from menu.shared.money import Money
from ordering.cart.cart import Cart
from ordering.cart.line import build_line
from ordering.cart.management import CartService
from ordering.cart.persistence import CartStore, InMemoryCartStore, JsonFileCartStore, serialize_cart
from ordering.customization.selection import CustomizationSelection
from shared.exceptions import (
    CartLineNotFoundError,
    CoffeeShopConflictError,
    PersistenceError,
    RequiredOptionMissingError,
)


class FailingStore(CartStore):
    def __init__(self, fail_load=False):
        self.fail_load = fail_load
        self.attempts = 0

    def load(self):
        if self.fail_load:
            raise PersistenceError("disk unavailable")
        return None

    def save(self, cart):
        self.attempts += 1
        raise PersistenceError("disk full")


@pytest.fixture
def store():
    return InMemoryCartStore()


@pytest.fixture
def service(store):
    with CartService(store) as service:
        yield service


class TestLoading:
    def test_starts_empty_without_stored_cart(self, service):
        assert service.cart().is_empty
        assert service.item_count() == 0

    def test_loads_stored_cart(self, latte, oat_latte):
        cart = Cart()
        cart.add(build_line(latte, oat_latte, "shop-a", quantity=2))

        with CartService(InMemoryCartStore(serialize_cart(cart))) as service:
            assert service.cart().to_dict() == cart.to_dict()
            assert service.item_count() == 2

    def test_corrupt_stored_cart_starts_empty(self):
        with CartService(InMemoryCartStore("{broken")) as service:
            assert service.cart().is_empty

    def test_load_failure_starts_empty(self):
        with CartService(FailingStore(fail_load=True)) as service:
            assert service.cart().is_empty

    def test_cart_file_that_is_not_utf8_starts_empty(self, tmp_path):
        path = tmp_path / "cart.json"
        path.write_bytes(b"\xff\xfe{not json")

        with CartService(JsonFileCartStore(path)) as service:
            assert service.cart().is_empty
            assert service.item_count() == 0


class TestMutations:
    def test_add_selection(self, service, latte, oat_latte):
        line = service.add_selection(latte, oat_latte, "shop-a", quantity=2)
        assert line.unit_price == Money.of("68.00")
        assert service.total() == Money.of("136.00")

    def test_identical_selection_merges(self, service, latte, oat_latte):
        service.add_selection(latte, oat_latte, "shop-a")
        service.add_selection(latte, oat_latte, "shop-a")
        cart = service.cart()
        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 2

    def test_invalid_selection_leaves_cart_unchanged(self, service, store, latte, oat_latte):
        service.add_selection(latte, oat_latte, "shop-a")
        service.flush()
        before = service.cart().to_dict()

        with pytest.raises(RequiredOptionMissingError):
            service.add_selection(latte, CustomizationSelection.create(options={"milk-type": {}}), "shop-a")

        service.flush()
        assert service.cart().to_dict() == before
        assert store.saves == 1

    def test_conflict_leaves_cart_unchanged(self, service, latte, oat_latte):
        service.add_selection(latte, oat_latte, "shop-a")
        before = service.cart().to_dict()

        with pytest.raises(CoffeeShopConflictError):
            service.add_selection(latte, oat_latte, "shop-b")

        assert service.cart().to_dict() == before
        assert not service.can_add_from("shop-b")

    def test_replace_and_add_resolves_conflict(self, service, latte, croissant, oat_latte):
        service.add_selection(latte, oat_latte, "shop-a")
        line = build_line(croissant, CustomizationSelection.create(), "shop-b")

        service.replace_and_add(line)

        cart = service.cart()
        assert cart.coffee_shop_id == "shop-b"
        assert [line.menu_item_id for line in cart.lines] == ["croissant"]

    def test_update_remove_and_clear(self, service, latte, oat_latte):
        first = service.add_selection(latte, oat_latte, "shop-a")
        second = service.add_selection(latte, oat_latte.with_size("l"), "shop-a")

        assert service.update_quantity(first.id, 0).quantity == 1
        assert service.remove(first.id).id == first.id
        assert service.remove_at(0).id == second.id
        assert service.cart().coffee_shop_id is None

        service.add_selection(latte, oat_latte, "shop-a")
        service.clear()
        assert service.cart().is_empty

    def test_unknown_line(self, service):
        with pytest.raises(CartLineNotFoundError):
            service.remove("missing")

    def test_reads_return_copies(self, service, latte, oat_latte):
        line = service.add_selection(latte, oat_latte, "shop-a")
        line.quantity = 10
        service.cart().lines[0].quantity = 7
        assert service.item_count() == 1


class TestPersistence:
    def test_every_mutation_is_saved(self, service, store, latte, oat_latte):
        line = service.add_selection(latte, oat_latte, "shop-a")
        service.update_quantity(line.id, 3)
        service.flush()

        assert store.saves == 2
        assert store.load().to_dict() == service.cart().to_dict()

    def test_last_save_wins(self, service, store, latte, oat_latte):
        for size in ("s", "m", "l"):
            service.add_selection(latte, oat_latte.with_size(size), "shop-a")
        service.remove_at(0)
        service.flush()

        assert store.load().to_dict() == service.cart().to_dict()
        assert [line.size_id for line in store.load().lines] == ["m", "l"]

    def test_save_failure_keeps_memory_state(self, latte, oat_latte):
        store = FailingStore()
        with CartService(store) as service:
            service.add_selection(latte, oat_latte, "shop-a")
            service.add_selection(latte, oat_latte, "shop-a")
            service.flush()

            assert store.attempts == 2
            assert service.item_count() == 2

    def test_round_trip_through_new_service(self, tmp_path, latte, oat_latte):
        path = tmp_path / "cart.json"
        with CartService(JsonFileCartStore(path)) as service:
            service.add_selection(latte, oat_latte.with_ingredient("espresso", Decimal(2)), "shop-a", quantity=2)
            expected = service.cart()

        with CartService(JsonFileCartStore(path)) as reloaded:
            assert reloaded.cart().to_dict() == expected.to_dict()


class TestClose:
    def test_changes_after_close_are_rejected(self, store, latte, oat_latte):
        service = CartService(store)
        service.add_selection(latte, oat_latte, "shop-a")
        service.close()

        with pytest.raises(RuntimeError):
            service.add_selection(latte, oat_latte.with_size("l"), "shop-a")
        with pytest.raises(RuntimeError):
            service.clear()

        assert service.item_count() == 1
        assert store.saves == 1
        assert store.load().item_count == 1

    def test_reads_still_work_after_close(self, store, latte, oat_latte):
        with CartService(store) as service:
            service.add_selection(latte, oat_latte, "shop-a", quantity=2)

        assert service.item_count() == 2
        assert service.total() == Money.of("136.00")
        assert len(service.cart().lines) == 1


class TestConcurrency:
    def test_concurrent_adds_are_not_lost(self, service, store, latte, oat_latte):
        line = build_line(latte, oat_latte, "shop-a")

        def add_many():
            for _ in range(25):
                service.add(line)

        threads = [threading.Thread(target=add_many) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        service.flush()

        cart = service.cart()
        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 200
        assert store.load().to_dict() == cart.to_dict()
        assert store.saves == 200
