"""Unit tests for the copy-on-write bill list"""

from recurring_bills.services.bill_store import BillStore


def test_set_paid_swaps_in_a_new_list(make_bill):
    a, b = make_bill(id="a"), make_bill(id="b")
    store = BillStore([a, b])
    before = store.snapshot()

    store.set_paid(a, True)

    assert store.get("a").is_paid is True
    assert before[0].is_paid is False  # earlier snapshot untouched
    assert store.bills is not before
    assert store.get("b") is b


def test_restore_is_verbatim(make_bill):
    store = BillStore([make_bill(id="a")])
    snapshot = store.snapshot()
    store.set_paid(store.get("a"), True)

    store.restore(snapshot)

    assert store.bills is snapshot


def test_set_paid_appends_unknown_bill(make_bill):
    store = BillStore()
    store.set_paid(make_bill(id="x"), True)
    assert [b.id for b in store.bills] == ["x"]
    assert store.get("x").is_paid is True


def test_replace_all(make_bill):
    store = BillStore([make_bill(id="old")])
    store.replace_all([make_bill(id="new")])
    assert store.get("old") is None
    assert store.get("new") is not None


def test_restore_entry_keeps_other_bills_changes(make_bill):
    a, b = make_bill(id="a"), make_bill(id="b")
    store = BillStore([a, b])
    store.set_paid(a, True)
    store.set_paid(b, True)

    store.restore_entry("a", a)

    assert store.get("a") is a
    assert store.get("b").is_paid is True
    assert [bill.id for bill in store.bills] == ["a", "b"]


def test_restore_entry_without_previous_drops_appended_bill(make_bill):
    store = BillStore([make_bill(id="a")])
    store.set_paid(make_bill(id="x"), True)

    store.restore_entry("x", None)

    assert [bill.id for bill in store.bills] == ["a"]
