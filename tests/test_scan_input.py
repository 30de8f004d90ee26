"""
Tests for barcode event sources and feeding them into the store.
"""

import io

from exceptions import ItemNotFoundError, ValidationError
from package_models import ITEM_ADDED, ITEM_MERGED, NEEDS_MANUAL_ENTRY, ManualEntry, RemoveItem, Scanned
from scan_input import KeyboardWedgeSource, ScriptedEventSource, feed


def test_keyboard_wedge_one_code_per_line():
    source = KeyboardWedgeSource(io.StringIO("111\r\n\n  \n222\n333"))
    assert list(source.events()) == [Scanned("111"), Scanned("222"), Scanned("333")]


def test_feed_dispatches_in_order(store):
    package = store.create_package()
    results = feed(store, package.id, KeyboardWedgeSource(io.StringIO("111\n111\n999\n")))

    assert [outcome.status for _, outcome in results] == [ITEM_ADDED, ITEM_MERGED, NEEDS_MANUAL_ENTRY]
    assert store.get(package.id).total_quantity == 2


def test_feed_continues_after_error(store):
    package = store.create_package()
    source = ScriptedEventSource([
        RemoveItem("111"),
        ManualEntry("", "Gauze"),
        Scanned("222"),
    ])

    results = feed(store, package.id, source)

    assert isinstance(results[0][1], ItemNotFoundError)
    assert isinstance(results[1][1], ValidationError)
    assert results[2][1].status == ITEM_ADDED
    assert [i.barcode for i in store.get(package.id).line_items] == ["222"]


def test_scripted_source_replays():
    events = [Scanned("1"), Scanned("2")]
    source = ScriptedEventSource(events)
    assert list(source.events()) == events
    assert list(source.events()) == events
