"""Tests for the sync-flag work queue."""
import pytest

from notion_relay.sync import FlagWorkQueue, WorkState

from conftest import text_prop


@pytest.fixture
def queue(notion, request_store):
    return FlagWorkQueue(notion, request_store)


def test_pending_returns_flagged_records_only(notion, queue):
    notion.add_request("r1", "X1", flag=True)
    notion.add_request("r2", "X2", flag=False)
    notion.add_request("r3", "X3", flag=True)

    items = queue.pending()

    assert [item.record.id for item in items] == ["r1", "r3"]
    assert all(item.state is WorkState.PENDING for item in items)


def test_pending_filters_on_flag_property(notion, queue):
    queue.pending()
    database_id, filter = notion.query_calls[0]
    assert filter == {"property": "Sync Flag", "checkbox": {"equals": True}}


def test_complete_clears_flag(notion, queue):
    notion.add_request("r1", "X1", flag=True)
    item = queue.claim(queue.pending()[0])

    assert queue.complete(item) is True
    assert item.state is WorkState.DONE
    assert item.record.sync_flag is False
    assert notion.prop("r1", "Sync Flag") is False


def test_failed_complete_returns_to_pending(notion, queue):
    notion.add_request("r1", "X1", flag=True)
    notion.fail_updates.add("r1")
    item = queue.claim(queue.pending()[0])

    assert queue.complete(item) is False
    assert item.state is WorkState.PENDING
    assert notion.prop("r1", "Sync Flag") is True


def test_release_writes_nothing(notion, queue):
    notion.add_request("r1", "X1", flag=True)
    item = queue.claim(queue.pending()[0])

    queue.release(item)

    assert item.state is WorkState.PENDING
    assert notion.update_calls == []


def test_claim_requires_pending(notion, queue):
    notion.add_request("r1", "X1", flag=True)
    item = queue.claim(queue.pending()[0])
    with pytest.raises(ValueError):
        queue.claim(item)


def test_complete_requires_claim(notion, queue):
    notion.add_request("r1", "X1", flag=True)
    item = queue.pending()[0]
    with pytest.raises(ValueError):
        queue.complete(item)


def test_undecodable_page_is_reported_not_raised(notion, queue):
    page = notion.add_request("r1", "X1", flag=True)
    page["properties"]["Request Date"] = text_prop("rich_text", "tomorrow")

    items = queue.pending()

    assert len(items) == 1
    assert items[0].error
    assert items[0].record.id == "r1"


def test_interrupted_item_stays_flagged(notion, queue):
    """An item claimed but never completed is still pending on the next read."""
    notion.add_request("r1", "X1", flag=True)
    queue.claim(queue.pending()[0])

    fresh = FlagWorkQueue(notion, queue.store).pending()

    assert [item.record.id for item in fresh] == ["r1"]
    assert fresh[0].state is WorkState.PENDING
