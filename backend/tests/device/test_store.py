import uuid

import pytest

from wordsync.device.models import LocalCard
from wordsync.device.store import RecordStore, card_to_row
from wordsync.schemas.sync import SyncCard


def remote_card(card_id=None, **overrides) -> SyncCard:
    data = dict(
        id=card_id or uuid.uuid4(),
        original="Fenster",
        translation="window",
        article="das",
        score=1,
        created_at=1000,
        last_reviewed_at=1500,
        next_review_at=5000,
        updated_at=2000,
        deleted_at=None,
    )
    data.update(overrides)
    return SyncCard(**data)


def test_apply_remote_inserts_unknown_cards(store):
    incoming = remote_card()

    assert store.apply_remote([incoming]).applied == 1

    stored = store.get(str(incoming.id))
    assert stored.original == "Fenster"
    assert stored.updated_at == 2000


def test_apply_remote_overwrites_local_copy(store, cards):
    local = cards.create("Fenster", "window")

    store.apply_remote([remote_card(uuid.UUID(local.id), translation="pane", updated_at=1)])

    stored = store.get(local.id)
    assert stored.translation == "pane"
    # сервер уже всё решил: перезаписываем даже "старым" updatedAt
    assert stored.updated_at == 1


def test_apply_remote_keeps_card_edited_after_it_was_sent(store, cards, device_clock):
    local = cards.create("Fenster", "window")
    sent = {local.id: local.updated_at}

    device_clock.advance()
    cards.rate(local.id, 2)
    echo = remote_card(uuid.UUID(local.id), score=0, updated_at=1)

    result = store.apply_remote([echo], sent=sent, since=0)

    assert result.applied == 0
    assert result.kept_local == (device_clock.now,)
    assert store.get(local.id).score == 2


def test_apply_remote_keeps_card_changed_after_collecting(store, cards, device_clock):
    # карточка не была отправлена, но поменялась после курсора
    local = cards.create("Fenster", "window")
    peer_version = remote_card(uuid.UUID(local.id), translation="pane")

    result = store.apply_remote([peer_version], sent={}, since=local.updated_at - 1)

    assert result.applied == 0
    assert store.get(local.id).translation == "window"


def test_apply_remote_overwrites_card_sent_unchanged(store, cards):
    local = cards.create("Fenster", "window")
    echo = remote_card(uuid.UUID(local.id), translation="pane", updated_at=9000)

    result = store.apply_remote([echo], sent={local.id: local.updated_at}, since=0)

    assert result.applied == 1
    assert result.kept_local == ()
    stored = store.get(local.id)
    assert stored.translation == "pane"
    assert stored.updated_at == 9000


def test_tombstone_applied_twice_is_same_as_once(store, cards):
    local = cards.create("Fenster", "window")
    tombstone = remote_card(uuid.UUID(local.id), deleted_at=3000, updated_at=3000)

    store.apply_remote([tombstone])
    once = card_to_row(SyncCard.model_validate(store.get(local.id)))
    store.apply_remote([tombstone])
    twice = card_to_row(SyncCard.model_validate(store.get(local.id)))

    assert once == twice
    assert twice["deleted_at"] == 3000
    assert cards.list_due(now=10 ** 13) == []


def test_changed_since_is_strict_and_includes_tombstones(store):
    store.apply_remote([
        remote_card(original="alt", updated_at=100),
        remote_card(original="grenze", updated_at=200),
        remote_card(original="neu", updated_at=300, deleted_at=300),
    ])

    changed = store.changed_since(200)

    assert [c.original for c in changed] == ["neu"]
    assert changed[0].is_deleted


def test_file_store_survives_reopen(tmp_path):
    url = f"sqlite:///{tmp_path / 'device' / 'cards.db'}"
    store = RecordStore(url)
    store.apply_remote([remote_card(original="dauerhaft")])
    store.close()

    reopened = RecordStore(url)
    try:
        assert [c.original for c in reopened.list_live()] == ["dauerhaft"]
    finally:
        reopened.close()


def test_transaction_rolls_back_on_error(store):
    card_id = str(uuid.uuid4())
    with pytest.raises(RuntimeError):
        with store.transaction() as session:
            session.add(LocalCard(id=card_id, created_at=1, next_review_at=1, updated_at=1))
            session.flush()
            raise RuntimeError("boom")

    assert store.get(card_id) is None
