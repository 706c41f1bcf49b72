from __future__ import annotations

from iaai_scraper.core.checkpoint import CheckpointStore
from iaai_scraper.core.models import CheckpointState


def test_missing_checkpoint_means_fresh_run(tmp_path) -> None:
    store = CheckpointStore(tmp_path / "kv")

    assert store.load() == CheckpointState(last_page_processed=0)


def test_save_then_load(tmp_path) -> None:
    store = CheckpointStore(tmp_path / "kv", key="CRAWLER_STATE")

    store.save(CheckpointState(last_page_processed=63))

    assert store.path.name == "CRAWLER_STATE.json"
    assert store.path.read_text(encoding="utf-8") == '{"lastPageProcessed": 63}'
    assert CheckpointStore(tmp_path / "kv").load().last_page_processed == 63


def test_save_leaves_no_temporary_files(tmp_path) -> None:
    store = CheckpointStore(tmp_path)

    for page in range(1, 5):
        store.save(CheckpointState(last_page_processed=page))

    assert [p.name for p in tmp_path.iterdir()] == ["CRAWLER_STATE.json"]
    assert store.load().last_page_processed == 4


def test_corrupt_checkpoint_falls_back_to_page_zero(tmp_path) -> None:
    store = CheckpointStore(tmp_path)
    store.path.write_text("{not json", encoding="utf-8")

    assert store.load().last_page_processed == 0


def test_negative_or_missing_values_are_clamped(tmp_path) -> None:
    store = CheckpointStore(tmp_path)
    store.path.write_text('{"lastPageProcessed": -4}', encoding="utf-8")
    assert store.load().last_page_processed == 0

    store.path.write_text('{}', encoding="utf-8")
    assert store.load().last_page_processed == 0


def test_clear_removes_state(tmp_path) -> None:
    store = CheckpointStore(tmp_path)
    store.save(CheckpointState(last_page_processed=7))

    store.clear()
    store.clear()

    assert not store.path.exists()
    assert store.load().last_page_processed == 0


def test_keys_are_independent(tmp_path) -> None:
    first = CheckpointStore(tmp_path, key="CRAWLER_STATE")
    second = CheckpointStore(tmp_path, key="CRAWLER_STATE_1")

    first.save(CheckpointState(last_page_processed=3))

    assert second.load().last_page_processed == 0
