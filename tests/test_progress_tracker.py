import json
from pathlib import Path

from harvester.models import CrawlPhase
from harvester.resilience import ProgressTracker


def test_load_defaults_when_absent(tmp_path: Path) -> None:
    state = ProgressTracker(tmp_path).load()

    assert state.phase is CrawlPhase.INITIALIZING
    assert state.current_page == 0
    assert state.started_at


def test_save_merges_and_persists(tmp_path: Path) -> None:
    tracker = ProgressTracker(tmp_path)
    tracker.save(phase=CrawlPhase.COLLECTING_URLS, current_page=2)
    tracker.save(total_collected=100)

    state = ProgressTracker(tmp_path).load()
    assert state.phase is CrawlPhase.COLLECTING_URLS
    assert state.current_page == 2
    assert state.total_collected == 100


def test_save_accepts_phase_value(tmp_path: Path) -> None:
    tracker = ProgressTracker(tmp_path)
    tracker.save(phase='interrupted', interrupted_phase=CrawlPhase.EXTRACTING_DATA)

    data = json.loads((tmp_path / "progress.json").read_text())
    assert data['phase'] == 'interrupted'
    assert data['interrupted_phase'] == 'extracting_data'
    assert ProgressTracker(tmp_path).load().interrupted_phase is CrawlPhase.EXTRACTING_DATA


def test_unknown_phase_falls_back_to_defaults(tmp_path: Path) -> None:
    (tmp_path / "progress.json").write_text(json.dumps({'phase': 'exploding'}))

    assert ProgressTracker(tmp_path).load().phase is CrawlPhase.INITIALIZING


def test_unknown_keys_are_ignored(tmp_path: Path) -> None:
    (tmp_path / "progress.json").write_text(json.dumps({
        'phase': 'extracting_data', 'total_processed': 7, 'legacy_field': True,
    }))

    state = ProgressTracker(tmp_path).load()
    assert state.phase is CrawlPhase.EXTRACTING_DATA
    assert state.total_processed == 7


def test_reset(tmp_path: Path) -> None:
    tracker = ProgressTracker(tmp_path)
    tracker.save(phase=CrawlPhase.COMPLETED, total_processed=5)

    tracker.reset()

    state = ProgressTracker(tmp_path).load()
    assert state.phase is CrawlPhase.INITIALIZING
    assert state.total_processed == 0


def test_get_stats_percent(tmp_path: Path) -> None:
    tracker = ProgressTracker(tmp_path)
    tracker.save(total_collected=200, total_processed=50, total_failed=3)

    stats = tracker.get_stats()

    assert stats['percent'] == 25.0
    assert stats['failed'] == 3
    assert stats['phase'] == 'initializing'
