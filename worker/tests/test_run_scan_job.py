import dataclasses
from unittest.mock import patch

import pytest

from leadmap.core.config import Settings
from leadmap.core.page import SnapshotPage
from leadmap.jobs import run_scan
from leadmap.models import ScanStatus

FAST_SETTINGS = Settings(
    poll_attempts=2,
    poll_interval=0,
    first_cycle_delay=0,
    cycle_delay_min=0,
    cycle_delay_max=0,
    keepalive_interval=60,
)


class FakeBrowser:
    opened = []

    def __init__(self, settings=None, *, headless=None):
        self.settings = settings
        self.headless = headless
        self.closed = False

    def open_search(self, keyword, location):
        FakeBrowser.opened.append((keyword, location, self.settings.max_scrolls, self.headless))
        return self.page_factory()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True


@pytest.fixture
def fake_browser(monkeypatch, make_card, make_feed, make_href):
    FakeBrowser.opened = []
    feed = make_feed(
        make_card(name="One Dental", href=make_href("a1", "One")),
        make_card(name="Two Dental", href=make_href("b2", "Two")),
        end_marker=True,
    )
    FakeBrowser.page_factory = staticmethod(lambda: SnapshotPage([feed]))
    monkeypatch.setattr(run_scan, "MapsBrowser", FakeBrowser)
    monkeypatch.setattr(run_scan, "get_settings", lambda: FAST_SETTINGS)
    return FakeBrowser


def test_run_scan_job_collects_listings(fake_browser):
    store = run_scan.run_scan_job(keyword=" dentist ", location="Bangalore", max_scrolls=7, headless=False)

    assert [record.business_name for record in store.records] == ["One Dental", "Two Dental"]
    assert {record.search_keyword for record in store.records} == {"dentist"}
    assert store.status is ScanStatus.COMPLETE
    assert fake_browser.opened == [("dentist", "Bangalore", 7, False)]


def test_run_scan_job_rejects_blank_keyword(fake_browser):
    with pytest.raises(ValueError):
        run_scan.run_scan_job(keyword="  ", location="Pune")
    assert fake_browser.opened == []


def test_build_store_wires_configured_sinks(monkeypatch):
    calls = []
    monkeypatch.setattr(run_scan.db, "init_pool", lambda: calls.append("pool"))
    settings = dataclasses.replace(FAST_SETTINGS, database_url="postgres://x", ingest_api_url="http://i")

    store = run_scan.build_store(settings)

    assert calls == ["pool"]
    assert store._listeners == [run_scan.db.save_batch, run_scan.ingest.forward_batch]


def test_build_store_without_sinks():
    store = run_scan.build_store(FAST_SETTINGS)

    assert store._listeners == []


def test_build_parser_reads_flags(monkeypatch):
    monkeypatch.setattr(run_scan, "get_settings", lambda: FAST_SETTINGS)
    parser = run_scan.build_parser()

    args = parser.parse_args(["--keyword", "gym", "--location", "Goa", "--headed"])

    assert args.keyword == "gym"
    assert args.location == "Goa"
    assert args.max_scrolls == FAST_SETTINGS.max_scrolls
    assert args.headed is True


def test_main_passes_cli_arguments(monkeypatch):
    monkeypatch.setattr(run_scan, "get_settings", lambda: FAST_SETTINGS)
    argv = ["run_scan", "--keyword", "gym", "--location", "Goa", "--max-scrolls", "4", "--headed"]

    with patch("sys.argv", argv), patch.object(run_scan, "run_scan_job") as job:
        run_scan.main()

    job.assert_called_once_with(keyword="gym", location="Goa", max_scrolls=4, headless=False)
